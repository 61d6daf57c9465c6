"""HTML page routes. Access is decided by RouteGuardASGI before these run."""

from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse
from jinja2 import Environment, FileSystemLoader, select_autoescape

from .auth_middleware import get_optional_session

router = APIRouter(tags=["pages"])

# Templates
templates_path = Path(__file__).parent / "templates"
jinja_env = Environment(
    loader=FileSystemLoader(templates_path),
    autoescape=select_autoescape(["html"]),
)


def _render_template_sync(template_name: str, context: dict) -> str:
    template = jinja_env.get_template(template_name)
    return template.render(**context)


async def render_page(request: Request, template_name: str, **context) -> HTMLResponse:
    context.setdefault("app_name", request.app.state.settings.app.name)
    context.setdefault("session", get_optional_session(request))
    html = await run_in_threadpool(_render_template_sync, template_name, context)
    return HTMLResponse(html)


@router.get("/", response_class=HTMLResponse)
async def home(request: Request) -> HTMLResponse:
    return await render_page(request, "home.html")


@router.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, redirect: Optional[str] = None) -> HTMLResponse:
    # Only same-site paths are honored as post-login targets
    target = redirect if redirect and redirect.startswith("/") and not redirect.startswith("//") else None
    return await render_page(
        request,
        "login.html",
        redirect=target or request.app.state.settings.routes.landing_path,
    )


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard_page(request: Request) -> HTMLResponse:
    return await render_page(request, "dashboard.html")


@router.get("/history", response_class=HTMLResponse)
async def history_page(request: Request) -> HTMLResponse:
    return await render_page(request, "history.html")
