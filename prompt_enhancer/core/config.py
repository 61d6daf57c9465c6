"""
Configuration management with schema validation.

Settings come from three layers, merged in order:
    1. Built-in defaults (DEFAULT_SETTINGS below)
    2. config/settings.yaml (or the file named by PROMPT_ENHANCER_SETTINGS)
    3. Environment variables referenced as ${VAR} or ${VAR:default}

The result is validated once at process start and passed explicitly to
every component. Nothing reads the environment after that.
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from ..utils.exceptions import ConfigError


DEFAULT_SETTINGS_PATH = Path("config/settings.yaml")

DEFAULT_SETTINGS: Dict[str, Any] = {
    "app": {
        "name": "PromptEnhancer",
        "environment": "${ENVIRONMENT:development}",
        "base_url": "${APP_URL:http://localhost:8000}",
    },
    "auth": {
        "session_secret": "${JWT_SECRET:}",
        "session_ttl_days": 7,
        "code_length": 6,
        "code_ttl_minutes": 10,
        "cookie_name": "session",
    },
    "email": {
        "host": "${EMAIL_SERVER_HOST:smtp.gmail.com}",
        "port": "${EMAIL_SERVER_PORT:587}",
        "username": "${EMAIL_SERVER_USER:}",
        "password": "${EMAIL_SERVER_PASSWORD:}",
        "from_address": "${EMAIL_FROM:}",
        "from_name": "PromptEnhancer",
        "timeout_seconds": 15,
        "max_attempts": 2,
    },
    "enhance": {
        "api_key": "${OPENROUTER_API_KEY:}",
        "base_url": "https://openrouter.ai/api/v1",
        "model": "openai/gpt-4o-mini",
        "temperature": 0.7,
        "max_tokens": 2000,
        "timeout_seconds": 60,
    },
    "routes": {
        "protected_prefixes": ["/dashboard", "/history"],
        "auth_prefixes": ["/login"],
        "excluded_prefixes": ["/api/", "/static/", "/favicon.ico"],
        "login_path": "/login",
        "landing_path": "/dashboard",
    },
    "storage": {
        "data_dir": "${DATA_DIR:data}",
        "lock_timeout_seconds": 5,
    },
    "logging": {
        "level": "${LOG_LEVEL:INFO}",
        "format": "json",
    },
}


class _Section(BaseModel):
    model_config = ConfigDict(frozen=True)


class AppSettings(_Section):
    name: str = "PromptEnhancer"
    environment: str = "development"
    base_url: str = "http://localhost:8000"


class AuthSettings(_Section):
    session_secret: str = ""
    session_ttl_days: int = Field(default=7, ge=1)
    code_length: int = Field(default=6, ge=4, le=10)
    code_ttl_minutes: int = Field(default=10, ge=1)
    cookie_name: str = "session"


class EmailSettings(_Section):
    host: str = "smtp.gmail.com"
    port: int = 587
    username: str = ""
    password: str = ""
    from_address: str = ""
    from_name: str = "PromptEnhancer"
    timeout_seconds: float = 15
    max_attempts: int = Field(default=2, ge=1)

    @property
    def sender(self) -> str:
        return self.from_address or self.username


class EnhanceSettings(_Section):
    api_key: str = ""
    base_url: str = "https://openrouter.ai/api/v1"
    model: str = "openai/gpt-4o-mini"
    temperature: float = 0.7
    max_tokens: int = 2000
    timeout_seconds: float = 60


class RouteSettings(_Section):
    protected_prefixes: List[str] = Field(default_factory=lambda: ["/dashboard", "/history"])
    auth_prefixes: List[str] = Field(default_factory=lambda: ["/login"])
    excluded_prefixes: List[str] = Field(
        default_factory=lambda: ["/api/", "/static/", "/favicon.ico"]
    )
    login_path: str = "/login"
    landing_path: str = "/dashboard"


class StorageSettings(_Section):
    data_dir: str = "data"
    lock_timeout_seconds: float = 5

    @property
    def path(self) -> Path:
        return Path(self.data_dir)


class LoggingSettings(_Section):
    level: str = "INFO"
    format: str = "json"


class Settings(_Section):
    app: AppSettings = Field(default_factory=AppSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    email: EmailSettings = Field(default_factory=EmailSettings)
    enhance: EnhanceSettings = Field(default_factory=EnhanceSettings)
    routes: RouteSettings = Field(default_factory=RouteSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def is_production(self) -> bool:
        return self.app.environment.strip().lower() == "production"


def substitute_env_vars(value: Any) -> Any:
    """Recursively substitute ${VAR} and ${VAR:default} strings."""
    if isinstance(value, str):
        if value.startswith("${") and value.endswith("}"):
            var_expr = value[2:-1]
            if ":" in var_expr:
                var_name, default = var_expr.split(":", 1)
                return os.getenv(var_name.strip(), default.strip())
            return os.getenv(var_expr, value)
    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [substitute_env_vars(item) for item in value]
    return value


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load settings from {path}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping")
    return data


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """
    Load and validate settings.

    Args:
        path: Optional YAML file. Defaults to $PROMPT_ENHANCER_SETTINGS or
            config/settings.yaml; a missing default file is not an error.

    Raises:
        ConfigError: If the file is unreadable or values fail validation
    """
    load_dotenv()

    explicit = path is not None or bool(os.getenv("PROMPT_ENHANCER_SETTINGS"))
    settings_path = Path(path or os.getenv("PROMPT_ENHANCER_SETTINGS") or DEFAULT_SETTINGS_PATH)

    raw = DEFAULT_SETTINGS
    if settings_path.exists():
        raw = _deep_merge(DEFAULT_SETTINGS, _read_yaml(settings_path))
    elif explicit:
        raise ConfigError(f"Settings file not found: {settings_path}")

    try:
        return Settings(**substitute_env_vars(raw))
    except ValueError as e:
        raise ConfigError(f"Invalid settings: {e}")
