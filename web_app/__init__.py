"""
PromptEnhancer web layer.

The application is built by web_app.main.create_app(); routers:
- web_app.auth_routes.router     (/api/auth)
- web_app.enhance_routes.router  (/api/enhance, /api/history)
- web_app.page_routes.router     (HTML pages behind the route guard)
"""
