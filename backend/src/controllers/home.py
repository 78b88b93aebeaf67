"""Home pages."""

import html

from fastapi import Request, status
from starlette.responses import HTMLResponse

from backend.src.controllers.base import Controller, action


class HomeController(Controller):

    @action()
    async def index(self, request: Request, id=None) -> HTMLResponse:
        settings = request.app.state.services.settings
        body = (
            f"        <h1>{html.escape(settings.app_name)}</h1>\n"
            f"        <p>Environment: {html.escape(settings.environment_name)}</p>\n"
            "        <p><a href=\"/api/ping\">Ping</a> | <a href=\"/health\">Health</a></p>"
        )
        return self.view(request, "Home", body)

    @action()
    async def privacy(self, request: Request, id=None) -> HTMLResponse:
        return self.view(request, "Privacy Policy", "        <h1>Privacy Policy</h1>")

    @action(methods=("GET", "POST"))
    async def error(self, request: Request, id=None) -> HTMLResponse:
        """Generic error page; never shows exception details."""
        correlation_id = getattr(request.state, "correlation_id", None)
        body = "        <h1>Error.</h1>\n        <p>An error occurred while processing your request.</p>"
        if correlation_id:
            body += f"\n        <p><strong>Request ID:</strong> <code>{html.escape(correlation_id)}</code></p>"
        return self.view(request, "Error", body, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
