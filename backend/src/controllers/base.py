"""
Conventional controller routing.

Requests are dispatched by the pattern {controller=Home}/{action=Index}/{id?}.
Controller and action names are matched case-insensitively. Actions are
plain async methods marked with @action:

    class HomeController(Controller):
        @action()
        async def index(self, request, id=None):
            return self.view("Home", "<p>Welcome</p>")
"""

import html
import inspect
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import structlog
from fastapi import HTTPException, Request, status
from starlette.responses import HTMLResponse, Response
from starlette.routing import Route

logger = structlog.get_logger(__name__)

DEFAULT_CONTROLLER = "Home"
DEFAULT_ACTION = "Index"
ROUTE_METHODS = ["GET", "POST"]

LAYOUT = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8" />
    <title>{title} - {app_name}</title>
    <link rel="stylesheet" href="/static/css/site.css" />
</head>
<body>
    <header><a href="/">{app_name}</a> | <a href="/Home/Privacy">Privacy</a></header>
    <main>
{body}
    </main>
</body>
</html>
"""


def action(name: Optional[str] = None, methods: Iterable[str] = ("GET",)) -> Callable:
    """Mark a controller method as a routable action."""

    def decorator(func: Callable) -> Callable:
        func.action_name = name or func.__name__.replace("_", "").title()
        func.action_methods = frozenset(m.upper() for m in methods)
        return func

    return decorator


class Controller:
    """Base class of MVC controllers."""

    requires_authentication = False

    @classmethod
    def controller_name(cls) -> str:
        name = cls.__name__
        return name[: -len("Controller")] if name.endswith("Controller") else name

    @classmethod
    def actions(cls) -> Dict[str, Callable]:
        """Actions keyed by lowercase name."""
        found = {}
        for _, member in inspect.getmembers(cls, inspect.isfunction):
            if hasattr(member, "action_name"):
                found[member.action_name.lower()] = member
        return found

    def view(self, request: Request, title: str, body: str, status_code: int = status.HTTP_200_OK) -> HTMLResponse:
        """Render body inside the site layout. Callers escape dynamic values."""
        app_name = request.app.state.services.settings.app_name
        content = LAYOUT.format(title=html.escape(title), app_name=html.escape(app_name), body=body)
        return HTMLResponse(content, status_code=status_code)


class ControllerRegistry:
    """Resolves route values to controller actions."""

    def __init__(self, controllers: Iterable[type] = ()):
        self._controllers: Dict[str, type] = {}
        for controller in controllers:
            self.register(controller)

    @property
    def names(self) -> List[str]:
        return [c.controller_name() for c in self._controllers.values()]

    def register(self, controller: type) -> None:
        key = controller.controller_name().lower()
        if key in self._controllers:
            raise ValueError(f"Controller '{controller.controller_name()}' is already registered")
        self._controllers[key] = controller

    def resolve(self, controller_name: str, action_name: str) -> Optional[Tuple[type, Callable]]:
        controller = self._controllers.get(controller_name.lower())
        if controller is None:
            return None
        method = controller.actions().get(action_name.lower())
        if method is None:
            return None
        return controller, method

    async def dispatch(self, request: Request) -> Response:
        """
        Run the action selected by the route values of the request.

        Raises:
            HTTPException: 404 for an unknown controller or action, 405 when
                the action does not accept the method, 401 when the
                controller requires authentication
        """
        params = request.path_params
        controller_name = params.get("controller") or DEFAULT_CONTROLLER
        action_name = params.get("action") or DEFAULT_ACTION
        id_value = params.get("id")

        resolved = self.resolve(controller_name, action_name)
        if resolved is None:
            logger.debug("mvc_route_not_found", controller=controller_name, action=action_name)
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

        controller_cls, method = resolved

        request_method = "GET" if request.method == "HEAD" else request.method
        if request_method not in method.action_methods:
            raise HTTPException(
                status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
                detail="Method Not Allowed",
                headers={"Allow": ", ".join(sorted(method.action_methods))}
            )

        if controller_cls.requires_authentication:
            request.app.state.services.authorization.evaluate(request)

        return await method(controller_cls(), request, id_value)

    def routes(self) -> List[Route]:
        """Starlette routes implementing the default route pattern."""
        return [
            Route(path, self.dispatch, methods=ROUTE_METHODS, name=f"mvc_{i}")
            for i, path in enumerate((
                "/",
                "/{controller}",
                "/{controller}/{action}",
                "/{controller}/{action}/{id}",
            ))
        ]
