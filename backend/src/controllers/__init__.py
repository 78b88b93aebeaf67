"""MVC controllers served by the default route."""

from backend.src.controllers.auth import AuthController
from backend.src.controllers.base import Controller, ControllerRegistry, action
from backend.src.controllers.home import HomeController
from backend.src.controllers.usuarios import UsuariosController


def default_registry() -> ControllerRegistry:
    return ControllerRegistry([HomeController, UsuariosController, AuthController])


__all__ = [
    "AuthController",
    "Controller",
    "ControllerRegistry",
    "HomeController",
    "UsuariosController",
    "action",
    "default_registry",
]
