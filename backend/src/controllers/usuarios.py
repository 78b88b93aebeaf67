"""User pages; every action requires a valid bearer token."""

import html

from fastapi import HTTPException, Request, status
from starlette.responses import HTMLResponse

from backend.src.controllers.base import Controller, action

# usuarios.id is a PostgreSQL integer column
MAX_USUARIO_ID = 2**31 - 1


class UsuariosController(Controller):

    requires_authentication = True

    @action()
    async def index(self, request: Request, id=None) -> HTMLResponse:
        usuario_service = request.app.state.services.usuario_service
        usuarios = await usuario_service.list_usuarios()

        rows = "\n".join(
            f"            <tr><td>{u.id}</td><td>{html.escape(u.nombre)}</td>"
            f"<td>{html.escape(u.email)}</td><td>{'Yes' if u.activo else 'No'}</td></tr>"
            for u in usuarios
        )
        body = (
            "        <h1>Usuarios</h1>\n"
            "        <table>\n"
            "            <tr><th>Id</th><th>Nombre</th><th>Email</th><th>Activo</th></tr>\n"
            f"{rows}\n"
            "        </table>"
        )
        return self.view(request, "Usuarios", body)

    @action()
    async def details(self, request: Request, id=None) -> HTMLResponse:
        try:
            usuario_id = int(id)
        except (TypeError, ValueError):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
        if not 1 <= usuario_id <= MAX_USUARIO_ID:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

        usuario = await request.app.state.services.usuario_service.get_usuario(usuario_id)
        if usuario is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Usuario not found")

        body = (
            f"        <h1>{html.escape(usuario.nombre)}</h1>\n"
            "        <dl>\n"
            f"            <dt>Email</dt><dd>{html.escape(usuario.email)}</dd>\n"
            f"            <dt>Activo</dt><dd>{'Yes' if usuario.activo else 'No'}</dd>\n"
            "        </dl>"
        )
        return self.view(request, usuario.nombre, body)
