"""Token issuance."""

import json

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from backend.src.controllers.base import Controller, action
from backend.src.models.auth import LoginRequest


class AuthController(Controller):

    @action(methods=("POST",))
    async def login(self, request: Request, id=None) -> JSONResponse:
        """
        Exchange credentials for a bearer token.

        Body:
            {"email": "...", "password": "..."}

        Returns:
            TokenResponse, or 401 for wrong credentials
        """
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Request body must be JSON")

        try:
            login_request = LoginRequest.model_validate(body)
        except ValidationError as e:
            raise RequestValidationError(e.errors(include_url=False, include_context=False))

        token = await request.app.state.services.auth_service.login(login_request)
        if token is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password",
                headers={"WWW-Authenticate": "Bearer"}
            )

        return JSONResponse(content=token.model_dump())
