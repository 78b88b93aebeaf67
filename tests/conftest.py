"""Shared fixtures for unit and application tests."""

from typing import List

import pytest

from backend.src.config import Settings
from backend.src.models.usuario import UsuarioResponse
from tests.fakes import FakeDatabaseContext, make_settings


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def production_settings() -> Settings:
    return make_settings(environment="production", log_format="json")


@pytest.fixture
def fake_db() -> FakeDatabaseContext:
    return FakeDatabaseContext()


@pytest.fixture
def sample_usuarios() -> List[UsuarioResponse]:
    return [
        UsuarioResponse(id=1, nombre="Ana Torres", email="ana@example.com", activo=True),
        UsuarioResponse(id=2, nombre="Luis <Admin>", email="luis@example.com", activo=False),
    ]
