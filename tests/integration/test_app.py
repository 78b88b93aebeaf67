"""
Application tests over the full request pipeline.

The app is built with an in-memory database context and driven through
FastAPI's TestClient, so the lifespan (startup diagnostic) runs exactly as
it does under uvicorn.

Tests cover:
- Startup with reachable and unreachable databases
- /api/ping and /api/database-check
- /health and /health/ready
- Bearer authentication on the Usuarios controller and /api/usuarios
- Default controller route dispatch
- Environment-specific pipeline (CORS, HSTS, error pages)
- HTTPS redirection and metrics
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from backend.src.config import JwtSettings
from backend.src.exceptions import ConfigurationError
from backend.src.main import create_app
from backend.src.models.usuario import UsuarioDB
from tests.fakes import FakeDatabaseContext, FakeUsuarioService, JwtTestConfig, make_settings


# ============================================================================
# HELPERS
# ============================================================================


def build_client(
    db: Optional[FakeDatabaseContext] = None,
    base_url: str = "http://testserver",
    **settings_overrides
):
    db = db if db is not None else FakeDatabaseContext()
    app = create_app(make_settings(**settings_overrides), db_context=db)
    return app, TestClient(app, base_url=base_url, raise_server_exceptions=False)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class InMemoryUsuarioRepository:

    def __init__(self, *usuarios: UsuarioDB):
        self.usuarios = {u.email: u for u in usuarios}

    async def get_by_email(self, email: str):
        return self.usuarios.get(email.lower())


@pytest.fixture
def db() -> FakeDatabaseContext:
    return FakeDatabaseContext()


@pytest.fixture
def app_and_client(db, sample_usuarios):
    app, client = build_client(db)
    app.state.services.usuario_service = FakeUsuarioService(sample_usuarios)
    with client:
        yield app, client


@pytest.fixture
def app(app_and_client):
    return app_and_client[0]


@pytest.fixture
def client(app_and_client):
    return app_and_client[1]


@pytest.fixture
def token(app) -> str:
    return app.state.services.auth_service.create_access_token(subject="1", email="ana@example.com")


# ============================================================================
# STARTUP
# ============================================================================


class TestStartup:
    """Tests for the lifespan and the startup diagnostic."""

    def test_reachable_database_is_verified(self, app, db):
        report = app.state.startup_report

        assert report.is_verified
        assert "can_connect" in db.calls

    def test_unreachable_database_does_not_block_startup(self):
        db = FakeDatabaseContext(reachable=False)
        app, client = build_client(db)

        with client:
            response = client.get("/api/ping")

            assert response.status_code == 200
            assert response.json()["status"] == "OK"
            assert not app.state.startup_report.is_verified

    def test_pending_migrations_applied_at_startup(self):
        db = FakeDatabaseContext(pending=["0001_initial_schema"])
        app, client = build_client(db)

        with client:
            assert app.state.startup_report.migrations_applied

        assert db.applied == ["0001_initial_schema"]

    def test_pool_closed_on_shutdown(self, db):
        _, client = build_client(db)

        with client:
            assert not db.closed

        assert db.closed

    def test_missing_jwt_secret_fails_app_construction(self):
        settings = make_settings(
            jwt_settings=JwtSettings(issuer=JwtTestConfig.ISSUER, audience=JwtTestConfig.AUDIENCE)
        )

        with pytest.raises(ConfigurationError):
            create_app(settings, db_context=FakeDatabaseContext())


# ============================================================================
# DIAGNOSTIC ENDPOINTS
# ============================================================================


class TestPing:

    def test_ping_payload(self, client):
        response = client.get("/api/ping")
        body = response.json()

        assert response.status_code == 200
        assert body["message"] == "API is running"
        assert body["status"] == "OK"
        assert body["database"] == "PostgreSQL"
        assert body["environment"] == "Development"
        assert "timestamp" in body

    def test_ping_never_touches_database(self, client, db):
        calls_before = list(db.calls)

        client.get("/api/ping")

        assert db.calls == calls_before


class TestDatabaseCheck:

    def test_connected_with_zero_rows(self, client):
        response = client.get("/api/database-check")
        body = response.json()

        assert response.status_code == 200
        assert body["status"] == "Connected"
        assert body["database"] == "PostgreSQL"
        assert body["statistics"] == {"usuarios": 0, "perfiles": 0}

    def test_queries_on_every_call(self, client, db):
        db.counts["usuarios"] = 5
        first = client.get("/api/database-check").json()
        db.counts["usuarios"] = 6
        second = client.get("/api/database-check").json()

        assert first["statistics"]["usuarios"] == 5
        assert second["statistics"]["usuarios"] == 6

    def test_query_failure_is_problem_response(self, client, db):
        db.count_error = RuntimeError("relation \"perfiles\" does not exist")

        response = client.get("/api/database-check")
        body = response.json()

        assert response.status_code == 500
        assert response.headers["content-type"].startswith("application/problem+json")
        assert body["status"] == 500
        assert body["instance"] == "/api/database-check"
        assert "does not exist" in body["detail"]

    def test_production_hides_exception_message(self):
        db = FakeDatabaseContext(count_error=RuntimeError("password authentication failed"))
        _, client = build_client(db, environment="production")

        with client:
            response = client.get("/api/database-check")

        assert response.status_code == 500
        assert "password" not in response.json()["detail"]


# ============================================================================
# HEALTH
# ============================================================================


class TestHealth:

    @staticmethod
    def without_durations(body: dict) -> dict:
        body = dict(body)
        body.pop("totalDuration")
        body["entries"] = {
            name: {k: v for k, v in entry.items() if k != "duration"}
            for name, entry in body["entries"].items()
        }
        return body

    def test_health_and_ready_are_identical(self, client):
        health = client.get("/health")
        ready = client.get("/health/ready")

        assert health.status_code == ready.status_code == 200
        assert self.without_durations(health.json()) == self.without_durations(ready.json())
        assert health.json()["entries"]["postgresql"]["status"] == "Healthy"

    def test_unreachable_database_is_503(self, client, db):
        db.reachable = False

        for path in ("/health", "/health/ready"):
            response = client.get(path)

            assert response.status_code == 503
            assert response.json()["status"] == "Unhealthy"


# ============================================================================
# AUTHENTICATION
# ============================================================================


class TestAuthentication:
    """Tests for the protected Usuarios controller."""

    def test_missing_token_is_401(self, client):
        response = client.get("/Usuarios")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_wrong_issuer_is_401(self, client):
        now = datetime.now(timezone.utc)
        forged = jwt.encode(
            {
                "sub": "1",
                "iss": "https://attacker.test",
                "aud": JwtTestConfig.AUDIENCE,
                "iat": int(now.timestamp()),
                "exp": int((now + timedelta(minutes=10)).timestamp()),
            },
            JwtTestConfig.SECRET_KEY,
            algorithm="HS256",
        )

        response = client.get("/Usuarios", headers=bearer(forged))

        assert response.status_code == 401
        assert 'error="invalid_token"' in response.headers["www-authenticate"]

    def test_expired_token_is_401(self, client, app):
        expired = app.state.services.auth_service.create_access_token(
            subject="1", expires_delta=timedelta(hours=-1)
        )

        response = client.get("/Usuarios", headers=bearer(expired))

        assert response.status_code == 401
        assert "expired" in response.json()["detail"]

    def test_non_bearer_scheme_is_401(self, client):
        response = client.get("/Usuarios", headers={"Authorization": "Basic dXNlcjpwYXNz"})

        assert response.status_code == 401

    def test_valid_token_lists_usuarios(self, client, token):
        response = client.get("/Usuarios/Index", headers=bearer(token))

        assert response.status_code == 200
        assert "Ana Torres" in response.text
        assert "Luis &lt;Admin&gt;" in response.text

    def test_details(self, client, token):
        response = client.get("/usuarios/details/1", headers=bearer(token))

        assert response.status_code == 200
        assert "ana@example.com" in response.text

    @pytest.mark.parametrize("usuario_id", ["99", "abc"])
    def test_details_not_found(self, client, token, usuario_id):
        response = client.get(f"/Usuarios/Details/{usuario_id}", headers=bearer(token))

        assert response.status_code == 404

    @pytest.mark.parametrize("usuario_id", ["99999999999", "2147483648", "0", "-5"])
    def test_details_outside_id_range_not_found(self, app, client, token, usuario_id):
        looked_up = []

        class RecordingUsuarioService(FakeUsuarioService):
            async def get_usuario(self, usuario_id):
                looked_up.append(usuario_id)
                return await super().get_usuario(usuario_id)

        app.state.services.usuario_service = RecordingUsuarioService()

        response = client.get(f"/Usuarios/Details/{usuario_id}", headers=bearer(token))

        assert response.status_code == 404
        assert looked_up == []

    def test_public_endpoints_ignore_invalid_tokens(self, client):
        response = client.get("/api/ping", headers=bearer("garbage"))

        assert response.status_code == 200

    def test_usuarios_api_requires_token(self, client):
        response = client.get("/api/usuarios")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    def test_usuarios_api_rejects_invalid_token(self, client):
        response = client.get("/api/usuarios", headers=bearer("garbage"))

        assert response.status_code == 401
        assert 'error="invalid_token"' in response.headers["www-authenticate"]

    def test_usuarios_api_lists_page_and_total(self, client, token, sample_usuarios):
        response = client.get("/api/usuarios?limit=1&offset=1", headers=bearer(token))

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == len(sample_usuarios)
        assert body["limit"] == 1
        assert body["offset"] == 1
        assert [u["id"] for u in body["items"]] == [sample_usuarios[1].id]
        assert "password_hash" not in body["items"][0]

    def test_usuarios_api_rejects_oversized_page(self, client, token):
        response = client.get("/api/usuarios?limit=500", headers=bearer(token))

        assert response.status_code == 422


class TestLogin:

    @pytest.fixture
    def registered(self, app):
        auth_service = app.state.services.auth_service
        auth_service.usuario_repo = InMemoryUsuarioRepository(UsuarioDB(
            id=1,
            nombre="Ana Torres",
            email="ana@example.com",
            password_hash=auth_service.hash_password("S3cure!pass"),
        ))

    def test_login_returns_usable_token(self, client, registered):
        response = client.post(
            "/Auth/Login",
            json={"email": "ana@example.com", "password": "S3cure!pass"}
        )

        assert response.status_code == 200
        token = response.json()["access_token"]
        assert client.get("/Usuarios", headers=bearer(token)).status_code == 200

    def test_wrong_password_is_401(self, client, registered):
        response = client.post(
            "/Auth/Login",
            json={"email": "ana@example.com", "password": "nope"}
        )

        assert response.status_code == 401

    def test_invalid_body_is_422(self, client):
        response = client.post("/Auth/Login", json={"email": "not-an-email"})

        assert response.status_code == 422

    def test_non_json_body_is_400(self, client):
        response = client.post(
            "/Auth/Login",
            content=b"email=a",
            headers={"Content-Type": "application/x-www-form-urlencoded"}
        )

        assert response.status_code == 400

    def test_get_is_405(self, client):
        response = client.get("/Auth/Login")

        assert response.status_code == 405
        assert response.headers["allow"] == "POST"


# ============================================================================
# DEFAULT ROUTE
# ============================================================================


class TestDefaultRoute:

    @pytest.mark.parametrize("path", ["/", "/Home", "/Home/Index", "/home/index/7"])
    def test_defaults_to_home_index(self, client, path):
        response = client.get(path)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "Environment: Development" in response.text

    def test_names_are_case_insensitive(self, client):
        assert client.get("/HOME/PRIVACY").status_code == 200

    def test_action_methods(self, client):
        assert client.post("/Home/Privacy").status_code == 405
        assert client.post("/Home/Error").status_code == 500

    @pytest.mark.parametrize("path", ["/Nope", "/Home/Nope", "/favicon.ico"])
    def test_unknown_is_404(self, client, path):
        assert client.get(path).status_code == 404

    def test_unsupported_method_is_405(self, client):
        assert client.put("/Home/Index").status_code == 405


# ============================================================================
# PIPELINE
# ============================================================================


class TestPipeline:

    def test_development_steps(self, app):
        assert app.state.pipeline == [
            "developer_exception_page",
            "cors",
            "https_redirection",
            "static_files",
            "routing",
            "authentication",
            "authorization",
        ]

    def test_production_steps(self):
        app, _ = build_client(environment="production")

        assert app.state.pipeline[:2] == ["exception_handler", "hsts"]
        assert "cors" not in app.state.pipeline

    def test_static_files_served_under_prefix(self, tmp_path):
        (tmp_path / "css").mkdir()
        (tmp_path / "css" / "site.css").write_text("body { margin: 0; }")
        _, client = build_client(static_directory=str(tmp_path))

        with client:
            assert client.get("/static/css/site.css").text == "body { margin: 0; }"
            assert client.get("/css/site.css").status_code == 404

    def test_cors_allows_any_origin_outside_production(self, client):
        response = client.get("/api/ping", headers={"Origin": "https://anywhere.example"})

        assert response.headers["access-control-allow-origin"] == "*"

    def test_cors_never_attached_in_production(self):
        _, client = build_client(environment="production")

        with client:
            response = client.get("/api/ping", headers={"Origin": "https://anywhere.example"})
            preflight = client.options(
                "/api/ping",
                headers={
                    "Origin": "https://anywhere.example",
                    "Access-Control-Request-Method": "GET",
                }
            )

        assert "access-control-allow-origin" not in response.headers
        assert "access-control-allow-origin" not in preflight.headers

    def test_cors_attached_in_staging(self):
        _, client = build_client(environment="staging")

        with client:
            response = client.get("/api/ping", headers={"Origin": "https://anywhere.example"})

        assert response.headers["access-control-allow-origin"] == "*"

    def test_hsts_on_https_in_production(self):
        _, client = build_client(environment="production", base_url="https://api.example.com")

        with client:
            response = client.get("/api/ping")

        assert response.headers["strict-transport-security"] == "max-age=2592000"

    def test_no_hsts_outside_production(self):
        _, client = build_client(base_url="https://api.example.com")

        with client:
            response = client.get("/api/ping")

        assert "strict-transport-security" not in response.headers

    def test_https_redirect_with_port(self):
        _, client = build_client(https_port=8443)

        with client:
            response = client.get("/api/ping?x=1", follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == "https://testserver:8443/api/ping?x=1"

    def test_no_redirect_without_port(self, client):
        response = client.get("/api/ping", follow_redirects=False)

        assert response.status_code == 200

    def test_correlation_id_echoed(self, client):
        response = client.get("/api/ping", headers={"X-Correlation-ID": "abc-123"})

        assert response.headers["x-correlation-id"] == "abc-123"


# ============================================================================
# ERROR PAGES
# ============================================================================


class ExplodingUsuarioService(FakeUsuarioService):

    async def list_usuarios(self, limit: int = 50, offset: int = 0):
        raise RuntimeError("kaboom in list_usuarios")


class TestErrorPages:

    def test_developer_page_shows_traceback(self, app, client, token):
        app.state.services.usuario_service = ExplodingUsuarioService()

        response = client.get("/Usuarios", headers=bearer(token))

        assert response.status_code == 500
        assert "kaboom in list_usuarios" in response.text
        assert "Traceback" in response.text

    def test_production_page_is_generic(self):
        app, client = build_client(environment="production")
        app.state.services.usuario_service = ExplodingUsuarioService()
        token = app.state.services.auth_service.create_access_token(subject="1")

        with client:
            response = client.get(
                "/Usuarios",
                headers={**bearer(token), "X-Correlation-ID": "req-42"}
            )

        assert response.status_code == 500
        assert "kaboom" not in response.text
        assert "An error occurred while processing your request." in response.text
        assert "req-42" in response.text


# ============================================================================
# METRICS
# ============================================================================


class TestMetrics:

    def test_metrics_exposed(self, app, client):
        client.get("/api/ping")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "startup_diagnostic_verified 1.0" in response.text
        assert "http_requests_total" in response.text
        assert app.state.services.metrics.registry.get_sample_value(
            "http_requests_total", {"method": "GET", "endpoint": "/api/ping", "status": "200"}
        ) == 1.0
        assert 'database_table_rows{table="usuarios"} 0.0' in response.text

    def test_metrics_can_be_disabled(self):
        _, client = build_client(metrics_enabled=False)

        with client:
            assert client.get("/metrics").status_code == 404
