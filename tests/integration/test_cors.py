"""Integration tests for the CORS configuration."""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from fastapi_shared.middleware.cors import CorsConfig, add_cors_middleware


def build_client(config: CorsConfig = None) -> TestClient:
    app = FastAPI()
    add_cors_middleware(app, config)

    @app.get("/places")
    async def places():
        return {"places": []}

    return TestClient(app)


class TestCorsConfig:
    """Tests for CorsConfig."""

    def test_defaults(self):
        """Defaults allow every origin and the App Check header."""
        config = CorsConfig()

        assert config.allowed_origins_header == "*"
        assert config.allowed_methods_header == "GET, POST, PUT, DELETE, OPTIONS"
        assert "X-Firebase-AppCheck" in config.allowed_headers
        assert config.max_age_header == "86400"

    def test_defaults_not_shared_between_instances(self):
        """Default lists are not shared between configs."""
        first = CorsConfig()
        first.allowed_origins.append("https://example.com")
        assert CorsConfig().allowed_origins == ["*"]


class TestCorsMiddleware:
    """Tests for the installed CORS middleware."""

    def test_preflight(self):
        """Preflight requests get the configured CORS headers."""
        response = build_client().options(
            "/places",
            headers={
                "Origin": "https://app.example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "X-Firebase-AppCheck",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["access-control-max-age"] == "86400"
        assert "POST" in response.headers["access-control-allow-methods"]

    def test_simple_request_gets_origin_header(self):
        """Simple requests get the allow-origin header."""
        response = build_client().get("/places", headers={"Origin": "https://app.example.com"})

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"

    def test_restricted_origins(self):
        """Only listed origins are echoed."""
        client = build_client(CorsConfig(allowed_origins=["https://app.example.com"]))

        allowed = client.get("/places", headers={"Origin": "https://app.example.com"})
        denied = client.get("/places", headers={"Origin": "https://evil.example.com"})

        assert allowed.headers["access-control-allow-origin"] == "https://app.example.com"
        assert "access-control-allow-origin" not in denied.headers
