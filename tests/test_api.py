"""
HTTP tests for the FastAPI application with an in-memory store and mocked providers.
"""

import time

import jwt
import pytest
from fastapi.testclient import TestClient

from explainer_gateway.main import create_app
from explainer_gateway.shared.core.config import DEFAULT_SECRET, ExplainerSettings

from .conftest import BROWSER_USER_AGENT, CLAUDE_KEY, OPENAI_KEY, json_transport, openai_completion


ADMIN_HEADERS = {"X-Admin-Token": "test-admin-token"}


def explain_body(text: str = "photosynthesis", **changes) -> dict:
    body = {
        "text": text,
        "client_id": "widget-123456",
        "timestamp": time.time(),
    }
    body.update(changes)
    return body


def user_token(user_id: str = "42", secret: str = "test-jwt-secret", expires_in: int = 3600) -> str:
    now = int(time.time())
    return jwt.encode({"sub": user_id, "iat": now, "exp": now + expires_in}, secret, algorithm="HS256")


class TestExplainAPI:

    @pytest.fixture
    def settings(self, app_settings):
        return app_settings.model_copy(update={"openai_api_key": OPENAI_KEY})

    @pytest.fixture
    def transport(self):
        return json_transport(200, openai_completion("Plants make sugar from light.", 40))

    @pytest.fixture
    def make_client(self, settings):
        def make(transport, explainer_settings=None, **settings_changes):
            app = create_app(
                settings=settings.model_copy(update=settings_changes),
                http_transport=transport,
                explainer_settings=explainer_settings or ExplainerSettings(),
            )
            client = TestClient(app, headers={"User-Agent": BROWSER_USER_AGENT})
            return client
        return make

    @pytest.fixture
    def client(self, make_client, transport):
        with make_client(transport) as client:
            yield client

    def test_explain(self, client, transport):
        response = client.post("/api/explain", json=explain_body())

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["status"] == "ok"
        assert data["explanation"] == "Plants make sugar from light."
        assert data["cached"] is False
        assert data["provider"] == "openai"
        assert "X-Request-ID" in response.headers
        assert len(transport.requests) == 1

    def test_repeat_is_cached(self, client, transport):
        client.post("/api/explain", json=explain_body())
        response = client.post("/api/explain", json=explain_body(" photosynthesis  "))

        assert response.status_code == 200
        assert response.json()["cached"] is True
        assert response.json()["tokens_used"] == 0
        assert len(transport.requests) == 1

    def test_rejected_selection(self, client, transport):
        response = client.post("/api/explain", json=explain_body(" ".join(["word"] * 31)))

        assert response.status_code == 422
        data = response.json()
        assert data["status"] == "rejected"
        assert data["reason"] == "word_count"
        assert data["error_message"] == "Text selection has too many words (maximum 30 words)"
        assert transport.requests == []

    def test_missing_client_id_is_invalid(self, client):
        body = explain_body()
        del body["client_id"]
        response = client.post("/api/explain", json=body)

        assert response.status_code == 400
        assert response.json() == {"success": False, "status": "invalid_request", "error_message": "Invalid request."}

    def test_malformed_client_id_is_invalid(self, client):
        response = client.post("/api/explain", json=explain_body(client_id="<script>alert</script>"))
        assert response.status_code == 400

    def test_stale_timestamp_is_invalid(self, client):
        response = client.post("/api/explain", json=explain_body(timestamp=time.time() - 3600))
        assert response.status_code == 400

    def test_bot_user_agent_is_invalid(self, client):
        response = client.post("/api/explain", json=explain_body(), headers={"User-Agent": "Googlebot/2.1 (+http://www.google.com/bot.html)"})
        assert response.status_code == 400

    def test_missing_text_is_invalid(self, client):
        response = client.post("/api/explain", json={"client_id": "widget-123456", "timestamp": time.time()})
        assert response.status_code == 400
        assert response.json()["status"] == "invalid_request"

    def test_oversize_selection_is_rejected_as_too_long(self, client, transport):
        response = client.post("/api/explain", json=explain_body("word " * 6000))
        assert response.status_code == 422
        assert response.json()["reason"] == "too_long"
        assert transport.requests == []

    def test_anonymous_rate_limit(self, make_client, transport):
        with make_client(transport, ExplainerSettings(rate_limit_per_minute_anonymous=1)) as client:
            assert client.post("/api/explain", json=explain_body("first topic")).status_code == 200

            response = client.post("/api/explain", json=explain_body("second topic"))
            assert response.status_code == 429
            assert response.json()["status"] == "rate_limited"

            # A signed-in user is counted separately
            headers = {"Authorization": f"Bearer {user_token()}"}
            assert client.post("/api/explain", json=explain_body("second topic"), headers=headers).status_code == 200

    def test_invalid_token_is_rejected(self, client, transport):
        headers = {"Authorization": f"Bearer {user_token(secret='wrong-secret')}"}
        response = client.post("/api/explain", json=explain_body(), headers=headers)
        assert response.status_code == 401
        assert transport.requests == []

    def test_expired_token_is_rejected(self, client):
        headers = {"Authorization": f"Bearer {user_token(expires_in=-60)}"}
        assert client.post("/api/explain", json=explain_body(), headers=headers).status_code == 401

    def test_not_configured(self, make_client, transport):
        with make_client(transport, openai_api_key=None) as client:
            response = client.post("/api/explain", json=explain_body())

        assert response.status_code == 503
        assert response.json()["status"] == "not_configured"

    def test_provider_failure(self, make_client):
        with make_client(json_transport(500, {"error": {"message": "secret upstream detail"}})) as client:
            response = client.post("/api/explain", json=explain_body())

        assert response.status_code == 502
        data = response.json()
        assert data["status"] == "failed"
        assert "secret upstream detail" not in response.text

    def test_quota_disables_until_reenabled(self, make_client):
        payload = {"error": {"message": "You exceeded your current quota", "type": "insufficient_quota"}}
        with make_client(json_transport(403, payload)) as client:
            response = client.post("/api/explain", json=explain_body())
            assert response.status_code == 503
            assert response.json()["status"] == "disabled"

            status = client.get("/api/admin/status", headers=ADMIN_HEADERS).json()
            assert status["enabled"] is False
            assert status["circuit"]["reason"] == "You exceeded your current quota"
            assert status["circuit"]["provider"] == "openai"

            health = client.get("/api/health").json()
            assert health["explanations_enabled"] is False

            assert client.post("/api/admin/reenable", headers=ADMIN_HEADERS).status_code == 200
            assert client.get("/api/admin/status", headers=ADMIN_HEADERS).json()["enabled"] is True

    def test_oversize_selection_while_disabled_reports_disabled(self, make_client):
        payload = {"error": {"message": "You exceeded your current quota", "type": "insufficient_quota"}}
        with make_client(json_transport(403, payload)) as client:
            client.post("/api/explain", json=explain_body())
            response = client.post("/api/explain", json=explain_body("word " * 6000))

        assert response.status_code == 503
        assert response.json()["status"] == "disabled"


class TestAdminAPI:

    @pytest.fixture
    def transport(self):
        return json_transport(200, openai_completion("ok", 5))

    @pytest.fixture
    def client(self, app_settings, transport):
        app = create_app(
            settings=app_settings,
            http_transport=transport,
            explainer_settings=ExplainerSettings(provider="claude"),
        )
        with TestClient(app, headers={"User-Agent": BROWSER_USER_AGENT}) as client:
            yield client

    def test_requires_admin_token(self, client):
        assert client.get("/api/admin/status").status_code == 401
        assert client.get("/api/admin/status", headers={"X-Admin-Token": "wrong"}).status_code == 401

    def test_non_ascii_admin_token_is_unauthorized(self, client):
        headers = {"X-Admin-Token": "tëst-admin-tökén".encode("utf-8")}
        assert client.get("/api/admin/status", headers=headers).status_code == 401

    def test_admin_disabled_without_configured_token(self, app_settings, transport):
        app = create_app(
            settings=app_settings.model_copy(update={"admin_token": None}),
            http_transport=transport,
            explainer_settings=ExplainerSettings(),
        )
        with TestClient(app) as client:
            assert client.get("/api/admin/status", headers=ADMIN_HEADERS).status_code == 503

    def test_status(self, client):
        data = client.get("/api/admin/status", headers=ADMIN_HEADERS).json()
        assert data["enabled"] is True
        assert data["provider"] == "claude"
        assert data["model"] == "claude-3-haiku-20240307"
        assert data["credential_configured"] is False
        assert data["cache"]["enabled"] is True

    def test_store_credential(self, client):
        response = client.put("/api/admin/credentials/anthropic", json={"api_key": f"  {CLAUDE_KEY}  "}, headers=ADMIN_HEADERS)
        assert response.status_code == 200
        assert response.json()["detail"]["provider"] == "claude"
        assert CLAUDE_KEY not in response.text

        data = client.get("/api/admin/status", headers=ADMIN_HEADERS).json()
        assert data["credential_configured"] is True
        assert data["masked_key"] == f"{CLAUDE_KEY[:7]}...{CLAUDE_KEY[-4:]}"

    def test_store_credential_validation(self, client):
        assert client.put("/api/admin/credentials/claude", json={"api_key": OPENAI_KEY},
                          headers=ADMIN_HEADERS).status_code == 400
        assert client.put("/api/admin/credentials/mistral", json={"api_key": OPENAI_KEY},
                          headers=ADMIN_HEADERS).status_code == 404

    def test_delete_credential(self, client):
        client.put("/api/admin/credentials/claude", json={"api_key": CLAUDE_KEY}, headers=ADMIN_HEADERS)
        response = client.delete("/api/admin/credentials/claude", headers=ADMIN_HEADERS)
        assert response.json()["success"] is True
        assert client.get("/api/admin/status", headers=ADMIN_HEADERS).json()["credential_configured"] is False

    def test_test_credential(self, client, transport):
        response = client.post("/api/admin/credentials/openai/test", json={"api_key": OPENAI_KEY}, headers=ADMIN_HEADERS)
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert transport.requests[-1].headers["Authorization"] == f"Bearer {OPENAI_KEY}"

    def test_test_credential_without_key(self, client):
        response = client.post("/api/admin/credentials/claude/test", json={}, headers=ADMIN_HEADERS)
        assert response.json() == {"success": False, "message": "API key is required.", "detail": {"provider": "claude"}}

    def test_clear_cache(self, client):
        response = client.post("/api/admin/cache/clear", headers=ADMIN_HEADERS)
        assert response.status_code == 200
        assert response.json()["detail"] == {"deleted": 0}


class TestPublicAPI:

    @pytest.fixture
    def client(self, app_settings):
        app = create_app(settings=app_settings, http_transport=json_transport(), explainer_settings=ExplainerSettings())
        with TestClient(app) as client:
            yield client

    def test_production_startup_refuses_placeholder_jwt_secret(self, app_settings):
        settings = app_settings.model_copy(update={"environment": "production", "jwt_secret": DEFAULT_SECRET})
        app = create_app(settings=settings, http_transport=json_transport(), explainer_settings=ExplainerSettings())
        with pytest.raises(ValueError, match="EXPLAINER_JWT_SECRET"):
            with TestClient(app):
                pass

    def test_health(self, client):
        data = client.get("/api/health").json()
        assert data["status"] == "healthy"
        assert data["checks"] == {"store": True, "http": True}
        assert data["explanations_enabled"] is True

    def test_providers(self, client):
        data = client.get("/api/providers").json()
        assert {"openai", "claude"} <= set(data["providers"])
        assert data["providers"]["claude"]["aliases"] == ["anthropic"]
        assert data["active_provider"] == "openai"
        assert data["active_model"] == "gpt-3.5-turbo"

    def test_root(self, client):
        assert client.get("/").json()["endpoints"]["explain"] == "/api/explain"

    def test_metrics(self, client):
        client.get("/api/health")
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "explainer_http_requests_total" in response.text
