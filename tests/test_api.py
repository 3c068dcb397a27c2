"""Tests for the HTTP surface."""

import json
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from connector_proxy.api import dependencies
from connector_proxy.api.dependencies import get_current_user, get_rate_limiter
from connector_proxy.main import app, init_services
from connector_proxy.services.proxy_client import SIGNATURE_HEADER, USER_HEADER
from connector_proxy.utils.crypto import sign

CALLBACK = "http://localhost:8080/integrations/callback"


def build_client(settings, fake_db, http_client, fake_redis):
    init_services(app, settings, fake_db, http_client, fake_redis)
    app.dependency_overrides[get_current_user] = lambda: {"id": "user123"}
    return TestClient(app)


@pytest.fixture
def client(settings, fake_db, http_client, fake_redis):
    yield build_client(settings, fake_db, http_client, fake_redis)
    app.dependency_overrides.clear()


@pytest.fixture
def oauth_client(oauth_settings, fake_db, http_client, fake_redis):
    yield build_client(oauth_settings, fake_db, http_client, fake_redis)
    app.dependency_overrides.clear()


@pytest.fixture
def slack_ok(provider):
    provider.add_json("GET", "https://slack.com/api/auth.test", {"ok": True, "team": "Acme"})
    provider.add_json("POST", "https://slack.com/api/chat.postMessage", {"ok": True, "ts": "1"})
    provider.add_json("GET", "https://slack.com/api/auth.revoke", {"ok": True, "revoked": True})
    return provider


class TestHealth:
    """Test health endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "OK"
        assert body["service"] == "connector-proxy"
        assert "timestamp" in body

    def test_detailed_health(self, client):
        body = client.get("/health/detailed").json()

        assert body["checks"]["redis"]["status"] == "healthy"
        assert body["checks"]["database"]["status"] == "disconnected"
        assert body["status"] == "degraded"


class TestProxyEndpoints:
    """Test the stateless proxy routes."""

    def test_test_connection(self, client, slack_ok):
        response = client.post(
            "/api/integrations/test/slack", json={"credentials": {"botToken": "xoxb-test"}}
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": {"ok": True, "team": "Acme"}}

    def test_slack_ok_false(self, client, provider):
        provider.add_json("GET", "https://slack.com/api/auth.test", {"ok": False, "error": "invalid_auth"})

        response = client.post(
            "/api/integrations/test/slack", json={"credentials": {"botToken": "xoxb-bad"}}
        )

        assert response.status_code == 502
        assert response.json() == {"success": False, "error": "invalid_auth"}

    @pytest.mark.parametrize("operation", ["test", "send"])
    def test_unknown_provider(self, client, provider, operation):
        response = client.post(
            f"/api/integrations/{operation}/trello",
            json={"credentials": {"apiKey": "abc"}, "message": "Hello"},
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Unsupported integration: trello"}
        assert provider.requests == []

    def test_missing_credentials(self, client, provider):
        response = client.post("/api/integrations/test/slack", json={"credentials": {}})

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "No credentials provided"}
        assert provider.requests == []

    def test_send_message(self, client, slack_ok):
        response = client.post(
            "/api/integrations/send/slack",
            json={"credentials": {"botToken": "xoxb-test"}, "message": "Hello", "channel": "#team"},
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        body = json.loads(slack_ok.last("chat.postMessage").content)
        assert body == {"channel": "#team", "text": "Hello"}

    def test_send_requires_message(self, client, provider):
        response = client.post(
            "/api/integrations/send/slack", json={"credentials": {"botToken": "xoxb-test"}}
        )

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert "message" in response.json()["error"]

    def test_revoke(self, client, slack_ok):
        response = client.post(
            "/api/integrations/revoke/slack", json={"credentials": {"botToken": "xoxb-test"}}
        )

        assert response.json() == {"success": True}

    def test_exchange_without_configuration(self, client, provider):
        response = client.post(
            "/api/integrations/oauth/token",
            json={"integrationId": "slack", "code": "code-123", "redirectUri": CALLBACK},
        )

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "Missing required configuration: SLACK_CLIENT_ID",
        }
        assert provider.requests == []

    def test_exchange_unimplemented(self, oauth_client):
        response = oauth_client.post(
            "/api/integrations/oauth/token",
            json={"integrationId": "zapier", "code": "code-123", "redirectUri": CALLBACK},
        )

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert "credentials" not in response.json()

    def test_exchange(self, oauth_client, provider):
        provider.add_json(
            "POST",
            "https://slack.com/api/oauth.v2.access",
            {"ok": True, "access_token": "xoxb-bot", "team": {"id": "T1"}},
        )

        response = oauth_client.post(
            "/api/integrations/oauth/token",
            json={"integrationId": "slack", "code": "code-123", "redirectUri": CALLBACK},
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "credentials": {"accessToken": "xoxb-bot", "botToken": "xoxb-bot", "workspaceId": "T1"},
        }

    def test_rate_limited(self, client, provider):
        limiter = Mock()
        limiter.check_rate_limit = AsyncMock(return_value=False)
        app.dependency_overrides[get_rate_limiter] = lambda: limiter

        response = client.post(
            "/api/integrations/test/slack", json={"credentials": {"botToken": "xoxb-test"}}
        )

        assert response.status_code == 429
        assert response.json()["success"] is False
        assert provider.requests == []

    def test_list_integrations(self, client):
        body = client.get("/api/integrations").json()

        assert len(body) == 6
        slack = next(item for item in body if item["identifier"] == "slack")
        assert slack["supportsExchange"] is True
        assert "clientSecretEnv" not in slack

    def test_get_integration(self, client):
        assert client.get("/api/integrations/notion").json()["name"] == "Notion"

        response = client.get("/api/integrations/trello")
        assert response.status_code == 400
        assert response.json()["success"] is False


class TestCors:
    """Test the origin allow-list."""

    def preflight(self, client, origin):
        return client.options(
            "/api/integrations/test/slack",
            headers={"Origin": origin, "Access-Control-Request-Method": "POST"},
        )

    def test_allowed_origin(self, client):
        response = self.preflight(client, "http://localhost:8080")

        assert response.headers["access-control-allow-origin"] == "http://localhost:8080"

    @pytest.mark.parametrize(
        "origin",
        ["https://evil.vercel.app", "http://localhost:9999", "https://minitandem.vercel.app.evil.com"],
    )
    def test_lookalike_origins_are_refused(self, client, origin):
        response = self.preflight(client, origin)

        assert "access-control-allow-origin" not in response.headers


class TestConnectionEndpoints:
    """Test the user connection routes through the in-process proxy."""

    def test_connection_lifecycle(self, client, slack_ok):
        response = client.post("/api/connections/slack", json={"credentials": {"botToken": "xoxb-test"}})
        assert response.json() == {"success": True, "integrationId": "slack", "status": "connected"}

        records = client.get("/api/connections").json()
        assert len(records) == 1
        assert records[0]["status"] == "connected"
        assert "credentials" not in records[0]

        response = client.post("/api/connections/slack/send", json={"message": "hi"})
        assert response.json()["success"] is True
        body = json.loads(slack_ok.last("chat.postMessage").content)
        assert body["text"] == "MiniTandem Test: hi"

        response = client.delete("/api/connections/slack")
        assert response.json()["status"] == "disconnected"
        slack_ok.last("auth.revoke")

        actions = [item["action"] for item in client.get("/api/connections/activity").json()]
        assert set(actions) == {"integration_connected", "test_message_sent", "integration_disconnected"}

    def test_failed_connection(self, client, provider):
        provider.add_json("GET", "https://slack.com/api/auth.test", {"ok": False, "error": "invalid_auth"})

        response = client.post("/api/connections/slack", json={"credentials": {"botToken": "xoxb-bad"}})

        assert response.json() == {"success": False, "integrationId": "slack", "status": "error"}
        status = client.get("/api/connections/slack/status").json()
        assert status["status"] == "error"

    def test_status_of_unconnected_integration(self, client):
        body = client.get("/api/connections/notion/status").json()

        assert body["status"] == "disconnected"

    def test_unknown_integration(self, client):
        assert client.get("/api/connections/trello/status").status_code == 404

    def test_disconnect_missing(self, client):
        assert client.delete("/api/connections/slack").status_code == 404

    def test_oauth_flow(self, oauth_client, slack_ok):
        slack_ok.add_json(
            "POST",
            "https://slack.com/api/oauth.v2.access",
            {"ok": True, "access_token": "xoxb-bot", "team": {"id": "T1"}},
        )

        init = oauth_client.post("/api/connections/slack/oauth/url").json()
        assert init["authorizationUrl"].startswith("https://slack.com/oauth/v2/authorize?")

        response = oauth_client.post(
            "/api/connections/oauth/callback", json={"code": "code-123", "state": init["state"]}
        )
        assert response.json()["success"] is True
        assert response.json()["status"] == "connected"

        completion = oauth_client.get("/api/connections/oauth/status", params={"state": init["state"]})
        assert completion.json()["status"] == "completed"

        replay = oauth_client.post(
            "/api/connections/oauth/callback", json={"code": "code-123", "state": init["state"]}
        )
        assert replay.status_code == 400
        assert replay.json()["success"] is False

    def test_oauth_not_configured(self, client):
        response = client.post("/api/connections/slack/oauth/url")

        assert response.status_code == 400

    def test_forged_callback(self, client):
        response = client.post(
            "/api/connections/oauth/callback",
            json={"code": "code-123", "state": "slack_user123_1699999999"},
        )

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_oauth_status_of_another_user(self, oauth_client):
        manager = app.state.integration_manager
        state = manager.generate_oauth_url("slack", "someone-else").state

        response = oauth_client.get("/api/connections/oauth/status", params={"state": state})

        assert response.status_code == 403


class TestRateLimitScope:
    """Test that proxy rate limits are counted per user, not per server."""

    def connect_as(self, client, user_id):
        app.dependency_overrides[get_current_user] = lambda: {"id": user_id}
        return client.post("/api/connections/slack", json={"credentials": {"botToken": "xoxb-test"}})

    def test_one_user_cannot_exhaust_another(self, client, slack_ok, fake_redis, monkeypatch):
        monkeypatch.setattr(dependencies.settings, "rate_limit_default", 3)

        for _ in range(3):
            assert self.connect_as(client, "heavy-user").json()["status"] == "connected"
        assert self.connect_as(client, "heavy-user").json()["status"] == "error"

        response = self.connect_as(client, "other-user")

        assert response.json() == {"success": True, "integrationId": "slack", "status": "connected"}
        assert sorted(fake_redis.sorted_sets) == [
            "proxy_rate_limit:user:heavy-user:slack",
            "proxy_rate_limit:user:other-user:slack",
        ]

    def test_signed_user_header(self, client, slack_ok, fake_redis):
        response = client.post(
            "/api/integrations/test/slack",
            json={"credentials": {"botToken": "xoxb-test"}},
            headers={USER_HEADER: "user123", SIGNATURE_HEADER: sign("user123", "test-secret-key")},
        )

        assert response.json()["success"] is True
        assert list(fake_redis.sorted_sets) == ["proxy_rate_limit:user:user123:slack"]

    def test_forged_user_header_counts_against_client(self, client, slack_ok, fake_redis):
        response = client.post(
            "/api/integrations/test/slack",
            json={"credentials": {"botToken": "xoxb-test"}},
            headers={USER_HEADER: "user123", SIGNATURE_HEADER: "0" * 64},
        )

        assert response.json()["success"] is True
        assert list(fake_redis.sorted_sets) == ["proxy_rate_limit:testclient:slack"]
