"""CLI tests — commands against a mocked API.

Learn: click's CliRunner invokes the commands in-process; the API is an
httpx.MockTransport whose handler plays the backend, so no server runs.
"""

import json

import httpx
import pytest
from click.testing import CliRunner

from marketplace.cli import main as cli
from marketplace.cli.client import CredentialStore, MarketplaceClient

USER = {
    "id": "11111111-1111-1111-1111-111111111111",
    "email": "ada@example.com",
    "firstName": "Ada",
    "lastName": "Lovelace",
    "subscriptionTier": "free",
    "createdAt": "2024-05-01T10:00:00Z",
}


def _ok(data=None, status=200, **extra):
    body = {"success": True, **extra}
    if data is not None:
        body["data"] = data
    return httpx.Response(status, json=body)


def _fail(status, message):
    return httpx.Response(status, json={"success": False, "message": message})


class FakeApi:
    """Records requests and answers them from a route table."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes = {}

    def on(self, method, path, responder):
        self.routes[(method, path)] = responder

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responder = self.routes.get((request.method, request.url.path))
        if responder is None:
            return _fail(404, "API endpoint not found")
        return responder(request)


@pytest.fixture()
def store(tmp_path) -> CredentialStore:
    return CredentialStore(tmp_path / "credentials.json")


@pytest.fixture()
def api(monkeypatch, store) -> FakeApi:
    fake = FakeApi()

    def _client():
        return MarketplaceClient(
            "http://api.test", store, transport=httpx.MockTransport(fake)
        )

    monkeypatch.setattr(cli, "_client", _client)
    return fake


@pytest.fixture()
def runner():
    return CliRunner()


def _signed_in(store, access="access-1", refresh="refresh-1"):
    store.save({"user": USER, "accessToken": access, "refreshToken": refresh})


# ═══════════════════════════════════════════════════════════
# Session
# ═══════════════════════════════════════════════════════════


def test_login_saves_session(runner, api, store):
    api.on(
        "POST",
        "/api/v1/auth/login",
        lambda req: _ok({"user": USER, "tokens": {
            "accessToken": "access-1", "refreshToken": "refresh-1", "expiresIn": 900,
        }}),
    )

    result = runner.invoke(cli.main, ["login", "ada@example.com", "--password", "pw123456"])
    assert result.exit_code == 0, result.output
    assert "Logged in as ada@example.com" in result.output

    sent = json.loads(api.requests[0].content)
    assert sent == {"email": "ada@example.com", "password": "pw123456"}
    assert store.load()["accessToken"] == "access-1"
    assert store.load()["refreshToken"] == "refresh-1"


def test_login_failure(runner, api, store):
    api.on("POST", "/api/v1/auth/login", lambda req: _fail(401, "Invalid email or password"))

    result = runner.invoke(cli.main, ["login", "ada@example.com", "--password", "nope"])
    assert result.exit_code == 1
    assert "Invalid email or password" in result.output
    assert store.load() == {}


def test_whoami_sends_bearer_token(runner, api, store):
    _signed_in(store)
    api.on("GET", "/api/v1/auth/profile", lambda req: _ok(USER))

    result = runner.invoke(cli.main, ["whoami"])
    assert result.exit_code == 0, result.output
    assert "ada@example.com" in result.output
    assert "Ada Lovelace" in result.output
    assert api.requests[0].headers["Authorization"] == "Bearer access-1"


def test_expired_access_token_is_refreshed_once(runner, api, store):
    _signed_in(store, access="stale")

    def profile(req):
        if req.headers["Authorization"] == "Bearer fresh":
            return _ok(USER)
        return _fail(401, "Access token expired")

    def refresh(req):
        assert json.loads(req.content) == {"refreshToken": "refresh-1"}
        return _ok({"accessToken": "fresh", "refreshToken": "refresh-2", "expiresIn": 900})

    api.on("GET", "/api/v1/auth/profile", profile)
    api.on("POST", "/api/v1/auth/refresh", refresh)

    result = runner.invoke(cli.main, ["whoami"])
    assert result.exit_code == 0, result.output
    assert [r.url.path for r in api.requests] == [
        "/api/v1/auth/profile",
        "/api/v1/auth/refresh",
        "/api/v1/auth/profile",
    ]
    assert store.load()["accessToken"] == "fresh"
    assert store.load()["refreshToken"] == "refresh-2"
    assert store.load()["user"] == USER


def test_failed_refresh_clears_session(runner, api, store):
    _signed_in(store, access="stale")
    api.on("GET", "/api/v1/auth/profile", lambda req: _fail(401, "Access token expired"))
    api.on("POST", "/api/v1/auth/refresh", lambda req: _fail(401, "Invalid refresh token"))

    result = runner.invoke(cli.main, ["whoami"])
    assert result.exit_code == 1
    assert "Access token expired" in result.output
    assert store.load() == {}


def test_logout(runner, api, store):
    _signed_in(store)
    api.on("POST", "/api/v1/auth/logout", lambda req: _ok(message="Logout successful"))

    result = runner.invoke(cli.main, ["logout"])
    assert result.exit_code == 0, result.output
    assert json.loads(api.requests[0].content) == {"refreshToken": "refresh-1"}
    assert not store.path.exists()


# ═══════════════════════════════════════════════════════════
# Catalog & orders
# ═══════════════════════════════════════════════════════════


def test_assistants_table(runner, api, store):
    _signed_in(store)
    api.on(
        "GET",
        "/api/v1/assistants",
        lambda req: _ok(
            [
                {
                    "slug": "sales-pro",
                    "name": "Sales Pro",
                    "category": "sales",
                    "averageRating": 4.5,
                    "totalOrders": 12,
                }
            ],
            meta={"page": 1, "limit": 12, "total": 1, "totalPages": 1},
        ),
    )

    result = runner.invoke(cli.main, ["assistants", "--category", "sales"])
    assert result.exit_code == 0, result.output
    assert "sales-pro" in result.output
    assert "4.5" in result.output
    assert "Page 1 of 1 (1 total)" in result.output

    request = api.requests[0]
    assert request.url.params["category"] == "sales"
    assert "Authorization" not in request.headers


def test_order(runner, api, store):
    _signed_in(store)
    api.on(
        "POST",
        "/api/v1/orders",
        lambda req: _ok(
            {
                "id": "order-1",
                "status": "pending",
                "totalAmount": 29.99,
                "currency": "USD",
                "assistant": {"name": "Sales Pro"},
            },
            status=201,
        ),
    )

    result = runner.invoke(cli.main, ["order", "asst-1", "setup", "training", "-n", "asap"])
    assert result.exit_code == 0, result.output
    assert "Order order-1 placed" in result.output
    assert json.loads(api.requests[0].content) == {
        "assistantId": "asst-1",
        "serviceDetails": [
            {"serviceType": "setup", "quantity": 1},
            {"serviceType": "training", "quantity": 1},
        ],
        "notes": "asap",
    }


def test_cancel_error_is_reported(runner, api, store):
    _signed_in(store)
    api.on(
        "PUT",
        "/api/v1/orders/order-1/cancel",
        lambda req: _fail(404, "Order not found or cannot be cancelled"),
    )

    result = runner.invoke(cli.main, ["cancel", "order-1"])
    assert result.exit_code == 1
    assert "Order not found or cannot be cancelled" in result.output


def test_review_rating_range(runner, api, store):
    _signed_in(store)

    result = runner.invoke(cli.main, ["review", "order-1", "9"])
    assert result.exit_code == 2
    assert api.requests == []


def test_stats(runner, api, store):
    _signed_in(store)
    api.on(
        "GET",
        "/api/v1/users/stats",
        lambda req: _ok({"ordersCount": 3, "reviewsCount": 1, "totalSpent": 39.99}),
    )

    result = runner.invoke(cli.main, ["stats"])
    assert result.exit_code == 0, result.output
    assert "39.99" in result.output
