"""Pytest configuration and fixtures."""
import hmac
import json
import os
from datetime import timedelta

import httpx
import pytest

# Set test environment variables before importing app
os.environ["SYNAPSE_ADMIN_URL"] = "http://synapse.test:8008/"
os.environ["SYNAPSE_REGISTRATION_SECRET"] = "test_registration_secret"
os.environ["SYNAPSE_PUBLIC_URL"] = "https://matrix.example.com"
os.environ["PUBLIC_URL"] = "https://invites.example.com/"
os.environ["TOKEN_EXPIRY_SECONDS"] = "3600"
os.environ["LOG_LEVEL"] = "DEBUG"

from fastapi.testclient import TestClient

from invites.api.deps import get_controller
from invites.core.security import generate_registration_mac
from invites.main import app, admin_app
from invites.services.invites import InviteController
from invites.services.synapse import SynapseClient
from invites.services.tokens import TokenStore


def verify_registration_mac(mac, shared_secret, nonce, username, password):
    """Check a registration MAC the way Synapse does."""
    expected = generate_registration_mac(shared_secret, nonce, username, password)
    return hmac.compare_digest(expected, mac)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeSynapse:
    """
    In-process stand-in for the Synapse admin registration endpoint.

    Replies can be overridden per test; every request is recorded.
    """

    def __init__(self, secret: str = "test_registration_secret"):
        self.secret = secret
        self.nonce = "N"
        self.nonce_reply = None
        self.register_reply = None
        self.requests = []
        self.registered = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        assert request.url.path == "/_synapse/admin/v1/register"

        if request.method == "GET":
            if self.nonce_reply is not None:
                return self.nonce_reply
            return httpx.Response(200, json={"nonce": self.nonce})

        if self.register_reply is not None:
            return self.register_reply

        body = json.loads(request.content)
        if body["admin"] or not verify_registration_mac(
            body["mac"], self.secret, body["nonce"], body["username"], body["password"]
        ):
            return httpx.Response(403, json={"errcode": "M_FORBIDDEN", "error": "HMAC incorrect"})

        self.registered.append(body["username"])
        return httpx.Response(
            200,
            json={
                "access_token": "syt_access_token",
                "user_id": f"@{body['username']}:h",
                "home_server": "h",
                "device_id": "D",
            },
        )

    @property
    def register_calls(self) -> int:
        return sum(1 for r in self.requests if r.method == "POST")


@pytest.fixture
def clock():
    """Controllable clock for token expiry."""
    return FakeClock()


@pytest.fixture
def store(clock):
    """Token store with a one hour expiry."""
    return TokenStore(timedelta(hours=1), clock=clock)


@pytest.fixture
def synapse():
    """Fake Synapse admin API."""
    return FakeSynapse()


@pytest.fixture
def synapse_client(synapse):
    """Registration client wired to the fake Synapse."""
    client = SynapseClient(
        "http://synapse.test:8008/",
        transport=httpx.MockTransport(synapse.handler),
    )
    try:
        yield client
    finally:
        client.close()


@pytest.fixture
def controller(store, synapse_client):
    """Invite controller over the fake Synapse."""
    return InviteController(store, synapse_client)


@pytest.fixture
def public_client(controller):
    """Test client for the public (signup) app."""
    app.dependency_overrides[get_controller] = lambda: controller
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_client(controller):
    """Test client for the private (invite) app."""
    admin_app.dependency_overrides[get_controller] = lambda: controller
    yield TestClient(admin_app)
    admin_app.dependency_overrides.clear()
