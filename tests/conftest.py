"""Shared fixtures for the kiosk tests."""

from typing import Any, Dict, List, Union

import pytest

from exchange import ActionExchange, AuthExchange, NetworkError, TerminalConfig, TokenCodec

SECRET = "test-shared-secret"
SERVER_SECRET = b"remote-service-secret"
API_URL = "http://ostara.test/api"


def remote_token(payload: Dict[str, Any]) -> str:
    """A response token as the remote service would produce it."""
    return TokenCodec().encode(payload, SERVER_SECRET)


class FakeClient:
    """Stands in for HttpTokenClient; answers from a queue of responses."""

    def __init__(self, responses: List[Union[str, Exception]] = None):
        self.responses = list(responses or [])
        self.calls = []

    async def fetch(self, url: str, token: str) -> str:
        self.calls.append((url, token))
        if not self.responses:
            raise NetworkError("No route to host")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def sent_claims(self, secret: bytes = SECRET.encode()) -> List[Dict[str, Any]]:
        codec = TokenCodec(verify_signatures=True)
        return [codec.decode_payload(token, secret) for _, token in self.calls]

    async def close(self) -> None:
        pass


@pytest.fixture
def store():
    return {
        "API_URL": API_URL,
        "CLIENT_ID": "42",
        "SHARED_SECRET": SECRET,
    }


@pytest.fixture
def terminal_config(store):
    return TerminalConfig.from_store(store)


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def auth_exchange(client):
    return AuthExchange(client)


@pytest.fixture
def action_exchange(client):
    return ActionExchange(client)


@pytest.fixture
def login_responses():
    return [
        remote_token({"eventTypeNames": ["feed", "walk"]}),
        remote_token({"name": "Ana"}),
    ]
