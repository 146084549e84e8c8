"""Tests for the two-step PIN exchange."""

import pytest

from conftest import API_URL, remote_token
from exchange import Action, AuthResult, Failure, NetworkError, PinCode, Success


@pytest.mark.asyncio
async def test_resolves_name_and_actions(client, auth_exchange, terminal_config, login_responses):
    client.responses = login_responses

    outcome = await auth_exchange.authenticate(PinCode("1234"), terminal_config)

    assert outcome == Success(AuthResult(
        display_name="Ana",
        actions=(Action(id=1, label="FEED"), Action(id=2, label="WALK")),
    ))


@pytest.mark.asyncio
async def test_sends_event_types_then_name_lookup(client, auth_exchange, terminal_config, login_responses):
    client.responses = login_responses

    await auth_exchange.authenticate(PinCode("0123"), terminal_config)

    assert [url for url, _ in client.calls] == [API_URL, API_URL]
    first, second = client.sent_claims()
    assert first == {"iss": "Ostara", "client": 42, "action": "getEventTypes", "token": 123}
    assert second == {"iss": "Ostara", "client": 42, "action": "getName", "token": 123}


@pytest.mark.asyncio
async def test_duplicate_names_keep_positions(client, auth_exchange, terminal_config):
    client.responses = [
        remote_token({"eventTypeNames": ["feed", "walk", "feed"]}),
        remote_token({"name": "Ana"}),
    ]

    outcome = await auth_exchange.authenticate(PinCode("1234"), terminal_config)

    assert [(a.id, a.label) for a in outcome.value.actions] == [(1, "FEED"), (2, "WALK"), (3, "FEED")]


@pytest.mark.asyncio
async def test_empty_event_list_is_allowed(client, auth_exchange, terminal_config):
    client.responses = [remote_token({"eventTypeNames": []}), remote_token({"name": "Ana"})]

    outcome = await auth_exchange.authenticate(PinCode("1234"), terminal_config)

    assert outcome.ok
    assert outcome.value.actions == ()


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"name": "Ana"},
    {"eventTypeNames": "feed"},
    {"eventTypeNames": ["feed", 3]},
])
async def test_invalid_event_types_stop_before_name_lookup(client, auth_exchange, terminal_config, payload):
    client.responses = [remote_token(payload), remote_token({"name": "Ana"})]

    outcome = await auth_exchange.authenticate(PinCode("1234"), terminal_config)

    assert outcome == Failure("Invalid response for event types")
    assert len(client.calls) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{}, {"name": ""}, {"name": 7}])
async def test_invalid_name_fails_whole_exchange(client, auth_exchange, terminal_config, payload):
    client.responses = [remote_token({"eventTypeNames": ["feed"]}), remote_token(payload)]

    outcome = await auth_exchange.authenticate(PinCode("1234"), terminal_config)

    assert outcome == Failure("Invalid response for user name")
    assert len(client.calls) == 2


@pytest.mark.asyncio
async def test_network_failure_on_first_round_trip(client, auth_exchange, terminal_config):
    client.responses = [NetworkError("Cannot connect to host ostara.test:80")]

    outcome = await auth_exchange.authenticate(PinCode("1234"), terminal_config)

    assert outcome == Failure("Cannot connect to host ostara.test:80")
    assert len(client.calls) == 1


@pytest.mark.asyncio
async def test_malformed_second_response(client, auth_exchange, terminal_config):
    client.responses = [remote_token({"eventTypeNames": ["feed"]}), "Internal Server Error"]

    outcome = await auth_exchange.authenticate(PinCode("1234"), terminal_config)

    assert outcome == Failure("Invalid JWT format")
