"""Tests for SlackAdapter."""

from __future__ import annotations

import json
from datetime import datetime
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs

import httpx
import pytest

from presence.errors import AuthRejected, NetworkFailure, UnexpectedResponse
from presence.models import ClearDoNotDisturb, SetBusy, SetDoNotDisturb, SetStatus, Succeeded
from presence.services.slack import SlackAdapter

NOW = datetime(2024, 1, 1, 12, 0)


def _adapter(handler, requests: list[httpx.Request] | None = None) -> SlackAdapter:
    def record(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return handler(request)

    return SlackAdapter("xoxp-test", transport=httpx.MockTransport(record), clock=lambda: NOW)


def _ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"ok": True})


@pytest.mark.asyncio
async def test_set_status_posts_profile():
    requests: list[httpx.Request] = []
    expires = datetime(2024, 1, 1, 13, 15)
    result = await _adapter(_ok, requests).apply(
        SetStatus("Lunchin'", ":fork_and_knife:", expires_at=expires)
    )

    assert result == Succeeded("Lunchin' :fork_and_knife:")
    (request,) = requests
    assert request.method == "POST"
    assert request.url.path == "/api/users.profile.set"
    assert request.headers["Authorization"] == "Bearer xoxp-test"
    assert json.loads(request.content) == {
        "profile": {
            "status_text": "Lunchin'",
            "status_emoji": ":fork_and_knife:",
            "status_expiration": int(expires.timestamp()),
        }
    }


@pytest.mark.asyncio
async def test_cleared_status_sends_empty_profile():
    requests: list[httpx.Request] = []
    result = await _adapter(_ok, requests).apply(SetStatus.cleared())

    assert result == Succeeded("Cleared")
    profile = json.loads(requests[0].content)["profile"]
    assert profile == {"status_text": "", "status_emoji": "", "status_expiration": 0}


@pytest.mark.asyncio
async def test_set_dnd_snoozes_until_deadline():
    requests: list[httpx.Request] = []
    result = await _adapter(_ok, requests).apply(SetDoNotDisturb(until=datetime(2024, 1, 1, 13, 15)))

    assert result == Succeeded("(DND until 1:15pm)")
    assert requests[0].url.path == "/api/dnd.setSnooze"
    assert parse_qs(requests[0].content.decode()) == {"num_minutes": ["75"]}


@pytest.mark.asyncio
async def test_set_dnd_in_the_past_falls_back_to_a_day():
    requests: list[httpx.Request] = []
    await _adapter(_ok, requests).apply(SetDoNotDisturb(until=datetime(2024, 1, 1, 11, 0)))
    assert parse_qs(requests[0].content.decode()) == {"num_minutes": ["1440"]}


@pytest.mark.asyncio
async def test_set_dnd_without_deadline():
    requests: list[httpx.Request] = []
    result = await _adapter(_ok, requests).apply(SetDoNotDisturb())
    assert result == Succeeded("(DND on)")
    assert parse_qs(requests[0].content.decode()) == {"num_minutes": ["1440"]}


@pytest.mark.asyncio
async def test_end_dnd():
    requests: list[httpx.Request] = []
    result = await _adapter(_ok, requests).apply(ClearDoNotDisturb())
    assert result == Succeeded("(DND off)")
    assert requests[0].url.path == "/api/dnd.endSnooze"


@pytest.mark.asyncio
async def test_end_dnd_when_not_snoozed_is_not_an_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"ok": False, "error": "snooze_not_active"})

    result = await _adapter(handler).apply(ClearDoNotDisturb())
    assert result == Succeeded("(DND off)")


@pytest.mark.asyncio
async def test_invalid_auth_is_auth_rejected():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"ok": False, "error": "invalid_auth"})

    with pytest.raises(AuthRejected) as exc_info:
        await _adapter(handler).apply(SetStatus("In a meeting", ":calendar:"))
    assert exc_info.value.service == "Slack"
    assert "invalid_auth" in str(exc_info.value)


@pytest.mark.asyncio
async def test_other_api_error_is_unexpected_response():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"ok": False, "error": "profile_set_failed"})

    with pytest.raises(UnexpectedResponse, match="profile_set_failed"):
        await _adapter(handler).apply(SetStatus("In a meeting", ":calendar:"))


@pytest.mark.asyncio
async def test_http_401_is_auth_rejected():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={})

    with pytest.raises(AuthRejected):
        await _adapter(handler).apply(ClearDoNotDisturb())


@pytest.mark.asyncio
async def test_http_500_is_unexpected_response():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="oops")

    with pytest.raises(UnexpectedResponse, match="500"):
        await _adapter(handler).apply(ClearDoNotDisturb())


@pytest.mark.asyncio
async def test_non_json_body_is_unexpected_response():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    with pytest.raises(UnexpectedResponse, match="not JSON"):
        await _adapter(handler).apply(ClearDoNotDisturb())


@pytest.mark.asyncio
async def test_connection_error_is_network_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(NetworkFailure, match="connection refused"):
        await _adapter(handler).apply(ClearDoNotDisturb())


@pytest.mark.asyncio
async def test_rate_limit_is_retried():
    responses = [
        httpx.Response(429, headers={"Retry-After": "1"}),
        httpx.Response(200, json={"ok": True}),
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    with patch("presence.services.base.asyncio.sleep", new=AsyncMock()) as mock_sleep:
        result = await _adapter(handler).apply(ClearDoNotDisturb())

    assert result == Succeeded("(DND off)")
    mock_sleep.assert_awaited_once_with(1.0)


@pytest.mark.asyncio
async def test_unsupported_intent_is_unexpected_response():
    with pytest.raises(UnexpectedResponse, match="cannot apply"):
        await _adapter(_ok).apply(SetBusy(message="Vacation"))
