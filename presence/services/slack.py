"""Slack Web API adapter: profile status and Do Not Disturb."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable

import httpx

from presence.errors import AuthRejected, UnexpectedResponse
from presence.models import (
    ClearDoNotDisturb,
    ServiceIntent,
    ServiceName,
    SetDoNotDisturb,
    SetStatus,
    Succeeded,
)
from presence.services.base import ServiceAdapter
from presence.timeparse import format_clock

LOGGER = logging.getLogger(__name__)

SLACK_API_URL = "https://slack.com/api"
DEFAULT_DND_MINUTES = 1440

_AUTH_ERRORS = frozenset({"invalid_auth", "not_authed", "token_revoked", "token_expired", "account_inactive"})


class SlackAdapter(ServiceAdapter):
    """Sets the user's Slack status and snoozes notifications."""

    service = ServiceName.SLACK
    base_url = SLACK_API_URL

    def __init__(
        self,
        token: str,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        super().__init__(token, timeout_seconds=timeout_seconds, transport=transport)
        self._clock = clock

    async def apply(self, intent: ServiceIntent) -> Succeeded:
        if isinstance(intent, SetStatus):
            return await self._set_status(intent)
        if isinstance(intent, SetDoNotDisturb):
            return await self._set_dnd(intent)
        if isinstance(intent, ClearDoNotDisturb):
            return await self._end_dnd()
        raise self._unsupported(intent)

    async def _set_status(self, intent: SetStatus) -> Succeeded:
        expiration = int(intent.expires_at.timestamp()) if intent.expires_at else 0
        payload = {
            "profile": {
                "status_text": intent.text,
                "status_emoji": intent.emoji or "",
                "status_expiration": expiration,
            }
        }
        async with self._client() as client:
            data = await self._request_json(client, "POST", "/users.profile.set", json=payload)
        self._check(data, "users.profile.set")
        if intent.is_clear:
            return Succeeded("Cleared")
        return Succeeded(" ".join(part for part in (intent.text, intent.emoji) if part))

    async def _set_dnd(self, intent: SetDoNotDisturb) -> Succeeded:
        minutes = self._minutes_until(intent.until)
        async with self._client() as client:
            data = await self._request_json(
                client,
                "POST",
                "/dnd.setSnooze",
                data={"num_minutes": str(minutes)},
            )
        self._check(data, "dnd.setSnooze")
        if intent.until is None:
            return Succeeded("(DND on)")
        return Succeeded(f"(DND until {format_clock(intent.until)})")

    async def _end_dnd(self) -> Succeeded:
        async with self._client() as client:
            data = await self._request_json(client, "POST", "/dnd.endSnooze")
        # Ending a snooze that is not active is fine: "back" and "clear" are idempotent.
        if isinstance(data, dict) and data.get("error") == "snooze_not_active":
            LOGGER.debug("Slack DND was not active")
        else:
            self._check(data, "dnd.endSnooze")
        return Succeeded("(DND off)")

    def _minutes_until(self, until: datetime | None) -> int:
        if until is None:
            return DEFAULT_DND_MINUTES
        minutes = int((until - self._clock()).total_seconds() // 60)
        return minutes if minutes > 0 else DEFAULT_DND_MINUTES

    def _check(self, data: Any, method: str) -> None:
        if not isinstance(data, dict):
            raise UnexpectedResponse(self.service.label, f"Slack {method}: malformed response")
        if data.get("ok"):
            return
        error = data.get("error") or "unknown_error"
        if error in _AUTH_ERRORS:
            raise AuthRejected(self.service.label, f"Slack {method}: {error}")
        raise UnexpectedResponse(self.service.label, f"Slack {method}: {error}")
