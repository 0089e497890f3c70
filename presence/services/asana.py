"""Asana adapter.

Asana's API cannot set out-of-office, it can only read ``vacation_dates``.
The adapter checks the current state and tells the user what to do by hand.
"""

from __future__ import annotations

import httpx

from presence.errors import UnexpectedResponse
from presence.models import OutOfOfficeAction, RemindOutOfOffice, ServiceIntent, ServiceName, Succeeded
from presence.services.base import ServiceAdapter

ASANA_API_URL = "https://app.asana.com/api/1.0"

SET_OOO_HINT = "Set Out of Office manually: Profile (icon) > Set out of office"
CLEAR_OOO_HINT = "Clear Out of Office manually: Profile (icon) > Set out of office"


class AsanaAdapter(ServiceAdapter):
    """Reminds the user to set or clear Asana out-of-office."""

    service = ServiceName.ASANA
    base_url = ASANA_API_URL

    def __init__(
        self,
        token: str,
        user_gid: str,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(token, timeout_seconds=timeout_seconds, transport=transport)
        self._user_gid = user_gid

    async def apply(self, intent: ServiceIntent) -> Succeeded:
        if not isinstance(intent, RemindOutOfOffice):
            raise self._unsupported(intent)

        is_set = await self.out_of_office_is_set()
        if intent.action is OutOfOfficeAction.SET:
            if is_set:
                return Succeeded("Out of Office already set")
            return Succeeded(SET_OOO_HINT, needs_attention=True)
        if is_set:
            return Succeeded(CLEAR_OOO_HINT, needs_attention=True)
        return Succeeded("No change")

    async def out_of_office_is_set(self) -> bool:
        """True when any workspace membership carries vacation dates."""

        async with self._client() as client:
            data = await self._request_json(
                client,
                "GET",
                f"/users/{self._user_gid}/workspace_memberships",
                params={"opt_fields": "vacation_dates"},
            )
        memberships = data.get("data") if isinstance(data, dict) else None
        if not isinstance(memberships, list):
            raise UnexpectedResponse(self.service.label, "workspace_memberships: missing data list")
        return any(isinstance(m, dict) and m.get("vacation_dates") for m in memberships)
