"""GitHub GraphQL adapter: busy (limited availability) user status."""

from __future__ import annotations

from datetime import timezone
from typing import Any

from presence.errors import AuthRejected, UnexpectedResponse
from presence.models import ClearBusy, ServiceIntent, ServiceName, SetBusy, Succeeded
from presence.services.base import ServiceAdapter

GITHUB_API_URL = "https://api.github.com"

CHANGE_STATUS_MUTATION = """
mutation($input: ChangeUserStatusInput!) {
  changeUserStatus(input: $input) {
    status { message }
  }
}
"""

_AUTH_ERROR_TYPES = frozenset({"FORBIDDEN", "UNAUTHORIZED", "INSUFFICIENT_SCOPES"})


def busy_input(intent: SetBusy) -> dict[str, Any]:
    """Build the ChangeUserStatusInput for a busy status."""

    status: dict[str, Any] = {"message": intent.message, "limitedAvailability": True}
    if intent.emoji:
        status["emoji"] = intent.emoji
    if intent.until is not None:
        status["expiresAt"] = intent.until.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    if intent.scope:
        status["organizationId"] = intent.scope
    return status


class GitHubAdapter(ServiceAdapter):
    """Sets or clears the GitHub user status."""

    service = ServiceName.GITHUB
    base_url = GITHUB_API_URL

    def _headers(self) -> dict[str, str]:
        return {**super()._headers(), "User-Agent": "st-cli"}

    async def apply(self, intent: ServiceIntent) -> Succeeded:
        if isinstance(intent, SetBusy):
            await self._change_status(busy_input(intent))
            suffix = " (organization only)" if intent.scope else ""
            return Succeeded(f"Limited availability{suffix}")
        if isinstance(intent, ClearBusy):
            # An empty input clears message, emoji and availability.
            await self._change_status({})
            return Succeeded("Cleared")
        raise self._unsupported(intent)

    async def _change_status(self, status_input: dict[str, Any]) -> dict[str, Any]:
        body = {"query": CHANGE_STATUS_MUTATION, "variables": {"input": status_input}}
        async with self._client() as client:
            data = await self._request_json(client, "POST", "/graphql", json=body)
        if not isinstance(data, dict):
            raise UnexpectedResponse(self.service.label, "GraphQL: malformed response")
        errors = data.get("errors")
        if errors:
            messages = "; ".join(str(e.get("message", e)) for e in errors if isinstance(e, dict)) or str(errors)
            if any(isinstance(e, dict) and e.get("type") in _AUTH_ERROR_TYPES for e in errors):
                raise AuthRejected(self.service.label, f"GraphQL error: {messages}")
            raise UnexpectedResponse(self.service.label, f"GraphQL error: {messages}")
        return data
