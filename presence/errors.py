"""Error taxonomy.

Invocation-fatal errors (unknown keyword, unparseable date/time) are raised
before any backend is touched. Adapter errors are service-local and end up as
failed report entries.
"""

from __future__ import annotations


class PresenceError(Exception):
    """Base class for all errors raised by the status engine."""


class UnknownKeyword(PresenceError):
    def __init__(self, keyword: str) -> None:
        super().__init__(f"Unknown keyword: {keyword}")
        self.keyword = keyword


class ResolutionError(PresenceError):
    """A date or time token could not be turned into a deadline."""

    def __init__(self, token: str, message: str) -> None:
        super().__init__(message)
        self.token = token


class UnparseableDate(ResolutionError):
    def __init__(self, token: str) -> None:
        super().__init__(
            token,
            f"Could not parse date: {token}\nExamples: friday, 3/10, 3-10-2026, tomorrow",
        )


class UnparseableTime(ResolutionError):
    def __init__(self, token: str) -> None:
        super().__init__(
            token,
            f"Could not parse time: {token}\nExamples: 8am, 9:30am, 1:30 p.m., 15:00",
        )


class AdapterError(PresenceError):
    """A single backend failed to apply an intent."""

    def __init__(self, service: str, message: str) -> None:
        super().__init__(message)
        self.service = service


class AuthRejected(AdapterError):
    pass


class NetworkFailure(AdapterError):
    pass


class UnexpectedResponse(AdapterError):
    pass
