"""Core domain models used across layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterator, Union


class ServiceName(str, Enum):
    """Backends a presence intent can be broadcast to."""

    SLACK = "slack"
    GITHUB = "github"
    ASANA = "asana"

    @property
    def label(self) -> str:
        return {"slack": "Slack", "github": "GitHub", "asana": "Asana"}[self.value]


class OutOfOfficeAction(str, Enum):
    SET = "set"
    CLEAR = "clear"


@dataclass(frozen=True, slots=True)
class Deadline:
    """A resolved instant plus whether the user asked for it explicitly."""

    at: datetime
    explicit: bool


# Service intents. Adapters dispatch on the concrete type.


@dataclass(frozen=True, slots=True)
class SetStatus:
    """Set (or, with empty text, clear) a profile status."""

    text: str
    emoji: str | None = None
    expires_at: datetime | None = None

    @classmethod
    def cleared(cls) -> SetStatus:
        return cls(text="", emoji=None)

    @property
    def is_clear(self) -> bool:
        return not self.text and not self.emoji


@dataclass(frozen=True, slots=True)
class SetDoNotDisturb:
    until: datetime | None = None


@dataclass(frozen=True, slots=True)
class ClearDoNotDisturb:
    pass


@dataclass(frozen=True, slots=True)
class SetBusy:
    """Mark the account as having limited availability."""

    message: str
    emoji: str | None = None
    scope: str | None = None
    until: datetime | None = None


@dataclass(frozen=True, slots=True)
class ClearBusy:
    pass


@dataclass(frozen=True, slots=True)
class RemindOutOfOffice:
    action: OutOfOfficeAction


@dataclass(frozen=True, slots=True)
class NoOp:
    pass


ServiceIntent = Union[
    SetStatus,
    SetDoNotDisturb,
    ClearDoNotDisturb,
    SetBusy,
    ClearBusy,
    RemindOutOfOffice,
    NoOp,
]


# Per-service outcomes.


@dataclass(frozen=True, slots=True)
class Succeeded:
    detail: str
    # A success the user still has to act on by hand (e.g. Asana OOO).
    needs_attention: bool = False


@dataclass(frozen=True, slots=True)
class Skipped:
    reason: str


@dataclass(frozen=True, slots=True)
class Failed:
    error: Exception

    @property
    def message(self) -> str:
        return str(self.error) or type(self.error).__name__


ServiceResult = Union[Succeeded, Skipped, Failed]


@dataclass(slots=True)
class OutcomeReport:
    """Per-service results of one invocation, in dispatch order."""

    keyword: str
    entries: list[tuple[ServiceName, ServiceResult]] = field(default_factory=list)
    deadline: Deadline | None = None

    def __iter__(self) -> Iterator[tuple[ServiceName, ServiceResult]]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def services(self) -> list[ServiceName]:
        return [service for service, _ in self.entries]

    @property
    def ok(self) -> bool:
        """True when no attempted service failed."""

        return not any(isinstance(result, Failed) for _, result in self.entries)

    def result_for(self, service: ServiceName) -> ServiceResult | None:
        for name, result in self.entries:
            if name is service:
                return result
        return None
