"""Keyword registry: what each presence keyword does to each service."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Callable, Iterable, Mapping

from presence.errors import UnknownKeyword
from presence.models import (
    ClearBusy,
    ClearDoNotDisturb,
    Deadline,
    NoOp,
    OutOfOfficeAction,
    RemindOutOfOffice,
    ServiceIntent,
    ServiceName,
    SetBusy,
    SetDoNotDisturb,
    SetStatus,
)
from presence.timeparse import format_back

SLACK = ServiceName.SLACK
GITHUB = ServiceName.GITHUB
ASANA = ServiceName.ASANA

CATCHING_UP_MINUTES = 5


@dataclass(frozen=True, slots=True)
class IntentContext:
    """Values a template may draw on when it is materialized."""

    now: datetime
    deadline: Deadline | None = None
    org_scope: str | None = None


@dataclass(frozen=True, slots=True)
class IntentTemplate:
    build: Callable[[IntentContext], ServiceIntent]
    needs_deadline: bool = False
    # A failure here is reported but does not stop the steps after it.
    best_effort: bool = False

    def materialize(self, context: IntentContext) -> ServiceIntent:
        if self.needs_deadline and context.deadline is None:
            raise ValueError("Template requires a resolved deadline")
        return self.build(context)


@dataclass(frozen=True, slots=True)
class ServiceMapping:
    """The intents one service receives for a keyword, applied in order."""

    service: ServiceName
    templates: tuple[IntentTemplate, ...]

    @property
    def needs_deadline(self) -> bool:
        return any(t.needs_deadline for t in self.templates)

    @property
    def is_noop(self) -> bool:
        return all(
            not t.needs_deadline and isinstance(t.build(_PROBE), NoOp) for t in self.templates
        )

    def materialize(self, context: IntentContext) -> list[ServiceIntent]:
        return [intent for intent, _ in self.steps(context)]

    def steps(self, context: IntentContext) -> list[tuple[ServiceIntent, bool]]:
        """Materialized intents paired with their best-effort flag."""

        return [(t.materialize(context), t.best_effort) for t in self.templates]


@dataclass(frozen=True, slots=True)
class KeywordEntry:
    keyword: str
    mappings: tuple[ServiceMapping, ...]
    # Added to the rounded "now" when a deadline is needed but no token was given.
    default_duration: timedelta | None = None
    # A lone positional token is a time rather than a date ("st lunch 1pm").
    time_first: bool = False

    @property
    def needs_deadline(self) -> bool:
        return any(m.needs_deadline for m in self.mappings)

    @property
    def services(self) -> list[ServiceName]:
        return [m.service for m in self.mappings]


_PROBE = IntentContext(now=datetime(2000, 1, 1))


# Template builders.


def _fixed(intent: ServiceIntent, best_effort: bool = False) -> IntentTemplate:
    return IntentTemplate(build=lambda ctx: intent, best_effort=best_effort)


def _noop() -> IntentTemplate:
    return _fixed(NoOp())


def _status(text: str, emoji: str) -> IntentTemplate:
    return _fixed(SetStatus(text=text, emoji=emoji))


def _status_until_deadline(text: str, emoji: str) -> IntentTemplate:
    return IntentTemplate(
        build=lambda ctx: SetStatus(text=text, emoji=emoji, expires_at=ctx.deadline.at),
        needs_deadline=True,
    )


def _status_until_return(text: str, emoji: str, mention_return: bool = True) -> IntentTemplate:
    """Status that only expires (and says when you're back) for a user-given deadline."""

    def build(ctx: IntentContext) -> ServiceIntent:
        if not ctx.deadline.explicit:
            return SetStatus(text=text, emoji=emoji)
        shown = f"{text}. {format_back(ctx.deadline.at, ctx.now.date())}" if mention_return else text
        return SetStatus(text=shown, emoji=emoji, expires_at=ctx.deadline.at)

    return IntentTemplate(build=build, needs_deadline=True)


def _status_for(text: str, emoji: str, minutes: int) -> IntentTemplate:
    return IntentTemplate(
        build=lambda ctx: SetStatus(
            text=text, emoji=emoji, expires_at=ctx.now + timedelta(minutes=minutes)
        )
    )


def _dnd_until_deadline() -> IntentTemplate:
    return IntentTemplate(
        build=lambda ctx: SetDoNotDisturb(until=ctx.deadline.at),
        needs_deadline=True,
    )


def _dnd_until_return() -> IntentTemplate:
    """DND until a user-given deadline, otherwise open-ended."""

    return IntentTemplate(
        build=lambda ctx: SetDoNotDisturb(until=ctx.deadline.at if ctx.deadline.explicit else None),
        needs_deadline=True,
    )


def _busy(text: str, emoji: str) -> IntentTemplate:
    return IntentTemplate(
        build=lambda ctx: SetBusy(
            message=text,
            emoji=emoji,
            scope=ctx.org_scope,
            until=ctx.deadline.at if ctx.deadline.explicit else None,
        ),
        needs_deadline=True,
    )


def _remind(action: OutOfOfficeAction) -> IntentTemplate:
    return _fixed(RemindOutOfOffice(action=action))


def _entry(
    keyword: str,
    slack: Iterable[IntentTemplate],
    github: Iterable[IntentTemplate] = (),
    asana: Iterable[IntentTemplate] = (),
    default_duration: timedelta | None = None,
    time_first: bool = False,
) -> KeywordEntry:
    mappings = (
        ServiceMapping(SLACK, tuple(slack) or (_noop(),)),
        ServiceMapping(GITHUB, tuple(github) or (_noop(),)),
        ServiceMapping(ASANA, tuple(asana) or (_noop(),)),
    )
    return KeywordEntry(
        keyword=keyword,
        mappings=mappings,
        default_duration=default_duration,
        time_first=time_first,
    )


_DAY = timedelta(days=1)

_ENTRIES: tuple[KeywordEntry, ...] = (
    _entry(
        "lunch",
        slack=[_status_until_deadline("Lunchin'", ":fork_and_knife:"), _dnd_until_deadline()],
        default_duration=timedelta(hours=1),
        time_first=True,
    ),
    _entry("zoom", slack=[_status("In a meeting (Zoom)", ":video_camera:")]),
    _entry("tuple", slack=[_status("Pairing (Tuple)", ":couple:")]),
    _entry("meet", slack=[_status("In a meeting", ":calendar:")]),
    _entry(
        "eod",
        slack=[
            _status_until_return("Done for the day", ":wave:", mention_return=False),
            _dnd_until_return(),
        ],
        default_duration=_DAY,
    ),
    _entry(
        "vacation",
        slack=[_status_until_return("Vacation", ":desert_island:"), _dnd_until_return()],
        github=[_busy("Vacation", ":desert_island:")],
        asana=[_remind(OutOfOfficeAction.SET)],
        default_duration=_DAY,
    ),
    _entry(
        "sick",
        slack=[_status_until_return("Out sick", ":face_with_thermometer:"), _dnd_until_return()],
        asana=[_remind(OutOfOfficeAction.SET)],
        default_duration=_DAY,
    ),
    _entry(
        "away",
        slack=[_status_until_return("Out of office", ":no_entry:"), _dnd_until_return()],
        github=[_busy("Out of office", ":no_entry:")],
        asana=[_remind(OutOfOfficeAction.SET)],
        default_duration=_DAY,
    ),
    _entry(
        "back",
        slack=[
            _fixed(ClearDoNotDisturb(), best_effort=True),
            _status_for("Catching up", ":inbox_tray:", CATCHING_UP_MINUTES),
        ],
        github=[_fixed(ClearBusy())],
        asana=[_remind(OutOfOfficeAction.CLEAR)],
    ),
    _entry(
        "clear",
        slack=[_fixed(SetStatus.cleared()), _fixed(ClearDoNotDisturb())],
        github=[_fixed(ClearBusy())],
        asana=[_remind(OutOfOfficeAction.CLEAR)],
    ),
)


class KeywordRegistry:
    """Immutable, case-insensitive keyword lookup.

    Services whose templates are all NoOp are dropped when the registry is
    built, so they are never dispatched nor reported.
    """

    def __init__(self, entries: Iterable[KeywordEntry]) -> None:
        compiled: dict[str, KeywordEntry] = {}
        for entry in entries:
            key = entry.keyword.lower()
            if key in compiled:
                raise ValueError(f"Duplicate keyword: {entry.keyword}")
            mappings = tuple(m for m in entry.mappings if not m.is_noop)
            compiled[key] = KeywordEntry(
                keyword=key,
                mappings=mappings,
                default_duration=entry.default_duration,
                time_first=entry.time_first,
            )
        self._entries: Mapping[str, KeywordEntry] = MappingProxyType(compiled)

    def lookup(self, keyword: str) -> KeywordEntry:
        entry = self._entries.get(keyword.strip().lower())
        if entry is None:
            raise UnknownKeyword(keyword)
        return entry

    def keywords(self) -> list[str]:
        return list(self._entries)

    def __contains__(self, keyword: object) -> bool:
        return isinstance(keyword, str) and keyword.strip().lower() in self._entries


REGISTRY = KeywordRegistry(_ENTRIES)


def lookup(keyword: str) -> KeywordEntry:
    """Look up a keyword in the built-in registry."""

    return REGISTRY.lookup(keyword)


def keywords() -> list[str]:
    return REGISTRY.keywords()
