"""Dispatches a presence keyword to every configured service.

Unknown keywords and unparseable deadlines abort the run before any service
is touched. Once dispatch starts each service is isolated: its failure is
recorded in the report and never stops the others.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, Collection, Mapping, cast

from presence.errors import AdapterError
from presence.keywords import REGISTRY, IntentContext, KeywordEntry, KeywordRegistry
from presence.models import (
    Deadline,
    Failed,
    OutcomeReport,
    ServiceIntent,
    ServiceName,
    ServiceResult,
    Skipped,
    Succeeded,
)
from presence.services.base import ServiceAdapter
from presence.timeparse import resolve

LOGGER = logging.getLogger(__name__)


class Dispatcher:
    """Resolves, materializes and applies one keyword across services."""

    def __init__(
        self,
        adapters: Mapping[ServiceName, ServiceAdapter],
        registry: KeywordRegistry = REGISTRY,
        skip_reasons: Mapping[ServiceName, str] | None = None,
        org_scope: str | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._adapters = dict(adapters)
        self._registry = registry
        self._skip_reasons = dict(skip_reasons or {})
        self._org_scope = org_scope
        self._clock = clock

    async def run(
        self,
        keyword: str,
        date_token: str | None = None,
        time_token: str | None = None,
        configured_services: Collection[ServiceName] | None = None,
    ) -> OutcomeReport:
        """Apply ``keyword`` to every mapped service and report per service.

        Raises:
            UnknownKeyword: the keyword is not in the registry.
            ResolutionError: the keyword needs a deadline and the tokens don't parse.
        """
        entry = self._registry.lookup(keyword)
        if entry.time_first and date_token is not None and time_token is None:
            date_token, time_token = None, date_token
        LOGGER.info(
            "Dispatch: keyword=%r date=%r time=%r services=%r",
            entry.keyword,
            date_token,
            time_token,
            [s.value for s in entry.services],
        )

        now = self._clock()
        deadline = self._resolve_deadline(entry, now, date_token, time_token)
        context = IntentContext(now=now, deadline=deadline, org_scope=self._org_scope)
        configured = set(self._adapters) if configured_services is None else set(configured_services)

        # Every template is materialized before the first adapter call.
        results: list[ServiceResult | None] = []
        attempts: list[tuple[int, ServiceName, ServiceAdapter, list[tuple[ServiceIntent, bool]]]] = []
        for mapping in entry.mappings:
            adapter = self._adapters.get(mapping.service)
            if mapping.service not in configured or adapter is None:
                reason = self._skip_reasons.get(mapping.service, "not configured")
                results.append(Skipped(reason))
                continue
            attempts.append((len(results), mapping.service, adapter, mapping.steps(context)))
            results.append(None)

        outcomes = await asyncio.gather(
            *(self._apply(service, adapter, steps) for _, service, adapter, steps in attempts)
        )
        for (slot, _, _, _), outcome in zip(attempts, outcomes):
            results[slot] = outcome

        report = OutcomeReport(keyword=entry.keyword, deadline=deadline)
        report.entries.extend(zip(entry.services, cast("list[ServiceResult]", results)))
        return report

    def _resolve_deadline(
        self,
        entry: KeywordEntry,
        now: datetime,
        date_token: str | None,
        time_token: str | None,
    ) -> Deadline | None:
        if not entry.needs_deadline:
            if date_token is not None or time_token is not None:
                LOGGER.warning("Keyword %r takes no date or time; ignoring them", entry.keyword)
            return None

        explicit = date_token is not None or time_token is not None
        at = resolve(now, date_token, time_token)
        if not explicit and entry.default_duration is not None:
            at += entry.default_duration
        LOGGER.info("Resolved deadline for %r: %s (explicit=%s)", entry.keyword, at.isoformat(), explicit)
        return Deadline(at=at, explicit=explicit)

    async def _apply(
        self,
        service: ServiceName,
        adapter: ServiceAdapter,
        steps: list[tuple[ServiceIntent, bool]],
    ) -> ServiceResult:
        details: list[str] = []
        failures: list[AdapterError] = []
        needs_attention = False
        try:
            for intent, best_effort in steps:
                try:
                    outcome = await adapter.apply(intent)
                except AdapterError as exc:
                    LOGGER.warning("%s failed: %s", service.label, exc)
                    failures.append(exc)
                    if best_effort:
                        continue
                    break
                details.append(outcome.detail)
                needs_attention = needs_attention or outcome.needs_attention
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("%s raised unexpectedly", service.label)
            return Failed(exc)

        done = [d for d in details if d]
        if not failures:
            return Succeeded(" ".join(done), needs_attention=needs_attention)
        first = failures[0]
        if len(failures) == 1 and not done:
            return Failed(first)
        # Partial outcome: keep every error and whatever did get applied.
        message = "; ".join([*(str(f) for f in failures), *done])
        return Failed(type(first)(first.service, message))
