"""Discarding results of superseded requests.

A view (say, one user's district matrix screen) may fire a new request
before the previous one returns. Each request takes a ticket; a result is
only accepted if its ticket is still the latest for that view and the
result carries the same period the ticket asked for.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Hashable, Protocol, TypeVar

from optometry_reports.aggregate.periods import Period

log = logging.getLogger(__name__)


class PeriodTagged(Protocol):
    def matches(self, period: Period) -> bool:
        ...


R = TypeVar("R", bound=PeriodTagged)


@dataclass(frozen=True)
class Ticket:
    view: Hashable
    seq: int
    period: Period


class LatestRequestGate:
    """Per-view sequence numbers; only the newest ticket's result gets through."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._seq = 0
        self._latest: dict[Hashable, int] = {}

    def begin(self, view: Hashable, period: Period) -> Ticket:
        """Register a new request for `view`, superseding any in flight."""
        with self._lock:
            self._seq += 1
            self._latest[view] = self._seq
            return Ticket(view=view, seq=self._seq, period=period)

    def is_current(self, ticket: Ticket) -> bool:
        with self._lock:
            return self._latest.get(ticket.view) == ticket.seq

    def accept(self, ticket: Ticket, result: R) -> R | None:
        """Return `result` if it may be displayed for `ticket`, else None."""
        if not self.is_current(ticket):
            log.debug("Dropping stale result for %s (ticket %d)", ticket.view, ticket.seq)
            return None
        if not result.matches(ticket.period):
            log.error("Result period does not match request %s for %s", ticket.period, ticket.view)
            return None
        return result

    def run(self, view: Hashable, period: Period, fn: Callable[[], R]) -> R | None:
        """Take a ticket, call `fn`, and return its result only if still current."""
        ticket = self.begin(view, period)
        return self.accept(ticket, fn())
