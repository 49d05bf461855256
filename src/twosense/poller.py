"""Incremental event polling driven by a persisted cursor.

The cursor is an explicit CursorState handed in by the caller and handed
back inside PollResult; the caller is responsible for durable storage
between cycles and for persisting only after poll() returns.

Cycle semantics:
- No cursor yet: the cursor is set to "now" and nothing is emitted, so the
  first cycle never floods downstream with the full event history.
- Cursor set: fetch every page since the cursor. Empty result leaves the
  cursor alone. Otherwise emit all events and advance the cursor to the
  largest ``published`` value (string comparison, never backwards).
- Fetch failure: FetchError propagates and the caller keeps the old state,
  so the same window is redelivered next cycle (at-least-once).
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .errors import FetchError
from .metrics import poll_cycles_total
from .models import AccessToken, CursorState, utc_now_iso
from .pagination import PaginatedEventFetcher

logger = logging.getLogger("twosense.poller")

__all__ = ["PollCursorEngine", "PollResult", "max_published"]


@dataclass
class PollResult:
    """Output of one poll cycle.

    Attributes:
        events: Events to emit this cycle (empty on first run / no news)
        state: Cursor state to persist after the cycle
        outcome: initialized, empty or emitted
    """

    events: list[dict[str, Any]] = field(default_factory=list)
    state: CursorState = field(default_factory=CursorState)
    outcome: str = "empty"

    @property
    def emitted(self) -> bool:
        return bool(self.events)


def max_published(events: list[dict[str, Any]]) -> str | None:
    """Largest string ``published`` timestamp among events, or None."""
    latest: str | None = None
    for event in events:
        published = event.get("published") if isinstance(event, dict) else None
        if not isinstance(published, str):
            continue
        if latest is None or published > latest:
            latest = published
    return latest


class PollCursorEngine:
    """Runs poll cycles against {base_url}/events.

    Attributes:
        fetcher: PaginatedEventFetcher used for the since-query
        events_url: Absolute events endpoint URL
        clock: Returns the current time as an ISO-8601 string
    """

    def __init__(
        self,
        fetcher: PaginatedEventFetcher,
        base_url: str,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self.fetcher = fetcher
        self.events_url = f"{base_url.rstrip('/')}/events"
        self.clock = clock

    async def poll(self, token: AccessToken, state: CursorState | None) -> PollResult:
        """Run one poll cycle.

        Args:
            token: Bearer token for this cycle
            state: Cursor loaded by the caller (None or uninitialized on first run)

        Returns:
            PollResult with the events to emit and the state to persist

        Raises:
            FetchError: If any page fetch fails. No state change is implied.
        """
        state = state or CursorState()
        logger.info(
            "poll_cycle_started",
            extra={"last_event_time": state.last_event_time or "null"},
        )

        if not state.initialized:
            now = self.clock()
            poll_cycles_total.labels(outcome="initialized").inc()
            logger.info("poll_cursor_initialized", extra={"last_event_time": now})
            return PollResult(
                events=[], state=CursorState(last_event_time=now), outcome="initialized"
            )

        since = state.last_event_time
        try:
            events = await self.fetcher.fetch_all(token, self.events_url, {"since": since})
        except FetchError as e:
            poll_cycles_total.labels(outcome="failed").inc()
            logger.error(
                "poll_cycle_failed",
                extra={"last_event_time": since, "error": str(e)},
            )
            raise

        if not events:
            poll_cycles_total.labels(outcome="empty").inc()
            logger.info("poll_no_new_events", extra={"last_event_time": since})
            return PollResult(events=[], state=state, outcome="empty")

        new_state = state
        latest = max_published(events)
        if latest is not None and latest > since:
            new_state = CursorState(last_event_time=latest)
            logger.info("poll_cursor_advanced", extra={"last_event_time": latest})

        poll_cycles_total.labels(outcome="emitted").inc()
        return PollResult(events=events, state=new_state, outcome="emitted")
