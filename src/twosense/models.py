"""Data models for the Twosense connector.

Defines the credential, token, cursor and page records that flow between
the token provider, the paginated fetcher and the poll engine, plus the
LookupOutcome variants returned by single-entity lookups.

Events themselves stay plain dicts: the payload is opaque apart from the
``published`` ISO-8601 timestamp used for cursor advancement.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar

__all__ = [
    "AccessToken",
    "ApiError",
    "Credentials",
    "CursorState",
    "Found",
    "LookupOutcome",
    "NoRecentScore",
    "NotFound",
    "Page",
    "utc_now_iso",
]


def utc_now_iso(now: datetime | None = None) -> str:
    """Format a UTC instant as ISO-8601 with millisecond precision and Z suffix.

    Matches the timestamp layout the events endpoint emits in ``published``,
    so cursors compare correctly as plain strings.

    Args:
        now: Instant to format (default: current time)

    Returns:
        Timestamp like ``2026-10-19T08:15:30.123Z``
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    else:
        now = now.astimezone(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Credentials:
    """Client-credentials for one Twosense tenant.

    Attributes:
        base_url: API base URL, e.g. https://webapi.twosense.ai
        client_id: OAuth2 client id
        client_secret: OAuth2 client secret (hidden from repr)
    """

    base_url: str
    client_id: str
    client_secret: str = field(repr=False)

    @property
    def api_root(self) -> str:
        """Base URL without trailing slashes. Also used as token audience."""
        return (self.base_url or "").rstrip("/")


@dataclass(frozen=True)
class AccessToken:
    """Bearer token valid for a single operation or poll cycle."""

    value: str = field(repr=False)

    def auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.value}",
            "Accept": "application/json",
        }


@dataclass(frozen=True)
class CursorState:
    """Persisted poll watermark.

    ``last_event_time`` is None until the first poll cycle initializes it.
    Serialized with the camelCase key the host workflow store uses.
    """

    last_event_time: str | None = None

    STATE_KEY: ClassVar[str] = "lastEventTime"

    @property
    def initialized(self) -> bool:
        return bool(self.last_event_time)

    def to_dict(self) -> dict[str, Any]:
        return {self.STATE_KEY: self.last_event_time}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "CursorState":
        if not data:
            return cls()
        value = data.get(cls.STATE_KEY)
        return cls(last_event_time=value if isinstance(value, str) and value else None)


@dataclass
class Page:
    """One page of the events endpoint."""

    events: list[dict[str, Any]]
    next_link: str | None = None


# --- Lookup outcomes ------------------------------------------------------


@dataclass(frozen=True)
class LookupOutcome:
    """Structured result of a session or trust-score lookup.

    Every non-2xx answer maps to one of the subclasses instead of an
    exception. ``payload`` is the JSON-ready dict handed to callers; it
    always carries a ``found`` flag.

    Attributes:
        status_code: HTTP status returned by the endpoint
        payload: Result dict (``found``, ``reason`` and identifiers)
    """

    status_code: int
    payload: dict[str, Any]

    kind: ClassVar[str] = "unknown"

    @property
    def found(self) -> bool:
        return False

    @property
    def reason(self) -> str | None:
        return self.payload.get("reason")

    def to_dict(self) -> dict[str, Any]:
        return dict(self.payload)


@dataclass(frozen=True)
class Found(LookupOutcome):
    kind: ClassVar[str] = "found"

    @property
    def found(self) -> bool:
        return True


@dataclass(frozen=True)
class NotFound(LookupOutcome):
    kind: ClassVar[str] = "not_found"


@dataclass(frozen=True)
class NoRecentScore(LookupOutcome):
    kind: ClassVar[str] = "no_recent_score"


@dataclass(frozen=True)
class ApiError(LookupOutcome):
    kind: ClassVar[str] = "api_error"

    @property
    def body(self) -> Any:
        """Response body of the unexpected status (parsed JSON or raw text)."""
        return self.payload.get("error")
