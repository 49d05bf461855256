"""Twosense Web API client.

Provides an async httpx-based client for the Twosense continuous
authentication API. Every public operation acquires a fresh bearer token
via the client-credentials grant, then runs sequentially:

- get_historical_events(): all events in a since/until window
- get_session() / get_trust_score(): single-entity lookups
- poll(): one incremental poll cycle over an explicit cursor

Reference: https://twosense.readme.io
"""

import logging
from collections.abc import Callable
from typing import Any

import httpx

from .auth import TokenProvider
from .config import TwosenseConfig
from .errors import TwosenseError
from .lookups import EntityLookupClient
from .metrics import operation_duration_seconds
from .models import AccessToken, Credentials, CursorState, LookupOutcome, utc_now_iso
from .pagination import PaginatedEventFetcher
from .poller import PollCursorEngine, PollResult

logger = logging.getLogger("twosense.client")

__all__ = ["SUPPORTED_OPERATIONS", "TwosenseClient"]

# (resource, operation) pairs accepted by execute()
SUPPORTED_OPERATIONS = {
    ("events", "getHistorical"),
    ("session", "get"),
    ("trustScore", "get"),
}


class TwosenseClient:
    """Twosense API client using httpx.

    The httpx.AsyncClient is injected or created here; a created client is
    closed by close() / the async context manager, an injected one is left
    to its owner.

    Example:
        >>> async with TwosenseClient(credentials) as client:
        ...     events = await client.get_historical_events("2026-01-01T00:00:00.000Z")
        ...     outcome = await client.get_trust_score("CORP\\\\alice")
    """

    CONNECT_TIMEOUT = 5.0  # seconds
    READ_TIMEOUT = 30.0  # seconds
    WRITE_TIMEOUT = 5.0  # seconds
    POOL_TIMEOUT = 5.0  # seconds

    def __init__(
        self,
        credentials: Credentials,
        http: httpx.AsyncClient | None = None,
        max_pages: int | None = None,
        connect_timeout: float = CONNECT_TIMEOUT,
        read_timeout: float = READ_TIMEOUT,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        """Initialize the client.

        Args:
            credentials: Tenant credentials (validated on first token request)
            http: Optional httpx.AsyncClient to use as transport
            max_pages: Optional page limit per events fetch
            connect_timeout: Connect timeout for a created client
            read_timeout: Read timeout for a created client
            clock: Current-time source for default ``until`` and cursor init
        """
        self.credentials = credentials
        self.base_url = credentials.api_root
        self.clock = clock

        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=connect_timeout,
                read=read_timeout,
                write=self.WRITE_TIMEOUT,
                pool=self.POOL_TIMEOUT,
            ),
            headers={"User-Agent": "twosense-connector/1.0"},
            follow_redirects=True,
        )

        self.tokens = TokenProvider(self.http)
        self.events = PaginatedEventFetcher(self.http, max_pages=max_pages, operation="historical")
        self.lookups = EntityLookupClient(self.http, self.base_url)
        self.poller = PollCursorEngine(
            PaginatedEventFetcher(self.http, max_pages=max_pages, operation="poll"),
            self.base_url,
            clock=clock,
        )

    @classmethod
    def from_config(cls, config: TwosenseConfig, http: httpx.AsyncClient | None = None) -> "TwosenseClient":
        return cls(
            config.credentials(),
            http=http,
            max_pages=config.max_pages,
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
        )

    async def __aenter__(self) -> "TwosenseClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the httpx client if this instance created it."""
        if self._owns_http:
            await self.http.aclose()

    # --- Authentication ---

    async def acquire_token(self) -> AccessToken:
        logger.info("refreshing_api_token")
        return await self.tokens.acquire_token(self.credentials)

    async def test_connection(self) -> dict[str, Any]:
        """Check the credentials with a token exchange.

        Returns:
            dict with keys: success (bool), error (str | None)
        """
        try:
            await self.acquire_token()
            return {"success": True, "error": None}
        except TwosenseError as e:
            return {"success": False, "error": str(e)}

    # --- Operations ---

    async def get_historical_events(
        self,
        since: str,
        until: str | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch every event published in [since, until].

        Args:
            since: ISO-8601 start of the range (required)
            until: ISO-8601 end of the range (default: now)

        Returns:
            All events across all pages, in page order

        Raises:
            ValueError: If since is empty
            AuthError, TokenExchangeError, FetchError
        """
        if not since:
            raise ValueError("since is required for a historical events query")
        until = until or self.clock()

        with operation_duration_seconds.labels(operation="historical").time():
            token = await self.acquire_token()
            logger.info(
                "historical_fetch_started",
                extra={"since": since, "until": until},
            )
            return await self.events.fetch_all(
                token,
                f"{self.base_url}/events",
                {"since": since, "until": until},
            )

    async def get_session(self, session_id: str) -> LookupOutcome:
        """Look up a session by id. See EntityLookupClient.get_session."""
        if not session_id:
            raise ValueError("session_id is required")
        with operation_duration_seconds.labels(operation="session").time():
            token = await self.acquire_token()
            return await self.lookups.get_session(token, session_id)

    async def get_trust_score(self, username: str) -> LookupOutcome:
        """Look up a user's trust score. See EntityLookupClient.get_trust_score."""
        if not username:
            raise ValueError("username is required")
        with operation_duration_seconds.labels(operation="trust_score").time():
            token = await self.acquire_token()
            return await self.lookups.get_trust_score(token, username)

    async def poll(self, state: CursorState | None) -> PollResult:
        """Run one poll cycle with a fresh token.

        The returned state must be persisted by the caller; on any exception
        the caller keeps its previous state.
        """
        with operation_duration_seconds.labels(operation="poll").time():
            token = await self.acquire_token()
            return await self.poller.poll(token, state)

    async def execute(self, resource: str, operation: str, **params: Any) -> list[dict[str, Any]]:
        """Dispatch a resource/operation pair and return JSON items.

        Supported pairs: events/getHistorical (since, until),
        session/get (session_id), trustScore/get (username).

        Raises:
            ValueError: For unsupported pairs
        """
        if (resource, operation) not in SUPPORTED_OPERATIONS:
            raise ValueError(
                f'The operation "{operation}" for resource "{resource}" is not supported'
            )

        if resource == "events":
            return await self.get_historical_events(params.get("since", ""), params.get("until"))
        if resource == "session":
            outcome = await self.get_session(params.get("session_id", ""))
        else:
            outcome = await self.get_trust_score(params.get("username", ""))
        return [outcome.to_dict()]
