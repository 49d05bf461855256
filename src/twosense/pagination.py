"""Link-header pagination over the Twosense events endpoint.

The first request carries the caller's query (since/until); every follow-up
request goes to the exact URL from the ``Link: <url>; rel="next"`` header
with no extra parameters, because that URL already encodes the pagination
state. Events from all pages are concatenated in arrival order and only
returned once the last page has been read.
"""

import logging
import re
from typing import Any

import httpx

from .errors import FetchError
from .metrics import events_fetched_total, pages_fetched_total
from .models import AccessToken, Page

logger = logging.getLogger("twosense.pagination")

__all__ = ["PaginatedEventFetcher", "parse_next_link"]

_NEXT_LINK_RE = re.compile(r'<([^>]+)>\s*;\s*rel="next"', re.IGNORECASE)


def parse_next_link(link_header: str | None) -> str | None:
    """Extract the rel="next" URL from a Link header.

    Format: <https://webapi.twosense.ai/events?cursor=abc>; rel="next", <...>; rel="prev"

    Args:
        link_header: Raw Link header value, or None

    Returns:
        URL of the first rel="next" entry, or None if absent or malformed
    """
    if not link_header:
        return None

    for part in link_header.split(","):
        match = _NEXT_LINK_RE.search(part)
        if match:
            return match.group(1).strip()
    return None


class PaginatedEventFetcher:
    """Fetches every page of an events query and aggregates the events.

    Termination is driven by the server's Link headers. ``max_pages`` is an
    optional guard against a server that never stops handing out next links;
    when it trips the whole fetch fails rather than returning a partial list.

    Attributes:
        http: Injected httpx.AsyncClient
        max_pages: Page limit per fetch, None for no limit
        operation: Label used in logs and metrics (historical, poll)
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        max_pages: int | None = None,
        operation: str = "historical",
    ) -> None:
        if max_pages is not None and max_pages < 1:
            raise ValueError("max_pages must be >= 1")
        self.http = http
        self.max_pages = max_pages
        self.operation = operation

    async def fetch_page(
        self,
        token: AccessToken,
        url: str,
        params: dict[str, str] | None = None,
    ) -> Page:
        """Fetch and decode a single page.

        Args:
            token: Bearer token for this operation
            url: Absolute page URL
            params: Query parameters (first page only)

        Returns:
            Page with its events and the next link, if any

        Raises:
            FetchError: On transport failure, non-2xx status or unparseable body
        """
        logger.info(
            "events_page_request",
            extra={"url": url, "params": params or {}, "operation": self.operation},
        )
        try:
            response = await self.http.get(url, params=params, headers=token.auth_headers())
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(f"GET {url} failed: {e}", url) from e

        if not 200 <= response.status_code < 300:
            raise FetchError(
                f"GET {url} returned HTTP {response.status_code}",
                url,
                status_code=response.status_code,
            )

        try:
            body = response.json() if response.content else {}
        except ValueError as e:
            raise FetchError(
                f"GET {url} returned a non-JSON body", url, status_code=response.status_code
            ) from e

        events = body.get("events") if isinstance(body, dict) else None
        if not isinstance(events, list):
            events = []

        link = response.headers.get("Link") or response.headers.get("link")
        next_link = parse_next_link(link)

        logger.info(
            "events_page_received",
            extra={
                "event_count": len(events),
                "link_header": link or "none",
                "next_url": next_link or "none",
            },
        )
        return Page(events=events, next_link=next_link)

    async def fetch_all(
        self,
        token: AccessToken,
        initial_url: str,
        initial_query: dict[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        """Follow next links from ``initial_url`` and return all events.

        Args:
            token: Bearer token for this operation
            initial_url: First page URL (e.g. {base_url}/events)
            initial_query: Query for the first page only

        Returns:
            Events from every page, in page-arrival order

        Raises:
            FetchError: If any page fails or max_pages is exceeded
        """
        all_events: list[dict[str, Any]] = []

        page = await self.fetch_page(token, initial_url, dict(initial_query or {}))
        all_events.extend(page.events)
        page_count = 1

        while page.next_link:
            if self.max_pages is not None and page_count >= self.max_pages:
                logger.error(
                    "events_page_limit_exceeded",
                    extra={"max_pages": self.max_pages, "next_url": page.next_link},
                )
                raise FetchError(
                    f"Pagination exceeded max_pages={self.max_pages}", page.next_link
                )
            page_count += 1
            logger.info(
                "events_page_follow",
                extra={"page": page_count, "next_url": page.next_link},
            )
            page = await self.fetch_page(token, page.next_link)
            all_events.extend(page.events)

        pages_fetched_total.labels(operation=self.operation).inc(page_count)
        events_fetched_total.labels(operation=self.operation).inc(len(all_events))
        logger.info(
            "events_fetch_complete",
            extra={
                "pages": page_count,
                "total_events": len(all_events),
                "operation": self.operation,
            },
        )
        return all_events
