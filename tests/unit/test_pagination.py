"""Unit tests for Link-header pagination.

Tests parse_next_link and PaginatedEventFetcher with:
- Link header parsing (next present, absent, malformed, case-insensitive)
- Multi-page aggregation in arrival order
- Follow-up requests use the Link URL with no query parameters
- Failure on any page discards the aggregation
- Optional max_pages guard
"""

import httpx
import pytest

from http_helpers import events_page, mock_response
from twosense.errors import FetchError
from twosense.pagination import PaginatedEventFetcher, parse_next_link

EVENTS_URL = "https://webapi.twosense.test/events"
PAGE_2 = "https://webapi.twosense.test/events?cursor=p2"
PAGE_3 = "https://webapi.twosense.test/events?cursor=p3"


def _event(n: int) -> dict:
    return {"id": f"e{n}", "published": f"2026-10-19T08:00:0{n}.000Z"}


# =============================================================================
# parse_next_link
# =============================================================================


class TestParseNextLink:
    def test_single_next(self):
        assert parse_next_link(f'<{PAGE_2}>; rel="next"') == PAGE_2

    def test_next_among_other_rels(self):
        header = f'<{EVENTS_URL}?cursor=p0>; rel="prev", <{PAGE_2}>; rel="next"'
        assert parse_next_link(header) == PAGE_2

    def test_case_insensitive_rel(self):
        assert parse_next_link(f'<{PAGE_2}>; REL="NEXT"') == PAGE_2

    def test_whitespace_around_separator(self):
        assert parse_next_link(f'<{PAGE_2}> ;  rel="next"') == PAGE_2

    def test_first_next_wins(self):
        header = f'<{PAGE_2}>; rel="next", <{PAGE_3}>; rel="next"'
        assert parse_next_link(header) == PAGE_2

    @pytest.mark.parametrize(
        "header",
        [
            None,
            "",
            f'<{PAGE_2}>; rel="prev"',
            f'{PAGE_2}; rel="next"',
            "garbage",
            '<>; rel="next"',
        ],
    )
    def test_absent_or_malformed(self, header):
        assert parse_next_link(header) is None


# =============================================================================
# PaginatedEventFetcher
# =============================================================================


class TestFetchAll:
    @pytest.mark.asyncio
    async def test_two_pages_aggregated_in_order(self, http, token):
        """Page 1 (2 events + Link) then page 2 (1 event) -> 3 events, 2 requests."""
        http.get.side_effect = [
            events_page([_event(1), _event(2)], next_url=PAGE_2),
            events_page([_event(3)]),
        ]

        events = await PaginatedEventFetcher(http).fetch_all(
            token, EVENTS_URL, {"since": "a", "until": "b"}
        )

        assert [e["id"] for e in events] == ["e1", "e2", "e3"]
        assert http.get.await_count == 2

    @pytest.mark.asyncio
    async def test_follow_up_uses_link_url_without_params(self, http, token):
        http.get.side_effect = [
            events_page([_event(1)], next_url=PAGE_2),
            events_page([_event(2)]),
        ]

        await PaginatedEventFetcher(http).fetch_all(token, EVENTS_URL, {"since": "s"})

        first, second = http.get.call_args_list
        assert first.args[0] == EVENTS_URL
        assert first.kwargs["params"] == {"since": "s"}
        assert second.args[0] == PAGE_2
        assert second.kwargs["params"] is None

    @pytest.mark.asyncio
    async def test_bearer_header_on_every_page(self, http, token):
        http.get.side_effect = [
            events_page([], next_url=PAGE_2),
            events_page([]),
        ]

        await PaginatedEventFetcher(http).fetch_all(token, EVENTS_URL, {})

        for call in http.get.call_args_list:
            assert call.kwargs["headers"]["Authorization"] == "Bearer tok-abc"
            assert call.kwargs["headers"]["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_total_equals_sum_of_pages(self, http, token):
        sizes = [3, 0, 5, 1]
        pages = []
        counter = 0
        for i, size in enumerate(sizes):
            batch = [{"id": counter + j} for j in range(size)]
            counter += size
            next_url = f"{EVENTS_URL}?cursor={i + 1}" if i < len(sizes) - 1 else None
            pages.append(events_page(batch, next_url=next_url))
        http.get.side_effect = pages

        events = await PaginatedEventFetcher(http).fetch_all(token, EVENTS_URL, {})

        assert len(events) == sum(sizes)
        assert [e["id"] for e in events] == list(range(sum(sizes)))

    @pytest.mark.asyncio
    async def test_lowercase_link_header(self, http, token):
        first = mock_response(
            json_data={"events": [_event(1)]},
            headers={"link": f'<{PAGE_2}>; rel="next"'},
        )
        http.get.side_effect = [first, events_page([_event(2)])]

        events = await PaginatedEventFetcher(http).fetch_all(token, EVENTS_URL, {})

        assert len(events) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [{}, {"events": None}, {"events": "nope"}, {"events": {"a": 1}}, ["x"]],
    )
    async def test_missing_or_non_array_events_is_empty(self, http, token, body):
        http.get.return_value = mock_response(json_data=body)

        events = await PaginatedEventFetcher(http).fetch_all(token, EVENTS_URL, {})

        assert events == []

    @pytest.mark.asyncio
    async def test_empty_body_is_empty_page(self, http, token):
        http.get.return_value = mock_response(content=b"")

        assert await PaginatedEventFetcher(http).fetch_all(token, EVENTS_URL, {}) == []

    @pytest.mark.asyncio
    async def test_idempotent_for_unchanged_backend(self, http, token):
        def backend(url, params=None, headers=None):
            if url == EVENTS_URL:
                return events_page([_event(1), _event(2)], next_url=PAGE_2)
            return events_page([_event(3)])

        http.get.side_effect = backend
        fetcher = PaginatedEventFetcher(http)
        query = {"since": "2026-10-01T00:00:00Z", "until": "2026-10-02T00:00:00Z"}

        first = await fetcher.fetch_all(token, EVENTS_URL, query)
        second = await fetcher.fetch_all(token, EVENTS_URL, query)

        assert first == second


class TestFetchFailures:
    @pytest.mark.asyncio
    async def test_transport_error_on_second_page(self, http, token):
        http.get.side_effect = [
            events_page([_event(1)], next_url=PAGE_2),
            httpx.ReadTimeout("timed out"),
        ]

        with pytest.raises(FetchError) as exc_info:
            await PaginatedEventFetcher(http).fetch_all(token, EVENTS_URL, {})

        assert exc_info.value.url == PAGE_2
        assert isinstance(exc_info.value.__cause__, httpx.ReadTimeout)

    @pytest.mark.asyncio
    async def test_http_error_status(self, http, token):
        http.get.return_value = mock_response(status_code=500, json_data={"error": "x"})

        with pytest.raises(FetchError) as exc_info:
            await PaginatedEventFetcher(http).fetch_all(token, EVENTS_URL, {})

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_non_json_body(self, http, token):
        http.get.return_value = mock_response(content=b"<html>oops</html>")

        with pytest.raises(FetchError, match="non-JSON"):
            await PaginatedEventFetcher(http).fetch_all(token, EVENTS_URL, {})

    @pytest.mark.asyncio
    async def test_redirect_status_is_failure(self, http, token):
        http.get.return_value = mock_response(
            status_code=302,
            headers={"Location": "https://other.twosense.test/events"},
        )

        with pytest.raises(FetchError) as exc_info:
            await PaginatedEventFetcher(http).fetch_all(token, EVENTS_URL, {})

        assert exc_info.value.status_code == 302

    @pytest.mark.asyncio
    async def test_unfollowed_redirect_over_transport(self, token):
        def handler(request):
            return httpx.Response(302, headers={"Location": "https://other.twosense.test/events"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            with pytest.raises(FetchError, match="HTTP 302"):
                await PaginatedEventFetcher(http).fetch_all(token, EVENTS_URL, {})

    @pytest.mark.asyncio
    async def test_malformed_next_link(self, token):
        def handler(request):
            return httpx.Response(
                200,
                json={"events": [_event(1)]},
                headers={"Link": '<https://[::1/events?c=2>; rel="next"'},
            )

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            with pytest.raises(FetchError) as exc_info:
                await PaginatedEventFetcher(http).fetch_all(token, EVENTS_URL, {})

        assert exc_info.value.url == "https://[::1/events?c=2"
        assert isinstance(exc_info.value.__cause__, httpx.InvalidURL)


class TestMaxPages:
    def test_rejects_non_positive_limit(self, http):
        with pytest.raises(ValueError):
            PaginatedEventFetcher(http, max_pages=0)

    @pytest.mark.asyncio
    async def test_cyclic_next_link_stops_with_error(self, http, token):
        http.get.return_value = events_page([_event(1)], next_url=PAGE_2)

        with pytest.raises(FetchError, match="max_pages=3"):
            await PaginatedEventFetcher(http, max_pages=3).fetch_all(token, EVENTS_URL, {})

        assert http.get.await_count == 3

    @pytest.mark.asyncio
    async def test_limit_not_hit_when_pages_end(self, http, token):
        http.get.side_effect = [
            events_page([_event(1)], next_url=PAGE_2),
            events_page([_event(2)]),
        ]

        events = await PaginatedEventFetcher(http, max_pages=2).fetch_all(token, EVENTS_URL, {})

        assert len(events) == 2
