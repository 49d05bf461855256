"""Single-entity lookups: sessions and trust scores.

Status codes are inspected explicitly and translated into LookupOutcome
values. Only transport failures (and an unreadable 200 body) raise.
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from .errors import FetchError
from .metrics import lookups_total
from .models import (
    AccessToken,
    ApiError,
    Found,
    LookupOutcome,
    NoRecentScore,
    NotFound,
)

logger = logging.getLogger("twosense.lookups")

__all__ = ["NO_RECENT_SCORE_MESSAGE", "USER_NOT_FOUND_MESSAGE", "EntityLookupClient"]

NO_RECENT_SCORE_MESSAGE = "No trust score within the last 60 minutes"
USER_NOT_FOUND_MESSAGE = "User not found in Twosense system"


def _response_body(response: httpx.Response) -> Any:
    """Best-effort body decode for error payloads: JSON, else text, else None."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class EntityLookupClient:
    """Looks up sessions and trust scores on the Twosense Web API.

    Attributes:
        http: Injected httpx.AsyncClient
        base_url: API base URL without trailing slash
    """

    def __init__(self, http: httpx.AsyncClient, base_url: str) -> None:
        self.http = http
        self.base_url = base_url.rstrip("/")

    async def _get(
        self,
        token: AccessToken,
        url: str,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            return await self.http.get(url, params=params, headers=token.auth_headers())
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(f"GET {url} failed: {e}", url) from e

    @staticmethod
    def _found(response: httpx.Response, url: str) -> dict[str, Any]:
        try:
            body = response.json() if response.content else {}
        except ValueError as e:
            raise FetchError(
                f"GET {url} returned a non-JSON body", url, status_code=response.status_code
            ) from e
        if not isinstance(body, dict):
            body = {"data": body}
        return {"found": True, **body}

    async def get_session(self, token: AccessToken, session_id: str) -> LookupOutcome:
        """Fetch one session by id.

        Args:
            token: Bearer token for this operation
            session_id: Session UUID

        Returns:
            Found, NotFound (404) or ApiError (any other non-200 status)

        Raises:
            FetchError: On transport failure or an unreadable 200 body
        """
        url = f"{self.base_url}/sessions/{quote(session_id, safe='')}"
        logger.info("session_lookup", extra={"session_id": session_id})

        try:
            response = await self._get(token, url)
        except FetchError:
            lookups_total.labels(resource="session", outcome="failed").inc()
            raise
        status = response.status_code
        logger.info("session_lookup_status", extra={"status_code": status})

        if status == 404:
            outcome: LookupOutcome = NotFound(
                status,
                {
                    "found": False,
                    "reason": "session_not_found",
                    "sessionId": session_id,
                    "statusCode": 404,
                },
            )
        elif status != 200:
            logger.warning(
                "session_lookup_unexpected_status",
                extra={"session_id": session_id, "status_code": status},
            )
            outcome = ApiError(
                status,
                {
                    "found": False,
                    "reason": "api_error",
                    "sessionId": session_id,
                    "statusCode": status,
                    "error": _response_body(response),
                },
            )
        else:
            try:
                outcome = Found(status, self._found(response, url))
            except FetchError:
                lookups_total.labels(resource="session", outcome="failed").inc()
                raise

        lookups_total.labels(resource="session", outcome=outcome.kind).inc()
        return outcome

    async def get_trust_score(self, token: AccessToken, username: str) -> LookupOutcome:
        """Fetch the current trust score and trust level for a user.

        Args:
            token: Bearer token for this operation
            username: Down-level logon name (DOMAIN\\user) or UPN

        Returns:
            Found, NoRecentScore (204), NotFound (404) or ApiError

        Raises:
            FetchError: On transport failure or an unreadable 200 body
        """
        url = f"{self.base_url}/trust-score"
        logger.info("trust_score_lookup", extra={"username": username})

        try:
            response = await self._get(token, url, params={"username": username})
        except FetchError:
            lookups_total.labels(resource="trust_score", outcome="failed").inc()
            raise
        status = response.status_code
        logger.info("trust_score_lookup_status", extra={"status_code": status})

        if status == 204:
            outcome: LookupOutcome = NoRecentScore(
                status,
                {
                    "found": False,
                    "reason": "no_recent_score",
                    "username": username,
                    "statusCode": 204,
                    "message": NO_RECENT_SCORE_MESSAGE,
                },
            )
        elif status == 404:
            outcome = NotFound(
                status,
                {
                    "found": False,
                    "reason": "user_not_found",
                    "username": username,
                    "statusCode": 404,
                    "message": USER_NOT_FOUND_MESSAGE,
                },
            )
        elif status != 200:
            logger.warning(
                "trust_score_lookup_unexpected_status",
                extra={"username": username, "status_code": status},
            )
            outcome = ApiError(
                status,
                {
                    "found": False,
                    "reason": "api_error",
                    "username": username,
                    "statusCode": status,
                    "error": _response_body(response),
                },
            )
        else:
            try:
                outcome = Found(status, self._found(response, url))
            except FetchError:
                lookups_total.labels(resource="trust_score", outcome="failed").inc()
                raise

        lookups_total.labels(resource="trust_score", outcome=outcome.kind).inc()
        return outcome
