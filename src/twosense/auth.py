"""OAuth2 client-credentials token exchange for the Twosense Web API.

The audience is always the API base URL and the token path is always
/oauth/token. Tokens are not cached: every operation or poll cycle calls
acquire_token() once.
"""

import logging

import httpx

from .errors import AuthError, TokenExchangeError
from .metrics import token_requests_total
from .models import AccessToken, Credentials

logger = logging.getLogger("twosense.auth")

__all__ = ["TOKEN_PATH", "TokenProvider"]

TOKEN_PATH = "/oauth/token"


class TokenProvider:
    """Exchanges client credentials for a bearer token.

    Attributes:
        http: Injected httpx.AsyncClient used for the token POST

    Example:
        >>> provider = TokenProvider(http)
        >>> token = await provider.acquire_token(credentials)
    """

    def __init__(self, http: httpx.AsyncClient) -> None:
        self.http = http

    @staticmethod
    def validate(credentials: Credentials) -> None:
        """Check that every credential field is present.

        Raises:
            AuthError: Naming the first missing field
        """
        for name, value in (
            ("baseUrl", credentials.api_root),
            ("clientId", credentials.client_id),
            ("clientSecret", credentials.client_secret),
        ):
            if not value:
                raise AuthError(f"Missing credential: {name}")

    async def acquire_token(self, credentials: Credentials) -> AccessToken:
        """POST the client credentials and return the issued access token.

        Args:
            credentials: Tenant credentials

        Returns:
            AccessToken for the current operation

        Raises:
            AuthError: If a credential field is empty (no request is sent)
            TokenExchangeError: If the endpoint fails or returns no access_token
        """
        self.validate(credentials)

        base_url = credentials.api_root
        token_url = f"{base_url}{TOKEN_PATH}"
        body = {
            "client_id": credentials.client_id,
            "client_secret": credentials.client_secret,
            "audience": base_url,
            "grant_type": "client_credentials",
        }

        logger.info("token_exchange_started", extra={"token_url": token_url})

        try:
            response = await self.http.post(
                token_url,
                json=body,
                headers={"content-type": "application/json"},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            token_requests_total.labels(status="failed").inc()
            logger.error(
                "token_exchange_unreachable",
                extra={"token_url": token_url, "error": str(e)},
            )
            raise TokenExchangeError(
                f"Token endpoint unreachable ({token_url}): {e}", token_url
            ) from e

        if not 200 <= response.status_code < 300:
            token_requests_total.labels(status="failed").inc()
            logger.error(
                "token_exchange_rejected",
                extra={"token_url": token_url, "status_code": response.status_code},
            )
            raise TokenExchangeError(
                f"Token endpoint returned HTTP {response.status_code} ({token_url})",
                token_url,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            token_requests_total.labels(status="failed").inc()
            raise TokenExchangeError(
                f"Token endpoint returned a non-JSON body ({token_url})",
                token_url,
                status_code=response.status_code,
            ) from e

        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            token_requests_total.labels(status="failed").inc()
            raise TokenExchangeError(
                f"No access_token returned from token endpoint ({token_url})",
                token_url,
                status_code=response.status_code,
            )

        token_requests_total.labels(status="success").inc()
        logger.info("token_exchange_succeeded", extra={"token_url": token_url})
        return AccessToken(value=str(access_token))
