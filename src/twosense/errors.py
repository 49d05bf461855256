"""Exception hierarchy for the Twosense connector.

Only fatal conditions are exceptions. Non-2xx answers from the session and
trust-score endpoints are normal results (see lookups.LookupOutcome).
"""

__all__ = ["AuthError", "FetchError", "TokenExchangeError", "TwosenseError"]


class TwosenseError(Exception):
    """Base class for all Twosense connector failures."""

    pass


class AuthError(TwosenseError):
    """Raised when stored credentials are missing or incomplete.

    Raised before any network call is made.
    """

    pass


class TokenExchangeError(TwosenseError):
    """Raised when the client-credentials exchange does not yield a token.

    Covers an unreachable token endpoint, a non-2xx answer, an unparseable
    body, and a JSON body without ``access_token``.
    """

    def __init__(self, message: str, token_url: str, status_code: int | None = None):
        self.token_url = token_url
        self.status_code = status_code
        super().__init__(message)


class FetchError(TwosenseError):
    """Raised when a page or lookup request fails at the transport level.

    Wraps httpx errors and unusable responses. When raised during pagination
    the partially aggregated events are discarded.
    """

    def __init__(self, message: str, url: str, status_code: int | None = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message)
