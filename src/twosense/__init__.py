"""Twosense connector - continuous-authentication API client and event poller.

Provides:
- OAuth2 client-credentials token exchange
- Link-header paginated event fetching (historical ranges and polling)
- Session and trust-score lookups with structured outcomes
- Cursor-driven incremental polling with at-least-once delivery

Python Version: 3.10+ required
"""

from .__version__ import __version__
from .auth import TokenProvider
from .client import TwosenseClient
from .config import TwosenseConfig, get_config, reset_config
from .errors import AuthError, FetchError, TokenExchangeError, TwosenseError
from .logging_config import StructuredFormatter, configure_logging
from .lookups import EntityLookupClient
from .models import (
    AccessToken,
    ApiError,
    Credentials,
    CursorState,
    Found,
    LookupOutcome,
    NoRecentScore,
    NotFound,
    Page,
)
from .pagination import PaginatedEventFetcher, parse_next_link
from .poller import PollCursorEngine, PollResult
from .state import CursorStore

__all__ = [
    "AccessToken",
    "ApiError",
    "AuthError",
    "Credentials",
    "CursorState",
    "CursorStore",
    "EntityLookupClient",
    "FetchError",
    "Found",
    "LookupOutcome",
    "NoRecentScore",
    "NotFound",
    "Page",
    "PaginatedEventFetcher",
    "PollCursorEngine",
    "PollResult",
    "StructuredFormatter",
    "TokenExchangeError",
    "TokenProvider",
    "TwosenseClient",
    "TwosenseConfig",
    "TwosenseError",
    "__version__",
    "configure_logging",
    "get_config",
    "reset_config",
]
