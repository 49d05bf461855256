"""Shared pytest fixtures for Twosense connector tests.

Fixture Organization:
    - Credential fixtures: a complete Credentials record
    - HTTP fixtures: Mock httpx.AsyncClient with AsyncMock get/post
    - Config fixtures: environment isolation for pydantic-settings
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from twosense.config import reset_config
from twosense.models import AccessToken, Credentials

# Add tests directory to sys.path so test modules can import http_helpers
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))


BASE_URL = "https://webapi.twosense.test"


@pytest.fixture
def credentials():
    """Complete client credentials for the test tenant."""
    return Credentials(
        base_url=BASE_URL,
        client_id="client-123",
        client_secret="secret-456",
    )


@pytest.fixture
def token():
    return AccessToken(value="tok-abc")


@pytest.fixture
def http():
    """Mock httpx.AsyncClient; tests set http.get / http.post side effects."""
    client = Mock(spec=httpx.AsyncClient)
    client.get = AsyncMock()
    client.post = AsyncMock()
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Remove TWOSENSE_* variables and run from an empty directory (no .env)."""
    import os

    for key in list(os.environ.keys()):
        if key.upper().startswith("TWOSENSE_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield monkeypatch
    reset_config()
