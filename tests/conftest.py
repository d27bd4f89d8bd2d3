"""Shared test fixtures for meet-cli tests.

- Isolated config directory per test (MEET_CONFIG_DIR)
- Token store rooted in a temporary directory
- Fakes for the OAuth flow and the Calendar API service
"""

import logging
from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

from meet_cli.config import ApplicationSecret
from meet_cli.logging_utils import is_own_handler
from meet_cli.token_store import Token, TokenStore

SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]
NOW = datetime(2024, 5, 6, 10, 0, tzinfo=UTC)


# ─────────────────────────────────────────────────────────────────────────────
# Environment Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the config directory at a temp dir and clear meet-related env vars."""
    config_dir = tmp_path / "config"
    monkeypatch.setenv("MEET_CONFIG_DIR", str(config_dir))
    for name in (
        "MEET_CLIENT_SECRETS_FILE",
        "MEET_CLIENT_ID",
        "MEET_CLIENT_SECRET",
        "MEET_OAUTH_PORT",
        "MEET_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return config_dir


@pytest.fixture(autouse=True)
def reset_meet_logger() -> Generator[None, None, None]:
    """Drop handlers installed by configure_logging between tests."""
    yield
    logger = logging.getLogger("meet")
    for handler in list(logger.handlers):
        if not is_own_handler(handler):
            continue
        logger.removeHandler(handler)
        handler.close()


# ─────────────────────────────────────────────────────────────────────────────
# Token Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def store(tmp_path: Path) -> TokenStore:
    return TokenStore(tmp_path / "tokens")


@pytest.fixture
def secret() -> ApplicationSecret:
    return ApplicationSecret(client_id="client-123", client_secret="shh")


@pytest.fixture
def valid_token() -> Token:
    return Token(
        access_token="access-abc",
        refresh_token="refresh-xyz",
        expiry=NOW + timedelta(hours=1),
        scopes=frozenset(SCOPES),
    )


@pytest.fixture
def expired_token() -> Token:
    return Token(
        access_token="access-old",
        refresh_token="refresh-xyz",
        expiry=NOW - timedelta(hours=1),
        scopes=frozenset(SCOPES),
    )


# ─────────────────────────────────────────────────────────────────────────────
# OAuth Flow Fakes
# ─────────────────────────────────────────────────────────────────────────────


class FakeFlow:
    """Stands in for InstalledAppFlow; records how it was invoked."""

    def __init__(self, creds: Any = None, error: Exception | None = None) -> None:
        self.creds = creds
        self.error = error
        self.client_config: dict[str, Any] | None = None
        self.scopes: list[str] | None = None
        self.ports: list[int] = []

    def factory(self, client_config: dict[str, Any], scopes: list[str]) -> "FakeFlow":
        self.client_config = client_config
        self.scopes = scopes
        return self

    def run_local_server(self, port: int, open_browser: bool = True) -> Any:
        self.ports.append(port)
        if self.error is not None:
            raise self.error
        return self.creds


def make_flow_creds(
    token: str = "fresh-access", refresh_token: str | None = "fresh-refresh"
) -> Any:
    # google-auth reports expiry as naive UTC.
    return SimpleNamespace(
        token=token,
        refresh_token=refresh_token,
        expiry=(NOW + timedelta(hours=1)).replace(tzinfo=None),
        granted_scopes=None,
        scopes=list(SCOPES),
    )


@pytest.fixture
def fake_flow() -> FakeFlow:
    return FakeFlow(creds=make_flow_creds())


# ─────────────────────────────────────────────────────────────────────────────
# Calendar API Fakes
# ─────────────────────────────────────────────────────────────────────────────


class FakeRequest:
    def __init__(self, response: Any = None, error: BaseException | None = None) -> None:
        self.response = response
        self.error = error

    def execute(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.response


class FakeEvents:
    def __init__(self, request: FakeRequest) -> None:
        self.request = request
        self.list_kwargs: dict[str, Any] | None = None

    def list(self, **kwargs: Any) -> FakeRequest:
        self.list_kwargs = kwargs
        return self.request


class FakeService:
    """Minimal stand-in for the discovery-built calendar v3 service."""

    def __init__(self, response: Any = None, error: BaseException | None = None) -> None:
        self._events = FakeEvents(FakeRequest(response=response, error=error))

    def events(self) -> FakeEvents:
        return self._events

    @property
    def list_kwargs(self) -> dict[str, Any] | None:
        return self._events.list_kwargs
