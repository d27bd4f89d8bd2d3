"""Obtain valid Google credentials, refreshing or re-consenting as needed.

The stored token moves through three states. A valid token is used as-is,
an expired token with a refresh token is refreshed silently, and anything
else (no token, no refresh token, refresh rejected) runs the installed-app
flow with a local redirect listener. Every newly obtained token is written
to the TokenStore before it is handed back.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from google.auth.exceptions import GoogleAuthError, RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from meet_cli.config import DEFAULT_OAUTH_PORT, ApplicationSecret
from meet_cli.errors import AuthError
from meet_cli.logging_utils import get_logger
from meet_cli.token_store import Token, TokenStore, scope_key

LOGGER = get_logger("meet.auth")
# Refresh slightly early so the token does not lapse during the calendar call.
EXPIRY_LEEWAY = timedelta(minutes=5)


class TokenState(Enum):
    NO_TOKEN = "no_token"
    VALID = "valid"
    EXPIRED = "expired"


def token_state(token: Token | None, now: datetime) -> TokenState:
    if token is None:
        return TokenState.NO_TOKEN
    if token.expiry is None or token.expiry - EXPIRY_LEEWAY > now:
        return TokenState.VALID
    return TokenState.EXPIRED


class Authenticator:
    def __init__(
        self,
        secret: ApplicationSecret,
        store: TokenStore,
        scopes: Sequence[str],
        port: int = DEFAULT_OAUTH_PORT,
        flow_factory: Callable[..., Any] = InstalledAppFlow.from_client_config,
        request_factory: Callable[[], Any] = Request,
    ) -> None:
        self.secret = secret
        self.store = store
        self.scopes = list(scopes)
        self.port = port
        self.key = scope_key(self.scopes)
        self._flow_factory = flow_factory
        self._request_factory = request_factory

    def credentials(self, now: datetime | None = None) -> Credentials:
        now = now or datetime.now(UTC)
        token = self.store.get(self.key)
        state = token_state(token, now)
        LOGGER.info("Stored token state: %s", state.value)

        if state is TokenState.VALID and token is not None:
            return self._to_credentials(token)

        if state is TokenState.EXPIRED and token is not None and token.refresh_token:
            refreshed = self._refresh(token)
            if refreshed is not None:
                self.store.set(self.key, refreshed)
                return self._to_credentials(refreshed)

        token = self._run_flow()
        self.store.set(self.key, token)
        return self._to_credentials(token)

    def save_credentials(self, creds: Any) -> None:
        """Write credentials refreshed by the API client back to the store."""
        token = self._from_credentials(creds)
        LOGGER.info("Saving token refreshed during an API call")
        self.store.set(self.key, token)

    def _refresh(self, token: Token) -> Token | None:
        creds = self._to_credentials(token)
        try:
            creds.refresh(self._request_factory())
        except (RefreshError, TransportError) as exc:
            LOGGER.warning("Token refresh failed, falling back to sign-in: %s", exc)
            return None

        refreshed = self._from_credentials(creds)
        if refreshed.refresh_token is None:
            refreshed = Token(
                access_token=refreshed.access_token,
                refresh_token=token.refresh_token,
                expiry=refreshed.expiry,
                scopes=refreshed.scopes or token.scopes,
            )
        return refreshed

    def _run_flow(self) -> Token:
        LOGGER.info("Starting browser sign-in on port %s", self.port)
        try:
            flow = self._flow_factory(self.secret.to_client_config(), self.scopes)
            creds = flow.run_local_server(port=self.port, open_browser=True)
        except (OAuth2Error, GoogleAuthError, ValueError, OSError) as exc:
            msg = f"Google sign-in failed: {exc}"
            raise AuthError(msg) from exc

        if creds is None or not getattr(creds, "token", None):
            msg = "Google sign-in did not return an access token."
            raise AuthError(msg)
        return self._from_credentials(creds)

    def _to_credentials(self, token: Token) -> Credentials:
        expiry = token.expiry
        # google-auth compares expiry against naive UTC datetimes.
        if expiry is not None:
            expiry = expiry.astimezone(UTC).replace(tzinfo=None)
        return Credentials(
            token=token.access_token,
            refresh_token=token.refresh_token,
            token_uri=self.secret.token_uri,
            client_id=self.secret.client_id,
            client_secret=self.secret.client_secret,
            scopes=sorted(token.scopes) or self.scopes,
            expiry=expiry,
        )

    def _from_credentials(self, creds: Any) -> Token:
        scopes = getattr(creds, "granted_scopes", None) or getattr(creds, "scopes", None)
        return Token(
            access_token=str(creds.token),
            refresh_token=getattr(creds, "refresh_token", None),
            expiry=getattr(creds, "expiry", None),
            scopes=frozenset(scopes or self.scopes),
        )
