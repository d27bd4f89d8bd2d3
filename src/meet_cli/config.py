from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from meet_cli.errors import ConfigError, StorageIOError

PROGRAM_NAME = "meet-cli"
SCOPES = ["https://www.googleapis.com/auth/calendar.readonly"]
DEFAULT_OAUTH_PORT = 2383
DEFAULT_LOG_LEVEL = "WARNING"
GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
DEFAULT_REDIRECT_URIS = ("http://localhost",)
CLIENT_SECRETS_NAME = "client_secret.json"
ENV_FILE_NAME = ".env"


@dataclass(frozen=True)
class ApplicationSecret:
    client_id: str
    client_secret: str
    auth_uri: str = GOOGLE_AUTH_URI
    token_uri: str = GOOGLE_TOKEN_URI
    redirect_uris: tuple[str, ...] = DEFAULT_REDIRECT_URIS

    @classmethod
    def from_client_config(cls, data: Any) -> ApplicationSecret:
        if not isinstance(data, dict):
            msg = "Client secrets must be a JSON object."
            raise ConfigError(msg)

        section = data.get("installed") or data.get("web")
        if not isinstance(section, dict):
            msg = "Client secrets must contain an 'installed' or 'web' section."
            raise ConfigError(msg)

        missing = [key for key in ("client_id", "client_secret") if not section.get(key)]
        if missing:
            msg = f"Client secrets missing required keys: {', '.join(missing)}"
            raise ConfigError(msg)

        redirect_uris = section.get("redirect_uris") or list(DEFAULT_REDIRECT_URIS)
        return cls(
            client_id=str(section["client_id"]),
            client_secret=str(section["client_secret"]),
            auth_uri=str(section.get("auth_uri") or GOOGLE_AUTH_URI),
            token_uri=str(section.get("token_uri") or GOOGLE_TOKEN_URI),
            redirect_uris=tuple(str(uri) for uri in redirect_uris),
        )

    def to_client_config(self) -> dict[str, Any]:
        return {
            "installed": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": self.auth_uri,
                "token_uri": self.token_uri,
                "redirect_uris": list(self.redirect_uris),
            }
        }


def get_config_dir() -> Path:
    override = os.getenv("MEET_CONFIG_DIR", "").strip()
    if override:
        return Path(override).expanduser()

    if sys.platform == "win32":
        base = Path(os.getenv("APPDATA") or Path.home() / "AppData" / "Roaming")
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.getenv("XDG_CONFIG_HOME") or Path.home() / ".config")
    return base / PROGRAM_NAME


def ensure_config_dir() -> Path:
    config_dir = get_config_dir()
    try:
        config_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        msg = f"Could not create config directory {config_dir}: {exc}"
        raise StorageIOError(msg) from exc
    return config_dir


def load_environment() -> None:
    # Values already in the environment win over both files.
    load_dotenv(Path.cwd() / ENV_FILE_NAME)
    load_dotenv(get_config_dir() / ENV_FILE_NAME)


def get_client_secrets_file() -> Path:
    load_environment()
    raw = os.getenv("MEET_CLIENT_SECRETS_FILE", "").strip()
    if raw:
        return Path(raw).expanduser()
    return get_config_dir() / CLIENT_SECRETS_NAME


def load_application_secret() -> ApplicationSecret:
    secrets_file = get_client_secrets_file()
    if secrets_file.exists():
        try:
            data = json.loads(secrets_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            msg = f"Client secrets file is not valid JSON: {secrets_file}"
            raise ConfigError(msg) from exc
        except OSError as exc:
            msg = f"Could not read client secrets file {secrets_file}: {exc}"
            raise ConfigError(msg) from exc
        return ApplicationSecret.from_client_config(data)

    client_id = os.getenv("MEET_CLIENT_ID", "").strip()
    client_secret = os.getenv("MEET_CLIENT_SECRET", "").strip()
    if client_id and client_secret:
        return ApplicationSecret(client_id=client_id, client_secret=client_secret)

    msg = (
        f"No Google OAuth client configured. Save your desktop client secrets at "
        f"{secrets_file}, or set MEET_CLIENT_ID and MEET_CLIENT_SECRET."
    )
    raise ConfigError(msg)


def get_oauth_port() -> int:
    load_environment()
    raw = os.getenv("MEET_OAUTH_PORT", str(DEFAULT_OAUTH_PORT)).strip()
    try:
        port = int(raw)
    except ValueError:
        return DEFAULT_OAUTH_PORT
    if not 0 < port < 65536:
        return DEFAULT_OAUTH_PORT
    return port


def get_log_level() -> str:
    load_environment()
    level = os.getenv("MEET_LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper()
    if level in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        return level
    return DEFAULT_LOG_LEVEL
