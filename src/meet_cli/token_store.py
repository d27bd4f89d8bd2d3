"""On-disk OAuth token storage, one JSON file per program and scope set."""

from __future__ import annotations

import hashlib
import json
import os
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from meet_cli.config import PROGRAM_NAME
from meet_cli.errors import SerializationError, StorageIOError
from meet_cli.logging_utils import get_logger

LOGGER = get_logger("meet.token_store")


@dataclass(frozen=True)
class Token:
    access_token: str
    refresh_token: str | None = None
    expiry: datetime | None = None
    scopes: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        # Naive expiries are UTC, matching what google-auth reports.
        if self.expiry is not None and self.expiry.tzinfo is None:
            object.__setattr__(self, "expiry", self.expiry.replace(tzinfo=UTC))

    def to_json(self) -> str:
        payload = {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expiry": self.expiry.isoformat() if self.expiry else None,
            "scopes": sorted(self.scopes),
        }
        return json.dumps(payload, indent=2)

    @classmethod
    def from_dict(cls, data: Any) -> Token:
        if not isinstance(data, dict):
            msg = "Token payload must be a JSON object."
            raise ValueError(msg)

        access_token = data["access_token"]
        if not isinstance(access_token, str) or not access_token:
            msg = "access_token must be a non-empty string."
            raise ValueError(msg)

        refresh_token = data.get("refresh_token")
        if refresh_token is not None and not isinstance(refresh_token, str):
            msg = "refresh_token must be a string or null."
            raise ValueError(msg)

        expiry_raw = data.get("expiry")
        expiry = _parse_expiry(expiry_raw) if expiry_raw is not None else None

        scopes_raw = data.get("scopes") or []
        if not isinstance(scopes_raw, list):
            msg = "scopes must be a list."
            raise ValueError(msg)

        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            expiry=expiry,
            scopes=frozenset(str(scope) for scope in scopes_raw),
        )


def _parse_expiry(value: Any) -> datetime:
    if not isinstance(value, str):
        msg = "expiry must be an ISO 8601 string."
        raise ValueError(msg)
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def scope_key(scopes: Iterable[str]) -> str:
    normalized = " ".join(sorted(set(scopes)))
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:16]


class TokenStore:
    def __init__(self, directory: Path, program_name: str = PROGRAM_NAME) -> None:
        self.directory = Path(directory)
        self.program_name = program_name

    def path(self, key: str) -> Path:
        return self.directory / f"{self.program_name}-token-{key}.json"

    def get(self, key: str) -> Token | None:
        path = self.path(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            msg = f"Failed to read token file {path}: {exc}"
            raise StorageIOError(msg) from exc

        try:
            return Token.from_dict(json.loads(raw))
        except (KeyError, TypeError, ValueError) as exc:
            msg = f"Could not deserialize token file {path}: {exc}"
            raise SerializationError(msg) from exc

    def set(self, key: str, token: Token | None) -> None:
        if token is None:
            self._remove(key)
            return

        try:
            payload = token.to_json()
        except (TypeError, ValueError) as exc:
            msg = f"Could not serialize token: {exc}"
            raise SerializationError(msg) from exc

        path = self.path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self._write_atomic(path, payload)
        except OSError as exc:
            msg = f"Failed to write token file {path}: {exc}"
            raise StorageIOError(msg) from exc
        LOGGER.info("Stored token for scope key %s", key)

    def _remove(self, key: str) -> None:
        path = self.path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            msg = f"Failed to remove token file {path}: {exc}"
            raise StorageIOError(msg) from exc
        LOGGER.info("Removed token for scope key %s", key)

    def _write_atomic(self, path: Path, payload: str) -> None:
        fd, staged = tempfile.mkstemp(
            dir=self.directory,
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(staged, 0o600)
            os.replace(staged, path)
        except BaseException:
            try:
                os.unlink(staged)
            except FileNotFoundError:
                pass
            raise
