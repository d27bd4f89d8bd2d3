from __future__ import annotations

from enum import Enum


class MeetError(Exception):
    exit_code = 1


class StorageIOError(MeetError):
    """Token file could not be read, written or removed."""

    exit_code = 3


class SerializationError(MeetError):
    """Token file content could not be decoded, or a token could not be encoded."""

    exit_code = 4


class AuthError(MeetError):
    exit_code = 2


class ConfigError(AuthError):
    """Application secret is missing or malformed."""


class RemoteErrorKind(Enum):
    HTTP_ERROR = "http_error"
    MISSING_TOKEN = "missing_token"
    RATE_OR_SIZE_LIMIT = "rate_or_size_limit"
    BAD_REQUEST = "bad_request"
    DECODE_ERROR = "decode_error"
    CANCELLED = "cancelled"
    OTHER = "other"


_REMOTE_MESSAGES: dict[RemoteErrorKind, str] = {
    RemoteErrorKind.HTTP_ERROR: "Could not reach Google Calendar",
    RemoteErrorKind.MISSING_TOKEN: (
        "Google Calendar rejected the stored credentials; run `meet --logout` and sign in again"
    ),
    RemoteErrorKind.RATE_OR_SIZE_LIMIT: (
        "Google Calendar rate or size limit exceeded; try again later"
    ),
    RemoteErrorKind.BAD_REQUEST: "Google Calendar rejected the events query",
    RemoteErrorKind.DECODE_ERROR: "Could not decode the Google Calendar response",
    RemoteErrorKind.CANCELLED: "Calendar request cancelled",
    RemoteErrorKind.OTHER: "Google Calendar request failed",
}

_REMOTE_EXIT_CODES: dict[RemoteErrorKind, int] = {
    RemoteErrorKind.HTTP_ERROR: 10,
    RemoteErrorKind.MISSING_TOKEN: 11,
    RemoteErrorKind.RATE_OR_SIZE_LIMIT: 12,
    RemoteErrorKind.BAD_REQUEST: 13,
    RemoteErrorKind.DECODE_ERROR: 14,
    RemoteErrorKind.CANCELLED: 15,
    RemoteErrorKind.OTHER: 16,
}


class RemoteError(MeetError):
    """Failure of the calendar events query, tagged with a closed set of kinds."""

    def __init__(self, kind: RemoteErrorKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        message = _REMOTE_MESSAGES[kind]
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        return _REMOTE_EXIT_CODES[self.kind]
