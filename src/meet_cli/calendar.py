from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import httplib2
from google.auth.exceptions import RefreshError, TransportError
from googleapiclient.discovery import build
from googleapiclient.errors import Error as GoogleApiError
from googleapiclient.errors import HttpError

from meet_cli.errors import RemoteError, RemoteErrorKind
from meet_cli.logging_utils import get_logger

CALENDAR_ID = "primary"
MAX_ATTENDEES = 25
RATE_LIMIT_REASONS = {"rateLimitExceeded", "userRateLimitExceeded", "quotaExceeded"}
LOGGER = get_logger("meet.calendar")


@dataclass(frozen=True)
class CalendarEvent:
    summary: str | None = None
    start: datetime | None = None
    location: str | None = None
    join_link: str | None = None

    @classmethod
    def from_api(cls, item: Any) -> CalendarEvent:
        if not isinstance(item, dict):
            msg = "Event item must be a JSON object."
            raise ValueError(msg)

        return cls(
            summary=_raw_text(item.get("summary")),
            start=_parse_start(item.get("start")),
            location=_raw_text(item.get("location")),
            join_link=_join_link(item),
        )


def _raw_text(value: Any) -> str | None:
    return None if value is None else str(value)


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_iso(value: str) -> datetime:
    normalized = value.replace("Z", "+00:00")
    parsed = datetime.fromisoformat(normalized)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed


def _parse_start(start: Any) -> datetime | None:
    if not isinstance(start, dict):
        return None
    # All-day events only carry "date"; they have no start instant.
    value = start.get("dateTime")
    if not value:
        return None
    return _parse_iso(str(value))


def _join_link(item: dict[str, Any]) -> str | None:
    link = _optional_text(item.get("hangoutLink"))
    if link:
        return link

    conference = item.get("conferenceData")
    if not isinstance(conference, dict):
        return None
    for entry in conference.get("entryPoints") or []:
        if isinstance(entry, dict) and entry.get("entryPointType") == "video":
            uri = _optional_text(entry.get("uri"))
            if uri:
                return uri
    return None


def format_rfc3339(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat().replace("+00:00", "Z")


def classify_http_error(error: HttpError) -> RemoteErrorKind:
    status = getattr(error.resp, "status", None)
    try:
        status = int(status) if status is not None else None
    except (TypeError, ValueError):
        status = None

    if status == 400:
        return RemoteErrorKind.BAD_REQUEST
    if status == 401:
        return RemoteErrorKind.MISSING_TOKEN
    if status in (413, 429):
        return RemoteErrorKind.RATE_OR_SIZE_LIMIT
    if status == 403 and _error_reasons(error) & RATE_LIMIT_REASONS:
        return RemoteErrorKind.RATE_OR_SIZE_LIMIT
    return RemoteErrorKind.OTHER


def _error_reasons(error: HttpError) -> set[str]:
    try:
        payload = json.loads(error.content)
    except (TypeError, ValueError):
        return set()
    if not isinstance(payload, dict):
        return set()
    details = payload.get("error")
    if not isinstance(details, dict):
        return set()
    return {
        str(entry.get("reason"))
        for entry in details.get("errors") or []
        if isinstance(entry, dict) and entry.get("reason")
    }


class CalendarClient:
    def __init__(
        self,
        credentials: Any,
        service: Any = None,
        on_token_refresh: Callable[[Any], None] | None = None,
    ) -> None:
        self._credentials = credentials
        self._service = service
        self._on_token_refresh = on_token_refresh

    def _get_service(self) -> Any:
        if self._service is None:
            self._service = build(
                "calendar", "v3", credentials=self._credentials, cache_discovery=False
            )
        return self._service

    def list_upcoming(self, now: datetime) -> list[CalendarEvent]:
        """Return upcoming events on the primary calendar, ordered by start time.

        Raises RemoteError for every failure mode of the query.
        """
        token_before = getattr(self._credentials, "token", None)
        try:
            return self._list_upcoming(now)
        finally:
            self._report_token_refresh(token_before)

    def _report_token_refresh(self, token_before: Any) -> None:
        # The authorized HTTP client refreshes on 401 without telling the store.
        token_after = getattr(self._credentials, "token", None)
        if self._on_token_refresh is not None and token_after and token_after != token_before:
            self._on_token_refresh(self._credentials)

    def _list_upcoming(self, now: datetime) -> list[CalendarEvent]:
        try:
            service = self._get_service()
            events_result = (
                service.events()
                .list(
                    calendarId=CALENDAR_ID,
                    timeMin=format_rfc3339(now),
                    singleEvents=True,
                    orderBy="startTime",
                    maxAttendees=MAX_ATTENDEES,
                )
                .execute()
            )
        except HttpError as exc:
            kind = classify_http_error(exc)
            raise RemoteError(kind, f"HTTP {exc.resp.status}") from exc
        except RefreshError as exc:
            raise RemoteError(RemoteErrorKind.MISSING_TOKEN, str(exc)) from exc
        except (httplib2.HttpLib2Error, TransportError, OSError) as exc:
            raise RemoteError(RemoteErrorKind.HTTP_ERROR, str(exc)) from exc
        except ValueError as exc:
            raise RemoteError(RemoteErrorKind.DECODE_ERROR, str(exc)) from exc
        except GoogleApiError as exc:
            raise RemoteError(RemoteErrorKind.OTHER, str(exc)) from exc
        except KeyboardInterrupt as exc:
            raise RemoteError(RemoteErrorKind.CANCELLED) from exc

        if not isinstance(events_result, dict):
            raise RemoteError(RemoteErrorKind.DECODE_ERROR, "response is not a JSON object")

        items = events_result.get("items") or []
        if not isinstance(items, list):
            raise RemoteError(RemoteErrorKind.DECODE_ERROR, "'items' is not a list")

        try:
            events = [CalendarEvent.from_api(item) for item in items]
        except ValueError as exc:
            raise RemoteError(RemoteErrorKind.DECODE_ERROR, str(exc)) from exc

        LOGGER.info("Fetched %d upcoming events", len(events))
        return events
