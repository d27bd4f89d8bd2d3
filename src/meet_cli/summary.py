"""Pick the next meeting from an ordered event list and describe it."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from meet_cli.calendar import CalendarEvent

NO_MEETINGS_MESSAGE = "Congrats! Keep working, you have no upcoming meetings"
HEADER = "Next Meeting Details:"


class OutputMode(Enum):
    FULL = "full"
    FULL_WITH_LINK = "full_with_link"
    TIME_ONLY = "time_only"
    TIME_WITH_LINK = "time_with_link"

    @classmethod
    def from_flags(cls, time_only: bool, join: bool) -> OutputMode:
        if time_only:
            return cls.TIME_WITH_LINK if join else cls.TIME_ONLY
        return cls.FULL_WITH_LINK if join else cls.FULL

    @property
    def time_only(self) -> bool:
        return self in (OutputMode.TIME_ONLY, OutputMode.TIME_WITH_LINK)

    @property
    def include_join_link(self) -> bool:
        return self in (OutputMode.FULL_WITH_LINK, OutputMode.TIME_WITH_LINK)


@dataclass(frozen=True)
class Meeting:
    summary: str
    start: datetime
    location: str | None
    join_link: str | None
    already_started: bool
    duration: timedelta

    @classmethod
    def from_event(cls, event: CalendarEvent, now: datetime) -> Meeting:
        if event.summary is None or event.start is None:
            msg = "A meeting needs both a summary and a start time."
            raise ValueError(msg)

        delta = event.start - now
        already_started = delta < timedelta(0)
        return cls(
            summary=event.summary,
            start=event.start,
            location=event.location,
            join_link=event.join_link,
            already_started=already_started,
            duration=-delta if already_started else delta,
        )


def is_qualifying(event: CalendarEvent) -> bool:
    return event.summary is not None and event.start is not None


def select_next_meeting(events: Iterable[CalendarEvent], now: datetime) -> Meeting | None:
    # The calendar query returns events ordered by start time; the first
    # qualifying one is the soonest, so no re-sort happens here.
    for event in events:
        if is_qualifying(event):
            return Meeting.from_event(event, now)
    return None


def format_duration(duration: timedelta) -> str:
    total_minutes = int(abs(duration).total_seconds()) // 60
    days, remainder = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(remainder, 60)

    parts: list[str] = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    return " ".join(parts) if parts else "0m"


def status_line(meeting: Meeting, with_location: bool = True) -> str:
    duration = format_duration(meeting.duration)
    if meeting.already_started:
        line = f"Already started {duration} ago"
    else:
        line = f"Starts in {duration}"
    if with_location and meeting.location is not None:
        line = f"{line} in location {meeting.location}"
    return line


def render(meeting: Meeting, mode: OutputMode = OutputMode.FULL) -> str:
    if mode.time_only:
        lines = [status_line(meeting, with_location=False)]
    else:
        lines = [HEADER, meeting.summary, status_line(meeting)]

    if mode.include_join_link and meeting.join_link:
        lines.append(f"Join: {meeting.join_link}")
    return "\n".join(lines)


def summarize(
    events: Iterable[CalendarEvent],
    now: datetime,
    mode: OutputMode = OutputMode.FULL,
) -> str:
    meeting = select_next_meeting(events, now)
    if meeting is None:
        return NO_MEETINGS_MESSAGE
    return render(meeting, mode)
