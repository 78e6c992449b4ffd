"""
Study streaks: pure functions over a user's logged sessions.

A day qualifies when the minutes logged across all of its sessions reach the
threshold. The current streak is the run of consecutive qualifying days ending
today, or ending yesterday while today is still open. Nothing here reads the
clock or the database; callers pass `today` and the full session list.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date as Date
from datetime import datetime, timedelta
from typing import Any

DEFAULT_THRESHOLD_MINUTES = 15


class InvalidSessionError(ValueError):
    """A session record that cannot be interpreted (bad date, bad minutes)."""


@dataclass(frozen=True)
class StudySession:
    date: Date
    minutes_studied: int

    def __post_init__(self) -> None:
        if isinstance(self.date, datetime) or not isinstance(self.date, Date):
            raise InvalidSessionError(f"session date must be a calendar date, got {self.date!r}")
        if isinstance(self.minutes_studied, bool) or not isinstance(self.minutes_studied, int):
            raise InvalidSessionError(
                f"minutes_studied must be an integer, got {self.minutes_studied!r}"
            )
        # Negative durations are rejected, never clamped.
        if self.minutes_studied < 0:
            raise InvalidSessionError(
                f"minutes_studied must be >= 0, got {self.minutes_studied}"
            )


@dataclass(frozen=True)
class StreakResult:
    current_streak: int
    longest_streak: int


@dataclass(frozen=True)
class CalendarDay:
    date: Date
    total_minutes: int
    session_count: int
    qualifying: bool


def _coerce_date(value: Any) -> Date:
    if isinstance(value, datetime):
        raise InvalidSessionError(f"expected a date without time, got {value!r}")
    if isinstance(value, Date):
        return value
    if isinstance(value, str):
        try:
            return Date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise InvalidSessionError(f"unparseable session date: {value!r}")


def parse_session_rows(rows: list[dict[str, Any]] | None) -> list[StudySession]:
    """Build sessions from `learning_sessions` rows. Malformed rows raise, they are not skipped."""
    if not rows:
        return []
    out: list[StudySession] = []
    for i, row in enumerate(rows):
        if not isinstance(row, dict):
            raise InvalidSessionError(f"rows[{i}]: expected an object")
        try:
            out.append(
                StudySession(
                    date=_coerce_date(row.get("session_date")),
                    minutes_studied=row.get("minutes_studied"),  # type: ignore[arg-type]
                )
            )
        except InvalidSessionError as exc:
            raise InvalidSessionError(f"rows[{i}]: {exc}") from exc
    return out


def compute_daily_totals(sessions: Iterable[StudySession]) -> dict[Date, int]:
    totals: dict[Date, int] = {}
    for s in sessions:
        totals[s.date] = totals.get(s.date, 0) + s.minutes_studied
    return totals


def qualifying_days(
    daily_totals: dict[Date, int], threshold: int = DEFAULT_THRESHOLD_MINUTES
) -> list[Date]:
    """Dates meeting the threshold, most recent first."""
    return sorted(
        (day for day, minutes in daily_totals.items() if minutes >= threshold),
        reverse=True,
    )


def _run_length(days_desc: Sequence[Date], start: int) -> int:
    # Walk towards older dates; a repeated date is a zero gap and adds nothing.
    run = 1
    for i in range(start + 1, len(days_desc)):
        gap = (days_desc[i - 1] - days_desc[i]).days
        if gap == 0:
            continue
        if gap != 1:
            break
        run += 1
    return run


def compute_current_streak(days_desc: Sequence[Date], today: Date) -> int:
    yesterday = today - timedelta(days=1)
    for i, day in enumerate(days_desc):
        if day > today:
            continue
        if day == today or day == yesterday:
            return _run_length(days_desc, i)
        return 0
    return 0


def compute_longest_streak(days_desc: Sequence[Date]) -> int:
    if not days_desc:
        return 0

    longest = 0
    run = 1
    for newer, older in zip(days_desc, days_desc[1:]):
        gap = (newer - older).days
        if gap == 0:
            continue
        if gap == 1:
            run += 1
        else:
            longest = max(longest, run)
            run = 1
    return max(longest, run)


def analyze_streaks(
    sessions: Iterable[StudySession],
    *,
    today: Date,
    threshold: int = DEFAULT_THRESHOLD_MINUTES,
) -> StreakResult:
    days = qualifying_days(compute_daily_totals(sessions), threshold)
    return StreakResult(
        current_streak=compute_current_streak(days, today),
        longest_streak=compute_longest_streak(days),
    )


def sessions_on(sessions: Iterable[StudySession], day: Date) -> list[StudySession]:
    return [s for s in sessions if s.date == day]


def minutes_on(sessions: Iterable[StudySession], day: Date) -> int:
    return sum(s.minutes_studied for s in sessions if s.date == day)


def is_qualifying_day(
    sessions: Iterable[StudySession],
    day: Date,
    threshold: int = DEFAULT_THRESHOLD_MINUTES,
) -> bool:
    on_day = sessions_on(sessions, day)
    return bool(on_day) and minutes_on(on_day, day) >= threshold


def study_calendar(
    sessions: Iterable[StudySession],
    *,
    start: Date,
    end: Date,
    threshold: int = DEFAULT_THRESHOLD_MINUTES,
) -> list[CalendarDay]:
    if end < start:
        raise ValueError("end must not be before start")

    totals: dict[Date, int] = {}
    counts: dict[Date, int] = {}
    for s in sessions:
        if start <= s.date <= end:
            totals[s.date] = totals.get(s.date, 0) + s.minutes_studied
            counts[s.date] = counts.get(s.date, 0) + 1

    out: list[CalendarDay] = []
    day = start
    while day <= end:
        minutes = totals.get(day, 0)
        out.append(
            CalendarDay(
                date=day,
                total_minutes=minutes,
                session_count=counts.get(day, 0),
                qualifying=counts.get(day, 0) > 0 and minutes >= threshold,
            )
        )
        day += timedelta(days=1)
    return out
