from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict


class StreakSummaryResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    current_streak: int
    longest_streak: int
    threshold_minutes: int
    qualifying_days_count: int
    today: date


class CalendarDayOut(BaseModel):
    model_config = ConfigDict(extra="forbid", from_attributes=True)

    date: date
    total_minutes: int
    session_count: int
    qualifying: bool


class StreakCalendarResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    start: date
    end: date
    threshold_minutes: int
    days: list[CalendarDayOut]
