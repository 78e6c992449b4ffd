from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class LogSessionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    resource_id: str = Field(min_length=1, max_length=64)
    # Upper bound is enforced against MAX_SESSION_MINUTES in the route.
    minutes: int = Field(ge=1)
    session_date: date | None = None


class StudySessionRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    resource_id: str | None = None
    session_date: date
    minutes_studied: int
    created_at: str | None = None


class LogSessionResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    session: StudySessionRow
    resource_time_spent: int


class DaySessionsResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    date: date
    sessions: list[StudySessionRow]
    total_minutes: int
    qualifying: bool
    threshold_minutes: int
