from __future__ import annotations

from datetime import date as Date

from fastapi import APIRouter, HTTPException, Query, status

from app.core.config import settings
from app.core.security import AuthDep
from app.schemas.streaks import (
    CalendarDayOut,
    StreakCalendarResponse,
    StreakSummaryResponse,
)
from app.services.learning_store import fetch_sessions
from app.services.streaks import (
    analyze_streaks,
    compute_daily_totals,
    qualifying_days,
    study_calendar,
)

router = APIRouter()

MAX_CALENDAR_DAYS = 93


@router.get("/streaks", response_model=StreakSummaryResponse)
async def get_streaks(
    auth: AuthDep,
    today: Date | None = Query(default=None, description="Client's local date, YYYY-MM-DD"),
) -> StreakSummaryResponse:
    anchor = today or Date.today()
    sessions = await fetch_sessions(auth, end=anchor)
    threshold = settings.streak_min_minutes

    result = analyze_streaks(sessions, today=anchor, threshold=threshold)
    days = qualifying_days(compute_daily_totals(sessions), threshold)
    return StreakSummaryResponse(
        current_streak=result.current_streak,
        longest_streak=result.longest_streak,
        threshold_minutes=threshold,
        qualifying_days_count=len(days),
        today=anchor,
    )


@router.get("/streaks/calendar", response_model=StreakCalendarResponse)
async def get_streak_calendar(
    auth: AuthDep,
    from_: Date = Query(..., alias="from"),
    to: Date = Query(...),
) -> StreakCalendarResponse:
    if to < from_:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="'from' must be on or before 'to'",
        )
    if (to - from_).days + 1 > MAX_CALENDAR_DAYS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Range must be at most {MAX_CALENDAR_DAYS} days",
        )

    sessions = await fetch_sessions(auth, start=from_, end=to)
    threshold = settings.streak_min_minutes
    days = study_calendar(sessions, start=from_, end=to, threshold=threshold)
    return StreakCalendarResponse(
        start=from_,
        end=to,
        threshold_minutes=threshold,
        days=[CalendarDayOut.model_validate(d) for d in days],
    )
