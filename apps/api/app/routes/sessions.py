from __future__ import annotations

import logging
from datetime import date as Date
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Header, HTTPException, Query, status

from app.core import idempotency
from app.core.config import settings
from app.core.security import AuthContext, AuthDep
from app.schemas.sessions import (
    DaySessionsResponse,
    LogSessionRequest,
    LogSessionResponse,
    StudySessionRow,
)
from app.services.error_log import log_system_error
from app.services.learning_store import (
    RESOURCES_TABLE,
    SESSIONS_TABLE,
    fetch_resource_row,
    fetch_session_rows,
    user_client,
)
from app.services.streaks import minutes_on, parse_session_rows

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/sessions", response_model=LogSessionResponse, status_code=201)
async def log_session(
    body: LogSessionRequest,
    auth: AuthDep,
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
) -> LogSessionResponse:
    if body.minutes > settings.max_session_minutes:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"minutes must be <= {settings.max_session_minutes}",
        )

    key = idempotency.session_key(auth.user_id, idempotency_key) if idempotency_key else None
    if key is not None:
        state = await idempotency.claim(key=key)
        if state != "acquired":
            idempotency.raise_duplicate(state)

    try:
        resource, inserted = await _insert_session(body, auth)
    except Exception:
        if key is not None:
            await idempotency.release(key=key)
        raise

    # The session row exists from here on; a retry must not insert it again.
    if key is not None:
        await idempotency.mark_done(key=key)

    time_spent = int(resource.get("time_spent") or 0) + body.minutes
    try:
        await user_client().patch(
            RESOURCES_TABLE,
            bearer_token=auth.access_token,
            params={"id": f"eq.{body.resource_id}", "user_id": f"eq.{auth.user_id}"},
            payload={
                "time_spent": time_spent,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            },
        )
    except Exception as exc:
        await log_system_error(
            route="/api/sessions",
            message="time_spent update failed after session insert",
            user_id=auth.user_id,
            err=exc,
            meta={"resource_id": body.resource_id, "minutes": body.minutes},
        )

    logger.info(
        "Logged %s min for user=%s on %s",
        body.minutes,
        auth.user_id[:8],
        inserted.get("session_date"),
    )
    return LogSessionResponse(
        session=StudySessionRow.model_validate(inserted),
        resource_time_spent=time_spent,
    )


async def _insert_session(
    body: LogSessionRequest, auth: AuthContext
) -> tuple[dict[str, Any], dict[str, Any]]:
    resource = await fetch_resource_row(auth, body.resource_id)
    if resource is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Resource not found"
        )

    session_date = body.session_date or Date.today()
    inserted = await user_client().insert_one(
        SESSIONS_TABLE,
        bearer_token=auth.access_token,
        row={
            "user_id": auth.user_id,
            "resource_id": body.resource_id,
            "session_date": session_date.isoformat(),
            "minutes_studied": body.minutes,
        },
    )
    if not inserted:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to log session",
        )
    return resource, inserted


@router.get("/sessions", response_model=DaySessionsResponse)
async def get_sessions_for_day(
    auth: AuthDep,
    date: Date = Query(..., description="YYYY-MM-DD"),
) -> DaySessionsResponse:
    rows = await fetch_session_rows(auth, start=date, end=date)
    sessions = parse_session_rows(rows)
    total = minutes_on(sessions, date)
    threshold = settings.streak_min_minutes
    return DaySessionsResponse(
        date=date,
        sessions=[StudySessionRow.model_validate(r) for r in rows],
        total_minutes=total,
        qualifying=bool(sessions) and total >= threshold,
        threshold_minutes=threshold,
    )
