from __future__ import annotations

from datetime import date as Date
from typing import Any

from app.core.config import settings
from app.core.security import AuthContext
from app.schemas.goals import Achievement, Goal
from app.schemas.resources import LearningResource
from app.services.streaks import StudySession, parse_session_rows
from app.services.supabase_rest import SupabaseRest

RESOURCES_TABLE = "learning_resources"
SESSIONS_TABLE = "learning_sessions"
GOALS_TABLE = "goals"
ACHIEVEMENTS_TABLE = "achievements"

SESSION_FIELDS = "id,resource_id,session_date,minutes_studied,created_at"


def user_client() -> SupabaseRest:
    return SupabaseRest(str(settings.supabase_url), settings.supabase_anon_key)


async def fetch_resources(auth: AuthContext) -> list[LearningResource]:
    rows = await user_client().select(
        RESOURCES_TABLE,
        bearer_token=auth.access_token,
        params={
            "select": "*",
            "user_id": f"eq.{auth.user_id}",
            "order": "created_at.desc",
        },
    )
    return [LearningResource.model_validate(r) for r in rows]


async def fetch_resource_row(auth: AuthContext, resource_id: str) -> dict[str, Any] | None:
    rows = await user_client().select(
        RESOURCES_TABLE,
        bearer_token=auth.access_token,
        params={
            "select": "*",
            "id": f"eq.{resource_id}",
            "user_id": f"eq.{auth.user_id}",
            "limit": 1,
        },
    )
    return rows[0] if rows else None


async def fetch_session_rows(
    auth: AuthContext,
    *,
    start: Date | None = None,
    end: Date | None = None,
) -> list[dict[str, Any]]:
    params: dict[str, Any] = {
        "select": SESSION_FIELDS,
        "user_id": f"eq.{auth.user_id}",
        "order": "session_date.desc",
        "limit": settings.session_history_limit,
    }
    # PostgREST takes one filter per column key; a range needs `and=(...)`.
    if start is not None and end is not None:
        params["and"] = (
            f"(session_date.gte.{start.isoformat()},session_date.lte.{end.isoformat()})"
        )
    elif start is not None:
        params["session_date"] = f"gte.{start.isoformat()}"
    elif end is not None:
        params["session_date"] = f"lte.{end.isoformat()}"

    return await user_client().select(
        SESSIONS_TABLE, bearer_token=auth.access_token, params=params
    )


async def fetch_sessions(
    auth: AuthContext,
    *,
    start: Date | None = None,
    end: Date | None = None,
) -> list[StudySession]:
    rows = await fetch_session_rows(auth, start=start, end=end)
    return parse_session_rows(rows)


async def fetch_goals(auth: AuthContext) -> list[Goal]:
    rows = await user_client().select(
        GOALS_TABLE,
        bearer_token=auth.access_token,
        params={
            "select": "*",
            "user_id": f"eq.{auth.user_id}",
            "order": "created_at.desc",
        },
    )
    return [Goal.model_validate(r) for r in rows]


async def fetch_achievements(auth: AuthContext) -> list[Achievement]:
    rows = await user_client().select(
        ACHIEVEMENTS_TABLE,
        bearer_token=auth.access_token,
        params={
            "select": "*",
            "user_id": f"eq.{auth.user_id}",
            "order": "earned_at.desc",
        },
    )
    return [Achievement.model_validate(r) for r in rows]
