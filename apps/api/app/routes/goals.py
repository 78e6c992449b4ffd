from __future__ import annotations

import logging
from datetime import date as Date
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Query, status

from app.core.config import settings
from app.core.security import AuthDep
from app.schemas.goals import (
    Achievement,
    AchievementEvaluateResponse,
    CreateGoalRequest,
    Goal,
    GoalOut,
    GoalRefreshResponse,
    UpdateGoalStatusRequest,
)
from app.services.goals import (
    goal_current_value,
    is_goal_open,
    learner_totals,
    newly_earned,
    to_goal_out,
)
from app.services.learning_store import (
    ACHIEVEMENTS_TABLE,
    GOALS_TABLE,
    fetch_achievements,
    fetch_goals,
    fetch_resources,
    fetch_sessions,
    user_client,
)
from app.services.streaks import analyze_streaks

logger = logging.getLogger(__name__)

router = APIRouter()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/goals", response_model=list[GoalOut])
async def list_goals(auth: AuthDep) -> list[GoalOut]:
    return [to_goal_out(g) for g in await fetch_goals(auth)]


@router.post("/goals", response_model=GoalOut, status_code=status.HTTP_201_CREATED)
async def create_goal(
    body: CreateGoalRequest,
    auth: AuthDep,
    today: Date | None = Query(default=None),
) -> GoalOut:
    start = today or Date.today()
    if body.end_date < start:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="end_date must not be before the start date",
        )
    row = {
        **body.model_dump(mode="json"),
        "user_id": auth.user_id,
        "start_date": start.isoformat(),
        "current_value": 0,
        "status": "active",
    }
    created = await user_client().insert_one(
        GOALS_TABLE, bearer_token=auth.access_token, row=row
    )
    if not created:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create goal",
        )
    return to_goal_out(Goal.model_validate(created))


@router.patch("/goals/{goal_id}/status", response_model=GoalOut)
async def update_goal_status(
    goal_id: str, body: UpdateGoalStatusRequest, auth: AuthDep
) -> GoalOut:
    updated = await user_client().patch(
        GOALS_TABLE,
        bearer_token=auth.access_token,
        params={"id": f"eq.{goal_id}", "user_id": f"eq.{auth.user_id}"},
        payload={"status": body.status, "updated_at": _now_iso()},
    )
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Goal not found")
    return to_goal_out(Goal.model_validate(updated[0]))


@router.post("/goals/refresh", response_model=GoalRefreshResponse)
async def refresh_goals(
    auth: AuthDep,
    today: Date | None = Query(default=None),
) -> GoalRefreshResponse:
    anchor = today or Date.today()
    goals = await fetch_goals(auth)
    open_goals = [g for g in goals if is_goal_open(g, anchor)]
    if not open_goals:
        return GoalRefreshResponse(updated=0, completed=0, goals=[to_goal_out(g) for g in goals])

    sessions = await fetch_sessions(auth, end=anchor)
    resources = await fetch_resources(auth)
    streak = analyze_streaks(
        sessions, today=anchor, threshold=settings.streak_min_minutes
    )

    sb = user_client()
    refreshed: dict[str, Goal] = {}
    completed = 0
    for goal in open_goals:
        value = goal_current_value(
            goal,
            sessions=sessions,
            resources=resources,
            current_streak=streak.current_streak,
        )
        new_status = "completed" if value >= goal.target_value else goal.status
        if value == goal.current_value and new_status == goal.status:
            continue
        rows = await sb.patch(
            GOALS_TABLE,
            bearer_token=auth.access_token,
            params={"id": f"eq.{goal.id}", "user_id": f"eq.{auth.user_id}"},
            payload={"current_value": value, "status": new_status, "updated_at": _now_iso()},
        )
        if rows:
            refreshed[goal.id] = Goal.model_validate(rows[0])
            if new_status == "completed":
                completed += 1

    if completed:
        logger.info("Completed %s goal(s) for user=%s", completed, auth.user_id[:8])
    return GoalRefreshResponse(
        updated=len(refreshed),
        completed=completed,
        goals=[to_goal_out(refreshed.get(g.id, g)) for g in goals],
    )


@router.get("/achievements", response_model=list[Achievement])
async def list_achievements(auth: AuthDep) -> list[Achievement]:
    return await fetch_achievements(auth)


@router.post("/achievements/evaluate", response_model=AchievementEvaluateResponse)
async def evaluate_achievements(
    auth: AuthDep,
    today: Date | None = Query(default=None),
) -> AchievementEvaluateResponse:
    anchor = today or Date.today()
    sessions = await fetch_sessions(auth, end=anchor)
    resources = await fetch_resources(auth)
    streak = analyze_streaks(
        sessions, today=anchor, threshold=settings.streak_min_minutes
    )
    totals = learner_totals(
        sessions=sessions,
        resources=resources,
        current_streak=streak.current_streak,
        longest_streak=streak.longest_streak,
    )
    existing = await fetch_achievements(auth)

    sb = user_client()
    awarded: list[Achievement] = []
    for rule in newly_earned(totals, (a.title for a in existing)):
        row = await sb.insert_one(
            ACHIEVEMENTS_TABLE,
            bearer_token=auth.access_token,
            row={
                "user_id": auth.user_id,
                "title": rule.title,
                "description": rule.description,
                "icon": rule.icon,
                "category": rule.category,
                "earned_at": _now_iso(),
            },
        )
        if row:
            awarded.append(Achievement.model_validate(row))

    if awarded:
        logger.info(
            "Awarded %s achievement(s) to user=%s", len(awarded), auth.user_id[:8]
        )
    return AchievementEvaluateResponse(awarded=awarded)
