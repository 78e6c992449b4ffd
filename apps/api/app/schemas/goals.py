from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

GoalType = Literal["time", "resources", "streak"]
GoalPeriod = Literal["weekly", "monthly", "yearly"]
GoalStatus = Literal["active", "completed", "paused", "cancelled"]
AchievementCategory = Literal["streak", "time", "completion", "milestone"]


class CreateGoalRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    type: GoalType
    target_value: int = Field(ge=1)
    period: GoalPeriod
    end_date: date


class UpdateGoalStatusRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: GoalStatus


class Goal(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    description: str | None = None
    type: GoalType
    target_value: int
    current_value: int = 0
    period: GoalPeriod
    start_date: date
    end_date: date
    status: GoalStatus
    created_at: str | None = None
    updated_at: str | None = None


class GoalOut(Goal):
    progress_percentage: float
    is_completed: bool


class GoalRefreshResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    updated: int
    completed: int
    goals: list[GoalOut]


class Achievement(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    description: str | None = None
    icon: str = "🏆"
    category: AchievementCategory
    earned_at: str
    created_at: str | None = None

    @field_validator("icon", mode="before")
    @classmethod
    def default_icon(cls, value: object) -> object:
        return value or "🏆"


class AchievementEvaluateResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    awarded: list[Achievement]
