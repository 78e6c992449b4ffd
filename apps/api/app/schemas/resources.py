from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ResourceType = Literal["video", "blog", "article", "course"]
ResourceStatus = Literal["not-started", "in-progress", "completed"]

MAX_TAGS = 20


def _normalize_tags(value: list[str]) -> list[str]:
    out: list[str] = []
    for raw in value:
        tag = raw.strip()
        if not tag:
            continue
        if len(tag) > 40:
            raise ValueError("tags must be at most 40 characters")
        if tag not in out:
            out.append(tag)
    return out


class CreateResourceRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1, max_length=200)
    type: ResourceType
    url: str | None = Field(default=None, max_length=2048)
    notes: str = Field(default="", max_length=5000)
    status: ResourceStatus = "not-started"
    deadline: date | None = None
    tags: list[str] = Field(default_factory=list, max_length=MAX_TAGS)
    time_spent: int = Field(default=0, ge=0)

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title is required")
        return value

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, value: list[str]) -> list[str]:
        return _normalize_tags(value)


class UpdateResourceRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1, max_length=200)
    type: ResourceType | None = None
    url: str | None = Field(default=None, max_length=2048)
    notes: str | None = Field(default=None, max_length=5000)
    status: ResourceStatus | None = None
    deadline: date | None = None
    tags: list[str] | None = Field(default=None, max_length=MAX_TAGS)
    time_spent: int | None = Field(default=None, ge=0)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, value: list[str] | None) -> list[str] | None:
        return None if value is None else _normalize_tags(value)


class LearningResource(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    type: ResourceType
    url: str | None = None
    notes: str = ""
    status: ResourceStatus
    deadline: date | None = None
    tags: list[str] = Field(default_factory=list)
    time_spent: int = 0
    created_at: str | None = None
    updated_at: str | None = None

    @field_validator("notes", mode="before")
    @classmethod
    def none_notes(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("tags", mode="before")
    @classmethod
    def none_tags(cls, value: object) -> object:
        return [] if value is None else value

    @field_validator("time_spent", mode="before")
    @classmethod
    def none_time_spent(cls, value: object) -> object:
        return 0 if value is None else value


class LearningStats(BaseModel):
    model_config = ConfigDict(extra="forbid")

    total: int
    not_started: int
    in_progress: int
    completed: int
    total_time_spent: int
    completion_percentage: float
    progress_percentage: float
