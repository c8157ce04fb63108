from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Annotated, Literal

from pydantic import BaseModel, Field, StringConstraints

from app.models import Difficulty

TitleStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
TextStr = Annotated[str, StringConstraints(strip_whitespace=True, max_length=2000)]
VideoUrl = Annotated[str, StringConstraints(strip_whitespace=True, max_length=500)]


class TemplateCreate(BaseModel):
    title: TitleStr
    goal: TextStr | None = None
    duration_weeks: Annotated[int, Field(ge=1, le=52)] = 4


class TemplateUpdate(BaseModel):
    title: TitleStr | None = None
    goal: TextStr | None = None
    duration_weeks: Annotated[int, Field(ge=1, le=52)] | None = None


class DayCreate(BaseModel):
    title: TitleStr
    note: TextStr | None = None


class DayUpdate(BaseModel):
    title: TitleStr | None = None
    note: TextStr | None = None


# Item payloads are checked by services.exercise_mode.validate_exercise so
# the field -> message map reaches the client; only types are enforced here.
class ItemCreate(BaseModel):
    exercise_name: str
    sets: int = 3
    reps: str | int | None = None
    seconds: int | None = None
    weight_kg: float | None = None
    rest_seconds: int | None = None
    coach_notes: TextStr | None = None
    video_url: VideoUrl | None = None
    order_in_day: int | None = None
    is_unilateral: bool = False
    mode: Literal["weighted", "timed", "bodyweight"] | None = None


class ItemUpdate(BaseModel):
    exercise_name: str | None = None
    sets: int | None = None
    reps: str | int | None = None
    seconds: int | None = None
    weight_kg: float | None = None
    rest_seconds: int | None = None
    coach_notes: TextStr | None = None
    video_url: VideoUrl | None = None
    is_unilateral: bool | None = None
    mode: Literal["weighted", "timed", "bodyweight"] | None = None


class AlternativeCreate(BaseModel):
    alternative_name: str
    description: TextStr | None = None
    video_url: VideoUrl | None = None
    difficulty_level: Difficulty = Difficulty.same
    equipment_required: list[str] | None = None
    muscle_groups: list[str] | None = None


class AlternativeRead(BaseModel):
    id: uuid.UUID
    alternative_name: str
    description: str | None = None
    video_url: str | None = None
    difficulty_level: Difficulty
    equipment_required: list[str] | None = None
    muscle_groups: list[str] | None = None
    model_config = {"from_attributes": True}


class ItemRead(BaseModel):
    id: uuid.UUID
    exercise_name: str
    sets: int
    reps: str | None = None
    seconds: int | None = None
    weight_kg: float | None = None
    rest_seconds: int | None = None
    coach_notes: str | None = None
    video_url: str | None = None
    order_in_day: int
    is_unilateral: bool
    reps_per_side: int | None = None
    total_reps: int | None = None
    alternatives: list[AlternativeRead] = []
    model_config = {"from_attributes": True}


class DayRead(BaseModel):
    id: uuid.UUID
    day_order: int
    title: str
    note: str | None = None
    items: list[ItemRead] = []
    model_config = {"from_attributes": True}


class TemplateRead(BaseModel):
    id: uuid.UUID
    title: str
    goal: str | None = None
    duration_weeks: int
    created_at: datetime
    days: list[DayRead] = []
    model_config = {"from_attributes": True}


class TemplateSummary(BaseModel):
    id: uuid.UUID
    title: str
    goal: str | None = None
    duration_weeks: int
    created_at: datetime
    model_config = {"from_attributes": True}


class MoveRequest(BaseModel):
    direction: Literal["up", "down"]


class MoveResult(BaseModel):
    moved: bool


class AssignRequest(BaseModel):
    user_email: str
    start_date: date
    title_override: TitleStr | None = None
    auto_progression_enabled: bool = False
