import uuid
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, StringConstraints

from app.models import Difficulty

NotesStr = Annotated[str, StringConstraints(strip_whitespace=True, max_length=2000)]
Kg = Annotated[float, Field(ge=0, le=1000)]


class SessionRead(BaseModel):
    id: uuid.UUID
    user_id: int
    client_program_id: uuid.UUID
    client_day_id: uuid.UUID
    started_at: datetime
    ended_at: datetime | None = None
    duration_minutes: int | None = None
    last_activity_at: datetime | None = None
    model_config = {"from_attributes": True}


class SetLogRead(BaseModel):
    id: uuid.UUID
    client_item_id: uuid.UUID
    set_number: int
    reps_done: int | None = None
    seconds_done: int | None = None
    weight_kg_done: float | None = None
    marked_done_at: datetime
    model_config = {"from_attributes": True}


class RunnerPolicy(BaseModel):
    default_rest_seconds: int
    rpe_prompt_delay_ms: int
    notes_debounce_ms: int
    heartbeat_interval_seconds: int


class RunnerAlternative(BaseModel):
    id: uuid.UUID
    alternative_name: str
    description: str | None = None
    video_url: str | None = None
    embed_url: str | None = None
    difficulty_level: Difficulty


class RunnerItem(BaseModel):
    id: uuid.UUID
    exercise_name: str
    sets: int
    reps: str | None = None
    rest_seconds: int
    coach_notes: str | None = None
    video_url: str | None = None
    embed_url: str | None = None
    order_in_day: int
    is_unilateral: bool
    reps_per_side: int | None = None
    total_reps: int | None = None
    mode: dict[str, Any]
    alternatives: list[RunnerAlternative] = []
    weights: dict[int, float | None] = {}
    completed_sets: int
    completed: bool
    notes: str | None = None
    rpe: int | None = None
    previous_rir: int | None = None


class RunnerDay(BaseModel):
    id: uuid.UUID
    title: str
    note: str | None = None
    day_order: int


class SessionStateRead(BaseModel):
    session: SessionRead
    program_id: uuid.UUID
    day: RunnerDay
    created: bool
    items: list[RunnerItem]
    logs: list[SetLogRead]
    policy: RunnerPolicy


class SetComplete(BaseModel):
    item_id: uuid.UUID
    set_number: Annotated[int, Field(ge=1, le=50)]
    reps: Annotated[int, Field(ge=0, le=1000)] | None = None
    seconds: Annotated[int, Field(ge=0, le=36000)] | None = None
    weight_kg: Kg | None = None


class SetCompletionRead(BaseModel):
    log: SetLogRead
    duplicate: bool
    exercise_completed: bool
    prompt_rpe_rir: bool
    rpe_prompt_delay_ms: int
    rest_seconds: int
    model_config = {"from_attributes": True}


class WeightUpdate(BaseModel):
    weight_kg: Kg


class ItemWeightsRead(BaseModel):
    item_id: uuid.UUID
    weights: dict[int, float | None]


class NotesUpdate(BaseModel):
    notes: NotesStr | None = None


class RpeSubmit(BaseModel):
    rpe: Annotated[int, Field(ge=1, le=10)] | None = None
    rir: Annotated[int, Field(ge=0, le=10)] | None = None


class ExerciseNoteRead(BaseModel):
    client_item_id: uuid.UUID
    notes: str | None = None
    rpe: int | None = None
    rir_done: int | None = None
    rpe_history: list[dict[str, Any]] = []
    model_config = {"from_attributes": True}


class AlternativeSwitch(BaseModel):
    alternative_id: uuid.UUID


class AlternativeSwitchRead(BaseModel):
    item_id: uuid.UUID
    exercise_name: str
    video_url: str | None = None


class OutstandingItem(BaseModel):
    item_id: uuid.UUID
    notes: NotesStr | None = None
    rpe: Annotated[int, Field(ge=1, le=10)] | None = None
    rir: Annotated[int, Field(ge=0, le=10)] | None = None


class FinishRequest(BaseModel):
    outstanding: list[OutstandingItem] = []


class FinishRead(BaseModel):
    session: SessionRead
    duration_minutes: int
    sets_logged: int
    exercises_completed: int
    pending_saves_failed: int
    model_config = {"from_attributes": True}


class TouchRead(BaseModel):
    ok: bool
    last_activity_at: datetime | None = None


class WorkoutFeedbackIn(BaseModel):
    energy: Literal["low", "normal", "high"]
    soreness: Literal["none", "mild", "high"]
    pump: Literal["poor", "good", "excellent"]
    joint_pain: bool = False
    overall_difficulty: Literal["too_easy", "just_right", "too_hard"]
    notes: NotesStr | None = None


class WorkoutFeedbackRead(BaseModel):
    volume_multiplier: float
    intensity_multiplier: float
    recommendations: list[str]
