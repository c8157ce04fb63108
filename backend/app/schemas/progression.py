import uuid
from typing import Literal

from pydantic import BaseModel

from app.models import FeedbackValue


class ExerciseFeedbackIn(BaseModel):
    feedback: FeedbackValue
    session_id: uuid.UUID | None = None


class WeightProposalRead(BaseModel):
    item_id: uuid.UUID
    feedback: FeedbackValue
    current_kg: float
    suggested_kg: float


class FeedbackOutcome(BaseModel):
    recorded: bool = True
    proposal: WeightProposalRead | None = None


class RepsSuggestionRead(BaseModel):
    current_reps: str
    suggested_reps: str | None = None
    rpe: int
    action: Literal["increase", "maintain", "decrease", "none"]
