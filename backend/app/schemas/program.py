import uuid
from datetime import date, datetime

from pydantic import BaseModel

from app.models import ProgramStatus
from app.schemas.template import DayRead


class ProgramRead(BaseModel):
    id: uuid.UUID
    template_id: uuid.UUID | None = None
    assigned_to: int
    title_override: str | None = None
    start_date: date
    duration_weeks: int
    is_active: bool
    status: ProgramStatus
    auto_progression_enabled: bool
    completed_at: datetime | None = None
    inserted_at: datetime
    model_config = {"from_attributes": True}


class ProgramDetail(ProgramRead):
    days: list[DayRead] = []
