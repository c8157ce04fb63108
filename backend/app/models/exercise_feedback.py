import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db import Base
from app.timeutil import utcnow


class FeedbackValue(str, Enum):
    too_easy = "too_easy"
    just_right = "just_right"
    too_hard = "too_hard"


class ExerciseFeedback(Base):
    __tablename__ = "exercise_feedback"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_item_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("client_items.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    session_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("workout_sessions.id", ondelete="SET NULL"), nullable=True)
    feedback: Mapped[FeedbackValue] = mapped_column(SAEnum(FeedbackValue, name="feedback_value"), nullable=False)
    # set once a confirmed weight change has used this signal
    consumed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
