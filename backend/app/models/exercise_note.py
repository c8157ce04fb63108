import uuid
from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db import Base
from app.timeutil import utcnow


class ExerciseNote(Base):
    __tablename__ = "exercise_notes"
    __table_args__ = (
        UniqueConstraint("session_id", "client_item_id", name="uq_exercise_notes_session_item"),
    )
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("workout_sessions.id", ondelete="CASCADE"), index=True)
    client_item_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("client_items.id", ondelete="CASCADE"), index=True)
    client_day_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("client_days.id", ondelete="CASCADE"))
    program_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("client_programs.id", ondelete="CASCADE"))
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    rpe: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rir_done: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # append-only list of {"at", "rpe", "rir"}; always reassigned, never mutated in place
    rpe_history: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
