import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base
from app.timeutil import utcnow


class SetLog(Base):
    __tablename__ = "set_logs"
    __table_args__ = (
        UniqueConstraint("session_id", "client_item_id", "set_number", name="uq_set_logs_session_item_set"),
    )
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("workout_sessions.id", ondelete="CASCADE"), index=True)
    client_item_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("client_items.id", ondelete="CASCADE"), index=True)
    client_day_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("client_days.id", ondelete="CASCADE"))
    program_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("client_programs.id", ondelete="CASCADE"))
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    set_number: Mapped[int] = mapped_column(Integer, nullable=False)
    reps_done: Mapped[int | None] = mapped_column(Integer, nullable=True)
    seconds_done: Mapped[int | None] = mapped_column(Integer, nullable=True)
    weight_kg_done: Mapped[float | None] = mapped_column(Numeric(6, 2, asdecimal=False), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    marked_done_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    session = relationship("WorkoutSession", back_populates="set_logs")
