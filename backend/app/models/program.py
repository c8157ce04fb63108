import uuid
from datetime import date, datetime
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, Enum as SAEnum, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base
from app.models.template import AlternativeColumns, ItemColumns
from app.timeutil import utcnow


class ProgramStatus(str, Enum):
    active = "active"
    completed = "completed"
    paused = "paused"


class ClientProgram(Base):
    __tablename__ = "client_programs"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    template_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("workout_templates.id", ondelete="SET NULL"), nullable=True)
    assigned_to: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    assigned_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    title_override: Mapped[str | None] = mapped_column(String(200), nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    duration_weeks: Mapped[int] = mapped_column(Integer, nullable=False, default=4)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    status: Mapped[ProgramStatus] = mapped_column(
        SAEnum(ProgramStatus, name="program_status"), nullable=False, default=ProgramStatus.active)
    auto_progression_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    inserted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    user = relationship("User", back_populates="programs", foreign_keys=[assigned_to])
    template = relationship("WorkoutTemplate")
    days = relationship("ClientDay", back_populates="program", cascade="all, delete-orphan",
                        order_by="ClientDay.day_order")


class ClientDay(Base):
    __tablename__ = "client_days"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_program_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("client_programs.id", ondelete="CASCADE"), index=True)
    day_order: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    program = relationship("ClientProgram", back_populates="days")
    items = relationship("ClientItem", back_populates="day", cascade="all, delete-orphan",
                         order_by="ClientItem.order_in_day")


class ClientItem(ItemColumns, Base):
    __tablename__ = "client_items"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_day_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("client_days.id", ondelete="CASCADE"), index=True)

    day = relationship("ClientDay", back_populates="items")
    alternatives = relationship("ExerciseAlternative", back_populates="item", cascade="all, delete-orphan")


class ExerciseAlternative(AlternativeColumns, Base):
    __tablename__ = "exercise_alternatives"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_item_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("client_items.id", ondelete="CASCADE"), index=True)

    item = relationship("ClientItem", back_populates="alternatives")
