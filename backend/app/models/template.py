import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import (JSON, Boolean, DateTime, Enum as SAEnum, ForeignKey, Integer,
                        Numeric, String, Text, Uuid)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base
from app.timeutil import utcnow


class Difficulty(str, Enum):
    easier = "easier"
    same = "same"
    harder = "harder"


class ItemColumns:
    """Prescription columns shared by template items and client items."""
    exercise_name: Mapped[str] = mapped_column(String(200), nullable=False)
    sets: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    reps: Mapped[str | None] = mapped_column(String(20), nullable=True)
    # weight_kg / seconds are read and written through services.exercise_mode only
    seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    weight_kg: Mapped[float | None] = mapped_column(Numeric(6, 2, asdecimal=False), nullable=True)
    rest_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    coach_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    video_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    order_in_day: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_unilateral: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reps_per_side: Mapped[int | None] = mapped_column(Integer, nullable=True)
    total_reps: Mapped[int | None] = mapped_column(Integer, nullable=True)


class AlternativeColumns:
    alternative_name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    video_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    difficulty_level: Mapped[Difficulty] = mapped_column(
        SAEnum(Difficulty, name="difficulty_level"), nullable=False, default=Difficulty.same,
    )
    equipment_required: Mapped[list | None] = mapped_column(JSON, nullable=True)
    muscle_groups: Mapped[list | None] = mapped_column(JSON, nullable=True)


class WorkoutTemplate(Base):
    __tablename__ = "workout_templates"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    goal: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_weeks: Mapped[int] = mapped_column(Integer, nullable=False, default=4)
    created_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    days = relationship("TemplateDay", back_populates="template", cascade="all, delete-orphan",
                        order_by="TemplateDay.day_order")


class TemplateDay(Base):
    __tablename__ = "template_days"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    template_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("workout_templates.id", ondelete="CASCADE"), index=True)
    day_order: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    template = relationship("WorkoutTemplate", back_populates="days")
    items = relationship("TemplateItem", back_populates="day", cascade="all, delete-orphan",
                         order_by="TemplateItem.order_in_day")


class TemplateItem(ItemColumns, Base):
    __tablename__ = "template_items"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    template_day_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("template_days.id", ondelete="CASCADE"), index=True)

    day = relationship("TemplateDay", back_populates="items")
    alternatives = relationship("TemplateAlternative", back_populates="item", cascade="all, delete-orphan")


class TemplateAlternative(AlternativeColumns, Base):
    __tablename__ = "template_alternatives"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    template_item_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("template_items.id", ondelete="CASCADE"), index=True)

    item = relationship("TemplateItem", back_populates="alternatives")
