# app/repositories/template_repo.py
from __future__ import annotations
import uuid
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from app.errors import translate_db_errors
from app.models import TemplateAlternative, TemplateDay, TemplateItem, WorkoutTemplate
from app.repositories.base import BaseRepository


class TemplateRepository(BaseRepository[WorkoutTemplate]):
    model = WorkoutTemplate

    # TEMPLATES
    def get(self, template_id: uuid.UUID) -> Optional[WorkoutTemplate]:
        return self.db.get(WorkoutTemplate, template_id)

    def get_full(self, template_id: uuid.UUID) -> Optional[WorkoutTemplate]:
        stmt = (select(WorkoutTemplate).where(WorkoutTemplate.id == template_id)
                .options(selectinload(WorkoutTemplate.days)
                         .selectinload(TemplateDay.items)
                         .selectinload(TemplateItem.alternatives)))
        return self.db.execute(stmt).scalar_one_or_none()

    def list(self) -> list[WorkoutTemplate]:
        stmt = select(WorkoutTemplate).order_by(WorkoutTemplate.created_at.desc())
        return list(self.db.execute(stmt).scalars().all())

    def update(self, entity, **fields):
        with translate_db_errors(self.db):
            for k, v in fields.items():
                setattr(entity, k, v)
            self.db.commit()
            self.db.refresh(entity)
        return entity

    # DAYS
    def get_day(self, day_id: uuid.UUID) -> Optional[TemplateDay]:
        return self.db.get(TemplateDay, day_id)

    def days(self, template_id: uuid.UUID) -> list[TemplateDay]:
        stmt = (select(TemplateDay).where(TemplateDay.template_id == template_id)
                .order_by(TemplateDay.day_order, TemplateDay.id))
        return list(self.db.execute(stmt).scalars().all())

    def next_day_order(self, template_id: uuid.UUID) -> int:
        stmt = select(func.max(TemplateDay.day_order)).where(TemplateDay.template_id == template_id)
        return (self.db.execute(stmt).scalar_one() or 0) + 1

    # ITEMS
    def get_item(self, item_id: uuid.UUID) -> Optional[TemplateItem]:
        return self.db.get(TemplateItem, item_id)

    def items(self, day_id: uuid.UUID) -> list[TemplateItem]:
        stmt = (select(TemplateItem).where(TemplateItem.template_day_id == day_id)
                .order_by(TemplateItem.order_in_day, TemplateItem.id))
        return list(self.db.execute(stmt).scalars().all())

    def next_item_order(self, day_id: uuid.UUID) -> int:
        stmt = select(func.max(TemplateItem.order_in_day)).where(TemplateItem.template_day_id == day_id)
        return (self.db.execute(stmt).scalar_one() or 0) + 1

    # ALTERNATIVES
    def get_alternative(self, alternative_id: uuid.UUID) -> Optional[TemplateAlternative]:
        return self.db.get(TemplateAlternative, alternative_id)

    def swap(self, a, b, attr: str) -> None:
        """Exchange one ordering value between two siblings; nothing else moves."""
        with translate_db_errors(self.db):
            va, vb = getattr(a, attr), getattr(b, attr)
            setattr(a, attr, vb)
            setattr(b, attr, va)
            self.db.commit()
