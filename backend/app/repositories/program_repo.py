# app/repositories/program_repo.py
from __future__ import annotations
import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from app.errors import translate_db_errors
from app.models import ClientDay, ClientItem, ClientProgram, ProgramStatus
from app.repositories.base import BaseRepository


class ProgramRepository(BaseRepository[ClientProgram]):
    model = ClientProgram

    # READS
    def get(self, program_id: uuid.UUID) -> Optional[ClientProgram]:
        return self.db.get(ClientProgram, program_id)

    def get_owned(self, program_id: uuid.UUID, user_id: int) -> Optional[ClientProgram]:
        stmt = select(ClientProgram).where(ClientProgram.id == program_id,
                                           ClientProgram.assigned_to == user_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_for_user(self, user_id: int, *, active_only: bool = False) -> list[ClientProgram]:
        stmt = (select(ClientProgram).where(ClientProgram.assigned_to == user_id)
                .order_by(ClientProgram.inserted_at.desc()))
        if active_only:
            stmt = stmt.where(ClientProgram.is_active.is_(True))
        return list(self.db.execute(stmt).scalars().all())

    def get_day(self, day_id: uuid.UUID) -> Optional[ClientDay]:
        return self.db.get(ClientDay, day_id)

    def days(self, program_id: uuid.UUID) -> list[ClientDay]:
        stmt = (select(ClientDay).where(ClientDay.client_program_id == program_id)
                .order_by(ClientDay.day_order))
        return list(self.db.execute(stmt).scalars().all())

    def items_for_day(self, day_id: uuid.UUID) -> list[ClientItem]:
        stmt = (select(ClientItem)
                .where(ClientItem.client_day_id == day_id)
                .options(selectinload(ClientItem.alternatives))
                .order_by(ClientItem.order_in_day))
        return list(self.db.execute(stmt).scalars().all())

    def items_for_program(self, program_id: uuid.UUID) -> list[ClientItem]:
        stmt = (select(ClientItem).join(ClientDay, ClientDay.id == ClientItem.client_day_id)
                .where(ClientDay.client_program_id == program_id)
                .order_by(ClientDay.day_order, ClientItem.order_in_day))
        return list(self.db.execute(stmt).scalars().all())

    def get_item(self, item_id: uuid.UUID) -> Optional[ClientItem]:
        return self.db.get(ClientItem, item_id)

    def owner_of_item(self, item_id: uuid.UUID) -> Optional[int]:
        stmt = (select(ClientProgram.assigned_to)
                .join(ClientDay, ClientDay.client_program_id == ClientProgram.id)
                .join(ClientItem, ClientItem.client_day_id == ClientDay.id)
                .where(ClientItem.id == item_id))
        return self.db.execute(stmt).scalar_one_or_none()

    def active_auto_progression(self) -> list[ClientProgram]:
        stmt = select(ClientProgram).where(ClientProgram.is_active.is_(True),
                                           ClientProgram.status == ProgramStatus.active,
                                           ClientProgram.auto_progression_enabled.is_(True))
        return list(self.db.execute(stmt).scalars().all())

    def active_started_before(self, day: date) -> list[ClientProgram]:
        stmt = select(ClientProgram).where(ClientProgram.status == ProgramStatus.active,
                                           ClientProgram.start_date <= day)
        return list(self.db.execute(stmt).scalars().all())

    # WRITES
    def update_item(self, item: ClientItem, *, commit: bool = True, **fields) -> ClientItem:
        with translate_db_errors(self.db):
            for k, v in fields.items():
                setattr(item, k, v)
            if commit:
                self.db.commit()
            else:
                self.db.flush()
        return item

    def deactivate(self, program: ClientProgram) -> ClientProgram:
        with translate_db_errors(self.db):
            program.is_active = False
            program.status = ProgramStatus.paused
            self.db.commit()
        return program

    def mark_completed(self, programs: list[ClientProgram], *, at: datetime) -> None:
        with translate_db_errors(self.db):
            for p in programs:
                p.status = ProgramStatus.completed
                p.is_active = False
                p.completed_at = at
            self.db.commit()
