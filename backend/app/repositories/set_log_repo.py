# app/repositories/set_log_repo.py
from __future__ import annotations
import uuid
from typing import Iterable

from sqlalchemy import select

from app.models import SetLog, WorkoutSession
from app.repositories.base import BaseRepository

SET_LOG_KEY = ("session_id", "client_item_id", "set_number")
SET_LOG_FIELDS = ("reps_done", "seconds_done", "weight_kg_done", "marked_done_at")


class SetLogRepository(BaseRepository[SetLog]):
    model = SetLog

    def for_session(self, session_id: uuid.UUID) -> list[SetLog]:
        stmt = (select(SetLog).where(SetLog.session_id == session_id)
                .order_by(SetLog.client_item_id, SetLog.set_number))
        return list(self.db.execute(stmt).scalars().all())

    def save(self, values: dict) -> SetLog:
        """One row per (session, item, set); the latest write wins."""
        return self.upsert_with_fallback(values, conflict=SET_LOG_KEY, update=SET_LOG_FIELDS)

    def last_completed_weights(self, user_id: int, item_ids: Iterable[uuid.UUID], *,
                               exclude_session: uuid.UUID | None = None
                               ) -> dict[uuid.UUID, dict[int, float]]:
        """Per item, the weights logged in the most recent *finished* session that has any."""
        item_ids = list(item_ids)
        if not item_ids:
            return {}
        stmt = (
            select(SetLog, WorkoutSession.ended_at)
            .join(WorkoutSession, WorkoutSession.id == SetLog.session_id)
            .where(SetLog.user_id == user_id,
                   SetLog.client_item_id.in_(item_ids),
                   SetLog.weight_kg_done.is_not(None),
                   WorkoutSession.ended_at.is_not(None))
            .order_by(WorkoutSession.ended_at.desc(), SetLog.set_number)
        )
        if exclude_session is not None:
            stmt = stmt.where(SetLog.session_id != exclude_session)

        out: dict[uuid.UUID, dict[int, float]] = {}
        chosen_session: dict[uuid.UUID, uuid.UUID] = {}
        for log, _ended in self.db.execute(stmt).all():
            picked = chosen_session.setdefault(log.client_item_id, log.session_id)
            if picked != log.session_id:
                continue
            out.setdefault(log.client_item_id, {})[log.set_number] = log.weight_kg_done
        return out
