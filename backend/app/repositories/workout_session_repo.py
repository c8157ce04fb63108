# app/repositories/workout_session_repo.py
from __future__ import annotations
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.errors import translate_db_errors
from app.models import WorkoutSession
from app.repositories.base import BaseRepository
from app.timeutil import utcnow


class WorkoutSessionRepository(BaseRepository[WorkoutSession]):
    model = WorkoutSession

    def get(self, session_id: uuid.UUID) -> Optional[WorkoutSession]:
        return self.db.get(WorkoutSession, session_id)

    def find_open(self, user_id: int, day_id: uuid.UUID) -> Optional[WorkoutSession]:
        stmt = (
            select(WorkoutSession)
            .where(WorkoutSession.user_id == user_id,
                   WorkoutSession.client_day_id == day_id,
                   WorkoutSession.ended_at.is_(None))
            .order_by(WorkoutSession.started_at.desc())
            .limit(1)
        )
        return self.db.execute(stmt).scalars().first()

    def find_or_create_open(self, user_id: int, program_id: uuid.UUID,
                            day_id: uuid.UUID) -> tuple[WorkoutSession, bool]:
        """Reuse the open session for (user, day) or start one. Returns (session, created)."""
        existing = self.find_open(user_id, day_id)
        if existing:
            return existing, False
        now = utcnow()
        sess = WorkoutSession(user_id=user_id, client_program_id=program_id, client_day_id=day_id,
                              started_at=now, last_activity_at=now)
        try:
            self.db.add(sess)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            # a concurrent bootstrap created it first
            existing = self.find_open(user_id, day_id)
            if existing is None:
                raise
            return existing, False
        return sess, True

    def list_by_user(self, user_id: int, *, limit: int = 50, offset: int = 0) -> list[WorkoutSession]:
        stmt = (select(WorkoutSession).where(WorkoutSession.user_id == user_id)
                .order_by(WorkoutSession.started_at.desc())
                .limit(limit).offset(offset))
        return list(self.db.execute(stmt).scalars().all())

    def touch(self, sess: WorkoutSession, *, at: datetime | None = None) -> WorkoutSession:
        with translate_db_errors(self.db):
            sess.last_activity_at = at or utcnow()
            self.db.commit()
        return sess

    def close(self, sess: WorkoutSession, *, ended_at: datetime, duration_minutes: int) -> WorkoutSession:
        with translate_db_errors(self.db):
            sess.ended_at = ended_at
            sess.duration_minutes = duration_minutes
            sess.last_activity_at = ended_at
            self.db.commit()
        return sess

    def save_feedback(self, sess: WorkoutSession, feedback: dict) -> WorkoutSession:
        with translate_db_errors(self.db):
            sess.feedback = dict(feedback)
            self.db.commit()
        return sess
