# app/repositories/feedback_repo.py
from __future__ import annotations
import uuid
from typing import Iterable

from sqlalchemy import select, update

from app.errors import translate_db_errors
from app.models import ExerciseFeedback, FeedbackValue
from app.repositories.base import BaseRepository


class FeedbackRepository(BaseRepository[ExerciseFeedback]):
    model = ExerciseFeedback

    def add(self, *, item_id: uuid.UUID, user_id: int, feedback: FeedbackValue,
            session_id: uuid.UUID | None = None) -> ExerciseFeedback:
        row = ExerciseFeedback(client_item_id=item_id, user_id=user_id,
                               feedback=feedback, session_id=session_id)
        return self.add_and_refresh(row)

    def recent_unconsumed(self, user_id: int, item_id: uuid.UUID, *, limit: int) -> list[ExerciseFeedback]:
        """Newest first."""
        stmt = (select(ExerciseFeedback)
                .where(ExerciseFeedback.user_id == user_id,
                       ExerciseFeedback.client_item_id == item_id,
                       ExerciseFeedback.consumed.is_(False))
                .order_by(ExerciseFeedback.created_at.desc(), ExerciseFeedback.id)
                .limit(limit))
        return list(self.db.execute(stmt).scalars().all())

    def consume(self, ids: Iterable[uuid.UUID]) -> None:
        ids = list(ids)
        if not ids:
            return
        with translate_db_errors(self.db):
            self.db.execute(update(ExerciseFeedback)
                            .where(ExerciseFeedback.id.in_(ids))
                            .values(consumed=True))
            self.db.commit()
