# app/repositories/note_repo.py
from __future__ import annotations
import uuid
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select

from app.errors import translate_db_errors
from app.models import ExerciseNote
from app.repositories.base import BaseRepository
from app.timeutil import utcnow

NOTE_KEY = ("session_id", "client_item_id")


class NoteRepository(BaseRepository[ExerciseNote]):
    model = ExerciseNote

    def get(self, session_id: uuid.UUID, item_id: uuid.UUID) -> Optional[ExerciseNote]:
        return self.find_by_keys({"session_id": session_id, "client_item_id": item_id})

    def for_session(self, session_id: uuid.UUID) -> list[ExerciseNote]:
        stmt = select(ExerciseNote).where(ExerciseNote.session_id == session_id)
        return list(self.db.execute(stmt).scalars().all())

    def save_notes(self, scope: dict, notes: str) -> ExerciseNote:
        values = {**scope, "notes": notes, "updated_at": utcnow()}
        return self.upsert_with_fallback(values, conflict=NOTE_KEY, update=("notes", "updated_at"))

    def clear_notes(self, session_id: uuid.UUID, item_id: uuid.UUID) -> None:
        """Empty notes drop the row unless it still carries RPE/RIR."""
        row = self.get(session_id, item_id)
        if row is None:
            return
        with translate_db_errors(self.db):
            if row.rpe is None and row.rir_done is None:
                self.db.delete(row)
            else:
                row.notes = None
            self.db.commit()

    def save_rpe(self, scope: dict, *, rpe: int | None, rir: int | None) -> ExerciseNote:
        """Only the supplied values are written; an omitted RPE or RIR keeps the stored one."""
        existing = self.get(scope["session_id"], scope["client_item_id"])
        now = utcnow()
        history = list(existing.rpe_history or []) if existing else []
        previous_rpe = existing.rpe if existing else None
        if rpe is not None and rpe != previous_rpe:
            history = history + [{"at": now.isoformat(), "rpe": rpe, "rir": rir}]
        values = {**scope, "rpe_history": history, "updated_at": now}
        update = ["rpe_history", "updated_at"]
        if rpe is not None:
            values["rpe"] = rpe
            update.append("rpe")
        if rir is not None:
            values["rir_done"] = rir
            update.append("rir_done")
        return self.upsert_with_fallback(values, conflict=NOTE_KEY, update=update)

    def _latest_by_item(self, user_id: int, item_ids: list[uuid.UUID], column,
                        exclude_session: uuid.UUID | None = None) -> dict[uuid.UUID, object]:
        if not item_ids:
            return {}
        stmt = (select(ExerciseNote)
                .where(ExerciseNote.user_id == user_id,
                       ExerciseNote.client_item_id.in_(item_ids),
                       column.is_not(None))
                .order_by(ExerciseNote.updated_at.desc()))
        if exclude_session is not None:
            stmt = stmt.where(ExerciseNote.session_id != exclude_session)
        out: dict[uuid.UUID, object] = {}
        for row in self.db.execute(stmt).scalars():
            out.setdefault(row.client_item_id, getattr(row, column.key))
        return out

    def latest_notes(self, user_id: int, item_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, str]:
        return self._latest_by_item(user_id, list(item_ids), ExerciseNote.notes)

    def latest_rpe(self, user_id: int, item_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, int]:
        return self._latest_by_item(user_id, list(item_ids), ExerciseNote.rpe)

    def previous_rir(self, user_id: int, item_ids: Iterable[uuid.UUID], *,
                     current_session: uuid.UUID) -> dict[uuid.UUID, int]:
        """RIR comes from an earlier session, never the one being run."""
        return self._latest_by_item(user_id, list(item_ids), ExerciseNote.rir_done,
                                    exclude_session=current_session)

    def rpe_values_since(self, user_id: int, item_id: uuid.UUID, since: datetime) -> list[int]:
        stmt = select(ExerciseNote).where(
            ExerciseNote.user_id == user_id,
            ExerciseNote.client_item_id == item_id,
        )
        values: list[int] = []
        for row in self.db.execute(stmt).scalars():
            for entry in row.rpe_history or []:
                at = datetime.fromisoformat(entry["at"])
                if at >= since and entry.get("rpe") is not None:
                    values.append(int(entry["rpe"]))
        return values
