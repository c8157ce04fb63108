# app/repositories/preference_repo.py
from __future__ import annotations
import uuid
from typing import Iterable

from sqlalchemy import select

from app.models import SetWeightPreference
from app.repositories.base import BaseRepository
from app.timeutil import utcnow

PREF_KEY = ("client_item_id", "user_id", "set_number")


class PreferenceRepository(BaseRepository[SetWeightPreference]):
    model = SetWeightPreference

    def for_items(self, user_id: int, item_ids: Iterable[uuid.UUID]) -> dict[tuple[uuid.UUID, int], float]:
        item_ids = list(item_ids)
        if not item_ids:
            return {}
        stmt = select(SetWeightPreference).where(
            SetWeightPreference.user_id == user_id,
            SetWeightPreference.client_item_id.in_(item_ids),
        )
        return {(p.client_item_id, p.set_number): p.weight_kg for p in self.db.execute(stmt).scalars()}

    def save(self, *, item_id: uuid.UUID, user_id: int, set_number: int, weight_kg: float) -> SetWeightPreference:
        values = {"client_item_id": item_id, "user_id": user_id, "set_number": set_number,
                  "weight_kg": weight_kg, "updated_at": utcnow()}
        return self.upsert_with_fallback(values, conflict=PREF_KEY, update=("weight_kg", "updated_at"))

    def stage_for_sets(self, *, item_id: uuid.UUID, user_id: int, set_numbers: Iterable[int],
                       weight_kg: float) -> None:
        """Same weight for several slots, flushed but not committed; the caller commits."""
        set_numbers = list(set_numbers)
        now = utcnow()
        stmt = select(SetWeightPreference).where(
            SetWeightPreference.client_item_id == item_id,
            SetWeightPreference.user_id == user_id,
            SetWeightPreference.set_number.in_(set_numbers),
        )
        existing = {p.set_number: p for p in self.db.execute(stmt).scalars()}
        for n in set_numbers:
            row = existing.get(n)
            if row is None:
                self.db.add(SetWeightPreference(client_item_id=item_id, user_id=user_id, set_number=n,
                                                weight_kg=weight_kg, updated_at=now))
            else:
                row.weight_kg = weight_kg
                row.updated_at = now
        self.db.flush()
