# app/services/weight_prefs.py
"""
Per-set weight memory.

The weight shown for a set comes from the first source that has one:

1. the set already logged in the current session,
2. the user's stored preference for that (item, set) slot,
3. what was logged for that set in the last *finished* session,
4. the item's default weight.

Preferences are written explicitly (single set or all sets) and implicitly
after each completed set with a nonzero weight.
"""
from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Mapping

from sqlalchemy.orm import Session

from app.errors import ValidationError, translate_db_errors
from app.repositories.preference_repo import PreferenceRepository
from app.repositories.program_repo import ProgramRepository
from app.repositories.set_log_repo import SetLogRepository
from app.services.events import track_event
from app.services.exercise_mode import Bodyweight, Timed, Weighted, item_mode, mode_to_columns
from app.services.optimistic import optimistic_apply
from app.settings import get_settings

if TYPE_CHECKING:
    from app.models import ClientItem, SetLog
    from app.services.bootstrap import SessionContext

log = logging.getLogger(__name__)


def default_weight(item: "ClientItem") -> float | None:
    mode = item_mode(item)
    return mode.kg if isinstance(mode, Weighted) else None


def resolve_set_weights(
    item: "ClientItem",
    *,
    session_logs: Mapping[tuple[uuid.UUID, int], "SetLog"],
    preferences: Mapping[tuple[uuid.UUID, int], float],
    previous: Mapping[int, float],
) -> dict[int, float | None]:
    out: dict[int, float | None] = {}
    fallback = default_weight(item)
    for n in range(1, item.sets + 1):
        logged = session_logs.get((item.id, n))
        if logged is not None and logged.weight_kg_done is not None:
            out[n] = logged.weight_kg_done
        elif (item.id, n) in preferences:
            out[n] = preferences[(item.id, n)]
        elif n in previous:
            out[n] = previous[n]
        else:
            out[n] = fallback
    return out


def load_weights(db: Session, *, user_id: int, session_id: uuid.UUID, items: list["ClientItem"],
                 session_logs: Mapping[tuple[uuid.UUID, int], "SetLog"]) -> dict[uuid.UUID, dict[int, float | None]]:
    ids = [i.id for i in items]
    prefs = PreferenceRepository(db).for_items(user_id, ids)
    previous = SetLogRepository(db).last_completed_weights(user_id, ids, exclude_session=session_id)
    return {
        item.id: resolve_set_weights(item, session_logs=session_logs, preferences=prefs,
                                     previous=previous.get(item.id, {}))
        for item in items
    }


# Background tasks: called as fn(db, **kwargs) by TaskQueue

def save_preference(db: Session, *, user_id: int, item_id: uuid.UUID, set_number: int, weight_kg: float) -> None:
    if weight_kg is None or weight_kg <= 0:
        return
    PreferenceRepository(db).save(item_id=item_id, user_id=user_id, set_number=set_number, weight_kg=weight_kg)


def reconcile_default_weight(db: Session, *, item_id: uuid.UUID, session_id: uuid.UUID) -> bool:
    """Move the item's default to the average of the weights logged this session.

    Returns True when the default was written.
    """
    eps = get_settings().WEIGHT_EPSILON_KG
    programs = ProgramRepository(db)
    item = programs.get_item(item_id)
    if item is None or isinstance(item_mode(item), Timed):
        return False
    weights = [l.weight_kg_done for l in SetLogRepository(db).for_session(session_id)
               if l.client_item_id == item_id and l.weight_kg_done is not None]
    if not weights:
        return False
    avg = round(sum(weights) / len(weights), 2)
    current = default_weight(item) or 0.0
    if avg <= 0 or abs(avg - current) <= eps:
        return False
    programs.update_item(item, **mode_to_columns(Weighted(avg)))
    log.info("default weight item=%s %.2f -> %.2f", item_id, current, avg)
    return True


# Explicit edits from the runner

def _check_weight(item: "ClientItem", weight_kg: float) -> None:
    if weight_kg < 0:
        raise ValidationError(detail="Weight cannot be negative", fields={"weight_kg": "must be >= 0"})
    if isinstance(item_mode(item), Timed) and weight_kg > 0:
        raise ValidationError(detail="A timed exercise cannot also have a weight",
                              fields={"weight_kg": "timed exercise"})


def set_single_weight(db: Session, ctx: "SessionContext", *, item_id: uuid.UUID, set_number: int,
                      weight_kg: float) -> dict[int, float | None]:
    item = ctx.item(item_id)
    if not 1 <= set_number <= item.sets:
        raise ValidationError("SET_OUT_OF_RANGE")
    _check_weight(item, weight_kg)
    weight_kg = round(weight_kg, 2)
    PreferenceRepository(db).save(item_id=item.id, user_id=ctx.user_id, set_number=set_number,
                                  weight_kg=weight_kg)
    if (item.id, set_number) not in ctx.logs:
        ctx.weights[item.id][set_number] = weight_kg
        ctx.inputs.setdefault((item.id, set_number), {})["weight_kg"] = weight_kg
    return ctx.weights[item.id]


def set_all_weights(db: Session, ctx: "SessionContext", *, item_id: uuid.UUID,
                    weight_kg: float) -> dict[int, float | None]:
    """One weight for every set, and the item default with it.

    The runner state is updated first; a failed write puts it back.
    """
    item = ctx.item(item_id)
    _check_weight(item, weight_kg)
    weight_kg = round(weight_kg, 2)
    prefs = PreferenceRepository(db)
    programs = ProgramRepository(db)

    def apply(state: "SessionContext") -> None:
        for n in range(1, item.sets + 1):
            key = (item.id, n)
            # sets already logged this session keep showing what was lifted
            if key not in state.logs:
                state.weights[item.id][n] = weight_kg
                state.inputs.setdefault(key, {})["weight_kg"] = weight_kg

    def write(state: "SessionContext") -> dict[int, float | None]:
        # preferences and the item default commit together or not at all
        mode = Weighted(weight_kg) if weight_kg > 0 else Bodyweight()
        try:
            with translate_db_errors(db):
                prefs.stage_for_sets(item_id=item.id, user_id=state.user_id,
                                     set_numbers=range(1, item.sets + 1), weight_kg=weight_kg)
                programs.update_item(item, commit=False, **mode_to_columns(mode))
                db.commit()
        except Exception:
            db.rollback()
            raise
        return state.weights[item.id]

    def snapshot(state: "SessionContext"):
        return dict(state.weights[item.id]), {k: dict(v) for k, v in state.inputs.items()}

    def restore(state: "SessionContext", snap) -> None:
        state.weights[item.id], state.inputs = snap

    result = optimistic_apply(ctx, apply, write, snapshot=snapshot, restore=restore)
    track_event("weights_updated", item_id=item.id, weight_kg=weight_kg, sets=item.sets)
    return result
