# app/services/set_completion.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, fields

from sqlalchemy.orm import Session

from app.errors import ValidationError
from app.models import SetLog
from app.repositories.set_log_repo import SetLogRepository
from app.services.bootstrap import SessionContext
from app.services.events import track_event
from app.services.exercise_mode import Timed, item_mode, parse_target_reps
from app.services.tasks import TaskQueue
from app.services.weight_prefs import reconcile_default_weight, save_preference
from app.settings import get_settings
from app.timeutil import utcnow

log = logging.getLogger(__name__)


@dataclass(slots=True)
class SetCompletionResult:
    log: SetLog
    duplicate: bool
    exercise_completed: bool
    prompt_rpe_rir: bool
    rpe_prompt_delay_ms: int
    rest_seconds: int

    def to_dict(self) -> dict:
        # shallow: `log` stays an ORM row
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _first(*values):
    for v in values:
        if v is not None:
            return v
    return None


def complete_set(
    db: Session,
    ctx: SessionContext,
    queue: TaskQueue,
    *,
    item_id: uuid.UUID,
    set_number: int,
    reps: int | None = None,
    seconds: int | None = None,
    weight_kg: float | None = None,
) -> SetCompletionResult:
    """Record one completed set.

    Values come from the explicit arguments first, then the set's current
    inputs, then the item's prescription. Re-sending the exact values already
    logged is a no-op; anything else overwrites the row.
    """
    s = get_settings()
    item = ctx.item(item_id)
    if ctx.session.ended_at is not None:
        raise ValidationError("SESSION_FINISHED")
    if not 1 <= set_number <= item.sets:
        raise ValidationError("SET_OUT_OF_RANGE", fields={"set_number": f"1..{item.sets}"})

    mode = item_mode(item)
    timed = isinstance(mode, Timed)
    key = (item.id, set_number)
    current = ctx.inputs.get(key, {})

    reps_done = _first(reps, current.get("reps"), parse_target_reps(item.reps))
    seconds_done = _first(seconds, current.get("seconds"), mode.seconds if timed else None)
    weight = _first(weight_kg, current.get("weight_kg"), ctx.weights.get(item.id, {}).get(set_number))
    if weight is not None:
        weight = round(float(weight), 2)
    if not timed and reps_done is None:
        raise ValidationError("REPS_REQUIRED", fields={"reps": "required for non-timed exercises"})

    rest = item.rest_seconds or s.DEFAULT_REST_SECONDS
    existing = ctx.logs.get(key)
    if existing is not None and (existing.reps_done, existing.seconds_done, existing.weight_kg_done) \
            == (reps_done, seconds_done, weight):
        log.info("duplicate set completion session=%s item=%s set=%d skipped",
                 ctx.session.id, item.id, set_number)
        return SetCompletionResult(existing, duplicate=True, exercise_completed=False,
                                   prompt_rpe_rir=False, rpe_prompt_delay_ms=s.RPE_PROMPT_DELAY_MS,
                                   rest_seconds=rest)

    was_complete = item.id in ctx.completed_ids
    row = SetLogRepository(db).save({
        **ctx.note_scope(item.id),
        "set_number": set_number,
        "reps_done": reps_done,
        "seconds_done": seconds_done,
        "weight_kg_done": weight,
        "marked_done_at": utcnow(),
    })
    ctx.remember_log(row)
    if weight is not None:
        ctx.weights.setdefault(item.id, {})[set_number] = weight
        if weight > 0:
            queue.enqueue("save_weight_preference", save_preference, user_id=ctx.user_id,
                          item_id=item.id, set_number=set_number, weight_kg=weight)
    track_event("set_completed", session_id=ctx.session.id, item_id=item.id, set_number=set_number)

    exercise_completed = False
    if not was_complete and ctx.is_complete(item.id):
        ctx.completed_ids.add(item.id)
        exercise_completed = True
        track_event("exercise_completed", session_id=ctx.session.id, item_id=item.id,
                    exercise_name=item.exercise_name, sets_completed=item.sets)
        if not timed:
            queue.enqueue("reconcile_default_weight", reconcile_default_weight,
                          item_id=item.id, session_id=ctx.session.id)

    return SetCompletionResult(row, duplicate=False, exercise_completed=exercise_completed,
                               prompt_rpe_rir=exercise_completed,
                               rpe_prompt_delay_ms=s.RPE_PROMPT_DELAY_MS, rest_seconds=rest)
