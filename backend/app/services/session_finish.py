# app/services/session_finish.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, fields
from typing import Any

from sqlalchemy.orm import Session

from app.errors import NotFoundError, ValidationError, WorkoutError, translate_db_errors
from app.models import ExerciseNote, WorkoutSession
from app.repositories.note_repo import NoteRepository
from app.repositories.program_repo import ProgramRepository
from app.repositories.workout_session_repo import WorkoutSessionRepository
from app.services.bootstrap import SessionContext
from app.services.events import track_event
from app.services.optimistic import optimistic_apply
from app.services.progression import run_session_progression, workout_multipliers
from app.services.tasks import TaskQueue
from app.timeutil import ensure_aware, utcnow

log = logging.getLogger(__name__)


def _ensure_open(ctx: SessionContext) -> None:
    if ctx.session.ended_at is not None:
        raise ValidationError("SESSION_FINISHED")


# Notes / RPE

def save_notes(db: Session, ctx: SessionContext, *, item_id: uuid.UUID, notes: str | None) -> ExerciseNote | None:
    item = ctx.item(item_id)
    text = (notes or "").strip()
    repo = NoteRepository(db)
    if not text:
        repo.clear_notes(ctx.session.id, item.id)
        ctx.notes.pop(item.id, None)
        return None
    row = repo.save_notes(ctx.note_scope(item.id), text)
    ctx.notes[item.id] = text
    return row


def save_rpe(db: Session, ctx: SessionContext, *, item_id: uuid.UUID, rpe: int | None,
             rir: int | None) -> ExerciseNote:
    item = ctx.item(item_id)
    errors = {}
    if rpe is not None and not 1 <= rpe <= 10:
        errors["rpe"] = "must be between 1 and 10"
    if rir is not None and not 0 <= rir <= 10:
        errors["rir"] = "must be between 0 and 10"
    if errors:
        raise ValidationError(fields=errors)
    row = NoteRepository(db).save_rpe(ctx.note_scope(item.id), rpe=rpe, rir=rir)
    if rpe is not None:
        ctx.rpe[item.id] = rpe
    track_event("rpe_recorded", session_id=ctx.session.id, item_id=item.id, rpe=rpe, rir=rir)
    return row


# Alternatives

def switch_alternative(db: Session, ctx: SessionContext, *, item_id: uuid.UUID,
                       alternative_id: uuid.UUID) -> dict[str, Any]:
    """Run the alternative instead of the prescribed exercise.

    The item row takes the alternative's name and video; the context shows it
    right away and goes back to the previous values when the write fails.
    """
    item = ctx.item(item_id)
    alt = next((a for a in item.alternatives if a.id == alternative_id), None)
    if alt is None:
        raise NotFoundError("ALTERNATIVE_NOT_FOUND")
    programs = ProgramRepository(db)
    new_values = {"exercise_name": alt.alternative_name, "video_url": alt.video_url or item.video_url}

    def snapshot(c: SessionContext):
        return {"exercise_name": item.exercise_name, "video_url": item.video_url}

    def apply(c: SessionContext) -> None:
        for k, v in new_values.items():
            setattr(item, k, v)

    def write(c: SessionContext) -> dict[str, Any]:
        programs.update_item(item, **new_values)
        return {"item_id": item.id, **new_values}

    def restore(c: SessionContext, snap) -> None:
        for k, v in snap.items():
            setattr(item, k, v)

    result = optimistic_apply(ctx, apply, write, snapshot=snapshot, restore=restore)
    track_event("alternative_selected", session_id=ctx.session.id, item_id=item.id,
                alternative_id=alt.id)
    return result


# Heartbeat

def touch_session(db: Session, ctx: SessionContext) -> bool:
    """Advisory liveness stamp; failures are logged, not raised."""
    if ctx.session.ended_at is not None:
        return False
    try:
        WorkoutSessionRepository(db).touch(ctx.session)
        return True
    except WorkoutError as e:
        log.warning("heartbeat failed session=%s: %s", ctx.session.id, e)
        return False


# Finish

@dataclass(slots=True)
class FinishResult:
    session: WorkoutSession
    duration_minutes: int
    sets_logged: int
    exercises_completed: int
    pending_saves_failed: int

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def duration_minutes(started_at, ended_at) -> int:
    delta = ensure_aware(ended_at) - ensure_aware(started_at)
    return max(0, round(delta.total_seconds() / 60))


def finish_session(db: Session, ctx: SessionContext, queue: TaskQueue, *,
                   outstanding: list[dict[str, Any]] | None = None) -> FinishResult:
    """Close the session.

    ``outstanding`` carries per-item notes/RPE/RIR the runner had not saved
    yet; each is attempted, and a failure there does not stop the finish.
    Reps progression is queued for after the response.
    """
    _ensure_open(ctx)
    failed = 0
    for entry in outstanding or []:
        try:
            item_id = uuid.UUID(str(entry["item_id"]))
            if "notes" in entry:
                save_notes(db, ctx, item_id=item_id, notes=entry.get("notes"))
            if entry.get("rpe") is not None or entry.get("rir") is not None:
                save_rpe(db, ctx, item_id=item_id, rpe=entry.get("rpe"), rir=entry.get("rir"))
        except (WorkoutError, KeyError, ValueError) as e:
            failed += 1
            log.warning("outstanding save failed session=%s entry=%s: %s", ctx.session.id, entry, e)

    ended = utcnow()
    minutes = duration_minutes(ctx.session.started_at, ended)
    with translate_db_errors(db):
        WorkoutSessionRepository(db).close(ctx.session, ended_at=ended, duration_minutes=minutes)

    track_event("workout_completed", session_id=ctx.session.id, user_id=ctx.user_id,
                duration_minutes=minutes, sets=len(ctx.logs), exercises=len(ctx.completed_ids))

    session_rpe = {str(n.client_item_id): n.rpe for n in NoteRepository(db).for_session(ctx.session.id)
                   if n.rpe is not None}
    if session_rpe:
        queue.enqueue("session_progression", run_session_progression,
                      user_id=ctx.user_id, session_rpe=session_rpe)

    return FinishResult(ctx.session, minutes, len(ctx.logs), len(ctx.completed_ids), failed)


def save_workout_feedback(db: Session, ctx: SessionContext, feedback: dict[str, Any]) -> dict[str, Any]:
    result = workout_multipliers(feedback)
    WorkoutSessionRepository(db).save_feedback(ctx.session, {**feedback, **result})
    track_event("workout_feedback", session_id=ctx.session.id,
                volume=result["volume_multiplier"], intensity=result["intensity_multiplier"])
    return result
