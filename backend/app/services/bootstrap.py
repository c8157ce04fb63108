# app/services/bootstrap.py
"""
Session bootstrap: turn (user, program, day) into a runner context.

Checks identifiers, ownership and program state, finds or opens the
session, and loads everything the runner needs to pre-fill its inputs: set
logs, resolved per-set weights, the latest notes/RPE per item and the RIR
reported in an earlier session.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.orm import Session

from app.errors import (InactiveError, NotFoundError, OwnershipError, ValidationError,
                        translate_db_errors)
from app.models import ClientDay, ClientItem, ClientProgram, ProgramStatus, SetLog, WorkoutSession
from app.repositories.note_repo import NoteRepository
from app.repositories.program_repo import ProgramRepository
from app.repositories.set_log_repo import SetLogRepository
from app.repositories.workout_session_repo import WorkoutSessionRepository
from app.services.events import track_event
from app.services.exercise_mode import item_mode, mode_to_dict
from app.services.video import embed_url
from app.services.weight_prefs import load_weights
from app.settings import get_settings

log = logging.getLogger(__name__)

SetKey = tuple[uuid.UUID, int]


@dataclass
class SessionContext:
    user_id: int
    session: WorkoutSession
    program: ClientProgram
    day: ClientDay
    items: list[ClientItem]
    logs: dict[SetKey, SetLog] = field(default_factory=dict)
    # what the runner shows in each set's inputs
    inputs: dict[SetKey, dict[str, Any]] = field(default_factory=dict)
    weights: dict[uuid.UUID, dict[int, float | None]] = field(default_factory=dict)
    notes: dict[uuid.UUID, str] = field(default_factory=dict)
    rpe: dict[uuid.UUID, int] = field(default_factory=dict)
    rir: dict[uuid.UUID, int] = field(default_factory=dict)
    completed_ids: set[uuid.UUID] = field(default_factory=set)
    created: bool = False

    def item(self, item_id: uuid.UUID) -> ClientItem:
        for it in self.items:
            if it.id == item_id:
                return it
        raise NotFoundError("ITEM_NOT_FOUND")

    def logged_sets(self, item_id: uuid.UUID) -> int:
        item = self.item(item_id)
        return sum(1 for n in range(1, item.sets + 1) if (item_id, n) in self.logs)

    def is_complete(self, item_id: uuid.UUID) -> bool:
        return self.logged_sets(item_id) >= self.item(item_id).sets

    def remember_log(self, row: SetLog) -> None:
        key = (row.client_item_id, row.set_number)
        self.logs[key] = row
        self.inputs[key] = {"reps": row.reps_done, "seconds": row.seconds_done,
                            "weight_kg": row.weight_kg_done}

    def note_scope(self, item_id: uuid.UUID) -> dict[str, Any]:
        """Key columns shared by every per-item row written for this session."""
        return {"session_id": self.session.id, "client_item_id": item_id,
                "client_day_id": self.day.id, "program_id": self.program.id,
                "user_id": self.user_id}

    def to_payload(self) -> dict[str, Any]:
        s = get_settings()
        items = []
        for it in self.items:
            items.append({
                "id": it.id,
                "exercise_name": it.exercise_name,
                "sets": it.sets,
                "reps": it.reps,
                "rest_seconds": it.rest_seconds or s.DEFAULT_REST_SECONDS,
                "coach_notes": it.coach_notes,
                "video_url": it.video_url,
                "embed_url": embed_url(it.video_url),
                "order_in_day": it.order_in_day,
                "is_unilateral": it.is_unilateral,
                "reps_per_side": it.reps_per_side,
                "total_reps": it.total_reps,
                "mode": mode_to_dict(item_mode(it)),
                "alternatives": [
                    {"id": a.id, "alternative_name": a.alternative_name, "description": a.description,
                     "video_url": a.video_url, "embed_url": embed_url(a.video_url),
                     "difficulty_level": a.difficulty_level}
                    for a in it.alternatives
                ],
                "weights": self.weights.get(it.id, {}),
                "completed_sets": self.logged_sets(it.id),
                "completed": it.id in self.completed_ids,
                "notes": self.notes.get(it.id),
                "rpe": self.rpe.get(it.id),
                "previous_rir": self.rir.get(it.id),
            })
        return {
            "session": self.session,
            "program_id": self.program.id,
            "day": {"id": self.day.id, "title": self.day.title, "note": self.day.note,
                    "day_order": self.day.day_order},
            "created": self.created,
            "items": items,
            "logs": sorted(self.logs.values(), key=lambda l: (str(l.client_item_id), l.set_number)),
            "policy": {
                "default_rest_seconds": s.DEFAULT_REST_SECONDS,
                "rpe_prompt_delay_ms": s.RPE_PROMPT_DELAY_MS,
                "notes_debounce_ms": s.NOTES_DEBOUNCE_MS,
                "heartbeat_interval_seconds": s.HEARTBEAT_INTERVAL_SECONDS,
            },
        }


def parse_id(value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError("INVALID_IDENTIFIER")


def _hydrate(db: Session, *, user_id: int, session: WorkoutSession, program: ClientProgram,
             day: ClientDay, items: list[ClientItem], created: bool) -> SessionContext:
    ctx = SessionContext(user_id=user_id, session=session, program=program, day=day,
                         items=items, created=created)
    for row in SetLogRepository(db).for_session(session.id):
        ctx.remember_log(row)
    ctx.weights = load_weights(db, user_id=user_id, session_id=session.id, items=items,
                               session_logs=ctx.logs)
    ids = [i.id for i in items]
    notes = NoteRepository(db)
    ctx.notes = notes.latest_notes(user_id, ids)
    ctx.rpe = notes.latest_rpe(user_id, ids)
    ctx.rir = notes.previous_rir(user_id, ids, current_session=session.id)
    ctx.completed_ids = {i.id for i in items if ctx.is_complete(i.id)}
    return ctx


def bootstrap_session(db: Session, *, user_id: int, program_id: Any, day_id: Any) -> SessionContext:
    pid, did = parse_id(program_id), parse_id(day_id)
    programs = ProgramRepository(db)
    with translate_db_errors(db):
        program = programs.get_owned(pid, user_id)
        if program is None:
            # second look so the caller learns *why*
            if programs.get(pid) is not None:
                raise OwnershipError("PROGRAM_FORBIDDEN")
            raise NotFoundError("PROGRAM_NOT_FOUND")
        if not program.is_active or program.status != ProgramStatus.active:
            raise InactiveError("PROGRAM_INACTIVE")

        day = programs.get_day(did)
        if day is None:
            raise NotFoundError("DAY_NOT_FOUND")
        if day.client_program_id != program.id:
            raise OwnershipError("DAY_FORBIDDEN")

        items = programs.items_for_day(day.id)
        if not items:
            raise NotFoundError("DAY_EMPTY")

        session, created = WorkoutSessionRepository(db).find_or_create_open(user_id, program.id, day.id)
        ctx = _hydrate(db, user_id=user_id, session=session, program=program, day=day,
                       items=items, created=created)

    if created:
        track_event("workout_started", user_id=user_id, program_id=program.id, day_id=day.id,
                    session_id=session.id)
    log.info("bootstrap user=%s session=%s created=%s items=%d logs=%d",
             user_id, session.id, created, len(items), len(ctx.logs))
    return ctx


def load_session_context(db: Session, *, user_id: int, session_id: Any) -> SessionContext:
    """Re-hydrate an existing session for a follow-up request. Never creates one."""
    sid = parse_id(session_id)
    programs = ProgramRepository(db)
    with translate_db_errors(db):
        session = WorkoutSessionRepository(db).get(sid)
        if session is None:
            raise NotFoundError("SESSION_NOT_FOUND")
        if session.user_id != user_id:
            raise OwnershipError("SESSION_FORBIDDEN")
        program = programs.get(session.client_program_id)
        day = programs.get_day(session.client_day_id)
        if program is None or day is None:
            raise NotFoundError("PROGRAM_NOT_FOUND")
        items = programs.items_for_day(day.id)
        return _hydrate(db, user_id=user_id, session=session, program=program, day=day,
                        items=items, created=False)
