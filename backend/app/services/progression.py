# app/services/progression.py
"""
Progression heuristics.

Reps follow reported exertion (RPE):

    RPE <= 5   +1 rep, up to 15
    RPE 6      +1 rep, up to 12
    RPE 7-8    keep
    RPE 9      -1 rep, not below 5
    RPE 10     -2 reps, not below 3

Weight only moves on three-way exercise feedback, and only after the same
signal arrived ``FEEDBACK_CONFIRMATIONS`` times in a row; even then it is a
proposal until the user confirms it.

Everything here is best effort: a failing estimate is logged and dropped,
never raised into the workout flow.
"""
from __future__ import annotations

import logging
import math
import re
import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any

from sqlalchemy.orm import Session

from app.errors import NotFoundError, OwnershipError, ValidationError
from app.models import ClientItem, FeedbackValue
from app.repositories.feedback_repo import FeedbackRepository
from app.repositories.note_repo import NoteRepository
from app.repositories.program_repo import ProgramRepository
from app.services.events import track_event
from app.services.exercise_mode import Weighted, item_mode, mode_to_columns
from app.settings import get_settings
from app.timeutil import utcnow

log = logging.getLogger(__name__)

_RANGE = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")
_SINGLE = re.compile(r"^\s*(\d+)\s*$")


def rpe_bucket(rpe: float) -> int | None:
    """Snap an RPE (possibly an average) onto a table row."""
    if rpe is None or rpe < 1 or rpe > 10:
        return None
    if rpe <= 5:
        return 5
    if rpe <= 6:
        return 6
    if rpe < 9:
        return 8
    if rpe < 10:
        return 9
    return 10


def adjust_reps(reps: int, rpe: float) -> int:
    bucket = rpe_bucket(rpe)
    if bucket == 5:
        return reps + 1 if reps < 15 else reps
    if bucket == 6:
        return reps + 1 if reps < 12 else reps
    if bucket == 9:
        return reps - 1 if reps > 5 else reps
    if bucket == 10:
        return max(3, reps - 2) if reps > 3 else reps
    return reps


def suggest_reps(reps: str | None, rpe: float) -> str | None:
    """Apply the table to a reps prescription; ranges move both ends.

    Returns None when the prescription has no numbers to move or the RPE is
    out of range.
    """
    if reps is None or rpe_bucket(rpe) is None:
        return None
    m = _RANGE.match(reps)
    if m:
        lo, hi = adjust_reps(int(m.group(1)), rpe), adjust_reps(int(m.group(2)), rpe)
        return f"{lo}-{max(lo, hi)}"
    m = _SINGLE.match(reps)
    if m:
        return str(adjust_reps(int(m.group(1)), rpe))
    return None


def reps_action(reps: str | None, suggested: str | None, rpe: float) -> str:
    if suggested is None:
        return "none"
    # RPE 8 leaves the numbers alone, so this is the prescription in canonical form
    if suggested == suggest_reps(reps, 8):
        return "maintain"
    return "increase" if rpe_bucket(rpe) <= 6 else "decrease"


@dataclass(slots=True)
class RepsSuggestion:
    item_id: uuid.UUID
    current_reps: str | None
    suggested_reps: str
    rpe: float
    source: str  # "history" | "session"

    @property
    def action(self) -> str:
        return reps_action(self.current_reps, self.suggested_reps, self.rpe)

    def to_dict(self) -> dict[str, Any]:
        return {"item_id": self.item_id, "current_reps": self.current_reps,
                "suggested_reps": self.suggested_reps, "rpe": self.rpe,
                "source": self.source, "action": self.action}


def _suggest(item: ClientItem, rpe: float, source: str) -> RepsSuggestion:
    suggested = suggest_reps(item.reps, rpe)
    if suggested is None:
        raise ValueError(f"cannot adjust reps {item.reps!r} at rpe {rpe}")
    return RepsSuggestion(item.id, item.reps, suggested, rpe, source)


def history_rpe(db: Session, *, user_id: int, item_id: uuid.UUID) -> float:
    weeks = get_settings().PROGRESSION_WEEKS_BACK
    values = NoteRepository(db).rpe_values_since(user_id, item_id, utcnow() - timedelta(weeks=weeks))
    if not values:
        raise LookupError("no RPE history")
    return sum(values) / len(values)


def estimate_reps(db: Session, *, user_id: int, item_id: uuid.UUID,
                  session_rpe: float | None = None) -> RepsSuggestion | None:
    """History average first, then this session's RPE alone, then nothing."""
    item = ProgramRepository(db).get_item(item_id)
    if item is None:
        return None
    try:
        return _suggest(item, history_rpe(db, user_id=user_id, item_id=item_id), "history")
    except Exception as e:
        log.warning("history progression failed item=%s: %s", item_id, e)
    if session_rpe is None:
        return None
    try:
        return _suggest(item, session_rpe, "session")
    except Exception as e:
        log.error("progression suppressed item=%s: %s", item_id, e)
        return None


def apply_reps(db: Session, suggestion: RepsSuggestion) -> bool:
    if suggestion.action == "maintain":
        return False
    programs = ProgramRepository(db)
    item = programs.get_item(suggestion.item_id)
    if item is None:
        return False
    programs.update_item(item, reps=suggestion.suggested_reps)
    track_event("reps_progressed", item_id=item.id, old=suggestion.current_reps,
                new=suggestion.suggested_reps, rpe=suggestion.rpe, source=suggestion.source)
    return True


def run_session_progression(db: Session, *, user_id: int, session_rpe: dict[str, int]) -> list[RepsSuggestion]:
    """Background task after finishing: one estimate per item that got an RPE."""
    applied: list[RepsSuggestion] = []
    for item_key, rpe in session_rpe.items():
        suggestion = estimate_reps(db, user_id=user_id, item_id=uuid.UUID(str(item_key)), session_rpe=rpe)
        if suggestion and apply_reps(db, suggestion):
            applied.append(suggestion)
    return applied


def auto_progress_program(db: Session, program_id: uuid.UUID) -> list[RepsSuggestion]:
    programs = ProgramRepository(db)
    program = programs.get(program_id)
    if program is None:
        raise NotFoundError("PROGRAM_NOT_FOUND")
    applied: list[RepsSuggestion] = []
    for item in programs.items_for_program(program.id):
        suggestion = estimate_reps(db, user_id=program.assigned_to, item_id=item.id)
        if suggestion and apply_reps(db, suggestion):
            applied.append(suggestion)
    log.info("auto-progress program=%s changed=%d", program.id, len(applied))
    return applied


def complete_due_programs(db: Session, *, today: date | None = None) -> list[uuid.UUID]:
    """Active programs past start_date + duration_weeks become completed."""
    today = today or utcnow().date()
    programs = ProgramRepository(db)
    due = [p for p in programs.active_started_before(today)
           if p.start_date + timedelta(weeks=p.duration_weeks) <= today]
    if due:
        programs.mark_completed(due, at=utcnow())
        for p in due:
            track_event("program_completed", program_id=p.id, user_id=p.assigned_to)
    return [p.id for p in due]


def run_weekly_progression(db: Session) -> dict[str, Any]:
    progressed: dict[str, int] = {}
    for program in ProgramRepository(db).active_auto_progression():
        try:
            progressed[str(program.id)] = len(auto_progress_program(db, program.id))
        except Exception as e:
            log.error("auto-progress failed program=%s: %s", program.id, e)
            db.rollback()
    completed = complete_due_programs(db)
    return {"progressed": progressed, "completed": completed}


# Weight feedback

def weight_step(current_kg: float) -> float:
    raw = min(2.5, max(0.25, current_kg * 0.02))
    return math.floor(raw / 0.25 + 0.5) * 0.25


def propose_weight(current_kg: float, feedback: FeedbackValue) -> float:
    if feedback == FeedbackValue.just_right:
        return current_kg
    step = weight_step(current_kg)
    new = current_kg + step if feedback == FeedbackValue.too_easy else current_kg - step
    return max(0.0, round(new, 2))


@dataclass(slots=True)
class WeightProposal:
    item_id: uuid.UUID
    feedback: FeedbackValue
    current_kg: float
    suggested_kg: float
    feedback_ids: list[uuid.UUID] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"item_id": self.item_id, "feedback": self.feedback.value,
                "current_kg": self.current_kg, "suggested_kg": self.suggested_kg}


def _owned_item(db: Session, user_id: int, item_id: uuid.UUID) -> ClientItem:
    programs = ProgramRepository(db)
    item = programs.get_item(item_id)
    if item is None:
        raise NotFoundError("ITEM_NOT_FOUND")
    if programs.owner_of_item(item_id) != user_id:
        raise OwnershipError("PROGRAM_FORBIDDEN")
    return item


def pending_proposal(db: Session, *, user_id: int, item: ClientItem) -> WeightProposal | None:
    needed = get_settings().FEEDBACK_CONFIRMATIONS
    streak = FeedbackRepository(db).recent_unconsumed(user_id, item.id, limit=needed)
    if len(streak) < needed:
        return None
    signal = streak[0].feedback
    if signal == FeedbackValue.just_right or any(f.feedback != signal for f in streak):
        return None
    mode = item_mode(item)
    if not isinstance(mode, Weighted):
        return None
    suggested = propose_weight(mode.kg, signal)
    if suggested == mode.kg:
        return None
    return WeightProposal(item.id, signal, mode.kg, suggested, [f.id for f in streak])


def record_feedback(db: Session, *, user_id: int, item_id: uuid.UUID, feedback: FeedbackValue,
                    session_id: uuid.UUID | None = None) -> WeightProposal | None:
    item = _owned_item(db, user_id, item_id)
    FeedbackRepository(db).add(item_id=item.id, user_id=user_id, feedback=feedback, session_id=session_id)
    track_event("exercise_feedback", item_id=item.id, feedback=feedback.value)
    return pending_proposal(db, user_id=user_id, item=item)


def confirm_weight(db: Session, *, user_id: int, item_id: uuid.UUID) -> WeightProposal:
    item = _owned_item(db, user_id, item_id)
    proposal = pending_proposal(db, user_id=user_id, item=item)
    if proposal is None:
        raise ValidationError("NO_PENDING_PROPOSAL")
    ProgramRepository(db).update_item(item, **mode_to_columns(Weighted(proposal.suggested_kg)))
    FeedbackRepository(db).consume(proposal.feedback_ids)
    track_event("weight_progressed", item_id=item.id, old=proposal.current_kg, new=proposal.suggested_kg,
                feedback=proposal.feedback.value)
    return proposal


# Workout-level feedback

_VOLUME_RANGE = (0.8, 1.2)
_INTENSITY_RANGE = (0.85, 1.15)


def workout_multipliers(feedback: dict[str, Any]) -> dict[str, Any]:
    energy = feedback.get("energy")
    soreness = feedback.get("soreness")
    pump = feedback.get("pump")
    volume, intensity = 1.0, 1.0
    recommendations: list[str] = []

    if energy == "low" and soreness == "high":
        volume = 0.9
        recommendations.append("Reduce volume due to low energy and high soreness")
    elif energy == "high" and soreness == "none":
        volume = 1.05
        recommendations.append("Increase volume: high energy and no soreness")

    if soreness == "high":
        volume *= 0.95
        recommendations.append("Reduce volume due to high soreness")
    elif soreness == "none" and energy == "normal":
        volume *= 1.02
        recommendations.append("Slight volume increase: no soreness")

    if pump == "poor" and energy == "normal":
        volume *= 1.03
        recommendations.append("Increase volume to improve muscle pump")
    elif pump == "excellent" and soreness == "mild":
        volume *= 0.98
        recommendations.append("Keep current volume: excellent pump achieved")

    if feedback.get("joint_pain"):
        intensity *= 0.95
        recommendations.append("Reduce intensity due to joint pain")

    difficulty = feedback.get("overall_difficulty")
    if difficulty == "too_easy":
        volume *= 1.05
        intensity *= 1.02
        recommendations.append("Increase volume and intensity: workout too easy")
    elif difficulty == "too_hard":
        volume *= 0.9
        intensity *= 0.95
        recommendations.append("Reduce volume and intensity: workout too hard")

    volume = min(_VOLUME_RANGE[1], max(_VOLUME_RANGE[0], volume))
    intensity = min(_INTENSITY_RANGE[1], max(_INTENSITY_RANGE[0], intensity))
    return {
        "volume_multiplier": round(volume, 4),
        "intensity_multiplier": round(intensity, 4),
        "recommendations": recommendations,
    }
