# app/services/exercise_mode.py
"""
Weighted / Timed / Bodyweight as an explicit variant.

Items store the mode as two nullable columns (``weight_kg`` and ``seconds``).
Everything else in the app goes through ``mode_from_columns`` and
``mode_to_columns`` so the column encoding lives here only.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Union

_FIRST_INT = re.compile(r"\d+")


@dataclass(frozen=True, slots=True)
class Weighted:
    kg: float
    kind: str = "weighted"


@dataclass(frozen=True, slots=True)
class Timed:
    seconds: int
    kind: str = "timed"


@dataclass(frozen=True, slots=True)
class Bodyweight:
    kind: str = "bodyweight"


ExerciseMode = Union[Weighted, Timed, Bodyweight]


def _positive(v) -> bool:
    return v is not None and v > 0


def mode_from_columns(weight_kg: float | None, seconds: int | None) -> ExerciseMode:
    # a row with both set is legacy data; time wins since the runner shows a timer for it
    if _positive(seconds):
        return Timed(seconds=int(seconds))
    if _positive(weight_kg):
        return Weighted(kg=float(weight_kg))
    return Bodyweight()


def mode_to_columns(mode: ExerciseMode) -> dict[str, Any]:
    if isinstance(mode, Timed):
        return {"weight_kg": None, "seconds": mode.seconds}
    if isinstance(mode, Weighted):
        return {"weight_kg": mode.kg, "seconds": None}
    return {"weight_kg": None, "seconds": None}


def item_mode(item) -> ExerciseMode:
    return mode_from_columns(item.weight_kg, item.seconds)


def mode_to_dict(mode: ExerciseMode) -> dict[str, Any]:
    out: dict[str, Any] = {"kind": mode.kind}
    if isinstance(mode, Weighted):
        out["kg"] = mode.kg
    elif isinstance(mode, Timed):
        out["seconds"] = mode.seconds
    return out


def parse_target_reps(reps: str | int | None) -> int | None:
    """'8-12' -> 8, '10' -> 10, 'AMRAP' -> None."""
    if reps is None:
        return None
    if isinstance(reps, int):
        return reps
    m = _FIRST_INT.search(reps)
    return int(m.group()) if m else None


def process_exercise_input(data: dict[str, Any]) -> dict[str, Any]:
    """Normalize an authoring payload before it is written.

    Unilateral items get ``reps_per_side`` from the reps text and
    ``total_reps`` as both sides together; bilateral items clear both.
    """
    out = dict(data)
    reps = out.get("reps")
    if isinstance(reps, int):
        reps = str(reps)
    if isinstance(reps, str):
        reps = reps.strip().replace(" ", "") or None
    out["reps"] = reps

    if out.get("is_unilateral"):
        per_side = parse_target_reps(reps)
        out["reps_per_side"] = per_side
        out["total_reps"] = per_side * 2 if per_side is not None else None
    else:
        out["reps_per_side"] = None
        out["total_reps"] = None
    return out


def validate_exercise(data: dict[str, Any]) -> dict[str, str]:
    """Return field -> message for every problem found; empty means valid."""
    errors: dict[str, str] = {}
    name = (data.get("exercise_name") or "").strip()
    if not name:
        errors["exercise_name"] = "Exercise name is required"

    sets = data.get("sets")
    if sets is None or sets < 1 or sets > 50:
        errors["sets"] = "Sets must be between 1 and 50"

    seconds = data.get("seconds")
    weight = data.get("weight_kg")
    if _positive(seconds) and _positive(weight):
        errors["weight_kg"] = "A timed exercise cannot also have a weight"
    if data.get("mode") == "timed" and not _positive(seconds):
        errors["seconds"] = "Timed exercises need a duration in seconds"
    if not _positive(seconds):
        reps = parse_target_reps(data.get("reps"))
        if reps is None or reps < 1:
            errors["reps"] = "Reps must be at least 1"

    if weight is not None and weight < 0:
        errors["weight_kg"] = "Weight cannot be negative"
    rest = data.get("rest_seconds")
    if rest is not None and rest < 0:
        errors["rest_seconds"] = "Rest cannot be negative"
    return errors
