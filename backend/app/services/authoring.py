# app/services/authoring.py
"""Coach-side template editing and template -> program assignment."""
from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from app.errors import NotFoundError, ValidationError, translate_db_errors
from app.models import (ClientDay, ClientItem, ClientProgram, ExerciseAlternative, TemplateAlternative,
                        TemplateDay, TemplateItem, WorkoutTemplate)
from app.repositories.program_repo import ProgramRepository
from app.repositories.template_repo import TemplateRepository
from app.repositories.user_repo import UserRepository
from app.services.events import track_event
from app.services.exercise_mode import mode_from_columns, mode_to_columns, process_exercise_input, validate_exercise

log = logging.getLogger(__name__)

ITEM_FIELDS = ("exercise_name", "sets", "reps", "seconds", "weight_kg", "rest_seconds", "coach_notes",
               "video_url", "order_in_day", "is_unilateral", "reps_per_side", "total_reps")
ALTERNATIVE_FIELDS = ("alternative_name", "description", "video_url", "difficulty_level",
                      "equipment_required", "muscle_groups")


# TEMPLATES

def create_template(db: Session, *, created_by: int, title: str, goal: str | None = None,
                    duration_weeks: int = 4) -> WorkoutTemplate:
    tpl = WorkoutTemplate(title=title, goal=goal, duration_weeks=duration_weeks, created_by=created_by)
    return TemplateRepository(db).add_and_refresh(tpl)


def get_template(db: Session, template_id: uuid.UUID) -> WorkoutTemplate:
    tpl = TemplateRepository(db).get_full(template_id)
    if tpl is None:
        raise NotFoundError("TEMPLATE_NOT_FOUND")
    return tpl


def update_template(db: Session, template_id: uuid.UUID, **changes) -> WorkoutTemplate:
    repo = TemplateRepository(db)
    tpl = repo.get(template_id)
    if tpl is None:
        raise NotFoundError("TEMPLATE_NOT_FOUND")
    return repo.update(tpl, **{k: v for k, v in changes.items() if v is not None})


def delete_template(db: Session, template_id: uuid.UUID) -> None:
    repo = TemplateRepository(db)
    tpl = repo.get(template_id)
    if tpl is None:
        raise NotFoundError("TEMPLATE_NOT_FOUND")
    repo.delete(tpl)


# DAYS

def _day(repo: TemplateRepository, day_id: uuid.UUID) -> TemplateDay:
    day = repo.get_day(day_id)
    if day is None:
        raise NotFoundError("DAY_NOT_FOUND")
    return day


def add_day(db: Session, template_id: uuid.UUID, *, title: str, note: str | None = None) -> TemplateDay:
    repo = TemplateRepository(db)
    if repo.get(template_id) is None:
        raise NotFoundError("TEMPLATE_NOT_FOUND")
    day = TemplateDay(template_id=template_id, title=title, note=note,
                      day_order=repo.next_day_order(template_id))
    return repo.add_and_refresh(day)


def update_day(db: Session, day_id: uuid.UUID, **changes) -> TemplateDay:
    repo = TemplateRepository(db)
    return repo.update(_day(repo, day_id), **{k: v for k, v in changes.items() if v is not None})


def delete_day(db: Session, day_id: uuid.UUID) -> None:
    repo = TemplateRepository(db)
    repo.delete(_day(repo, day_id))


# ITEMS

def _clean_item(data: dict[str, Any]) -> dict[str, Any]:
    errors = validate_exercise(data)
    if errors:
        raise ValidationError(fields=errors)
    data = process_exercise_input(data)
    data.update(mode_to_columns(mode_from_columns(data.get("weight_kg"), data.get("seconds"))))
    data["exercise_name"] = data["exercise_name"].strip()
    return {k: data.get(k) for k in ITEM_FIELDS if k in data}


def add_item(db: Session, day_id: uuid.UUID, payload: dict[str, Any]) -> TemplateItem:
    repo = TemplateRepository(db)
    day = _day(repo, day_id)
    values = _clean_item(payload)
    if values.get("order_in_day") is None:
        values["order_in_day"] = repo.next_item_order(day.id)
    return repo.add_and_refresh(TemplateItem(template_day_id=day.id, **values))


def update_item(db: Session, item_id: uuid.UUID, changes: dict[str, Any]) -> TemplateItem:
    repo = TemplateRepository(db)
    item = repo.get_item(item_id)
    if item is None:
        raise NotFoundError("ITEM_NOT_FOUND")
    merged = {k: getattr(item, k) for k in ITEM_FIELDS}
    merged.update(changes)
    return repo.update(item, **_clean_item(merged))


def delete_item(db: Session, item_id: uuid.UUID) -> None:
    repo = TemplateRepository(db)
    item = repo.get_item(item_id)
    if item is None:
        raise NotFoundError("ITEM_NOT_FOUND")
    repo.delete(item)


def add_alternative(db: Session, item_id: uuid.UUID, payload: dict[str, Any]) -> TemplateAlternative:
    repo = TemplateRepository(db)
    if repo.get_item(item_id) is None:
        raise NotFoundError("ITEM_NOT_FOUND")
    if not (payload.get("alternative_name") or "").strip():
        raise ValidationError(fields={"alternative_name": "Alternative name is required"})
    values = {k: payload[k] for k in ALTERNATIVE_FIELDS if payload.get(k) is not None}
    values["alternative_name"] = values["alternative_name"].strip()
    return repo.add_and_refresh(TemplateAlternative(template_item_id=item_id, **values))


def delete_alternative(db: Session, alternative_id: uuid.UUID) -> None:
    repo = TemplateRepository(db)
    alt = repo.get_alternative(alternative_id)
    if alt is None:
        raise NotFoundError("ALTERNATIVE_NOT_FOUND")
    repo.delete(alt)


# REORDER

def _move(repo: TemplateRepository, siblings: list, target, attr: str, direction: str) -> bool:
    if direction not in ("up", "down"):
        raise ValidationError(fields={"direction": "must be 'up' or 'down'"})
    idx = next(i for i, s in enumerate(siblings) if s.id == target.id)
    other = idx - 1 if direction == "up" else idx + 1
    if other < 0 or other >= len(siblings):
        return False
    repo.swap(siblings[idx], siblings[other], attr)
    return True


def move_day(db: Session, day_id: uuid.UUID, direction: str) -> bool:
    """Swap day_order with the neighbouring day. False at either end."""
    repo = TemplateRepository(db)
    day = _day(repo, day_id)
    return _move(repo, repo.days(day.template_id), day, "day_order", direction)


def move_item(db: Session, item_id: uuid.UUID, direction: str) -> bool:
    repo = TemplateRepository(db)
    item = repo.get_item(item_id)
    if item is None:
        raise NotFoundError("ITEM_NOT_FOUND")
    return _move(repo, repo.items(item.template_day_id), item, "order_in_day", direction)


# ASSIGNMENT

def _clone_item(src: TemplateItem) -> ClientItem:
    item = ClientItem(**{k: getattr(src, k) for k in ITEM_FIELDS})
    item.alternatives = [
        ExerciseAlternative(**{k: getattr(alt, k) for k in ALTERNATIVE_FIELDS})
        for alt in src.alternatives
    ]
    return item


def assign_template(db: Session, *, template_id: uuid.UUID, user_email: str, start_date: date,
                    assigned_by: int, title_override: str | None = None,
                    auto_progression_enabled: bool = False) -> ClientProgram:
    """Copy a template's days, items and alternatives into a new program for the user.

    The copy is checked afterwards: a program without days is removed again
    and reported as a failed assignment.
    """
    tpl = TemplateRepository(db).get_full(template_id)
    if tpl is None:
        raise NotFoundError("TEMPLATE_NOT_FOUND")
    user = UserRepository(db).get_by_email(user_email)
    if user is None:
        raise NotFoundError("USER_NOT_FOUND")

    program = ClientProgram(template_id=tpl.id, assigned_to=user.id, assigned_by=assigned_by,
                            title_override=title_override, start_date=start_date,
                            duration_weeks=tpl.duration_weeks,
                            auto_progression_enabled=auto_progression_enabled)
    for src_day in tpl.days:
        day = ClientDay(day_order=src_day.day_order, title=src_day.title, note=src_day.note)
        day.items = [_clone_item(i) for i in src_day.items]
        program.days.append(day)

    programs = ProgramRepository(db)
    with translate_db_errors(db):
        db.add(program)
        db.commit()

    if not programs.days(program.id):
        log.error("assignment produced no days template=%s user=%s", tpl.id, user.id)
        programs.delete(program)
        raise ValidationError("PROGRAM_ASSIGNMENT_FAILED")

    track_event("program_assigned", program_id=program.id, template_id=tpl.id, user_id=user.id)
    return program


def deactivate_program(db: Session, program_id: uuid.UUID) -> ClientProgram:
    programs = ProgramRepository(db)
    program = programs.get(program_id)
    if program is None:
        raise NotFoundError("PROGRAM_NOT_FOUND")
    return programs.deactivate(program)
