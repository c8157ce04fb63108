from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps.auth import get_current_user
from app.models import User
from app.repositories.workout_session_repo import WorkoutSessionRepository
from app.schemas.workout import (AlternativeSwitch, AlternativeSwitchRead, ExerciseNoteRead, FinishRead,
                                 FinishRequest, ItemWeightsRead, NotesUpdate, RpeSubmit, SessionRead,
                                 SessionStateRead, SetComplete, SetCompletionRead, TouchRead,
                                 WeightUpdate, WorkoutFeedbackIn, WorkoutFeedbackRead)
from app.services import session_finish, weight_prefs
from app.services.bootstrap import SessionContext, bootstrap_session, load_session_context, parse_id
from app.services.set_completion import complete_set
from app.services.tasks import TaskQueue, get_task_queue

router = APIRouter(prefix="/workouts", tags=["workouts"])


def session_context(
    session_id: str,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
) -> SessionContext:
    return load_session_context(db, user_id=current.id, session_id=session_id)


@router.post("/{program_id}/{day_id}/start", response_model=SessionStateRead)
def start_workout(
    program_id: str,
    day_id: str,
    response: Response,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    ctx = bootstrap_session(db, user_id=current.id, program_id=program_id, day_id=day_id)
    response.status_code = status.HTTP_201_CREATED if ctx.created else status.HTTP_200_OK
    return ctx.to_payload()


@router.get("/sessions", response_model=list[SessionRead])
def list_my_sessions(
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    return WorkoutSessionRepository(db).list_by_user(current.id, limit=limit, offset=offset)


@router.get("/sessions/{session_id}", response_model=SessionStateRead)
def get_session_state(ctx: SessionContext = Depends(session_context)):
    return ctx.to_payload()


@router.post("/sessions/{session_id}/sets", response_model=SetCompletionRead)
def complete_workout_set(
    payload: SetComplete,
    background: BackgroundTasks,
    ctx: SessionContext = Depends(session_context),
    db: Session = Depends(get_db),
    queue: TaskQueue = Depends(get_task_queue),
):
    result = complete_set(db, ctx, queue, item_id=payload.item_id, set_number=payload.set_number,
                          reps=payload.reps, seconds=payload.seconds, weight_kg=payload.weight_kg)
    if len(queue):
        background.add_task(queue.run_pending)
    return result.to_dict()


@router.put("/sessions/{session_id}/items/{item_id}/weights/{set_number}", response_model=ItemWeightsRead)
def update_set_weight(
    item_id: str,
    set_number: int,
    payload: WeightUpdate,
    ctx: SessionContext = Depends(session_context),
    db: Session = Depends(get_db),
):
    iid = parse_id(item_id)
    weights = weight_prefs.set_single_weight(db, ctx, item_id=iid, set_number=set_number,
                                             weight_kg=payload.weight_kg)
    return {"item_id": iid, "weights": weights}


@router.put("/sessions/{session_id}/items/{item_id}/weights", response_model=ItemWeightsRead)
def update_all_weights(
    item_id: str,
    payload: WeightUpdate,
    ctx: SessionContext = Depends(session_context),
    db: Session = Depends(get_db),
):
    iid = parse_id(item_id)
    weights = weight_prefs.set_all_weights(db, ctx, item_id=iid, weight_kg=payload.weight_kg)
    return {"item_id": iid, "weights": weights}


@router.put("/sessions/{session_id}/items/{item_id}/notes", response_model=ExerciseNoteRead | None)
def update_notes(
    item_id: str,
    payload: NotesUpdate,
    ctx: SessionContext = Depends(session_context),
    db: Session = Depends(get_db),
):
    return session_finish.save_notes(db, ctx, item_id=parse_id(item_id), notes=payload.notes)


@router.post("/sessions/{session_id}/items/{item_id}/rpe", response_model=ExerciseNoteRead)
def submit_rpe(
    item_id: str,
    payload: RpeSubmit,
    ctx: SessionContext = Depends(session_context),
    db: Session = Depends(get_db),
):
    return session_finish.save_rpe(db, ctx, item_id=parse_id(item_id), rpe=payload.rpe, rir=payload.rir)


@router.post("/sessions/{session_id}/items/{item_id}/alternative", response_model=AlternativeSwitchRead)
def use_alternative(
    item_id: str,
    payload: AlternativeSwitch,
    ctx: SessionContext = Depends(session_context),
    db: Session = Depends(get_db),
):
    return session_finish.switch_alternative(db, ctx, item_id=parse_id(item_id),
                                             alternative_id=payload.alternative_id)


@router.post("/sessions/{session_id}/touch", response_model=TouchRead)
def touch(ctx: SessionContext = Depends(session_context), db: Session = Depends(get_db)):
    ok = session_finish.touch_session(db, ctx)
    return {"ok": ok, "last_activity_at": ctx.session.last_activity_at}


@router.post("/sessions/{session_id}/finish", response_model=FinishRead)
def finish_workout(
    background: BackgroundTasks,
    payload: FinishRequest | None = None,
    ctx: SessionContext = Depends(session_context),
    db: Session = Depends(get_db),
    queue: TaskQueue = Depends(get_task_queue),
):
    outstanding = [o.model_dump(exclude_unset=True) for o in payload.outstanding] if payload else []
    result = session_finish.finish_session(db, ctx, queue, outstanding=outstanding)
    if len(queue):
        background.add_task(queue.run_pending)
    return result.to_dict()


@router.post("/sessions/{session_id}/feedback", response_model=WorkoutFeedbackRead)
def workout_feedback(
    payload: WorkoutFeedbackIn,
    ctx: SessionContext = Depends(session_context),
    db: Session = Depends(get_db),
):
    return session_finish.save_workout_feedback(db, ctx, payload.model_dump())
