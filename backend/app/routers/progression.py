from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps.auth import get_current_user
from app.models import User
from app.schemas.progression import (ExerciseFeedbackIn, FeedbackOutcome, RepsSuggestionRead,
                                     WeightProposalRead)
from app.services import progression
from app.services.bootstrap import parse_id

router = APIRouter(prefix="/progression", tags=["progression"])


@router.post("/items/{item_id}/feedback", response_model=FeedbackOutcome)
def exercise_feedback(
    item_id: str,
    payload: ExerciseFeedbackIn,
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
):
    proposal = progression.record_feedback(db, user_id=current.id, item_id=parse_id(item_id),
                                           feedback=payload.feedback, session_id=payload.session_id)
    return {"recorded": True, "proposal": proposal.to_dict() if proposal else None}


@router.post("/items/{item_id}/confirm", response_model=WeightProposalRead)
def confirm_weight_change(item_id: str, db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    return progression.confirm_weight(db, user_id=current.id, item_id=parse_id(item_id)).to_dict()


@router.get("/rpe-suggestion", response_model=RepsSuggestionRead)
def rpe_suggestion(
    reps: str = Query(..., min_length=1, max_length=20),
    rpe: int = Query(..., ge=1, le=10),
    _current: User = Depends(get_current_user),
):
    suggested = progression.suggest_reps(reps, rpe)
    return {"current_reps": reps, "suggested_reps": suggested, "rpe": rpe,
            "action": progression.reps_action(reps, suggested, rpe)}
