from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps.auth import get_current_user
from app.errors import NotFoundError, OwnershipError
from app.models import User, UserRole
from app.repositories.program_repo import ProgramRepository
from app.schemas.program import ProgramDetail, ProgramRead
from app.services.bootstrap import parse_id

router = APIRouter(prefix="/programs", tags=["programs"])


@router.get("", response_model=list[ProgramRead])
def my_programs(
    db: Session = Depends(get_db),
    current: User = Depends(get_current_user),
    active_only: bool = Query(False),
):
    return ProgramRepository(db).list_for_user(current.id, active_only=active_only)


@router.get("/{program_id}", response_model=ProgramDetail)
def get_program(program_id: str, db: Session = Depends(get_db), current: User = Depends(get_current_user)):
    program = ProgramRepository(db).get(parse_id(program_id))
    if program is None:
        raise NotFoundError("PROGRAM_NOT_FOUND")
    if program.assigned_to != current.id and current.role != UserRole.admin:
        raise OwnershipError("PROGRAM_FORBIDDEN")
    return program
