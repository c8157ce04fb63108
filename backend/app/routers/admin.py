from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps.auth import require_role
from app.models import User
from app.repositories.template_repo import TemplateRepository
from app.schemas.program import ProgramDetail, ProgramRead
from app.schemas.template import (AlternativeCreate, AlternativeRead, AssignRequest, DayCreate, DayRead,
                                  DayUpdate, ItemCreate, ItemRead, ItemUpdate, MoveRequest, MoveResult,
                                  TemplateCreate, TemplateRead, TemplateSummary, TemplateUpdate)
from app.services import authoring, progression
from app.services.bootstrap import parse_id

router = APIRouter(prefix="/admin", tags=["admin"])
admin_only = require_role("admin")


# TEMPLATES

@router.get("/templates", response_model=list[TemplateSummary], dependencies=[Depends(admin_only)])
def list_templates(db: Session = Depends(get_db)):
    return TemplateRepository(db).list()


@router.post("/templates", response_model=TemplateRead, status_code=status.HTTP_201_CREATED)
def create_template(payload: TemplateCreate, db: Session = Depends(get_db), coach: User = Depends(admin_only)):
    return authoring.create_template(db, created_by=coach.id, **payload.model_dump())


@router.get("/templates/{template_id}", response_model=TemplateRead, dependencies=[Depends(admin_only)])
def get_template(template_id: str, db: Session = Depends(get_db)):
    return authoring.get_template(db, parse_id(template_id))


@router.patch("/templates/{template_id}", response_model=TemplateRead, dependencies=[Depends(admin_only)])
def update_template(template_id: str, payload: TemplateUpdate, db: Session = Depends(get_db)):
    authoring.update_template(db, parse_id(template_id), **payload.model_dump(exclude_unset=True))
    return authoring.get_template(db, parse_id(template_id))


@router.delete("/templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT,
               dependencies=[Depends(admin_only)])
def delete_template(template_id: str, db: Session = Depends(get_db)):
    authoring.delete_template(db, parse_id(template_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# DAYS

@router.post("/templates/{template_id}/days", response_model=DayRead, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(admin_only)])
def add_day(template_id: str, payload: DayCreate, db: Session = Depends(get_db)):
    return authoring.add_day(db, parse_id(template_id), **payload.model_dump())


@router.patch("/days/{day_id}", response_model=DayRead, dependencies=[Depends(admin_only)])
def update_day(day_id: str, payload: DayUpdate, db: Session = Depends(get_db)):
    return authoring.update_day(db, parse_id(day_id), **payload.model_dump(exclude_unset=True))


@router.delete("/days/{day_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(admin_only)])
def delete_day(day_id: str, db: Session = Depends(get_db)):
    authoring.delete_day(db, parse_id(day_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/days/{day_id}/move", response_model=MoveResult, dependencies=[Depends(admin_only)])
def move_day(day_id: str, payload: MoveRequest, db: Session = Depends(get_db)):
    return {"moved": authoring.move_day(db, parse_id(day_id), payload.direction)}


# ITEMS

@router.post("/days/{day_id}/items", response_model=ItemRead, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(admin_only)])
def add_item(day_id: str, payload: ItemCreate, db: Session = Depends(get_db)):
    return authoring.add_item(db, parse_id(day_id), payload.model_dump())


@router.patch("/items/{item_id}", response_model=ItemRead, dependencies=[Depends(admin_only)])
def update_item(item_id: str, payload: ItemUpdate, db: Session = Depends(get_db)):
    return authoring.update_item(db, parse_id(item_id), payload.model_dump(exclude_unset=True))


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(admin_only)])
def delete_item(item_id: str, db: Session = Depends(get_db)):
    authoring.delete_item(db, parse_id(item_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/items/{item_id}/move", response_model=MoveResult, dependencies=[Depends(admin_only)])
def move_item(item_id: str, payload: MoveRequest, db: Session = Depends(get_db)):
    return {"moved": authoring.move_item(db, parse_id(item_id), payload.direction)}


@router.post("/items/{item_id}/alternatives", response_model=AlternativeRead,
             status_code=status.HTTP_201_CREATED, dependencies=[Depends(admin_only)])
def add_alternative(item_id: str, payload: AlternativeCreate, db: Session = Depends(get_db)):
    return authoring.add_alternative(db, parse_id(item_id), payload.model_dump())


@router.delete("/alternatives/{alternative_id}", status_code=status.HTTP_204_NO_CONTENT,
               dependencies=[Depends(admin_only)])
def delete_alternative(alternative_id: str, db: Session = Depends(get_db)):
    authoring.delete_alternative(db, parse_id(alternative_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# PROGRAMS

@router.post("/templates/{template_id}/assign", response_model=ProgramDetail,
             status_code=status.HTTP_201_CREATED)
def assign_template(template_id: str, payload: AssignRequest, db: Session = Depends(get_db),
                    coach: User = Depends(admin_only)):
    return authoring.assign_template(db, template_id=parse_id(template_id), assigned_by=coach.id,
                                     **payload.model_dump())


@router.post("/programs/{program_id}/deactivate", response_model=ProgramRead, dependencies=[Depends(admin_only)])
def deactivate_program(program_id: str, db: Session = Depends(get_db)):
    return authoring.deactivate_program(db, parse_id(program_id))


@router.post("/programs/{program_id}/auto-progress", dependencies=[Depends(admin_only)])
def auto_progress(program_id: str, db: Session = Depends(get_db)):
    applied = progression.auto_progress_program(db, parse_id(program_id))
    return {"changed": [s.to_dict() for s in applied]}


@router.post("/programs/complete-due", dependencies=[Depends(admin_only)])
def complete_due(db: Session = Depends(get_db)):
    return {"completed": progression.complete_due_programs(db)}


@router.post("/programs/weekly-progression", dependencies=[Depends(admin_only)])
def weekly_progression(db: Session = Depends(get_db)):
    return progression.run_weekly_progression(db)
