# app/routers/assignments.py
import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from surveyhub.app.core.config import settings
from surveyhub.app.core.security import Caller, require_caller, require_role
from surveyhub.app.schemas.assignment import AssignIn, AssignmentOut, AssignResult, AutoAssignOut
from surveyhub.app.schemas.survey import SurveyWithCompletedOut
from surveyhub.app.schemas.user import UserBrief
from surveyhub.app.services import assignments as svc
from surveyhub.app.services.surveys import SurveyRepository
from surveyhub.db.session import get_db
from surveyhub.db.models import Survey, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assignments", tags=["assignments"])


def _survey_or_404(db: Session, survey_id: int) -> Survey:
    survey = db.get(Survey, survey_id)
    if not survey:
        raise HTTPException(status_code=404, detail="Survey not found")
    return survey


@router.post("/assign", response_model=AssignResult, status_code=status.HTTP_201_CREATED)
async def assign_user(
    payload: AssignIn,
    caller: Caller = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    _survey_or_404(db, payload.survey_id)

    if payload.user_id is not None:
        user = db.get(User, payload.user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
    else:
        domain = settings.ASSIGNMENT_EMAIL_DOMAIN
        if domain and not payload.email.strip().lower().endswith(domain.lower()):
            raise HTTPException(status_code=400, detail=f"Only {domain} email addresses are allowed")
        user = svc.user_for_email(db, payload.email)

    assignment, outcome = svc.ensure_assignment(db, payload.survey_id, user.id, caller.id)
    if outcome is svc.AssignOutcome.already_active:
        db.rollback()
        raise HTTPException(status_code=409, detail="User is already assigned to this survey")
    db.commit()
    db.refresh(assignment)

    body = AssignResult(
        message="User reassigned to survey" if outcome is svc.AssignOutcome.reactivated
        else "User assigned to survey successfully",
        assignment=AssignmentOut.model_validate(assignment),
    )
    if outcome is svc.AssignOutcome.reactivated:
        return JSONResponse(status_code=200, content=body.model_dump(mode="json"))
    return body


@router.delete("/{survey_id}/user/{user_id}")
async def remove_user(
    survey_id: int,
    user_id: int,
    caller: Caller = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    assignment = svc.remove_assignment(db, survey_id, user_id, caller.id)
    if assignment is None:
        raise HTTPException(status_code=404, detail="Assignment not found or already removed")
    db.commit()
    return {"message": "User removed from survey successfully"}


@router.get("/survey/{survey_id}/users", response_model=List[UserBrief])
async def survey_users(
    survey_id: int,
    caller: Caller = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    _survey_or_404(db, survey_id)
    return [a.user for a in svc.active_assignees(db, survey_id)]


@router.get("/search-users", response_model=List[UserBrief])
async def search_users(
    query: str | None = Query(None),
    caller: Caller = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    return svc.search_users(db, query)


@router.post("/survey/{survey_id}/auto-assign", response_model=AutoAssignOut, status_code=status.HTTP_201_CREATED)
async def auto_assign(
    survey_id: int,
    caller: Caller = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    _survey_or_404(db, survey_id)
    changed, total, errors = svc.auto_assign_users(db, survey_id, caller.id)
    db.commit()
    return AutoAssignOut(
        message=f"Survey assigned to {changed} users",
        assignment_count=changed,
        total_users=total,
        errors=errors or None,
    )


def _accessible(db: Session, user_id: int, caller: Caller) -> list[SurveyWithCompletedOut]:
    repo = SurveyRepository(db)
    # admins see unpublished drafts too
    surveys = repo.accessible_surveys(user_id, published_only=not caller.is_admin)
    completed = repo.completed_survey_ids(user_id)
    return [
        SurveyWithCompletedOut.model_validate(s).model_copy(update={"completed": s.id in completed})
        for s in surveys
    ]


@router.get("/user/surveys", response_model=List[SurveyWithCompletedOut])
async def my_surveys(caller: Caller = Depends(require_caller), db: Session = Depends(get_db)):
    return _accessible(db, caller.id, caller)


@router.get("/user/{user_id}/surveys", response_model=List[SurveyWithCompletedOut])
async def user_surveys(user_id: int, caller: Caller = Depends(require_caller), db: Session = Depends(get_db)):
    if not caller.is_admin and caller.id != user_id:
        raise HTTPException(status_code=403, detail="Access denied")
    return _accessible(db, user_id, caller)
