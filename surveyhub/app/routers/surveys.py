# app/routers/surveys.py
import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from surveyhub.app.core.security import Caller, optional_caller, require_caller, require_role
from surveyhub.app.schemas.survey import SurveyCreate, SurveyUpdate, SurveyOut, SurveyPage, PublishToggleOut
from surveyhub.app.services.surveys import SurveyRepository
from surveyhub.db.session import get_db
from surveyhub.db.models import Survey

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/surveys", tags=["surveys"])


def owned_survey(repo: SurveyRepository, survey_id: int, caller: Caller) -> Survey:
    survey = repo.get_survey_with_questions(survey_id)
    if not survey:
        raise HTTPException(status_code=404, detail="Survey not found")
    if survey.user_id != caller.id and not caller.is_admin:
        raise HTTPException(status_code=403, detail="Not authorized to modify this survey")
    return survey


@router.get("", response_model=SurveyPage)
async def list_surveys(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    show_published_only: bool = Query(False),
    caller: Caller = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    total, surveys = SurveyRepository(db).list_owned(caller.id, page, limit, published_only=show_published_only)
    return SurveyPage(total=total, page=page, limit=limit, surveys=surveys)


@router.post("", response_model=SurveyOut, status_code=status.HTTP_201_CREATED)
async def create_survey(
    payload: SurveyCreate,
    caller: Caller = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    repo = SurveyRepository(db)
    survey = repo.create_survey(payload, caller.id)
    db.commit()
    logger.info("Survey %s created by user %s", survey.id, caller.id)
    return repo.get_survey_with_questions(survey.id)


@router.get("/assigned", response_model=SurveyPage)
async def assigned_surveys(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    caller: Caller = Depends(require_caller),
    db: Session = Depends(get_db),
):
    total, surveys = SurveyRepository(db).list_active_for_user(caller.id, page, limit)
    return SurveyPage(total=total, page=page, limit=limit, surveys=surveys)


@router.get("/{survey_id}", response_model=SurveyOut)
async def get_survey(
    survey_id: int,
    caller: Caller | None = Depends(optional_caller),
    db: Session = Depends(get_db),
):
    repo = SurveyRepository(db)
    survey = repo.get_survey_with_questions(survey_id)
    if not survey:
        raise HTTPException(status_code=404, detail="Survey not found")

    if not survey.is_anonymous and caller is None:
        raise HTTPException(status_code=401, detail="Authentication required to view this survey")

    if (caller is not None and caller.role == "user" and not survey.is_public
            and not survey.is_anonymous and not repo.is_user_assigned(survey.id, caller.id)):
        raise HTTPException(status_code=403, detail="You are not assigned to this survey")
    return survey


@router.put("/{survey_id}", response_model=SurveyOut)
async def update_survey(
    survey_id: int,
    payload: SurveyUpdate,
    caller: Caller = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    repo = SurveyRepository(db)
    survey = owned_survey(repo, survey_id, caller)
    try:
        repo.update_survey(survey, payload, caller.id)
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    db.commit()
    db.expire_all()
    return repo.get_survey_with_questions(survey_id)


@router.delete("/{survey_id}")
async def delete_survey(
    survey_id: int,
    caller: Caller = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    repo = SurveyRepository(db)
    survey = owned_survey(repo, survey_id, caller)
    repo.delete_survey(survey)
    db.commit()
    logger.info("Survey %s deleted by user %s", survey_id, caller.id)
    return {"message": "Survey deleted successfully"}


@router.post("/{survey_id}/toggle-publish", response_model=PublishToggleOut)
@router.post("/{survey_id}/toggle-archive", response_model=PublishToggleOut, include_in_schema=False)
async def toggle_publish(
    survey_id: int,
    caller: Caller = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    repo = SurveyRepository(db)
    survey = owned_survey(repo, survey_id, caller)
    published = repo.toggle_published(survey, caller.id)
    db.commit()
    state = "published" if published else "unpublished"
    return PublishToggleOut(message=f"Survey {state} successfully", is_published=published)
