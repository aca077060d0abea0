# app/routers/retention.py
import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from surveyhub.app.core.security import Caller, require_role, client_meta
from surveyhub.app.schemas.audit import RetentionIn, AuditLogOut, AuditLogPage
from surveyhub.app.schemas.survey import SurveyOut, SurveyPage
from surveyhub.app.services.audit import log_action, entity_logs, all_logs
from surveyhub.app.services.responses import ResponseRepository
from surveyhub.app.services.surveys import SurveyRepository
from surveyhub.db.session import get_db
from surveyhub.db.models import Survey

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/retention", tags=["retention"])


def _survey_or_404(repo: SurveyRepository, survey_id: int) -> Survey:
    survey = repo.get_survey_with_questions(survey_id)
    if not survey:
        raise HTTPException(status_code=404, detail="Survey not found")
    return survey


def _audit(db: Session, request: Request, caller: Caller, action: str, survey: Survey, **details) -> None:
    ip, user_agent = client_meta(request)
    log_action(
        db,
        user_id=caller.id,
        action=action,
        entity_type="survey",
        entity_id=survey.id,
        details={"surveyTitle": survey.title, **details},
        ip_address=ip,
        user_agent=user_agent,
    )


@router.get("/surveys/archived", response_model=SurveyPage)
async def archived_surveys(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    caller: Caller = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    total, surveys = SurveyRepository(db).list_archived(caller.id, page, limit)
    return SurveyPage(total=total, page=page, limit=limit, surveys=surveys)


@router.post("/surveys/{survey_id}/archive")
async def archive_survey(
    survey_id: int,
    request: Request,
    caller: Caller = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    repo = SurveyRepository(db)
    survey = _survey_or_404(repo, survey_id)
    repo.archive(survey, caller.id)
    _audit(db, request, caller, "archive", survey)
    db.commit()
    return {"message": "Survey archived successfully", "survey": SurveyOut.model_validate(survey)}


@router.post("/surveys/{survey_id}/restore")
async def restore_survey(
    survey_id: int,
    request: Request,
    caller: Caller = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    repo = SurveyRepository(db)
    survey = _survey_or_404(repo, survey_id)
    if not survey.is_archived:
        raise HTTPException(status_code=400, detail="Survey is not archived")
    repo.restore(survey)
    _audit(db, request, caller, "restore", survey)
    db.commit()
    return {"message": "Survey restored successfully", "survey": SurveyOut.model_validate(survey)}


@router.delete("/surveys/{survey_id}/purge")
async def purge_survey(
    survey_id: int,
    request: Request,
    caller: Caller = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    repo = SurveyRepository(db)
    survey = _survey_or_404(repo, survey_id)
    deleted = ResponseRepository(db).count_for_survey(survey_id)
    # the entry outlives the survey it describes
    _audit(db, request, caller, "purge", survey, responsesDeleted=deleted)
    repo.delete_survey(survey)
    db.commit()
    logger.info("Survey %s purged by user %s (%d responses)", survey_id, caller.id, deleted)
    return {"message": "Survey and all associated data permanently deleted", "surveyId": survey_id}


@router.post("/surveys/{survey_id}/retention")
async def set_retention(
    survey_id: int,
    payload: RetentionIn,
    request: Request,
    caller: Caller = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    repo = SurveyRepository(db)
    survey = _survey_or_404(repo, survey_id)
    repo.set_retention(survey, payload.retention_end_date)
    _audit(db, request, caller, "set_retention", survey,
           retentionEndDate=payload.retention_end_date.isoformat())
    db.commit()
    return {"message": "Retention period set successfully", "survey": SurveyOut.model_validate(survey)}


@router.get("/surveys/{survey_id}/logs", response_model=List[AuditLogOut])
async def survey_logs(
    survey_id: int,
    caller: Caller = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    _survey_or_404(SurveyRepository(db), survey_id)
    return entity_logs(db, "survey", survey_id)


@router.get("/logs", response_model=AuditLogPage)
async def audit_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    caller: Caller = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    logs, total, total_pages = all_logs(db, page, limit)
    return AuditLogPage(logs=logs, total=total, page=page, total_pages=total_pages)
