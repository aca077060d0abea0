# app/routers/responses.py
import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session
from surveyhub.app.core.config import settings
from surveyhub.app.core.security import Caller, optional_caller, require_caller, require_role, client_meta
from surveyhub.app.schemas.response import ResponseCreate, ResponseOut
from surveyhub.app.services.intake import ResponseIntake, IntakeError, MissingRequiredAnswer, RequestMeta
from surveyhub.app.services.responses import ResponseRepository
from surveyhub.app.services.surveys import SurveyRepository
from surveyhub.db.session import get_db
from surveyhub.db.models import Survey

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/responses", tags=["responses"])


def get_intake(db: Session = Depends(get_db)) -> ResponseIntake:
    return ResponseIntake(
        SurveyRepository(db),
        ResponseRepository(db),
        require_assignment=settings.REQUIRE_ASSIGNMENT,
    )


def intake_http_error(error: IntakeError) -> HTTPException:
    detail = {"message": error.message, "kind": error.kind.value}
    if isinstance(error, MissingRequiredAnswer):
        detail["questionId"] = error.question_id
    return HTTPException(status_code=error.status_code, detail=detail)


@router.post("", response_model=ResponseOut, status_code=status.HTTP_201_CREATED)
async def submit_response(
    payload: ResponseCreate,
    request: Request,
    caller: Caller | None = Depends(optional_caller),
    intake: ResponseIntake = Depends(get_intake),
):
    ip, user_agent = client_meta(request)
    try:
        return intake.submit(
            payload.survey_id,
            [(a.question_id, a.value) for a in payload.answers],
            caller,
            RequestMeta(ip_address=ip, user_agent=user_agent),
        )
    except IntakeError as e:
        if e.status_code >= 500:
            logger.error("Response intake failed for survey %s: %s", payload.survey_id, e.message)
        raise intake_http_error(e)


def _survey_for_owner(db: Session, survey_id: int, caller: Caller) -> Survey:
    survey = db.get(Survey, survey_id)
    if not survey:
        raise HTTPException(status_code=404, detail="Survey not found")
    if survey.user_id != caller.id and not caller.is_admin:
        raise HTTPException(status_code=403, detail="Not authorized to view these responses")
    return survey


@router.get("/survey/{survey_id}", response_model=List[ResponseOut])
async def survey_responses(
    survey_id: int,
    caller: Caller = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    _survey_for_owner(db, survey_id, caller)
    return ResponseRepository(db).list_for_survey(survey_id)


@router.get("/user/me", response_model=List[ResponseOut])
async def my_responses(caller: Caller = Depends(require_caller), db: Session = Depends(get_db)):
    return ResponseRepository(db).list_for_user(caller.id, caller.email)


@router.get("/{response_id}", response_model=ResponseOut)
async def get_response(response_id: int, caller: Caller = Depends(require_caller), db: Session = Depends(get_db)):
    response = ResponseRepository(db).get(response_id)
    if not response:
        raise HTTPException(status_code=404, detail="Response not found")
    _survey_for_owner(db, response.survey_id, caller)
    return response
