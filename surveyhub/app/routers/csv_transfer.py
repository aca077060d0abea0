# app/routers/csv_transfer.py
import logging
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.orm import Session
from surveyhub.app.core.config import settings
from surveyhub.app.core.security import Caller, require_caller, require_role
from surveyhub.app.services.csv_transfer import export_survey_csv, build_import, CsvImportError
from surveyhub.app.services.surveys import SurveyRepository
from surveyhub.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/csv", tags=["csv"])


@router.get("/export/{survey_id}")
async def export_survey(survey_id: int, caller: Caller = Depends(require_caller), db: Session = Depends(get_db)):
    survey = SurveyRepository(db).get_survey_with_questions(survey_id)
    if not survey:
        raise HTTPException(status_code=404, detail="Survey not found")
    if survey.user_id != caller.id and not caller.is_admin:
        raise HTTPException(status_code=403, detail="Not authorized to export this survey")

    return Response(
        content=export_survey_csv(survey),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=survey-{survey_id}.csv"},
    )


@router.post("/import", status_code=status.HTTP_201_CREATED)
async def import_survey(
    file: UploadFile = File(...),
    title: str = Form(...),
    description: str | None = Form(None),
    is_anonymous: bool = Form(False, alias="isAnonymous"),
    is_public: bool = Form(False, alias="isPublic"),
    caller: Caller = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(status_code=400, detail="Only CSV files are allowed")

    content = await file.read()
    if len(content) > settings.CSV_MAX_BYTES:
        raise HTTPException(status_code=400, detail="CSV file is too large")

    try:
        data = build_import(content, title=title, description=description,
                            is_anonymous=is_anonymous, is_public=is_public)
    except CsvImportError as e:
        raise HTTPException(status_code=400, detail=str(e))

    survey = SurveyRepository(db).create_survey(data, caller.id)
    db.commit()
    logger.info("Survey %s imported from CSV by user %s", survey.id, caller.id)
    return {
        "message": "Survey imported successfully",
        "surveyId": survey.id,
        "questionsImported": len(data.questions),
    }
