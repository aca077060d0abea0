"""CSV export and import of survey definitions.

One row per question with the columns `questionText,questionType,options,isRequired`;
options are joined with `|`.
"""
# app/services/csv_transfer.py
import csv
import io
import logging
from pydantic import ValidationError
from surveyhub.app.schemas.survey import QuestionIn, SurveyCreate
from surveyhub.db.models import Survey, QuestionType

logger = logging.getLogger(__name__)

CSV_FIELDS = ["questionText", "questionType", "options", "isRequired"]
REQUIRED_COLUMNS = ("questionText", "questionType")
OPTION_SEPARATOR = "|"

# type names used by the survey builder UI; they differ from the stored ones
FRONTEND_TYPES = {
    "multiple_choice": QuestionType.single_choice,
    "multi_select": QuestionType.multiple_choice,
    "free_text": QuestionType.text,
}


class CsvImportError(ValueError):
    pass


def _truthy(value) -> bool:
    return str(value or "").strip().lower() == "true"


def export_survey_csv(survey: Survey) -> str:
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=CSV_FIELDS)
    writer.writeheader()
    for question in survey.questions:
        writer.writerow({
            "questionText": question.text,
            "questionType": question.question_type.value,
            "options": OPTION_SEPARATOR.join(opt.text for opt in question.options),
            "isRequired": "true" if question.is_required else "false",
        })
    return output.getvalue()


def resolve_question_type(name: str) -> QuestionType:
    name = (name or "").strip()
    if name in FRONTEND_TYPES:
        return FRONTEND_TYPES[name]
    try:
        return QuestionType(name)
    except ValueError:
        valid = ", ".join(t.value for t in QuestionType)
        raise CsvImportError(f"Invalid question type: {name}. Valid types are: {valid}")


def parse_questions_csv(content: bytes | str) -> list[QuestionIn]:
    """Parse an uploaded CSV into question definitions.

    Raises:
        CsvImportError: The file is empty, misses a column or holds an invalid row.
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise CsvImportError("CSV file must be UTF-8 encoded")

    try:
        rows = list(csv.DictReader(io.StringIO(content)))
    except csv.Error as e:
        raise CsvImportError(f"Invalid CSV format: {e}")
    if not rows:
        raise CsvImportError("CSV file is empty or invalid")

    for column in REQUIRED_COLUMNS:
        if column not in rows[0]:
            raise CsvImportError(f"Invalid CSV format: missing '{column}' column")

    questions = []
    for idx, row in enumerate(rows):
        qtype = resolve_question_type(row.get("questionType"))
        raw_options = (row.get("options") or "").strip()
        if qtype.is_choice and not raw_options:
            raise CsvImportError(f"Options are required for {row.get('questionType')} questions")
        options = [o.strip() for o in raw_options.split(OPTION_SEPARATOR) if o.strip()] if qtype.is_choice else []
        try:
            questions.append(QuestionIn(
                text=(row.get("questionText") or "").strip(),
                type=qtype,
                is_required=_truthy(row.get("isRequired")),
                order=idx,
                options=options,
            ))
        except ValidationError as e:
            raise CsvImportError(f"Row {idx + 2}: {e.errors()[0]['msg']}")
    return questions


def build_import(content: bytes | str, *, title: str, description: str | None,
                 is_anonymous: bool, is_public: bool) -> SurveyCreate:
    """Imported surveys always start as unpublished drafts."""
    questions = parse_questions_csv(content)
    try:
        data = SurveyCreate(
            title=title,
            description=description or "",
            is_anonymous=is_anonymous,
            is_public=is_public,
            is_published=False,
            questions=questions,
        )
    except ValidationError as e:
        raise CsvImportError(e.errors()[0]["msg"])
    logger.info("Parsed %d questions from CSV for survey '%s'", len(questions), title)
    return data
