"""Survey response intake.

Validates that a survey currently accepts a submission from the caller,
normalizes the raw answers against the survey's questions, and persists one
Response with its Answers and SelectedOptions in a single transaction.

Checks run in a fixed order so the caller gets the most fundamental failure
first: survey state, time window, authentication, duplicates, then required
answers. Nothing is written before all of them pass.
"""
# app/services/intake.py
import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Union
from fastapi import status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from surveyhub.app.core.security import Caller
from surveyhub.app.services.responses import ResponseRepository, CreateResult
from surveyhub.app.services.surveys import SurveyRepository, as_utc
from surveyhub.db.models import Survey, Question, QuestionType, Response

logger = logging.getLogger(__name__)

OTHER_PREFIX = "OTHER:"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ErrorKind(str, enum.Enum):
    survey_not_found = "SurveyNotFound"
    survey_not_active = "SurveyNotActive"
    survey_not_started = "SurveyNotStarted"
    survey_ended = "SurveyEnded"
    authentication_required = "AuthenticationRequired"
    not_assigned = "NotAssigned"
    already_responded = "AlreadyResponded"
    missing_required_answer = "MissingRequiredAnswer"
    storage_failure = "StorageFailure"


class IntakeError(Exception):
    kind: ErrorKind
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SurveyNotFound(IntakeError):
    kind = ErrorKind.survey_not_found
    status_code = status.HTTP_404_NOT_FOUND


class SurveyNotActive(IntakeError):
    kind = ErrorKind.survey_not_active


class SurveyNotStarted(IntakeError):
    kind = ErrorKind.survey_not_started


class SurveyEnded(IntakeError):
    kind = ErrorKind.survey_ended


class AuthenticationRequired(IntakeError):
    kind = ErrorKind.authentication_required
    status_code = status.HTTP_401_UNAUTHORIZED


class NotAssigned(IntakeError):
    kind = ErrorKind.not_assigned
    status_code = status.HTTP_403_FORBIDDEN


class AlreadyResponded(IntakeError):
    kind = ErrorKind.already_responded
    status_code = status.HTTP_409_CONFLICT


class MissingRequiredAnswer(IntakeError):
    kind = ErrorKind.missing_required_answer

    def __init__(self, question: Question):
        super().__init__(f"Question '{question.text}' is required")
        self.question_id = question.id


class StorageFailure(IntakeError):
    kind = ErrorKind.storage_failure
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


# --- answer values, resolved once per submitted answer ---

@dataclass(frozen=True)
class TextValue:
    raw: str


@dataclass(frozen=True)
class NumericValue:
    number: Union[int, float]
    raw: str


@dataclass(frozen=True)
class ChoiceListValue:
    raw: str
    option_ids: tuple[int, ...]
    others: tuple[str, ...]


AnswerValue = Union[TextValue, NumericValue, ChoiceListValue]

RawValue = Union[str, int, float, list, None]


@dataclass(frozen=True)
class SubmittedAnswer:
    question_id: int
    value: RawValue


@dataclass(frozen=True)
class NormalizedAnswer:
    question_id: int
    value: AnswerValue


@dataclass(frozen=True)
class RequestMeta:
    ip_address: str | None = None
    user_agent: str | None = None


def parse_question_id(value) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def collect_answers(raw_answers: Iterable[tuple[object, RawValue]]) -> list[SubmittedAnswer]:
    """Keep answers whose question id is an integer; the first of duplicates wins."""
    seen: set[int] = set()
    answers = []
    for raw_id, value in raw_answers:
        question_id = parse_question_id(raw_id)
        if question_id is None:
            logger.warning("Skipping answer with invalid questionId: %r", raw_id)
            continue
        if question_id in seen:
            logger.warning("Skipping repeated answer for question %s", question_id)
            continue
        seen.add(question_id)
        answers.append(SubmittedAnswer(question_id=question_id, value=value))
    return answers


def is_blank(value: RawValue) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, list):
        return all(is_blank(v) for v in value)
    return False


def _raw_text(value: RawValue) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return ",".join(str(v).strip() for v in value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _parse_number(value: RawValue) -> Union[int, float, None]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            return None
    return None


def _choice_tokens(value: RawValue) -> list[str]:
    if value is None:
        return []
    if isinstance(value, list):
        parts = [str(v) for v in value]
    else:
        parts = _raw_text(value).split(",")
    return [p.strip() for p in parts if p.strip()]


def normalize_value(question: Question, value: RawValue) -> AnswerValue:
    """Resolve a raw JSON value into the answer variant for the question type."""
    raw = _raw_text(value)

    if question.question_type.is_choice:
        valid_ids = {opt.id for opt in question.options}
        option_ids: list[int] = []
        others: list[str] = []
        for token in _choice_tokens(value):
            if token.startswith(OTHER_PREFIX):
                if not question.has_other:
                    logger.warning("Question %s received an OTHER entry but has no 'other' choice", question.id)
                others.append(token)
                continue
            option_id = parse_question_id(token)
            if option_id is None:
                logger.warning("Invalid option ID format for question %s: %r", question.id, token)
                continue
            if option_id not in valid_ids:
                logger.warning("Option ID %s not found for question %s", option_id, question.id)
                continue
            if option_id not in option_ids:
                option_ids.append(option_id)
        return ChoiceListValue(raw=raw, option_ids=tuple(option_ids), others=tuple(others))

    if question.question_type in (QuestionType.number, QuestionType.rating):
        number = _parse_number(value)
        if number is not None:
            return NumericValue(number=number, raw=raw)

    return TextValue(raw=raw)


def normalize_answers(survey: Survey, answers: list[SubmittedAnswer]) -> list[NormalizedAnswer]:
    questions = {q.id: q for q in survey.questions}
    normalized = []
    for answer in answers:
        question = questions.get(answer.question_id)
        if question is None:
            logger.warning("Skipping answer for unknown question %s in survey %s", answer.question_id, survey.id)
            continue
        normalized.append(NormalizedAnswer(question_id=question.id, value=normalize_value(question, answer.value)))
    return normalized


class ResponseIntake:
    """Validates and stores survey submissions.

    Args:
        surveys: Survey lookups.
        responses: Response persistence; shares the session with `surveys`.
        clock: Returns the current aware datetime.
        require_assignment: Gate non-public surveys on an active assignment.
    """

    def __init__(self, surveys: SurveyRepository, responses: ResponseRepository,
                 clock: Callable[[], datetime] = utcnow, require_assignment: bool = False):
        self.surveys = surveys
        self.responses = responses
        self.clock = clock
        self.require_assignment = require_assignment

    def check_eligibility(self, survey: Survey, caller: Caller | None) -> None:
        if not survey.is_published:
            raise SurveyNotActive("This survey is not currently active")
        if survey.is_archived:
            raise SurveyNotActive("This survey has been archived")

        now = self.clock()
        if survey.start_at and as_utc(survey.start_at) > now:
            raise SurveyNotStarted("This survey has not started yet")
        if survey.end_at and as_utc(survey.end_at) < now:
            raise SurveyEnded("This survey has already ended")

        if not survey.is_anonymous and caller is None:
            raise AuthenticationRequired("Authentication required to submit responses to this survey")

        if (self.require_assignment and caller is not None and caller.role == "user"
                and not survey.is_public and not self.surveys.is_user_assigned(survey.id, caller.id)):
            raise NotAssigned("You are not assigned to this survey")

        if survey.is_public and survey.is_anonymous:
            return
        if survey.is_anonymous:
            if caller is not None and self.responses.find_anonymous_record(survey.id, caller.id):
                raise AlreadyResponded("You have already submitted a response for this survey")
            return
        if self.responses.find_response(survey.id, caller.id) is not None:
            raise AlreadyResponded("You have already submitted a response for this survey")

    @staticmethod
    def check_required(survey: Survey, answers: list[SubmittedAnswer]) -> None:
        submitted = {a.question_id: a.value for a in answers}
        for question in survey.questions:
            if question.is_required and is_blank(submitted.get(question.id)):
                raise MissingRequiredAnswer(question)

    def submit(self, survey_id: int, raw_answers: Iterable[tuple[object, RawValue]],
               caller: Caller | None, meta: RequestMeta | None = None) -> Response:
        """Run the checks, then persist the response.

        Raises:
            IntakeError: A subclass naming the first failed check, or StorageFailure.
        """
        survey = self.surveys.get_survey_with_questions(survey_id)
        if survey is None:
            raise SurveyNotFound("Survey not found")

        answers = collect_answers(raw_answers)
        self.check_eligibility(survey, caller)
        self.check_required(survey, answers)
        normalized = normalize_answers(survey, answers)

        response_id = self._persist(survey, normalized, caller, meta or RequestMeta())
        logger.info("Stored response %s for survey %s (%d answers)", response_id, survey_id, len(normalized))
        return self.responses.get(response_id)

    def _persist(self, survey: Survey, answers: list[NormalizedAnswer],
                 caller: Caller | None, meta: RequestMeta) -> int:
        session = self.responses.session
        try:
            if survey.is_anonymous:
                # nothing that identifies the caller is stored with the answers
                response = self.responses.create_response(survey_id=survey.id)
                if caller is not None and not survey.is_public:
                    result = self.responses.try_create_anonymous_record(survey_id=survey.id, user_id=caller.id)
                    if result is CreateResult.already_exists:
                        # lost a race with a concurrent submission; keep neither this response nor its answers
                        session.rollback()
                        raise AlreadyResponded("You have already submitted a response for this survey")
            else:
                response = self.responses.create_response(
                    survey_id=survey.id,
                    user_id=caller.id,
                    respondent_email=caller.email,
                    ip_address=meta.ip_address,
                    user_agent=meta.user_agent,
                )
        except IntegrityError:
            session.rollback()
            raise AlreadyResponded("You have already submitted a response for this survey")
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Error creating response for survey %s: %s", survey.id, e)
            raise StorageFailure("Could not store the response")

        response_id = response.id
        for answer in answers:
            self._persist_answer(response_id, answer)

        try:
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Error committing response for survey %s: %s", survey.id, e)
            raise StorageFailure("Could not store the response")
        return response_id

    def _persist_answer(self, response_id: int, answer: NormalizedAnswer) -> None:
        session = self.responses.session
        try:
            with session.begin_nested():
                self.responses.create_answer(
                    response_id=response_id, question_id=answer.question_id, value=answer.value.raw
                )
        except SQLAlchemyError as e:
            logger.warning("Error creating answer for question %s: %s", answer.question_id, e)
            return

        if not isinstance(answer.value, ChoiceListValue):
            return
        for option_id in answer.value.option_ids:
            try:
                with session.begin_nested():
                    self.responses.create_selected_option(
                        response_id=response_id, question_id=answer.question_id, option_id=option_id
                    )
            except SQLAlchemyError as e:
                logger.warning("Error storing option %s for question %s: %s", option_id, answer.question_id, e)
