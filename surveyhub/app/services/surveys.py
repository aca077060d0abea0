"""Survey repository: authoring, lookups for intake, publication bookkeeping.

Methods flush but do not commit; the router that owns the request session
commits once the whole operation succeeded.
"""
# app/services/surveys.py
import logging
from datetime import datetime, timezone
from sqlalchemy import select, func, or_, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload
from surveyhub.app.schemas.survey import SurveyCreate, SurveyUpdate, QuestionIn
from surveyhub.app.services.assignments import auto_assign_users
from surveyhub.db.models import (
    Survey,
    Question, QuestionOption,
    SurveyAssignment,
    Response, AnonymousSurveyResponse,
)

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; they are stored as UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _with_questions():
    return selectinload(Survey.questions).selectinload(Question.options)


def _in_order(questions: list[QuestionIn]) -> list[tuple[int, QuestionIn]]:
    """Stable sort on the client `order`, numbered into unique positions."""
    ranked = sorted(enumerate(questions), key=lambda pair: (pair[1].order, pair[0]))
    return [(pos, q) for pos, (_, q) in enumerate(ranked)]


def _options_for(question: QuestionIn) -> list[QuestionOption]:
    return [
        QuestionOption(text=opt.text, position=idx, is_default=opt.is_default)
        for idx, opt in enumerate(question.options)
    ]


def _build_question(question: QuestionIn, position: int) -> Question:
    return Question(
        text=question.text,
        question_type=question.type,
        is_required=question.is_required,
        has_other=question.has_other,
        description=question.description,
        position=position,
        options=_options_for(question),
    )


class SurveyRepository:
    def __init__(self, session: Session):
        self.session = session

    # --- lookups used by response intake ---

    def get_survey_with_questions(self, survey_id: int) -> Survey | None:
        return self.session.scalar(
            select(Survey).options(_with_questions()).where(Survey.id == survey_id)
        )

    def is_user_assigned(self, survey_id: int, user_id: int) -> bool:
        found = self.session.scalar(
            select(SurveyAssignment.id).where(
                SurveyAssignment.survey_id == survey_id,
                SurveyAssignment.user_id == user_id,
                SurveyAssignment.is_removed.is_(False),
            )
        )
        return found is not None

    # --- authoring ---

    def create_survey(self, data: SurveyCreate, owner_id: int) -> Survey:
        survey = Survey(
            title=data.title,
            description=data.description,
            user_id=owner_id,
            is_published=data.is_published,
            is_anonymous=data.is_anonymous,
            is_public=data.is_public,
            start_at=data.start_at,
            end_at=data.end_at,
            questions=[_build_question(q, pos) for pos, q in _in_order(data.questions)],
        )
        self.session.add(survey)
        self.session.flush()

        if survey.is_published and survey.is_public:
            self._auto_assign_public(survey, owner_id)
        return survey

    def update_survey(self, survey: Survey, data: SurveyUpdate, actor_id: int) -> Survey:
        was_public, was_published = survey.is_public, survey.is_published

        fields = data.model_dump(exclude_unset=True, exclude={"questions"})
        for field, value in fields.items():
            if value is None and field not in ("description", "start_at", "end_at"):
                continue
            setattr(survey, field, value)

        if survey.start_at and survey.end_at and as_utc(survey.end_at) < as_utc(survey.start_at):
            raise ValueError("end_at must not be before start_at")

        if data.questions:
            self._replace_questions(survey, data.questions)
        self.session.flush()

        if survey.is_published and survey.is_public and not (was_public and was_published):
            self._auto_assign_public(survey, actor_id)
        return survey

    def _replace_questions(self, survey: Survey, questions: list[QuestionIn]) -> None:
        """Sync the question list: drop missing ids, update known ids, add new ones."""
        existing = {q.id: q for q in survey.questions}
        keep_ids = {q.id for q in questions if q.id is not None}

        for question in list(survey.questions):
            if question.id not in keep_ids:
                survey.questions.remove(question)

        for position, item in _in_order(questions):
            current = existing.get(item.id) if item.id is not None else None
            if current is None:
                survey.questions.append(_build_question(item, position))
                continue
            current.text = item.text
            current.question_type = item.type
            current.is_required = item.is_required
            current.has_other = item.has_other
            current.description = item.description
            current.position = position
            if item.options:
                current.options = _options_for(item)

    def delete_survey(self, survey: Survey) -> None:
        self.session.delete(survey)
        self.session.flush()

    def toggle_published(self, survey: Survey, actor_id: int) -> bool:
        survey.is_published = not survey.is_published
        self.session.flush()
        if survey.is_published and survey.is_public:
            self._auto_assign_public(survey, actor_id)
        return survey.is_published

    def _auto_assign_public(self, survey: Survey, actor_id: int | None) -> None:
        # assignment is bookkeeping only; it never fails the authoring request
        try:
            changed, total, errors = auto_assign_users(self.session, survey.id, actor_id)
        except SQLAlchemyError as e:
            logger.error("Error auto-assigning public survey %s: %s", survey.id, e)
            return
        logger.info("Auto-assigned public survey %s: %d of %d users, %d errors",
                    survey.id, changed, total, len(errors))

    # --- listings ---

    def list_owned(self, owner_id: int, page: int, limit: int, published_only: bool = False) -> tuple[int, list[Survey]]:
        where = [Survey.user_id == owner_id]
        if published_only:
            where.append(Survey.is_published.is_(True))

        total = self.session.scalar(select(func.count(Survey.id)).where(*where)) or 0
        surveys = self.session.scalars(
            select(Survey)
            .options(_with_questions())
            .where(*where)
            .order_by(Survey.created_at.desc(), Survey.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
        return total, list(surveys)

    def list_active_for_user(self, user_id: int, page: int, limit: int) -> tuple[int, list[Survey]]:
        """Published, non-archived surveys that are public or assigned to the user."""
        assigned = select(SurveyAssignment.survey_id).where(
            SurveyAssignment.user_id == user_id,
            SurveyAssignment.is_removed.is_(False),
        )
        where = and_(
            Survey.is_published.is_(True),
            Survey.is_archived.is_(False),
            or_(Survey.is_public.is_(True), Survey.id.in_(assigned)),
        )
        total = self.session.scalar(select(func.count(Survey.id)).where(where)) or 0
        surveys = self.session.scalars(
            select(Survey)
            .options(_with_questions())
            .where(where)
            .order_by(Survey.created_at.desc(), Survey.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
        return total, list(surveys)

    def accessible_surveys(self, user_id: int, published_only: bool) -> list[Survey]:
        """Surveys assigned to the user plus published public surveys."""
        assigned = select(SurveyAssignment.survey_id).where(
            SurveyAssignment.user_id == user_id,
            SurveyAssignment.is_removed.is_(False),
        )
        public = and_(Survey.is_public.is_(True), Survey.is_published.is_(True))
        stmt = select(Survey).options(_with_questions()).where(or_(Survey.id.in_(assigned), public))
        if published_only:
            stmt = stmt.where(Survey.is_published.is_(True))
        return list(self.session.scalars(stmt.order_by(Survey.id)).all())

    def completed_survey_ids(self, user_id: int) -> set[int]:
        direct = self.session.scalars(select(Response.survey_id).where(Response.user_id == user_id)).all()
        anonymous = self.session.scalars(
            select(AnonymousSurveyResponse.survey_id).where(AnonymousSurveyResponse.user_id == user_id)
        ).all()
        return set(direct) | set(anonymous)

    # --- data retention ---

    def archive(self, survey: Survey, actor_id: int) -> Survey:
        survey.is_archived = True
        survey.archived_at = utcnow()
        survey.archived_by = actor_id
        self.session.flush()
        return survey

    def restore(self, survey: Survey) -> Survey:
        survey.is_archived = False
        survey.archived_at = None
        survey.archived_by = None
        self.session.flush()
        return survey

    def set_retention(self, survey: Survey, retention_end_date: datetime) -> Survey:
        survey.retention_end_date = retention_end_date
        self.session.flush()
        return survey

    def list_archived(self, owner_id: int, page: int, limit: int) -> tuple[int, list[Survey]]:
        where = [Survey.is_archived.is_(True), Survey.user_id == owner_id]
        total = self.session.scalar(select(func.count(Survey.id)).where(*where)) or 0
        surveys = self.session.scalars(
            select(Survey)
            .options(_with_questions())
            .where(*where)
            .order_by(Survey.archived_at.desc(), Survey.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
        return total, list(surveys)
