# app/services/responses.py
import enum
from sqlalchemy import select, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload
from surveyhub.db.models import Response, Answer, SelectedOption, AnonymousSurveyResponse


class CreateResult(str, enum.Enum):
    created = "created"
    already_exists = "already_exists"


def _with_rows():
    return (selectinload(Response.answers), selectinload(Response.selected_options))


class ResponseRepository:
    """Persistence for responses, answers, option selections and completion records.

    Writes are flushed into the session's current transaction; committing is up
    to the caller.
    """

    def __init__(self, session: Session):
        self.session = session

    def find_response(self, survey_id: int, user_id: int) -> Response | None:
        return self.session.scalar(
            select(Response).where(Response.survey_id == survey_id, Response.user_id == user_id)
        )

    def find_anonymous_record(self, survey_id: int, user_id: int) -> bool:
        found = self.session.scalar(
            select(AnonymousSurveyResponse.id).where(
                AnonymousSurveyResponse.survey_id == survey_id,
                AnonymousSurveyResponse.user_id == user_id,
            )
        )
        return found is not None

    def create_response(self, *, survey_id: int, user_id: int | None = None, respondent_email: str | None = None,
                        ip_address: str | None = None, user_agent: str | None = None) -> Response:
        response = Response(
            survey_id=survey_id,
            user_id=user_id,
            respondent_email=respondent_email,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.session.add(response)
        self.session.flush()
        return response

    def create_answer(self, *, response_id: int, question_id: int, value: str) -> Answer:
        answer = Answer(response_id=response_id, question_id=question_id, value=value)
        self.session.add(answer)
        self.session.flush()
        return answer

    def create_selected_option(self, *, response_id: int, question_id: int, option_id: int) -> SelectedOption:
        selection = SelectedOption(response_id=response_id, question_id=question_id, option_id=option_id)
        self.session.add(selection)
        self.session.flush()
        return selection

    def try_create_anonymous_record(self, *, survey_id: int, user_id: int) -> CreateResult:
        """Record that the user completed the survey, tolerating an existing record.

        Runs in a SAVEPOINT so a unique violation leaves the outer transaction usable.
        """
        try:
            with self.session.begin_nested():
                self.session.add(AnonymousSurveyResponse(survey_id=survey_id, user_id=user_id))
        except IntegrityError:
            return CreateResult.already_exists
        return CreateResult.created

    # --- reads ---

    def get(self, response_id: int) -> Response | None:
        return self.session.scalar(
            select(Response).options(*_with_rows()).where(Response.id == response_id)
        )

    def list_for_survey(self, survey_id: int) -> list[Response]:
        return list(self.session.scalars(
            select(Response).options(*_with_rows()).where(Response.survey_id == survey_id).order_by(Response.id)
        ).all())

    def list_for_user(self, user_id: int, email: str | None) -> list[Response]:
        clauses = [Response.user_id == user_id]
        if email:
            clauses.append(Response.respondent_email == email)
        return list(self.session.scalars(
            select(Response).options(*_with_rows()).where(or_(*clauses)).order_by(Response.id)
        ).all())

    def count_for_survey(self, survey_id: int) -> int:
        return self.session.scalar(select(func.count(Response.id)).where(Response.survey_id == survey_id)) or 0
