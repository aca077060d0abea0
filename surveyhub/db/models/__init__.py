from .user import User, UserRole
from .survey import Survey
from .question import Question, QuestionType, QuestionOption
from .response import Response, Answer, SelectedOption, AnonymousSurveyResponse
from .assignment import SurveyAssignment
from .audit_log import AuditLog
