from typing import Annotated, Dict, List, Optional, Union

from pydantic import AfterValidator, BaseModel, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel

from .models import QuestionType, Role, SurveyType

OPTIONS_RULE_MESSAGE = (
    "Options must be present for choice-based questions and absent for text questions"
)


def _not_blank(value: str) -> str:
    if not value or not value.strip():
        raise ValueError("must not be blank")
    return value


NonBlankStr = Annotated[str, AfterValidator(_not_blank)]


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True

# Auth schemas
class RegisterRequest(CamelModel):
    username: NonBlankStr
    email: EmailStr
    password: str = Field(min_length=6)

class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6)

class Token(CamelModel):
    token: str

class UserView(CamelModel):
    id: int
    username: str
    email: str
    role: Role

# Survey creation schemas
class OptionCreate(CamelModel):
    text: NonBlankStr
    points: Optional[int] = None
    is_correct: bool = False

class QuestionCreate(CamelModel):
    text: NonBlankStr
    type: QuestionType = QuestionType.TEXT
    options: Optional[List[OptionCreate]] = None

    @model_validator(mode="after")
    def check_options(self):
        if self.type == QuestionType.TEXT:
            valid = not self.options
        else:
            texts = [option.text for option in self.options or []]
            valid = bool(texts) and len(set(texts)) == len(texts)
        if not valid:
            raise ValueError(OPTIONS_RULE_MESSAGE)
        return self

class SurveyCreate(CamelModel):
    title: NonBlankStr
    type: SurveyType = SurveyType.STANDARD
    questions: List[QuestionCreate] = Field(min_length=1)

# Survey read schemas
class OptionView(CamelModel):
    id: int
    text: str

class QuestionView(CamelModel):
    id: int
    text: str
    type: QuestionType
    options: Optional[List[OptionView]] = None

    @classmethod
    def from_entity(cls, question) -> "QuestionView":
        # answer keys and weights are never part of the view
        options = None
        if question.type != QuestionType.TEXT:
            options = [OptionView(id=option.id, text=option.text) for option in question.options]
        return cls(id=question.id, text=question.text, type=question.type, options=options)

class SurveyView(CamelModel):
    id: int
    title: str
    type: SurveyType
    author_id: Optional[int] = None
    questions: List[QuestionView]

    @classmethod
    def from_entity(cls, survey) -> "SurveyView":
        return cls(
            id=survey.id,
            title=survey.title,
            type=survey.type,
            author_id=survey.author_id,
            questions=[QuestionView.from_entity(question) for question in survey.questions],
        )

# Answer submission schemas
#
# The variant of each submitted answer is deduced from the keys of its JSON
# object: {"text"}, {"optionId"} or {"optionIds"}. Unknown keys are rejected so
# that exactly one variant can match.
class TextAnswer(CamelModel):
    text: str

    class Config:
        extra = "forbid"

class SingleChoiceAnswer(CamelModel):
    option_id: int

    class Config:
        extra = "forbid"

class MultipleChoiceAnswer(CamelModel):
    option_ids: List[int] = Field(min_length=1)

    class Config:
        extra = "forbid"

AnswerSubmission = Union[TextAnswer, SingleChoiceAnswer, MultipleChoiceAnswer]

class AnswerRequest(CamelModel):
    answers: List[AnswerSubmission] = Field(min_length=1)

class AnswerView(CamelModel):
    id: int
    question_id: int
    survey_id: int
    text: Optional[str] = None
    selected_option_ids: List[int] = []

    @classmethod
    def from_entity(cls, answer, survey_id: int) -> "AnswerView":
        return cls(
            id=answer.id,
            question_id=answer.question_id,
            survey_id=survey_id,
            text=answer.text,
            selected_option_ids=[selected.option_id for selected in answer.selected_options],
        )

class SubmissionResult(CamelModel):
    answers: List[AnswerView]
    total_score: Optional[int] = None
    correct_answers: Optional[Dict[int, bool]] = None
