import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Role(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class SurveyType(str, enum.Enum):
    STANDARD = "STANDARD"
    QUIZ = "QUIZ"
    SCORED = "SCORED"


class QuestionType(str, enum.Enum):
    TEXT = "TEXT"
    SINGLE_CHOICE = "SINGLE_CHOICE"
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(Enum(Role), nullable=False, default=Role.USER)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    surveys = relationship("Survey", back_populates="author")
    submissions = relationship("Submission", back_populates="user")

class Survey(Base):
    __tablename__ = "surveys"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, unique=True, index=True, nullable=False)
    type = Column(Enum(SurveyType), nullable=False, default=SurveyType.STANDARD)
    author_id = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    author = relationship("User", back_populates="surveys")
    questions = relationship(
        "Question",
        back_populates="survey",
        cascade="all, delete-orphan",
        order_by="Question.position",
    )
    submissions = relationship("Submission", back_populates="survey", cascade="all, delete-orphan")

class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    survey_id = Column(Integer, ForeignKey("surveys.id"), nullable=False)
    position = Column(Integer, nullable=False)
    text = Column(Text, nullable=False)
    type = Column(Enum(QuestionType), nullable=False, default=QuestionType.TEXT)

    survey = relationship("Survey", back_populates="questions")
    options = relationship(
        "AnswerOption",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="AnswerOption.position",
    )

class AnswerOption(Base):
    __tablename__ = "answer_options"

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False)
    position = Column(Integer, nullable=False)
    text = Column(Text, nullable=False)
    # is_correct is read for QUIZ surveys, points for SCORED ones
    is_correct = Column(Boolean, nullable=False, default=False)
    points = Column(Integer, nullable=False, default=0)

    question = relationship("Question", back_populates="options")

class Submission(Base):
    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint("survey_id", "user_id", name="uq_submissions_survey_user"),
    )

    id = Column(Integer, primary_key=True, index=True)
    survey_id = Column(Integer, ForeignKey("surveys.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    total_score = Column(Integer, nullable=True)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now())

    survey = relationship("Survey", back_populates="submissions")
    user = relationship("User", back_populates="submissions")
    answers = relationship(
        "Answer",
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="Answer.id",
    )

class Answer(Base):
    __tablename__ = "answers"

    id = Column(Integer, primary_key=True, index=True)
    submission_id = Column(Integer, ForeignKey("submissions.id"), nullable=False)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    # set only for TEXT questions
    text = Column(Text, nullable=True)

    submission = relationship("Submission", back_populates="answers")
    question = relationship("Question")
    selected_options = relationship(
        "SelectedOption",
        back_populates="answer",
        cascade="all, delete-orphan",
        order_by="SelectedOption.position",
    )

class SelectedOption(Base):
    __tablename__ = "selected_options"

    id = Column(Integer, primary_key=True, index=True)
    answer_id = Column(Integer, ForeignKey("answers.id"), nullable=False)
    option_id = Column(Integer, ForeignKey("answer_options.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)

    answer = relationship("Answer", back_populates="selected_options")
    option = relationship("AnswerOption")
