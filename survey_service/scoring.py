"""
Submission validation, persistence and scoring.

A submission is one respondent's complete set of answers for one survey.
Answers are matched to the survey's questions by position: the i-th submitted
answer belongs to the i-th question in creation order. Every answer is
validated against its question's type before anything is written, and the
whole submission is stored in a single commit, so a rejected request leaves
no rows behind.
"""
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models, schemas
from .errors import (
    AlreadySubmitted,
    CountMismatch,
    InvalidAnswerType,
    OptionNotFound,
    OptionsNotFound,
)
from .models import QuestionType, SurveyType
from .surveys import get_survey

logger = logging.getLogger(__name__)

QUESTION_KINDS = {
    QuestionType.TEXT: "text question",
    QuestionType.SINGLE_CHOICE: "single choice question",
    QuestionType.MULTIPLE_CHOICE: "multiple choice question",
}

SUBMISSION_CONSTRAINT = "uq_submissions_survey_user"

EXPECTED_VARIANTS = {
    QuestionType.TEXT: schemas.TextAnswer,
    QuestionType.SINGLE_CHOICE: schemas.SingleChoiceAnswer,
    QuestionType.MULTIPLE_CHOICE: schemas.MultipleChoiceAnswer,
}


def has_submitted(db: Session, survey_id: int, respondent_id: int) -> bool:
    return db.query(models.Submission.id).filter(
        models.Submission.survey_id == survey_id,
        models.Submission.user_id == respondent_id,
    ).first() is not None


def is_duplicate_submission(error: IntegrityError) -> bool:
    # PostgreSQL reports the constraint name, SQLite the constrained columns
    message = str(error.orig)
    return (
        SUBMISSION_CONSTRAINT in message
        or "submissions.survey_id, submissions.user_id" in message
    )


def _resolve_option(db: Session, option_id: int) -> models.AnswerOption:
    option = db.query(models.AnswerOption).filter(models.AnswerOption.id == option_id).first()
    if option is None:
        raise OptionNotFound()
    return option


def _resolve_options(db: Session, option_ids: Sequence[int]) -> List[models.AnswerOption]:
    # the lookup returns each row once, so a repeated id also fails the count
    options = db.query(models.AnswerOption).filter(models.AnswerOption.id.in_(option_ids)).all()
    if len(options) != len(option_ids):
        raise OptionsNotFound()
    by_id = {option.id: option for option in options}
    return [by_id[option_id] for option_id in option_ids]


def build_answer(db: Session, question: models.Question, submission, respondent_id: int) -> models.Answer:
    """Validate one submitted answer against its question and materialize it.

    The variant check runs before any option lookup, so a wrongly shaped
    answer is always reported as ``InvalidAnswerType``.
    """
    if not isinstance(submission, EXPECTED_VARIANTS[question.type]):
        raise InvalidAnswerType(QUESTION_KINDS[question.type])

    answer = models.Answer(question=question, user_id=respondent_id)
    if question.type == QuestionType.TEXT:
        answer.text = submission.text
    elif question.type == QuestionType.SINGLE_CHOICE:
        option = _resolve_option(db, submission.option_id)
        answer.selected_options.append(models.SelectedOption(option=option, position=0))
    else:
        options = _resolve_options(db, submission.option_ids)
        for position, option in enumerate(options):
            answer.selected_options.append(models.SelectedOption(option=option, position=position))
    return answer


def scored_total(answers: Sequence[models.Answer]) -> int:
    # text answers carry no selected options and so add nothing
    return sum(
        selected.option.points
        for answer in answers
        for selected in answer.selected_options
    )


def is_correct(question: models.Question, answer: models.Answer) -> bool:
    selected = [selected.option for selected in answer.selected_options]
    if question.type == QuestionType.SINGLE_CHOICE:
        return len(selected) == 1 and bool(selected[0].is_correct)
    # no partial credit: the selection must equal the answer key exactly
    correct_ids = {option.id for option in question.options if option.is_correct}
    return {option.id for option in selected} == correct_ids


def quiz_outcome(answers: Sequence[models.Answer]) -> Tuple[int, Dict[int, bool]]:
    correct_answers = {}
    for answer in answers:
        question = answer.question
        if question.type == QuestionType.TEXT:
            continue
        correct_answers[question.id] = is_correct(question, answer)
    return sum(correct_answers.values()), correct_answers


def score_answers(survey: models.Survey, answers: Sequence[models.Answer]) -> Tuple[Optional[int], Optional[Dict[int, bool]]]:
    if survey.type == SurveyType.SCORED:
        return scored_total(answers), None
    if survey.type == SurveyType.QUIZ:
        return quiz_outcome(answers)
    return None, None


def submit(
    db: Session,
    survey_id: int,
    respondent_id: int,
    submissions: Sequence[schemas.AnswerSubmission],
) -> schemas.SubmissionResult:
    survey = get_survey(db, survey_id)
    questions = survey.questions

    if len(submissions) != len(questions):
        raise CountMismatch(
            f"Number of answers ({len(submissions)}) does not match "
            f"number of questions ({len(questions)})"
        )

    if has_submitted(db, survey_id, respondent_id):
        logger.info("User %s already submitted survey %s", respondent_id, survey_id)
        raise AlreadySubmitted()

    answers = [
        build_answer(db, question, submission, respondent_id)
        for question, submission in zip(questions, submissions)
    ]

    db_submission = models.Submission(survey_id=survey_id, user_id=respondent_id, answers=answers)
    db.add(db_submission)
    try:
        db.flush()
        total_score, correct_answers = score_answers(survey, answers)
        db_submission.total_score = total_score
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if not is_duplicate_submission(e):
            raise
        # a concurrent submission by the same respondent won the unique index
        logger.info("Concurrent duplicate submission by user %s for survey %s", respondent_id, survey_id)
        raise AlreadySubmitted()

    logger.info(
        "Stored submission %s for survey %s by user %s (score=%s)",
        db_submission.id, survey_id, respondent_id, total_score,
    )
    return schemas.SubmissionResult(
        answers=[schemas.AnswerView.from_entity(answer, survey_id) for answer in answers],
        total_score=total_score,
        correct_answers=correct_answers,
    )
