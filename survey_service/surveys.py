import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models, schemas
from .cache import CacheManager
from .errors import DuplicateTitle, NotFound

logger = logging.getLogger(__name__)


def get_survey(db: Session, survey_id: int) -> models.Survey:
    survey = db.query(models.Survey).filter(models.Survey.id == survey_id).first()
    if survey is None:
        raise NotFound(f"Survey with id={survey_id} not found")
    return survey


def create_survey(db: Session, request: schemas.SurveyCreate, author_id: int) -> models.Survey:
    """Build and persist a survey with its questions and options.

    Option correctness and points are stored for every survey type; only the
    scorer decides which of them matter. Title uniqueness is backed by the
    unique index on ``surveys.title``, so a concurrent insert that slips past
    the existence check still ends as ``DuplicateTitle``.
    """
    exists = db.query(models.Survey.id).filter(models.Survey.title == request.title).first()
    if exists:
        raise DuplicateTitle()

    db_survey = models.Survey(title=request.title, type=request.type, author_id=author_id)
    for position, question in enumerate(request.questions):
        db_question = models.Question(text=question.text, type=question.type, position=position)
        if question.type != models.QuestionType.TEXT:
            for option_position, option in enumerate(question.options):
                db_question.options.append(
                    models.AnswerOption(
                        text=option.text,
                        is_correct=option.is_correct,
                        points=option.points or 0,
                        position=option_position,
                    )
                )
        db_survey.questions.append(db_question)

    db.add(db_survey)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateTitle()
    db.refresh(db_survey)

    logger.info(
        "Created %s survey %s with %d questions",
        db_survey.type.value, db_survey.id, len(db_survey.questions),
    )
    return db_survey


def get_questions(db: Session, survey_id: int) -> List[schemas.QuestionView]:
    cached = CacheManager.get_questions(survey_id)
    if cached is not None:
        return [schemas.QuestionView.model_validate(item) for item in cached]

    survey = get_survey(db, survey_id)
    views = [schemas.QuestionView.from_entity(question) for question in survey.questions]
    CacheManager.set_questions(survey_id, [view.model_dump(mode="json") for view in views])
    return views
