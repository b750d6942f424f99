import logging
from contextlib import asynccontextmanager
from typing import List

from fastapi import BackgroundTasks, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from . import auth, models, schemas, scoring, surveys, tasks
from .config import configure_logging
from .database import engine, get_db
from .errors import SurveyServiceError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    models.Base.metadata.create_all(bind=engine)
    yield
    engine.dispose()


app = FastAPI(
    title="Survey API",
    description="API for creating surveys and scoring submitted answers",
    lifespan=lifespan,
)

# Error handlers
@app.exception_handler(SurveyServiceError)
async def survey_service_error_handler(request: Request, exc: SurveyServiceError):
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message}, headers=headers)

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part != "body") or "body"
        message = error["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, message)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"errors": errors})

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )

# Authentication endpoints
@app.post("/auth/register", response_model=schemas.Token, status_code=status.HTTP_201_CREATED)
def register(request: schemas.RegisterRequest, db: Session = Depends(get_db)):
    return schemas.Token(token=auth.register(db, request))

@app.post("/auth/login", response_model=schemas.Token)
def login(request: schemas.LoginRequest, db: Session = Depends(get_db)):
    return schemas.Token(token=auth.login(db, request))

# User endpoints
@app.get("/users/me", response_model=schemas.UserView)
def read_users_me(current_user: models.User = Depends(auth.get_current_user)):
    return current_user

# Survey endpoints
@app.post("/surveys", response_model=schemas.SurveyView, status_code=status.HTTP_201_CREATED)
def create_survey(
    request: schemas.SurveyCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    db_survey = surveys.create_survey(db, request, author_id=current_user.id)
    return schemas.SurveyView.from_entity(db_survey)

@app.get("/surveys/{survey_id}", response_model=List[schemas.QuestionView])
def read_survey_questions(
    survey_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    return surveys.get_questions(db, survey_id)

@app.post(
    "/surveys/{survey_id}/submit",
    response_model=schemas.SubmissionResult,
    status_code=status.HTTP_201_CREATED,
)
def submit_answers(
    survey_id: int,
    request: schemas.AnswerRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(auth.get_current_user)
):
    result = scoring.submit(db, survey_id, current_user.id, request.answers)

    survey = surveys.get_survey(db, survey_id)
    background_tasks.add_task(
        tasks.send_submission_receipt,
        current_user.email,
        current_user.username,
        survey.title,
        result.total_score,
    )
    return result
