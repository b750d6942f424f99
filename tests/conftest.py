import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_ENABLED"] = "false"
os.environ["SMTP_HOST"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from survey_service import models
from survey_service.database import Base, get_db
from survey_service.main import app

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, email="alice@example.com", username="alice", password="password"):
    response = client.post(
        "/auth/register",
        json={"username": username, "email": email, "password": password},
    )
    assert response.status_code == 201, response.text
    return response.json()["token"]


@pytest.fixture
def auth_headers(client):
    return {"Authorization": f"Bearer {register(client)}"}


@pytest.fixture
def other_headers(client):
    token = register(client, email="bob@example.com", username="bob")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def author(db):
    user = models.User(username="author", email="author@example.com", hashed_password="x")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def respondent(db):
    user = models.User(username="respondent", email="respondent@example.com", hashed_password="x")
    db.add(user)
    db.commit()
    return user


def option_id(survey_view, question_index, text):
    """Look up an option id by its text in a survey view returned by the API."""
    options = survey_view["questions"][question_index]["options"]
    return next(option["id"] for option in options if option["text"] == text)


SCORED_SURVEY = {
    "title": "Developer experience",
    "type": "SCORED",
    "questions": [
        {
            "text": "What is your level?",
            "type": "SINGLE_CHOICE",
            "options": [
                {"text": "Beginner", "points": 1},
                {"text": "Intermediate", "points": 3},
                {"text": "Expert", "points": 5},
            ],
        },
        {
            "text": "Which frameworks have you used?",
            "type": "MULTIPLE_CHOICE",
            "options": [
                {"text": "Spring", "points": 3},
                {"text": "Ktor", "points": 3},
                {"text": "Micronaut", "points": 2},
            ],
        },
    ],
}

QUIZ_SURVEY = {
    "title": "JVM trivia",
    "type": "QUIZ",
    "questions": [
        {
            "text": "What is Java EE called now?",
            "type": "SINGLE_CHOICE",
            "options": [
                {"text": "Jakarta", "isCorrect": True},
                {"text": "Spring"},
            ],
        },
        {
            "text": "Which Java versions are LTS?",
            "type": "MULTIPLE_CHOICE",
            "options": [
                {"text": "Java8", "isCorrect": True},
                {"text": "Java11", "isCorrect": True},
                {"text": "Java13"},
                {"text": "Java15", "isCorrect": True},
            ],
        },
    ],
}

STANDARD_SURVEY = {
    "title": "Programming languages",
    "type": "STANDARD",
    "questions": [
        {"text": "What is your primary programming language?", "type": "TEXT"},
        {
            "text": "Favourite editor?",
            "type": "SINGLE_CHOICE",
            "options": [{"text": "Vim", "points": 4, "isCorrect": True}, {"text": "Emacs"}],
        },
        {
            "text": "Operating systems you use?",
            "type": "MULTIPLE_CHOICE",
            "options": [{"text": "Linux", "points": 2}, {"text": "macOS"}, {"text": "Windows"}],
        },
    ],
}
