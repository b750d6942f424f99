import json
from unittest.mock import MagicMock

import pytest
import redis

from survey_service import cache, schemas, surveys
from survey_service.config import settings

from conftest import STANDARD_SURVEY


@pytest.fixture
def fake_redis(monkeypatch):
    client = MagicMock()
    monkeypatch.setattr(cache, "redis_client", client)
    monkeypatch.setattr(settings, "CACHE_ENABLED", True)
    return client


def test_cache_key():
    assert cache.cache_key("survey_questions", 7) == "survey_questions:7"
    assert cache.cache_key("p", 1, b=2, a=1) == "p:1:a:1:b:2"


def test_miss_reads_database_and_populates_cache(db, author, fake_redis):
    fake_redis.get.return_value = None
    survey = surveys.create_survey(db, schemas.SurveyCreate.model_validate(STANDARD_SURVEY), author.id)

    views = surveys.get_questions(db, survey.id)

    assert [view.text for view in views] == [q["text"] for q in STANDARD_SURVEY["questions"]]
    key, expire, payload = fake_redis.setex.call_args.args
    assert key == f"survey_questions:{survey.id}"
    assert expire == settings.CACHE_EXPIRE_SECONDS
    cached = json.loads(payload)
    assert cached[0]["options"] is None
    assert "is_correct" not in json.dumps(cached)


def test_hit_skips_database(db, fake_redis):
    fake_redis.get.return_value = json.dumps([
        {"id": 1, "text": "Cached?", "type": "SINGLE_CHOICE", "options": [{"id": 5, "text": "Yes"}]},
    ])

    views = surveys.get_questions(db, 999)

    assert views == [schemas.QuestionView(
        id=1, text="Cached?", type="SINGLE_CHOICE", options=[schemas.OptionView(id=5, text="Yes")],
    )]
    fake_redis.setex.assert_not_called()


def test_redis_failure_falls_back_to_database(db, author, fake_redis):
    fake_redis.get.side_effect = redis.ConnectionError("down")
    fake_redis.setex.side_effect = redis.ConnectionError("down")
    survey = surveys.create_survey(db, schemas.SurveyCreate.model_validate(STANDARD_SURVEY), author.id)

    views = surveys.get_questions(db, survey.id)

    assert len(views) == 3


def test_disabled_cache_is_not_touched(db, author, monkeypatch):
    client = MagicMock()
    monkeypatch.setattr(cache, "redis_client", client)
    survey = surveys.create_survey(db, schemas.SurveyCreate.model_validate(STANDARD_SURVEY), author.id)

    surveys.get_questions(db, survey.id)

    client.get.assert_not_called()
    client.setex.assert_not_called()
