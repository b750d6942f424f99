from fastapi.testclient import TestClient

from survey_service import surveys
from survey_service.main import app


def test_unexpected_error_is_hidden(client, auth_headers, monkeypatch):
    def explode(db, survey_id):
        raise RuntimeError("database password is hunter2")

    monkeypatch.setattr(surveys, "get_questions", explode)
    response = TestClient(app, raise_server_exceptions=False).get("/surveys/1", headers=auth_headers)

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_invalid_path_parameter(client, auth_headers):
    response = client.get("/surveys/abc", headers=auth_headers)
    assert response.status_code == 400
    assert "path.survey_id" in response.json()["errors"]


def test_submission_receipt_is_scheduled(client, auth_headers, monkeypatch):
    from survey_service import tasks

    sent = []
    monkeypatch.setattr(tasks, "send_submission_receipt", lambda *args: sent.append(args))
    survey = client.post(
        "/surveys",
        json={"title": "One question", "questions": [{"text": "Why?"}]},
        headers=auth_headers,
    ).json()

    response = client.post(f"/surveys/{survey['id']}/submit", json={"answers": [{"text": "Because"}]}, headers=auth_headers)

    assert response.status_code == 201
    assert sent == [("alice@example.com", "alice", "One question", None)]
