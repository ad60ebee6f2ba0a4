"""Route tests for the companion API with the Gemini client mocked out."""

import sys
from datetime import date, datetime
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).parent.parent))

import main
from errors import RemoteCallError
from store import CompanionStore

JPEG = ("packaging.jpg", b"\xff\xd8\xff\xe0fake", "image/jpeg")


@pytest.fixture
def gemini():
    return MagicMock()


@pytest.fixture
def reminders():
    scheduler = MagicMock()
    scheduler.schedule.return_value = datetime(2026, 10, 19, 20, 0)
    return scheduler


@pytest.fixture
def store() -> CompanionStore:
    store = CompanionStore()
    store.login()
    return store


@pytest.fixture
def client(gemini, reminders, store):
    main.app.dependency_overrides[main.get_gemini_client] = lambda: gemini
    main.app.dependency_overrides[main.get_reminders] = lambda: reminders
    main.app.dependency_overrides[main.get_store] = lambda: store
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


class TestSession:
    def test_routes_require_login(self, client, store):
        store.logout()
        assert client.get("/api/v1/medications").status_code == 401
        assert client.post("/api/v1/medications/extract", files={"file": JPEG}).status_code == 401

    def test_login_opens_session(self, client, store):
        store.logout()
        resp = client.post("/api/v1/auth/login", json={"email": "ana@example.com", "password": "x"})
        assert resp.json() == {"logged_in": True}
        assert client.get("/api/v1/medications").status_code == 200

    def test_login_requires_fields(self, client):
        resp = client.post("/api/v1/auth/login", json={"email": "", "password": "x"})
        assert resp.status_code == 422

    def test_register_opens_session(self, client, store):
        store.logout()
        body = {"name": "Ana", "email": "ana@example.com", "password": "x"}
        assert client.post("/api/v1/auth/register", json=body).status_code == 200
        assert client.get("/api/v1/auth/session").json() == {"logged_in": True}

    def test_logout(self, client):
        client.post("/api/v1/auth/logout")
        assert client.get("/api/v1/auth/session").json() == {"logged_in": False}


class TestMedicationRoutes:
    def test_add_medication_schedules_reminder(self, client, reminders):
        resp = client.post("/api/v1/medications", json={"name": "Losartana", "dosage": "50mg", "time": "20:00"})
        assert resp.status_code == 201
        body = resp.json()
        assert body["medication"]["status"] == "due"
        assert body["reminder_at"] == "2026-10-19T20:00"
        reminders.schedule.assert_called_once()

    @pytest.mark.parametrize("time", ["25:99", "24:00", "12:60"])
    def test_add_medication_rejects_impossible_time(self, client, store, reminders, time):
        before = len(store.medications())

        resp = client.post("/api/v1/medications", json={"name": "X", "dosage": "1mg", "time": time})

        assert resp.status_code == 422
        assert len(store.medications()) == before
        reminders.schedule.assert_not_called()

    def test_add_medication_accepts_last_minute_of_day(self, client):
        resp = client.post("/api/v1/medications", json={"name": "X", "dosage": "1mg", "time": "23:59"})
        assert resp.status_code == 201

    def test_add_medication_requires_all_fields(self, client):
        resp = client.post("/api/v1/medications", json={"name": "Losartana", "dosage": "", "time": "20:00"})
        assert resp.status_code == 422

    def test_family_view(self, client):
        resp = client.get("/api/v1/medications/family")
        assert set(resp.json()) == {"Maria Silva", "João Pereira"}

    def test_mark_taken(self, client):
        resp = client.post("/api/v1/medications/2/taken")
        assert resp.json()["status"] == "taken"

    def test_mark_taken_unknown(self, client):
        assert client.post("/api/v1/medications/999/taken").status_code == 404

    def test_duplicate_person(self, client):
        resp = client.post("/api/v1/people", json={"name": "Maria Silva"})
        assert resp.status_code == 409
        assert resp.json()["detail"] == "Essa pessoa já está na sua lista."

    def test_add_person(self, client):
        resp = client.post("/api/v1/people", json={"name": " Ana Souza "})
        assert resp.status_code == 201
        assert "Ana Souza" in client.get("/api/v1/people").json()

    def test_extract_medication(self, client, gemini):
        gemini.generate.return_value = '{"name":"Lisinopril"}'

        resp = client.post("/api/v1/medications/extract", files={"file": JPEG})

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["fields"] == {"name": "Lisinopril", "dosage": "Não identificada"}

    def test_extract_medication_remote_failure(self, client, gemini):
        gemini.generate.side_effect = RemoteCallError("API key not valid")

        resp = client.post("/api/v1/medications/extract", files={"file": JPEG})

        body = resp.json()
        assert resp.status_code == 200
        assert body["status"] == "failed"
        assert body["fields"] == {"name": "Erro ao ler", "dosage": "Erro ao ler"}
        assert body["error"] == "API key not valid"


class TestExamRoutes:
    def test_exams_sorted(self, client):
        client.post("/api/v1/exams", json={
            "name": "Hemograma", "date": "2024-01-05", "time": "07:00", "location": "Lab X",
        })
        names = [e["name"] for e in client.get("/api/v1/exams").json()]
        assert names[0] == "Hemograma"

    def test_add_exam_requires_location(self, client):
        resp = client.post("/api/v1/exams", json={"name": "Hemograma", "date": "2024-01-05", "time": "07:00"})
        assert resp.status_code == 422

    def test_extract_full_exam(self, client, gemini):
        gemini.generate.return_value = (
            '{"name":"Hemograma","date":"2024-08-01","time":"","location":"Lab X","preparation":""}'
        )

        resp = client.post("/api/v1/exams/extract", files={"file": ("pedido.pdf", b"%PDF-1.7", "application/pdf")})

        assert resp.json()["fields"] == {
            "name": "Hemograma", "date": "2024-08-01", "time": "", "location": "Lab X", "preparation": "",
        }
        request = gemini.generate.call_args.args[0]
        assert request.document.mime_type == "application/pdf"


class TestHistoryRoutes:
    def test_upload_adds_record(self, client, gemini):
        gemini.generate.return_value = '{"examName": "Raio-X do Joelho", "examDate": "2023-11-02"}'

        resp = client.post("/api/v1/history/upload", files={"file": JPEG})

        body = resp.json()
        assert body["outcome"]["status"] == "ok"
        assert body["record"]["title"] == "Raio-X do Joelho"
        assert body["record"]["imageUrl"].startswith("data:image/jpeg;base64,")
        assert client.get("/api/v1/history").json()[0]["title"] == "Raio-X do Joelho"

    def test_upload_failure_adds_nothing(self, client, gemini, store):
        gemini.generate.side_effect = RemoteCallError("boom")
        before = len(store.records())

        resp = client.post("/api/v1/history/upload", files={"file": JPEG})

        body = resp.json()
        assert body["record"] is None
        assert body["outcome"]["status"] == "failed"
        assert body["outcome"]["fields"]["examName"] == "Erro ao ler"
        assert body["outcome"]["fields"]["examDate"] == date.today().isoformat()
        assert len(store.records()) == before


class TestGenericExtract:
    def test_unknown_variant(self, client, gemini):
        resp = client.post("/api/v1/extract/prescription", files={"file": JPEG})
        assert resp.status_code == 404
        gemini.generate.assert_not_called()

    def test_exam_summary_not_json(self, client, gemini):
        gemini.generate.return_value = "not json"

        resp = client.post("/api/v1/extract/exam_summary", files={"file": JPEG})

        assert resp.json()["fields"] == {"examName": "Não identificado", "examDate": date.today().isoformat()}


class TestDashboardAndFollow:
    def test_dashboard(self, client):
        body = client.get("/api/v1/dashboard").json()
        assert len(body["medications"]) == 3
        assert body["adherence"][0] == {"day": "Seg", "taken": 3, "missed": 0}

    def test_follow_requests(self, client):
        body = client.get("/api/v1/follow/requests").json()
        assert [r["type"] for r in body] == ["carona", "acompanhante", "carona", "carona+acompanhante"]


class TestHealth:
    def test_health_without_client(self, client):
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert "credential_configured" in body
