from __future__ import annotations

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from study_planner.config import get_settings
from study_planner.main import app
from study_planner.repositories.study_plans import study_plan_store

BASE = "/api/courses/course-1/study-plan"
USER = {"user_id": "student"}


def _settings(days: int = 70, **overrides) -> dict:
    payload = {
        "exam_date": (date.today() + timedelta(days=days)).isoformat(),
        "study_hours_per_week": 10,
        "self_rating": "NOVICE",
        "preferred_study_days": [1, 3, 5],
        "plan_created_at": date.today().isoformat(),
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def client(seed) -> TestClient:
    seed(module_count=4, flashcards_per_module=3, activities_per_module=2, mock_exams=("Mock A",))
    return TestClient(app)


def _generate(client: TestClient) -> dict:
    assert client.put(f"{BASE}/settings", params=USER, json=_settings()).status_code == 200
    response = client.post(f"{BASE}/generate", params=USER)
    assert response.status_code == 200
    return response.json()


def test_healthz_reports_database(client: TestClient) -> None:
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "reachable"}


def test_healthz_reports_unreachable_database(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("study_planner.main.ping_database", lambda: False)
    assert client.get("/healthz").json() == {"status": "degraded", "database": "unreachable"}


def test_healthz_without_database_url(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STUDY_PLANNER_DATABASE_URL", "")
    get_settings.cache_clear()
    assert client.get("/healthz").json() == {"status": "degraded", "database": "missing"}


def test_save_settings_returns_validation(client: TestClient) -> None:
    response = client.put(f"{BASE}/settings", params=USER, json=_settings(study_hours_per_week=4))

    assert response.status_code == 200
    payload = response.json()
    assert payload["valid"] is True
    assert payload["adjusted_hours"] == 8
    assert payload["weeks_until_exam"] == 10


def test_save_settings_rejects_past_exam(client: TestClient) -> None:
    response = client.put(f"{BASE}/settings", params=USER, json=_settings(days=-1))
    assert response.status_code == 400
    assert "future" in response.json()["detail"]


def test_save_settings_rejects_bad_weekday(client: TestClient) -> None:
    response = client.put(f"{BASE}/settings", params=USER, json=_settings(preferred_study_days=[1, 9]))
    assert response.status_code == 422


def test_save_settings_for_unknown_course(client: TestClient) -> None:
    response = client.put("/api/courses/missing/study-plan/settings", params=USER, json=_settings())
    assert response.status_code == 404


def test_user_id_is_required(client: TestClient) -> None:
    assert client.post(f"{BASE}/generate").status_code == 422


def test_generate_without_settings(client: TestClient) -> None:
    response = client.post(f"{BASE}/generate", params=USER)
    assert response.status_code == 404


def test_generate_failure_maps_to_503(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    def _fail(user_id, course_id):
        raise RuntimeError("inventory offline")

    monkeypatch.setattr("study_planner.study_plan_routes.generate_plan_for_user", _fail)
    response = client.post(f"{BASE}/generate", params=USER)
    assert response.status_code == 503


def test_generate_then_view_weekly_plan(client: TestClient) -> None:
    plan = _generate(client)

    assert plan["phase1_end_week"] == 8
    assert plan["meets_minimum"] is True
    assert {block["task_type"] for block in plan["blocks"]} == {"LEARN", "REVIEW", "PRACTICE"}

    response = client.get(f"{BASE}/weekly", params=USER)
    assert response.status_code == 200
    weeks = response.json()
    assert [week["week_number"] for week in weeks] == list(range(1, 11))
    assert weeks[0]["phase"] == "LEARN"
    exams = [task["description"] for week in weeks for task in week["tasks"] if task["description"] == "Mock A"]
    assert exams == ["Mock A"]


def test_weekly_plan_without_settings(client: TestClient) -> None:
    assert client.get(f"{BASE}/weekly", params=USER).status_code == 404


def test_entries_and_status_updates(client: TestClient) -> None:
    _generate(client)
    entries = client.get(f"{BASE}/entries", params=USER).json()
    assert entries
    entry_id = entries[0]["id"]

    response = client.patch(
        f"{BASE}/entries/{entry_id}",
        params=USER,
        json={"status": "COMPLETED", "actual_time_spent_seconds": 1200},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "COMPLETED"
    assert response.json()["completed_at"] is not None

    regenerated = client.post(f"{BASE}/generate", params=USER)
    assert regenerated.status_code == 200
    refreshed = client.get(f"{BASE}/entries", params=USER).json()
    assert sum(1 for entry in refreshed if entry["status"] == "COMPLETED") == 1


def test_entry_update_is_scoped_to_course_and_user(client: TestClient) -> None:
    _generate(client)
    entry_id = client.get(f"{BASE}/entries", params=USER).json()[0]["id"]

    other_course = client.patch(
        f"/api/courses/course-2/study-plan/entries/{entry_id}", params=USER, json={"status": "COMPLETED"}
    )
    other_user = client.patch(f"{BASE}/entries/{entry_id}", params={"user_id": "intruder"}, json={"status": "COMPLETED"})

    assert other_course.status_code == 404
    assert other_user.status_code == 404
    entries = client.get(f"{BASE}/entries", params=USER).json()
    assert all(entry["status"] == "PENDING" for entry in entries)


def test_entries_date_window(client: TestClient) -> None:
    _generate(client)
    today = date.today()
    window = client.get(
        f"{BASE}/entries",
        params={**USER, "start": today.isoformat(), "end": (today + timedelta(days=6)).isoformat()},
    )
    assert window.status_code == 200
    assert all(today.isoformat() <= entry["date"] <= (today + timedelta(days=6)).isoformat() for entry in window.json())

    backwards = client.get(
        f"{BASE}/entries",
        params={**USER, "start": today.isoformat(), "end": (today - timedelta(days=1)).isoformat()},
    )
    assert backwards.status_code == 400


def test_review_session_endpoint(client: TestClient) -> None:
    module_id = "course-1-m1"
    assert client.post(f"{BASE}/modules/{module_id}/learned", params=USER).status_code == 200

    response = client.get(f"{BASE}/review-session", params={**USER, "kind": "FLASHCARDS", "limit": 2})
    assert response.status_code == 200
    payload = response.json()
    assert payload["selected_ids"] == [f"{module_id}-f01", f"{module_id}-f02"]
    assert len(payload["ordered_ids"]) == 12

    assert client.get(f"{BASE}/review-session", params=USER).status_code == 422
    assert client.get(f"{BASE}/review-session", params={**USER, "kind": "NOTES"}).status_code == 422


def test_mark_unknown_module(client: TestClient) -> None:
    assert client.post(f"{BASE}/modules/nope/learned", params=USER).status_code == 404


def test_phase3_access_endpoint(client: TestClient) -> None:
    locked = client.get(f"{BASE}/phase3-access", params=USER).json()
    assert locked["can_access"] is False
    assert locked["total_modules"] == 4

    for index in range(1, 5):
        client.post(f"{BASE}/modules/course-1-m{index}/learned", params=USER)

    assert client.get(f"{BASE}/phase3-access", params=USER).json()["can_access"] is True
    assert client.get("/api/courses/missing/study-plan/phase3-access", params=USER).status_code == 404


def test_behind_schedule_endpoint(client: TestClient) -> None:
    assert client.get(f"{BASE}/behind-schedule", params=USER).status_code == 404

    _generate(client)
    response = client.get(f"{BASE}/behind-schedule", params=USER)
    assert response.status_code == 200
    assert response.json()["is_behind"] is False


def test_omitted_study_days_use_configured_default(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STUDY_PLANNER_DEFAULT_PREFERRED_DAYS", "[0, 6]")
    get_settings.cache_clear()
    payload = _settings()
    del payload["preferred_study_days"]

    assert client.put(f"{BASE}/settings", params=USER, json=payload).status_code == 200
    assert study_plan_store.get_config("student", "course-1").preferred_study_days == [0, 6]


def test_explicit_empty_study_days_are_kept(client: TestClient) -> None:
    response = client.put(f"{BASE}/settings", params=USER, json=_settings(preferred_study_days=[]))

    assert response.status_code == 200
    assert study_plan_store.get_config("student", "course-1").preferred_study_days == []
