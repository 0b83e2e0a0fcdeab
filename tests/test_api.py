import pytest
from fastapi.testclient import TestClient

from hostel_allocation.api.deps import get_clock
from hostel_allocation.db.session import get_db
from hostel_allocation.main import create_app

from tests.conftest import NOW

ADMIN = {"X-Actor-Id": "admin-1", "X-Actor-Role": "admin"}


def student(student_id):
    return {"X-Actor-Id": student_id, "X-Actor-Role": "student"}


@pytest.fixture
def client(session_factory):
    app = create_app()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: NOW
    return TestClient(app)


@pytest.fixture
def hostel_id(client):
    response = client.post("/api/v1/hostels", json={"name": "Zik Hall", "gender_policy": "male"}, headers=ADMIN)
    assert response.status_code == 201
    hostel_id = response.json()["id"]
    response = client.post(
        f"/api/v1/hostels/{hostel_id}/rooms",
        json={"number": "101", "room_type": "double"},
        headers=ADMIN,
    )
    assert response.status_code == 201
    return hostel_id


@pytest.fixture
def window_id(client):
    response = client.post(
        "/api/v1/windows",
        json={
            "name": "Returning 2025",
            "window_type": "returning",
            "start_date": "2025-02-28T00:00:00",
            "end_date": "2025-03-31T00:00:00",
            "max_applications": 5,
            "allow_waitlist": True,
            "waitlist_capacity": 1,
            "eligibility_criteria": {"match_hostel_gender": True},
        },
        headers=ADMIN,
    )
    assert response.status_code == 201
    assert response.json()["status"] == "draft"
    window_id = response.json()["id"]
    response = client.post(f"/api/v1/windows/{window_id}/publish", headers=ADMIN)
    assert response.json()["status"] == "active"
    return window_id


def _application(window_id, hostel_id, student_id, gender="male"):
    return {
        "window_id": window_id,
        "profile": {"student_id": student_id, "gender": gender, "level": 200},
        "preferences": {"hostel_id": hostel_id},
    }


def test_health(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert "X-Request-ID" in response.headers


def test_submit_approve_and_report(client, hostel_id, window_id):
    response = client.post(
        "/api/v1/applications", json=_application(window_id, hostel_id, "stu-a"), headers=student("stu-a")
    )
    assert response.status_code == 201
    application = response.json()
    assert application["status"] == "pending"

    response = client.post(
        f"/api/v1/applications/{application['id']}/decision",
        json={"outcome": "approve", "notes": "Welcome"},
        headers=ADMIN,
    )
    assert response.status_code == 200
    assert response.json()["status"] == "approved"
    assert response.json()["allocated_bed_id"]

    availability = client.get(f"/api/v1/hostels/{hostel_id}/availability").json()
    assert availability == {
        "capacity": 2,
        "occupied": 1,
        "available": 1,
        "out_of_service": 0,
        "occupancy_rate": 50.0,
    }

    stats = client.get(f"/api/v1/windows/{window_id}/stats", headers=ADMIN).json()
    assert stats["current_applications"] == 1
    assert stats["applications_by_status"]["approved"] == 1

    history = client.get(f"/api/v1/applications/{application['id']}/history", headers=student("stu-a")).json()
    assert [entry["to_status"] for entry in history] == ["pending", "approved"]


def test_ineligible_submission_returns_reasons(client, hostel_id, window_id):
    response = client.post(
        "/api/v1/applications",
        json=_application(window_id, hostel_id, "stu-f", gender="female"),
        headers=student("stu-f"),
    )

    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "INELIGIBLE"
    assert error["details"]["reasons"] == ["gender_mismatch"]


def test_duplicate_submission_conflicts(client, hostel_id, window_id):
    payload = _application(window_id, hostel_id, "stu-a")
    client.post("/api/v1/applications", json=payload, headers=student("stu-a"))

    response = client.post("/api/v1/applications", json=payload, headers=student("stu-a"))

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "DUPLICATE_APPLICATION"


def test_students_cannot_decide(client, hostel_id, window_id):
    created = client.post(
        "/api/v1/applications", json=_application(window_id, hostel_id, "stu-a"), headers=student("stu-a")
    ).json()

    response = client.post(
        f"/api/v1/applications/{created['id']}/decision",
        json={"outcome": "approve"},
        headers=student("stu-a"),
    )

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "ACCESS_DENIED"


def test_withdraw_over_http(client, hostel_id, window_id):
    created = client.post(
        "/api/v1/applications", json=_application(window_id, hostel_id, "stu-a"), headers=student("stu-a")
    ).json()

    other = client.post(f"/api/v1/applications/{created['id']}/withdraw", headers=student("stu-b"))
    own = client.post(f"/api/v1/applications/{created['id']}/withdraw", headers=student("stu-a"))

    assert other.status_code == 403
    assert own.status_code == 200
    assert own.json()["status"] == "withdrawn"


def test_unknown_resources_return_404(client):
    response = client.get("/api/v1/windows/missing", headers=ADMIN)

    assert response.status_code == 404
    error = response.json()["error"]
    assert error["code"] == "RESOURCE_NOT_FOUND"
    assert error["details"]["resource_id"] == "missing"


def test_request_validation_uses_error_format(client):
    response = client.post("/api/v1/hostels", json={"name": "Z"}, headers=ADMIN)

    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert "name" in error["details"]["field_errors"]


def test_unknown_role_is_rejected(client):
    response = client.get("/api/v1/windows", headers={"X-Actor-Role": "janitor"})

    assert response.status_code == 422


def test_publish_after_end_date_conflicts(client):
    created = client.post(
        "/api/v1/windows",
        json={
            "name": "Last session",
            "window_type": "graduate",
            "start_date": "2025-01-01T00:00:00",
            "end_date": "2025-02-01T00:00:00",
            "max_applications": 10,
        },
        headers=ADMIN,
    ).json()

    response = client.post(f"/api/v1/windows/{created['id']}/publish", headers=ADMIN)

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "ALREADY_EXPIRED"
