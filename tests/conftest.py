import os

# Configure before anything imports app.core.settings.
os.environ["USE_MOCK_DB"] = "true"
os.environ["MOCK_DB_PATH"] = ":memory:"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["GEOCODING_PROVIDER"] = "none"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BOOTSTRAP_ADMIN_EMAIL"] = ""
os.environ["BOOTSTRAP_ADMIN_PASSWORD"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.config.firebase import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.department import DepartmentCreate  # noqa: E402
from app.models.user import OfficerCreateRequest, RegisterRequest  # noqa: E402
from app.services.department_service import get_department_service  # noqa: E402
from app.services.user_service import get_user_service  # noqa: E402
from app.utils.security import create_access_token  # noqa: E402

PASSWORD = "correct-horse-battery"
IMAGE_URL = "https://cdn.civicdesk.in/uploads/pothole.jpg"


@pytest.fixture(autouse=True)
def db():
    store = get_db()
    store.reset()
    yield store
    store.reset()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


def _session(user):
    token = create_access_token(user["id"], user["role"])
    return {
        "id": user["id"],
        "email": user["email"],
        "token": token,
        "headers": {"Authorization": f"Bearer {token}"},
    }


@pytest.fixture
def make_department():
    def _make(name="Roads & Transport", **fields):
        return get_department_service().create_department(DepartmentCreate(name=name, **fields), "test-admin")
    return _make


@pytest.fixture
def make_user():
    """make_user("citizen" | "officer" | "admin", email, departments=[...]) -> session dict"""
    def _make(role, email, departments=None):
        user_service = get_user_service()
        if role == "admin":
            user = user_service.ensure_admin(email, PASSWORD)
        elif role == "officer":
            user = user_service.create_officer(
                OfficerCreateRequest(
                    email=email,
                    password=PASSWORD,
                    full_name="Officer " + email.split("@")[0],
                    assigned_departments=departments or [],
                ),
                "test-admin",
            )
        else:
            user = user_service.register_citizen(
                RegisterRequest(email=email, password=PASSWORD, full_name="Citizen " + email.split("@")[0])
            )
        return _session(user)
    return _make


@pytest.fixture
def department(make_department):
    return make_department("Roads & Transport")


@pytest.fixture
def other_department(make_department):
    return make_department("Water Supply")


@pytest.fixture
def admin(make_user):
    return make_user("admin", "admin@civicdesk.in")


@pytest.fixture
def citizen(make_user):
    return make_user("citizen", "asha@civicdesk.in")


@pytest.fixture
def other_citizen(make_user):
    return make_user("citizen", "ravi@civicdesk.in")


@pytest.fixture
def officer(make_user, department):
    session = make_user("officer", "officer@civicdesk.in", departments=[department["id"]])
    session["dept_headers"] = {**session["headers"], "X-Department-Id": department["id"]}
    return session


def report_payload(department_id, **overrides):
    payload = {
        "title": "Large pothole on MG Road",
        "description": "Deep pothole near the school gate, two-wheelers are skidding.",
        "department_id": department_id,
        "location": {"type": "Point", "coordinates": [73.7898, 19.9975], "address": "MG Road, Nashik"},
        "media": {"images": [IMAGE_URL]},
    }
    payload.update(overrides)
    return payload


def emergency_payload(**overrides):
    payload = {
        "type": "fire",
        "title": "Fire in market shop",
        "description": "Smoke coming out of a shop in the main market lane.",
        "contact_number": "9876543210",
        "location": {"type": "Point", "coordinates": [73.8567, 18.5204], "address": "Main market"},
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def file_report(client):
    """file_report(session, department_id, **overrides) -> created report dict"""
    def _file(session, department_id, **overrides):
        resp = client.post(
            "/api/citizen/reports",
            json=report_payload(department_id, **overrides),
            headers=session["headers"],
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]["report"]
    return _file
