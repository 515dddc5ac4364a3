import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from clinic.core.security import create_access_token, get_password_hash
from clinic.database import get_session
from clinic.main import app
from clinic.models.service import Service
from clinic.models.user import ROLE_ADMIN, User


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def service(session):
    svc = Service(service_name="Initial Consultation", description="First visit", duration_minutes=60)
    session.add(svc)
    session.commit()
    session.refresh(svc)
    return svc


@pytest.fixture
def admin_user(session):
    admin = User(
        full_name="Clinic Admin",
        email="admin@clinic.local",
        password_hash=get_password_hash("admin123"),
        role=ROLE_ADMIN,
    )
    session.add(admin)
    session.commit()
    session.refresh(admin)
    return admin


@pytest.fixture
def admin_headers(admin_user):
    return bearer(create_access_token(admin_user.id, admin_user.email, admin_user.role))


@pytest.fixture
def client_headers(client):
    return bearer(register(client)["token"])


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def register(client, email="ana@example.com", password="secret123", full_name="Ana Souza", **extra):
    r = client.post(
        "/api/auth/register",
        json={"full_name": full_name, "email": email, "password": password, **extra},
    )
    assert r.status_code == 201, r.text
    return r.json()


def book(client, headers, service_id, day="2025-01-10", at="10:00", notes=None):
    return client.post(
        "/api/appointments",
        json={
            "service_id": service_id,
            "appointment_date": day,
            "appointment_time": at,
            "notes": notes,
        },
        headers=headers,
    )
