"""Shared test fixtures for the back office API."""
import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-do-not-use")

import re
from datetime import date
from typing import Callable, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.core.config import settings
from app.core.security import create_access_token, get_password_hash
from app.db.session import get_db
from app.main import app
from app.models import Client, Department, Project, User, UserRole
from app.services.mailer import get_mailer

API = settings.API_V1_STR
PASSWORD = "Secret123!"


class RecordingMailer:
    def __init__(self) -> None:
        self.outbox: List[Dict[str, str]] = []

    def send(self, to: str, subject: str, body: str) -> None:
        self.outbox.append({"to": to, "subject": subject, "body": body})

    def last_otp(self, to: str) -> str:
        for mail in reversed(self.outbox):
            if mail["to"] == to:
                return re.search(r"code is: (\d{6})", mail["body"]).group(1)
        raise AssertionError(f"no mail sent to {to}")


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, settings)}"}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )

    # Enforce foreign keys the way server databases do
    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def api(engine, mailer):
    def override_get_db():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db) -> Callable[..., User]:
    counter = {"n": 0}

    def _make(
        role: UserRole = UserRole.USER,
        email: Optional[str] = None,
        password: str = PASSWORD,
        department: Optional[Department] = Department.SOFTWARE,
        is_verified: bool = True,
        is_active: bool = True,
        name: str = "Test User",
    ) -> User:
        counter["n"] += 1
        user = User(
            name=name,
            email=email or f"{role.value}{counter['n']}@example.com",
            password=get_password_hash(password),
            role=role,
            department=None if role == UserRole.ADMIN else department,
            is_verified=is_verified,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def admin(make_user) -> User:
    return make_user(UserRole.ADMIN, name="Alice Admin")


@pytest.fixture
def moderator(make_user) -> User:
    return make_user(UserRole.MODERATOR, name="Mona Moderator")


@pytest.fixture
def member(make_user) -> User:
    return make_user(UserRole.USER, name="Umar User")


@pytest.fixture
def make_client(db) -> Callable[..., Client]:
    def _make(name: str = "Acme Contact", email: str = "contact@acme.com", company_name: str = "Acme") -> Client:
        client = Client(name=name, email=email, company_name=company_name)
        db.add(client)
        db.commit()
        db.refresh(client)
        return client

    return _make


def installment(
    ref_no: str = "REF00001",
    amount: float = 300,
    status: str = "completed",
    currency: str = "EGP",
    payment_method: str = "bank_transfer",
) -> Dict:
    return {
        "ref_no": ref_no,
        "amount": amount,
        "status": status,
        "currency": currency,
        "payment_method": payment_method,
        "payment_date": "2024-03-01T10:00:00",
    }


@pytest.fixture
def make_project(db, admin) -> Callable[..., Project]:
    def _make(**overrides) -> Project:
        values = dict(
            name="Website Redesign",
            budget=1000.0,
            currency="EGP",
            start_date=date(2024, 1, 1),
            status="planned",
            installments=[],
            completion_percentage=0.0,
            created_by=admin.id,
        )
        values.update(overrides)
        project = Project(**values)
        db.add(project)
        db.commit()
        db.refresh(project)
        return project

    return _make
