import re
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from otp_auth.api.auth_routes import get_account_provider, get_db, get_email_sender
from otp_auth.core.exceptions import DeliveryError
from otp_auth.db.migrations.create_tables import create_tables
from otp_auth.main import app
from otp_auth.services.auth_service import LocalAccountProvider

START = datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)


class RecordingSender:
    """Stands in for the SMTP sender and keeps every message it was asked to send."""

    def __init__(self):
        self.sent = []
        self.fail = False

    async def send(self, to, subject, html_body):
        if self.fail:
            raise DeliveryError("provider down")
        self.sent.append({"to": to, "subject": subject, "html": html_body})

    @property
    def last_code(self):
        match = re.search(r">(\d{6})</span>", self.sent[-1]["html"])
        return match.group(1)


class Clock:
    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'otp.db'}",
        connect_args={"check_same_thread": False},
    )
    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def accounts():
    return LocalAccountProvider()


@pytest.fixture
def clock(monkeypatch):
    clock = Clock()
    monkeypatch.setattr("otp_auth.services.otp_service.utcnow", clock)
    return clock


@pytest.fixture
def client(session_factory, sender, accounts):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_sender] = lambda: sender
    app.dependency_overrides[get_account_provider] = lambda: accounts
    yield TestClient(app)
    app.dependency_overrides.clear()
