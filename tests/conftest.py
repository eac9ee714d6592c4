"""Shared test fixtures."""
import os

os.environ.setdefault("ENVIRONMENT", "test")

from datetime import time, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from salon.auth import create_access_token, register_user
from salon.core.clock import studio_now
from salon.changes import ChangeFeed
from salon.db import get_session, init_db, make_engine
from salon.deps import get_feed
from salon.errors import NotificationDeliveryFailed
from salon.mailer import get_mailer
from salon.main import app
from salon.models import Service, TimeSlot
from salon.routers.jobs_routes import get_session_factory


# far enough ahead that nothing in the API tests counts as past
FUTURE_DAY = (studio_now() + timedelta(days=30)).date()


class FakeMailer:
    """Records every email; addresses in ``failing`` raise like a rejected send."""

    def __init__(self):
        self.sent = []
        self.failing = set()

    def send(self, to, subject, html):
        if to in self.failing:
            raise NotificationDeliveryFailed(f"mailbox unavailable: {to}")
        self.sent.append({"to": to, "subject": subject, "html": html})
        return f"msg-{len(self.sent)}"


@pytest.fixture
def engine():
    engine = make_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def factory(engine):
    return lambda: Session(engine)


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def make_user(session):
    def _create(email, role="client", name=None, phone="", password="secret-pass"):
        return register_user(session, email, password, role, name or email.split("@")[0], phone)
    return _create


@pytest.fixture
def service(session):
    service = Service(name="Volume Russo", description="Lash extensions", price="R$ 180,00")
    session.add(service)
    session.commit()
    session.refresh(service)
    return service


@pytest.fixture
def make_slot(session, service):
    def _create(on=FUTURE_DAY, at=time(14, 0), service_id=None):
        slot = TimeSlot(service_id=service_id or service.id, date=on, time=at)
        session.add(slot)
        session.commit()
        session.refresh(slot)
        return slot
    return _create


@pytest.fixture
def client(engine, feed, mailer, factory):
    """FastAPI test client bound to the in-memory database."""
    def _session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_feed] = lambda: feed
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_session_factory] = lambda: factory
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_header():
    def _header(user):
        token = create_access_token({"sub": user.id, "role": user.role})
        return {"Authorization": f"Bearer {token}"}
    return _header
