"""Pytest configuration and shared fixtures.

Every test runs against a fresh in-memory SQLite database and a fake Moodle
gateway, so no Postgres instance or network access is needed.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from portal_service.app.database import get_db, init_db
from portal_service.app.exceptions import RemoteError
from portal_service.app.main import app, get_moodle_factory


class FakeMoodle:
    """Stand-in for MoodleClient serving canned payloads.

    Set ``fail_with`` to an exception instance to make every call raise it.
    """

    def __init__(self):
        self.tokens = []
        self.calls = []
        self.assignments = {"courses": []}
        self.site_info = {"userid": 42}
        self.courses = []
        self.grade_report = {"usergrades": []}
        self.fail_with = None

    def __call__(self, token):
        self.tokens.append(token)
        return self

    def _record(self, name, payload):
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with
        return payload

    def get_assignments(self):
        return self._record("mod_assign_get_assignments", self.assignments)

    def get_site_info(self):
        return self._record("core_webservice_get_site_info", self.site_info)

    def get_users_courses(self, user_id):
        return self._record("core_enrol_get_users_courses", self.courses)

    def get_grade_items(self, user_id, course_id):
        return self._record("gradereport_user_get_grade_items", self.grade_report)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def fake_moodle():
    return FakeMoodle()


@pytest.fixture
def remote_error():
    return RemoteError("mod_assign_get_assignments: HTTP 503", status_code=503, body="down")


@pytest.fixture
def client(session_factory, fake_moodle):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_moodle_factory] = lambda: fake_moodle
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client, username="alice", password="pw1", token="T1"):
    return client.post(
        "/register",
        data={"username": username, "password": password, "moodle_token": token},
        follow_redirects=False,
    )


def login(client, username="alice", password="pw1"):
    return client.post(
        "/login",
        data={"username": username, "password": password},
        follow_redirects=False,
    )


@pytest.fixture
def logged_in(client):
    register(client)
    login(client)
    return client
