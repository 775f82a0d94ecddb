"""Shared fixtures: a scripted remote API, session stores and a test app."""

import json
from typing import Any, Callable

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from portal.core.database import get_db, init_db, make_engine, make_session_factory, session_scope
from portal.main import create_application
from portal.schemas.student import StudentRecord
from portal.services.notification import NotificationCollector
from portal.services.remote_api import ProfileApiClient
from portal.services.session_store import InMemorySessionStore

BASE_URL = "https://profile-api.test/api"

Route = httpx.Response | Callable[[httpx.Request], httpx.Response]


class FakeRemoteApi:
    """Scripted stand-in for the remote profile API.

    Unscripted routes answer 404, like the real API does for records that
    do not exist yet.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], Route] = {}
        self.calls: list[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        status: int = 200,
        json_body: Any = None,
        handler: Callable[[httpx.Request], httpx.Response] | None = None,
    ) -> None:
        if handler is not None:
            self.routes[(method, path)] = handler
        else:
            self.routes[(method, path)] = httpx.Response(status, json=json_body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        path = request.url.path.removeprefix("/api")
        route = self.routes.get((request.method, path))
        if route is None:
            return httpx.Response(404, json={"message": "Not found"})
        if callable(route):
            return route(request)
        return route

    def requests_to(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r for r in self.calls
            if r.method == method and r.url.path.removeprefix("/api") == path
        ]

    def json_sent(self, method: str, path: str) -> dict[str, Any]:
        requests = self.requests_to(method, path)
        assert requests, f"no {method} {path} call was made"
        return json.loads(requests[-1].content)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def remote() -> FakeRemoteApi:
    return FakeRemoteApi()


@pytest.fixture
def http_client(remote) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(remote.handler))


@pytest.fixture
def api(http_client) -> ProfileApiClient:
    return ProfileApiClient(http_client)


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore("test-session", storage={})


@pytest.fixture
def student() -> StudentRecord:
    return StudentRecord(
        id=5,
        user_id=5,
        first_name="Thandi",
        last_name="Mokoena",
        email="thandi@university.ac.za",
        phone_number="0821234567",
        student_number="ST2024001",
        faculty="Engineering",
        programme="BEng Civil",
        registration_date="2024-02-01",
        status="Active",
    )


@pytest.fixture
def signed_in_store(store, student) -> InMemorySessionStore:
    store.write_auth(user_id=5, access_token="token-5", user_type="student")
    store.write_student(student)
    return store


@pytest.fixture
def reporter() -> NotificationCollector:
    return NotificationCollector()


@pytest.fixture
def db_factory() -> sessionmaker[Session]:
    engine = make_engine("sqlite://")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def db_session(db_factory) -> Session:
    session = db_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(remote, db_factory) -> TestClient:
    def override_get_db():
        with session_scope(db_factory) as session:
            yield session

    app = create_application(
        http_client=httpx.AsyncClient(
            base_url=BASE_URL,
            transport=httpx.MockTransport(remote.handler),
        )
    )
    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)
