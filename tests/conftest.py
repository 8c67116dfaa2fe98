import itertools
from typing import Iterable, Optional
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio

from participium import auth
from participium.authorization import Actor
from participium.database import create_tables, make_engine, make_session_factory
from participium.lifecycle import ReportLifecycleEngine
from participium.models import Report
from participium.notifications import NotificationDispatcher
from participium.repositories.reports import SqlReportStore
from participium.repositories.users import SqlUserStore
from participium.roles import Role, UserType
from participium.users import UserService

DEFAULT_PASSWORD = "testpass123"

REPORT_PAYLOAD = {
    "latitude": 45.07,
    "longitude": 7.68,
    "title": "Pothole",
    "description": "Deep pothole in front of the school",
    "category": "Roads and Urban Furnishings",
    "photos": ["a.jpg"],
}


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    # File-backed so every session gets its own connection (NullPool)
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'participium.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return make_session_factory(db_engine)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def send_email():
    return AsyncMock(return_value=True)


@pytest_asyncio.fixture
async def dispatcher(session_factory, send_email):
    dispatcher = NotificationDispatcher(session_factory, send_email, max_concurrency=2, email_timeout=0.5)
    yield dispatcher
    await dispatcher.drain()


@pytest_asyncio.fixture
async def build_lifecycle(session_factory, dispatcher):
    """Return a factory for engines, each bound to a fresh session."""
    sessions = []

    def _build(strict: bool = True, notifier=dispatcher) -> ReportLifecycleEngine:
        session = session_factory()
        sessions.append(session)
        return ReportLifecycleEngine(
            SqlReportStore(session),
            SqlUserStore(session),
            notifier,
            strict_assignee_transitions=strict,
        )

    yield _build
    for session in sessions:
        await session.close()


@pytest.fixture
def lifecycle(build_lifecycle):
    return build_lifecycle()


@pytest.fixture
def make_user(session_factory):
    """Factory that creates a user directly in the DB and returns its Actor."""
    counter = itertools.count(1)

    async def _create(
        user_type: UserType = UserType.CITIZEN,
        roles: Iterable[Role] = (),
        username: Optional[str] = None,
        email: Optional[str] = "",
        mail_notifications: bool = True,
    ) -> Actor:
        username = username or f"{user_type.value}{next(counter)}"
        if email == "":
            email = f"{username}@example.com"
        roles = tuple(roles)
        async with session_factory() as session:
            user = await UserService(SqlUserStore(session)).create_user(
                username=username,
                password=DEFAULT_PASSWORD,
                email=email,
                user_type=user_type,
                roles=roles,
                mail_notifications=mail_notifications,
            )
        return Actor(id=user.id, user_type=user_type, roles=frozenset(roles))

    return _create


@pytest_asyncio.fixture
async def citizen(make_user):
    return await make_user(UserType.CITIZEN, username="mario")


@pytest_asyncio.fixture
async def pr_officer(make_user):
    return await make_user(UserType.MUNICIPALITY_USER, roles=[Role.PUBLIC_RELATIONS_OFFICER], username="urp")


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user(UserType.ADMIN, username="admin")


@pytest_asyncio.fixture
async def planner(make_user):
    return await make_user(UserType.MUNICIPALITY_USER, roles=[Role.URBAN_PLANNER], username="planner")


@pytest_asyncio.fixture
async def maintainer(make_user):
    return await make_user(UserType.MUNICIPALITY_USER, roles=[Role.EXTERNAL_MAINTAINER], username="maintainer")


@pytest.fixture
def make_report(lifecycle, citizen):
    async def _create(owner: Optional[Actor] = None, anonymous: bool = False, **overrides):
        payload = {**REPORT_PAYLOAD, **overrides}
        return await lifecycle.create_report(None if anonymous else (owner or citizen), anonymous=anonymous, **payload)

    return _create


@pytest.fixture
def insert_report(session_factory):
    """Insert a report row in an arbitrary state, bypassing the engine."""

    async def _insert(**fields) -> Report:
        values = {**REPORT_PAYLOAD, **fields}
        async with session_factory() as session:
            return await SqlReportStore(session).create(Report(**values))

    return _insert


@pytest_asyncio.fixture
async def assigned_report(make_report, lifecycle, pr_officer, planner):
    report = await make_report()
    return await lifecycle.review(report.id, pr_officer, "accepted", technical_office="urban_planner")


@pytest.fixture
def auth_headers():
    def _headers(actor: Actor) -> dict:
        token = auth.create_access_token(subject=actor.id, user_type=actor.user_type.value)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def client(session_factory, dispatcher):
    from participium.database import get_session
    from participium.dependencies import get_dispatcher
    from participium.main import app

    async def _session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def report_payload():
    return dict(REPORT_PAYLOAD)
