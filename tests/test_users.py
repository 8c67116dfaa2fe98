from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from jose import jwt

from participium import auth
from participium.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from participium.repositories.notifications import SqlNotificationStore
from participium.repositories.users import SqlUserStore
from participium.roles import Role, UserType
from participium.users import UserService

NEW_CITIZEN = {
    "username": "anna",
    "password": "strongPassword123!",
    "email": "Anna.Neri@Example.org",
    "name": "Anna",
    "surname": "Neri",
}


@pytest_asyncio.fixture
async def users(session_factory):
    async with session_factory() as session:
        yield UserService(SqlUserStore(session))


@pytest.mark.asyncio
async def test_register_citizen_normalizes_email(users):
    user = await users.register_citizen(**NEW_CITIZEN)

    assert user.user_type == "citizen"
    assert user.roles == []
    assert user.email == "Anna.Neri@example.org"
    assert user.mail_notifications is True


@pytest.mark.asyncio
async def test_register_requires_every_field(users):
    for field in ("username", "password", "email", "name", "surname"):
        with pytest.raises(ValidationError):
            await users.register_citizen(**{**NEW_CITIZEN, field: "  "})


@pytest.mark.asyncio
async def test_username_and_email_are_unique(users, citizen):
    with pytest.raises(ConflictError):
        await users.register_citizen(**{**NEW_CITIZEN, "username": "mario"})
    with pytest.raises(ConflictError):
        await users.register_citizen(**{**NEW_CITIZEN, "email": "mario@example.com"})


@pytest.mark.asyncio
async def test_admin_creates_staff_with_roles(users, admin):
    staff = await users.create_user_as_admin(
        admin,
        username="planner2",
        password="secret",
        email="planner2@example.com",
        name="Paolo",
        surname="Verdi",
        roles=["urban_planner", "environment_technician"],
    )

    assert staff.user_type == "municipality_user"
    assert staff.roles == ["environment_technician", "urban_planner"]


@pytest.mark.asyncio
async def test_staff_creation_needs_manage_users(users, pr_officer, citizen):
    for actor in (pr_officer, citizen):
        with pytest.raises(AuthorizationError):
            await users.create_user_as_admin(
                actor,
                username="x",
                password="secret",
                email="x@example.com",
                name="X",
                surname="Y",
            )


@pytest.mark.asyncio
async def test_roles_only_for_municipality_users(users, admin):
    with pytest.raises(ValidationError):
        await users.create_user_as_admin(
            admin,
            username="odd",
            password="secret",
            email="odd@example.com",
            name="O",
            surname="D",
            user_type="citizen",
            roles=["urban_planner"],
        )
    with pytest.raises(ValidationError):
        await users.create_user_as_admin(
            admin,
            username="odd",
            password="secret",
            email="odd@example.com",
            name="O",
            surname="D",
            roles=["urban_planer"],
        )


@pytest.mark.asyncio
async def test_assign_role_adds_to_existing_roles(users, admin, planner):
    updated = await users.assign_role(admin, planner.id, "external_maintainer")

    assert updated.roles == ["external_maintainer", "urban_planner"]


@pytest.mark.asyncio
async def test_duplicate_role_assignment_is_a_conflict(users, admin, planner):
    with pytest.raises(ConflictError):
        await users.assign_role(admin, planner.id, Role.URBAN_PLANNER)

    assert (await users.get_profile(planner)).roles == ["urban_planner"]


@pytest.mark.asyncio
async def test_assign_role_checks(users, admin, pr_officer, planner, citizen):
    with pytest.raises(AuthorizationError):
        await users.assign_role(pr_officer, planner.id, "suap_officer")
    with pytest.raises(NotFoundError):
        await users.assign_role(admin, 4242, "suap_officer")
    with pytest.raises(ValidationError):
        await users.assign_role(admin, citizen.id, "suap_officer")
    with pytest.raises(ValidationError):
        await users.assign_role(admin, planner.id, None)


@pytest.mark.asyncio
async def test_municipal_administrator_can_manage_users(users, make_user, planner):
    manager = await make_user(UserType.MUNICIPALITY_USER, roles=[Role.MUNICIPAL_ADMINISTRATOR])

    updated = await users.assign_role(manager, planner.id, "suap_officer")

    assert "suap_officer" in updated.roles


@pytest.mark.asyncio
async def test_list_municipality_users(users, admin, citizen, pr_officer, planner, maintainer):
    everyone = await users.list_municipality_users(admin)
    assert [u.id for u in everyone] == [pr_officer.id, planner.id, maintainer.id]

    planners = await users.list_municipality_users(admin, "urban_planner")
    assert [u.id for u in planners] == [planner.id]

    with pytest.raises(AuthorizationError):
        await users.list_municipality_users(citizen)


@pytest.mark.asyncio
async def test_profile_update_is_own_only(users, citizen, make_user):
    other = await make_user(UserType.CITIZEN)

    with pytest.raises(AuthorizationError):
        await users.update_profile(other, citizen.id, mail_notifications=False)

    updated = await users.update_profile(citizen, citizen.id, name="Mario", surname="Rossi")
    assert (updated.name, updated.surname) == ("Mario", "Rossi")
    assert updated.mail_notifications is True


@pytest.mark.asyncio
async def test_opting_out_of_email_stops_status_emails(
    users, citizen, make_report, lifecycle, pr_officer, dispatcher, send_email, session
):
    profile = await users.update_profile(citizen, citizen.id, mail_notifications=False)
    assert profile.mail_notifications is False

    report = await make_report()
    await lifecycle.review(report.id, pr_officer, "rejected", explanation="Duplicate")
    await dispatcher.drain()

    send_email.assert_not_awaited()
    assert len(await SqlNotificationStore(session).list_for_user(citizen.id)) == 1

    await users.update_profile(citizen, citizen.id, mail_notifications=True)
    report = await make_report()
    await lifecycle.review(report.id, pr_officer, "rejected", explanation="Duplicate")
    await dispatcher.drain()

    send_email.assert_awaited_once()


# --- HTTP ---


@pytest.mark.asyncio
async def test_register_and_login_over_http(client):
    r = await client.post("/api/users", json=NEW_CITIZEN)
    assert r.status_code == 201
    assert r.json()["user_type"] == "citizen"

    r = await client.post("/api/users", json=NEW_CITIZEN)
    assert r.status_code == 409
    assert r.json()["kind"] == "conflict"

    r = await client.post("/api/sessions", json={"username": "anna", "password": NEW_CITIZEN["password"]})
    assert r.status_code == 200
    token = r.json()["access_token"]

    r = await client.get("/api/sessions/current", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["username"] == "anna"


@pytest.mark.asyncio
async def test_admin_routes(client, admin, planner, citizen, auth_headers):
    r = await client.post(
        "/api/users/admin",
        json={
            "username": "inspector",
            "password": "secret",
            "email": "inspector@example.com",
            "name": "Ida",
            "surname": "Bianchi",
            "type": "municipality_user",
            "roles": ["building_inspector"],
        },
        headers=auth_headers(admin),
    )
    assert r.status_code == 201
    assert r.json()["roles"] == ["building_inspector"]

    r = await client.put(f"/api/users/{planner.id}/roles", json={"role": "urban_planner"}, headers=auth_headers(admin))
    assert r.status_code == 409
    assert r.json()["kind"] == "conflict"

    r = await client.put(f"/api/users/{planner.id}/roles", json={"role": "suap_officer"}, headers=auth_headers(citizen))
    assert r.status_code == 403

    r = await client.get("/api/users/municipality", params={"role": "building_inspector"}, headers=auth_headers(admin))
    assert [u["username"] for u in r.json()] == ["inspector"]


@pytest.mark.asyncio
async def test_profile_route(client, citizen, make_user, auth_headers):
    other = await make_user(UserType.CITIZEN)

    r = await client.put(f"/api/users/{citizen.id}", json={"mail_notifications": False}, headers=auth_headers(other))
    assert r.status_code == 403

    r = await client.put(f"/api/users/{citizen.id}", json={"mail_notifications": False}, headers=auth_headers(citizen))
    assert r.status_code == 200
    assert r.json()["mail_notifications"] is False

    r = await client.get("/api/sessions/current", headers=auth_headers(citizen))
    assert r.json()["mail_notifications"] is False


@pytest.mark.asyncio
async def test_token_without_subject_is_401(client):
    expire = datetime.now(timezone.utc) + timedelta(minutes=5)
    token = jwt.encode({"type": "citizen", "exp": int(expire.timestamp())}, auth.SECRET_KEY, algorithm=auth.ALGORITHM)

    r = await client.get("/api/sessions/current", headers={"Authorization": f"Bearer {token}"})

    assert r.status_code == 401
    assert r.json()["kind"] == "unauthenticated"


@pytest.mark.asyncio
async def test_lifespan_creates_tables_and_drains_dispatcher(client, dispatcher):
    from participium.main import app

    with patch("participium.main.init_db", new=AsyncMock()) as init_db, patch.object(
        dispatcher, "drain", new=AsyncMock()
    ) as drain:
        async with app.router.lifespan_context(app):
            init_db.assert_awaited_once()
            drain.assert_not_awaited()
        drain.assert_awaited_once()
