import pytest

from participium.assignment import OfficerAssignmentSelector
from participium.errors import NoWorkersFoundError, ValidationError
from participium.repositories.users import SqlUserStore
from participium.roles import Role, UserType


@pytest.fixture
def selector(session):
    return OfficerAssignmentSelector(SqlUserStore(session))


async def _officer(make_user, role=Role.PUBLIC_WORKS_ENGINEER):
    return await make_user(UserType.MUNICIPALITY_USER, roles=[role])


@pytest.mark.asyncio
async def test_picks_the_officer_with_fewest_active_reports(selector, make_user, insert_report):
    busy = await _officer(make_user)
    idle = await _officer(make_user)
    await insert_report(status="assigned", officer_id=busy.id, technical_office="public_works_engineer")
    await insert_report(status="progress", officer_id=busy.id, technical_office="public_works_engineer")

    assert await selector.select_officer("public_works_engineer") == idle.id


@pytest.mark.asyncio
async def test_ties_go_to_lowest_user_id(selector, make_user):
    first = await _officer(make_user)
    second = await _officer(make_user)
    assert first.id < second.id

    assert await selector.select_officer(Role.PUBLIC_WORKS_ENGINEER) == first.id


@pytest.mark.asyncio
async def test_resolved_and_rejected_reports_do_not_count_as_load(selector, make_user, insert_report):
    first = await _officer(make_user)
    second = await _officer(make_user)
    for _ in range(3):
        await insert_report(status="resolved", officer_id=first.id, technical_office="public_works_engineer")
    await insert_report(status="suspended", officer_id=second.id, technical_office="public_works_engineer")

    assert await selector.select_officer("public_works_engineer") == first.id


@pytest.mark.asyncio
async def test_suspended_reports_count_as_load(selector, make_user, insert_report):
    first = await _officer(make_user)
    second = await _officer(make_user)
    await insert_report(status="suspended", officer_id=first.id, technical_office="public_works_engineer")

    assert await selector.select_officer("public_works_engineer") == second.id


@pytest.mark.asyncio
async def test_only_holders_of_the_role_are_candidates(selector, make_user):
    await _officer(make_user, Role.URBAN_PLANNER)
    engineer = await _officer(make_user, Role.PUBLIC_WORKS_ENGINEER)

    assert await selector.select_officer("public_works_engineer") == engineer.id


@pytest.mark.asyncio
async def test_no_holder_raises_no_workers(selector, make_user):
    await _officer(make_user, Role.URBAN_PLANNER)

    with pytest.raises(NoWorkersFoundError) as excinfo:
        await selector.select_officer("mobility_traffic_engineer")

    assert excinfo.value.role == "mobility_traffic_engineer"


@pytest.mark.asyncio
@pytest.mark.parametrize("office", ["external_maintainer", "municipal_administrator", "nope", None])
async def test_non_technical_office_is_rejected(selector, office):
    with pytest.raises(ValidationError):
        await selector.select_officer(office)


@pytest.mark.asyncio
async def test_load_balances_across_consecutive_accepts(make_report, lifecycle, pr_officer, make_user):
    first = await _officer(make_user, Role.URBAN_PLANNER)
    second = await _officer(make_user, Role.URBAN_PLANNER)

    officers = []
    for _ in range(4):
        report = await make_report()
        reviewed = await lifecycle.review(report.id, pr_officer, "accepted", technical_office="urban_planner")
        officers.append(reviewed.officer.id)

    assert officers == [first.id, second.id, first.id, second.id]
