import pytest

from participium.errors import (
    AuthorizationError,
    InvalidTransitionError,
    NoWorkersFoundError,
    NotFoundError,
    ValidationError,
)
from participium.roles import Role, UserType


@pytest.mark.asyncio
async def test_accept_routes_report_to_officer(make_report, lifecycle, pr_officer, planner):
    report = await make_report()

    reviewed = await lifecycle.review(report.id, pr_officer, "accepted", technical_office="urban_planner")

    assert reviewed.status == "assigned"
    assert reviewed.technical_office == "urban_planner"
    assert reviewed.officer.id == planner.id
    assert reviewed.rejection_reason is None


@pytest.mark.asyncio
async def test_reject_records_reason_and_no_office(make_report, lifecycle, admin):
    report = await make_report()

    reviewed = await lifecycle.review(report.id, admin, "rejected", explanation="  Duplicate ")

    assert reviewed.status == "rejected"
    assert reviewed.rejection_reason == "Duplicate"
    assert reviewed.technical_office is None
    assert reviewed.officer is None


@pytest.mark.asyncio
@pytest.mark.parametrize("explanation", [None, "", "   "])
async def test_reject_requires_explanation(make_report, lifecycle, pr_officer, explanation):
    report = await make_report()

    with pytest.raises(ValidationError):
        await lifecycle.review(report.id, pr_officer, "rejected", explanation=explanation)

    assert (await lifecycle.get_report(report.id)).status == "pending"


@pytest.mark.asyncio
@pytest.mark.parametrize("office", [None, "", "plumber", "external_maintainer", "municipal_public_relations_officer"])
async def test_accept_requires_internal_technical_office(make_report, lifecycle, pr_officer, maintainer, office):
    report = await make_report()

    with pytest.raises(ValidationError):
        await lifecycle.review(report.id, pr_officer, "accepted", technical_office=office)

    assert (await lifecycle.get_report(report.id)).status == "pending"


@pytest.mark.asyncio
async def test_unknown_decision_is_a_validation_error(make_report, lifecycle, pr_officer):
    report = await make_report()

    with pytest.raises(ValidationError):
        await lifecycle.review(report.id, pr_officer, "maybe")


@pytest.mark.asyncio
async def test_accept_without_workers_leaves_report_pending(make_report, lifecycle, pr_officer):
    report = await make_report()

    with pytest.raises(NoWorkersFoundError) as excinfo:
        await lifecycle.review(report.id, pr_officer, "accepted", technical_office="environment_technician")

    assert excinfo.value.kind == "no_workers"
    assert "environment_technician" in excinfo.value.message
    unchanged = await lifecycle.get_report(report.id)
    assert unchanged.status == "pending"
    assert unchanged.officer is None


@pytest.mark.asyncio
async def test_only_reviewers_may_review(make_report, lifecycle, citizen, planner, make_user):
    report = await make_report()
    other_citizen = await make_user(UserType.CITIZEN)

    for actor in (citizen, planner, other_citizen):
        with pytest.raises(AuthorizationError):
            await lifecycle.review(report.id, actor, "rejected", explanation="nope")

    assert (await lifecycle.get_report(report.id)).status == "pending"


@pytest.mark.asyncio
async def test_report_is_reviewed_at_most_once(make_report, lifecycle, pr_officer, admin, planner):
    report = await make_report()
    await lifecycle.review(report.id, pr_officer, "rejected", explanation="Duplicate")

    with pytest.raises(InvalidTransitionError):
        await lifecycle.review(report.id, admin, "accepted", technical_office="urban_planner")
    with pytest.raises(InvalidTransitionError):
        await lifecycle.review(report.id, pr_officer, "rejected", explanation="Again")

    after = await lifecycle.get_report(report.id)
    assert after.status == "rejected"
    assert after.rejection_reason == "Duplicate"
    assert after.technical_office is None


@pytest.mark.asyncio
async def test_accepted_report_cannot_be_rejected(assigned_report, lifecycle, pr_officer):
    with pytest.raises(InvalidTransitionError) as excinfo:
        await lifecycle.review(assigned_report.id, pr_officer, "rejected", explanation="late")

    assert excinfo.value.current == "assigned"
    after = await lifecycle.get_report(assigned_report.id)
    assert after.status == "assigned"
    assert after.rejection_reason is None


@pytest.mark.asyncio
async def test_review_of_missing_report(lifecycle, pr_officer):
    with pytest.raises(NotFoundError):
        await lifecycle.review(9999, pr_officer, "rejected", explanation="missing")


@pytest.mark.asyncio
async def test_officer_holding_several_roles_can_receive_either(make_report, lifecycle, pr_officer, make_user):
    multi = await make_user(UserType.MUNICIPALITY_USER, roles=[Role.SUAP_OFFICER, Role.BUILDING_INSPECTOR])
    first = await make_report()
    second = await make_report()

    a = await lifecycle.review(first.id, pr_officer, "accepted", technical_office="suap_officer")
    b = await lifecycle.review(second.id, pr_officer, "accepted", technical_office="building_inspector")

    assert a.officer.id == multi.id
    assert b.officer.id == multi.id
