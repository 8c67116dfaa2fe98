import asyncio

import pytest

from participium.errors import InvalidTransitionError
from participium.notifications import StatusChange
from participium.repositories.notifications import SqlNotificationStore


@pytest.mark.asyncio
async def test_concurrent_reviews_apply_exactly_once(make_report, build_lifecycle, pr_officer, admin, planner, dispatcher, session_factory):
    report = await make_report()
    first, second = build_lifecycle(), build_lifecycle()

    results = await asyncio.gather(
        first.review(report.id, pr_officer, "accepted", technical_office="urban_planner"),
        second.review(report.id, admin, "rejected", explanation="Duplicate"),
        return_exceptions=True,
    )

    applied = [r for r in results if not isinstance(r, Exception)]
    failed = [r for r in results if isinstance(r, Exception)]
    assert len(applied) == 1
    assert len(failed) == 1
    assert isinstance(failed[0], InvalidTransitionError)

    final = await build_lifecycle().get_report(report.id)
    assert final.status == applied[0].status
    # never a mix of both outcomes
    if final.status == "assigned":
        assert final.rejection_reason is None
        assert final.technical_office == "urban_planner"
    else:
        assert final.technical_office is None
        assert final.rejection_reason == "Duplicate"

    await dispatcher.drain()
    async with session_factory() as session:
        notifications = await SqlNotificationStore(session).list_for_user(report.user_id)
    assert len(notifications) == 1


@pytest.mark.asyncio
async def test_stale_snapshot_cannot_overwrite_newer_status(assigned_report, build_lifecycle, planner):
    first, second = build_lifecycle(), build_lifecycle()

    results = await asyncio.gather(
        first.update_assignee_status(assigned_report.id, planner, "progress"),
        second.update_assignee_status(assigned_report.id, planner, "suspended"),
        return_exceptions=True,
    )

    errors = [r for r in results if isinstance(r, Exception)]
    assert all(isinstance(e, InvalidTransitionError) for e in errors)
    final = await build_lifecycle().get_report(assigned_report.id)
    assert final.status in {"progress", "suspended"}


class ExplodingNotifier:
    def __init__(self):
        self.calls = []

    def schedule(self, change: StatusChange):
        self.calls.append(change)
        raise RuntimeError("queue is down")


@pytest.mark.asyncio
async def test_transition_survives_a_notifier_that_raises(make_report, build_lifecycle, pr_officer, planner):
    report = await make_report()
    notifier = ExplodingNotifier()
    engine = build_lifecycle(notifier=notifier)

    reviewed = await engine.review(report.id, pr_officer, "accepted", technical_office="urban_planner")

    assert reviewed.status == "assigned"
    assert notifier.calls == [
        StatusChange(report_id=report.id, new_status="assigned", old_status="pending", rejection_reason=None)
    ]
