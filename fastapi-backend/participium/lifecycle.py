"""
Report lifecycle engine.

PENDING -> ASSIGNED | REJECTED through ``review``; the assigned officer or
the delegated external maintainer then moves the report between
PROGRESS, SUSPENDED and RESOLVED through ``update_assignee_status``.

Every write is a conditional update against the values the authorization
check observed. When the row changed in between, the update matches nothing
and the operation fails with ``InvalidTransitionError`` without mutating.
Notifications are scheduled only after the write has committed.
"""

from __future__ import annotations

import logging
import math
from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from .assignment import OfficerAssignmentSelector
from .authorization import Actor, authorize_delegation, authorize_transition
from .config import get_settings
from .constants import (
    ASSIGNEE_TARGET_STATUSES,
    MAX_PHOTOS,
    MIN_PHOTOS,
    REPORT_CATEGORIES,
    ReportStatus,
    ReviewDecision,
)
from .errors import (
    AppError,
    AuthenticationError,
    AuthorizationError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from .models import Report, ReportPublic, User, UserSummary
from .notifications import StatusChange
from .repositories.reports import BoundingBox, ReportStore
from .repositories.users import UserStore
from .roles import Capability, Role, is_internal_technical_role, parse_role
from .workflow_metrics import REPORT_TRANSITIONS

logger = logging.getLogger(__name__)


class StatusChangeNotifier(Protocol):
    def schedule(self, change: StatusChange): ...


@contextmanager
def _tracked(operation: str):
    try:
        yield
    except AppError as exc:
        REPORT_TRANSITIONS.labels(operation=operation, outcome=exc.kind).inc()
        logger.info("%s refused: %s (%s)", operation, exc.message, exc.kind)
        raise
    REPORT_TRANSITIONS.labels(operation=operation, outcome="applied").inc()


def _require_text(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    return value.strip()


def _require_coordinate(value, field: str, bound: float) -> float:
    # bool is an int subclass; True is not a latitude
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        raise ValidationError(f"{field} must be a number between -{bound:g} and {bound:g}")
    if value < -bound or value > bound:
        raise ValidationError(f"{field} must be a number between -{bound:g} and {bound:g}")
    return float(value)


def _require_photos(photos) -> List[str]:
    if not isinstance(photos, (list, tuple)):
        raise ValidationError("Photos must be a list")
    if not MIN_PHOTOS <= len(photos) <= MAX_PHOTOS:
        raise ValidationError(f"A report needs between {MIN_PHOTOS} and {MAX_PHOTOS} photos")
    cleaned = []
    for ref in photos:
        if not isinstance(ref, str) or not ref.strip():
            raise ValidationError("Photo references must be non-empty strings")
        cleaned.append(ref.strip())
    return cleaned


def _parse_status(value) -> ReportStatus:
    try:
        return ReportStatus(value)
    except ValueError:
        raise ValidationError(f"Invalid status: {value}") from None


class ReportLifecycleEngine:
    def __init__(
        self,
        reports: ReportStore,
        users: UserStore,
        notifier: Optional[StatusChangeNotifier] = None,
        *,
        selector: Optional[OfficerAssignmentSelector] = None,
        strict_assignee_transitions: Optional[bool] = None,
    ):
        self.reports = reports
        self.users = users
        self.notifier = notifier
        self.selector = selector or OfficerAssignmentSelector(users)
        if strict_assignee_transitions is None:
            strict_assignee_transitions = get_settings().strict_assignee_transitions
        self.strict_assignee_transitions = strict_assignee_transitions

    # --- writes ---

    async def create_report(
        self,
        actor: Optional[Actor],
        *,
        latitude,
        longitude,
        title,
        description,
        category,
        photos: Sequence[str],
        anonymous: bool = False,
    ) -> ReportPublic:
        """Create a PENDING report.

        Anonymous reports never record an owner. Otherwise the caller must be
        an authenticated citizen.
        """
        with _tracked("create"):
            if not anonymous:
                if actor is None:
                    raise AuthenticationError("Authentication required")
                if not actor.is_citizen:
                    raise AuthorizationError("Only citizens can create reports")
            elif actor is not None and not actor.is_citizen:
                raise AuthorizationError("Only citizens can create reports")

            report = Report(
                user_id=None if anonymous else actor.id,
                latitude=_require_coordinate(latitude, "Latitude", 90),
                longitude=_require_coordinate(longitude, "Longitude", 180),
                title=_require_text(title, "Title"),
                description=_require_text(description, "Description"),
                category=self._require_category(category),
                photos=_require_photos(photos),
                status=ReportStatus.PENDING.value,
            )
            report = await self.reports.create(report)

        logger.info("report %s created (%s)", report.id, "anonymous" if report.user_id is None else f"user {report.user_id}")
        return await self._present(report)

    @staticmethod
    def _require_category(category) -> str:
        if category not in REPORT_CATEGORIES:
            raise ValidationError(f"Invalid category: {category}")
        return category

    async def review(
        self,
        report_id: int,
        actor: Actor,
        decision,
        explanation: Optional[str] = None,
        technical_office: Optional[str] = None,
    ) -> ReportPublic:
        """Accept (route to an officer) or reject a PENDING report."""
        with _tracked("review"):
            try:
                decision = ReviewDecision(decision)
            except ValueError:
                raise ValidationError("Status must be 'accepted' or 'rejected'") from None

            if decision is ReviewDecision.REJECTED:
                explanation = _require_text(explanation, "Explanation")
                target = ReportStatus.REJECTED
            else:
                if not is_internal_technical_role(technical_office):
                    raise ValidationError(f"Invalid technical office: {technical_office}")
                target = ReportStatus.ASSIGNED

            report = await self._get(report_id)
            authorize_transition(actor, report, target)

            if target is ReportStatus.ASSIGNED:
                role = parse_role(technical_office)
                officer_id = await self.selector.select_officer(role)
                changes = dict(
                    status=target,
                    technical_office=role.value,
                    officer_id=officer_id,
                    rejection_reason=None,
                )
            else:
                changes = dict(
                    status=target,
                    rejection_reason=explanation,
                    technical_office=None,
                    officer_id=None,
                )

            updated = await self.reports.update_if(
                report.id, {"status": ReportStatus.PENDING}, **changes
            )
            if updated is None:
                raise InvalidTransitionError(
                    f"Report {report.id} has already been reviewed",
                    current=await self._current_status(report.id),
                    target=target.value,
                )

        logger.info("report %s %s -> %s by user %s", report.id, "pending", updated.status, actor.id)
        self._notify(
            StatusChange(
                report_id=updated.id,
                new_status=updated.status,
                old_status=ReportStatus.PENDING.value,
                rejection_reason=updated.rejection_reason,
            )
        )
        return await self._present(updated)

    async def assign_external_maintainer(self, report_id: int, actor: Actor, maintainer_id: int) -> ReportPublic:
        """Delegate an ASSIGNED report to an external maintainer.

        Not a status change: the report stays ASSIGNED and no notification is
        sent.
        """
        with _tracked("delegate"):
            report = await self._get(report_id)
            authorize_delegation(actor, report)

            maintainer = await self.users.get(maintainer_id)
            if maintainer is None:
                raise NotFoundError("External maintainer not found")
            if not await self.users.has_role(maintainer.id, Role.EXTERNAL_MAINTAINER):
                raise ValidationError(f"User {maintainer.id} is not an external maintainer")

            updated = await self.reports.update_if(
                report.id,
                {"status": ReportStatus.ASSIGNED, "officer_id": actor.id},
                external_maintainer_id=maintainer.id,
            )
            if updated is None:
                raise InvalidTransitionError(
                    f"Report {report.id} changed before it could be delegated",
                    current=await self._current_status(report.id),
                    target=ReportStatus.ASSIGNED.value,
                )

        logger.info("report %s delegated by officer %s to maintainer %s", report.id, actor.id, maintainer.id)
        return await self._present(updated)

    async def update_assignee_status(self, report_id: int, actor: Actor, status) -> ReportPublic:
        with _tracked("assignee_status"):
            target = _parse_status(status)
            if target not in ASSIGNEE_TARGET_STATUSES:
                raise ValidationError(
                    "Status must be one of: " + ", ".join(sorted(s.value for s in ASSIGNEE_TARGET_STATUSES))
                )

            report = await self._get(report_id)
            authorize_transition(actor, report, target, strict=self.strict_assignee_transitions)
            previous = report.status

            updated = await self.reports.update_if(
                report.id,
                {
                    "status": report.status,
                    "officer_id": report.officer_id,
                    "external_maintainer_id": report.external_maintainer_id,
                },
                status=target,
            )
            if updated is None:
                raise InvalidTransitionError(
                    f"Report {report.id} was modified concurrently",
                    current=await self._current_status(report.id),
                    target=target.value,
                )

        logger.info("report %s %s -> %s by user %s", report.id, previous, updated.status, actor.id)
        self._notify(StatusChange(report_id=updated.id, new_status=updated.status, old_status=previous))
        return await self._present(updated)

    # --- reads ---

    async def get_report(self, report_id: int) -> ReportPublic:
        return await self._present(await self._get(report_id))

    async def list_reports_by_status(
        self, actor: Actor, status, bbox: Optional[BoundingBox] = None
    ) -> List[ReportPublic]:
        if not actor.can(Capability.REVIEW_REPORTS):
            raise AuthorizationError("Only public relations officers or admins can list reports by status")
        reports = await self.reports.list_by_status(_parse_status(status), bbox)
        return await self._present_many(reports)

    async def list_public_reports(self, bbox: Optional[BoundingBox] = None) -> List[ReportPublic]:
        return await self._present_many(await self.reports.list_public(bbox))

    async def list_reports_for_officer(self, actor: Actor) -> List[ReportPublic]:
        return await self._present_many(await self.reports.list_by_officer(actor.id))

    async def list_reports_for_maintainer(self, actor: Actor) -> List[ReportPublic]:
        return await self._present_many(await self.reports.list_by_maintainer(actor.id))

    async def list_reports_for_owner(self, actor: Actor) -> List[ReportPublic]:
        return await self._present_many(await self.reports.list_by_owner(actor.id))

    # --- helpers ---

    async def _get(self, report_id: int) -> Report:
        report = await self.reports.get(report_id)
        if report is None:
            raise NotFoundError("Report not found")
        return report

    async def _current_status(self, report_id: int) -> Optional[str]:
        report = await self.reports.get(report_id)
        return report.status if report is not None else None

    def _notify(self, change: StatusChange) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.schedule(change)
        except Exception:
            logger.exception("Could not schedule notification for report %s", change.report_id)

    async def _present(self, report: Report) -> ReportPublic:
        return (await self._present_many([report]))[0]

    async def _present_many(self, reports: Iterable[Report]) -> List[ReportPublic]:
        reports = list(reports)
        ids = set()
        for report in reports:
            ids.update((report.user_id, report.officer_id, report.external_maintainer_id))
        users = await self.users.get_many(ids)
        return [_to_public(report, users) for report in reports]


def _to_public(report: Report, users: Dict[int, User]) -> ReportPublic:
    return ReportPublic(
        id=report.id,
        user_id=report.user_id,
        latitude=report.latitude,
        longitude=report.longitude,
        title=report.title,
        description=report.description,
        category=report.category,
        status=report.status,
        rejection_reason=report.rejection_reason,
        technical_office=report.technical_office,
        created_at=report.created_at,
        updated_at=report.updated_at,
        photos=list(report.photos or []),
        user=UserSummary.from_user(users.get(report.user_id)),
        officer=UserSummary.from_user(users.get(report.officer_id)),
        external_maintainer=UserSummary.from_user(users.get(report.external_maintainer_id)),
    )


__all__ = ["ReportLifecycleEngine", "StatusChangeNotifier"]
