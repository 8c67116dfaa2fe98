"""
Authorization policy for report transitions and report channels.

``authorize_transition`` is the single answer to "may actor A move report R
to status S"; every transition entry point calls it before writing. The
channel predicates re-derive eligibility from the live report row on each
call, never from a cached session role.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional

from .constants import (
    ASSIGNEE_SOURCE_STATUSES,
    ASSIGNEE_TARGET_STATUSES,
    ReportStatus,
)
from .errors import AuthorizationError, InvalidTransitionError
from .models import Report, User
from .roles import Capability, Role, UserType, capabilities_for, parse_role, parse_user_type


@dataclass(frozen=True)
class Actor:
    """An authenticated caller: user id, primitive type and granular roles."""

    id: int
    user_type: UserType = UserType.CITIZEN
    roles: FrozenSet[Role] = field(default_factory=frozenset)

    @classmethod
    def from_user(cls, user: User, roles: Iterable[Role] = ()) -> "Actor":
        parsed = (parse_role(r) for r in roles)
        return cls(
            id=user.id,
            user_type=parse_user_type(user.user_type) or UserType.CITIZEN,
            roles=frozenset(r for r in parsed if r is not None),
        )

    @property
    def capabilities(self) -> FrozenSet[Capability]:
        return capabilities_for(self.user_type, self.roles)

    @property
    def is_admin(self) -> bool:
        return self.user_type is UserType.ADMIN

    @property
    def is_citizen(self) -> bool:
        return self.user_type is UserType.CITIZEN

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def has_role(self, role: Role) -> bool:
        return role in self.roles


def is_report_owner(actor: Optional[Actor], report: Report) -> bool:
    return actor is not None and report.user_id is not None and report.user_id == actor.id


def is_report_officer(actor: Optional[Actor], report: Report) -> bool:
    return actor is not None and report.officer_id is not None and report.officer_id == actor.id


def is_report_maintainer(actor: Optional[Actor], report: Report) -> bool:
    return (
        actor is not None
        and report.external_maintainer_id is not None
        and report.external_maintainer_id == actor.id
    )


def is_report_assignee(actor: Optional[Actor], report: Report) -> bool:
    return is_report_officer(actor, report) or is_report_maintainer(actor, report)


def authorize_transition(actor: Actor, report: Report, target: ReportStatus, *, strict: bool = True) -> None:
    """Raise unless ``actor`` may move ``report`` to ``target``.

    AuthorizationError when the caller is not the entitled actor,
    InvalidTransitionError when the report is not in a status the
    transition starts from.
    """
    target = ReportStatus(target)
    current = ReportStatus(report.status)

    if target in (ReportStatus.ASSIGNED, ReportStatus.REJECTED):
        if not actor.can(Capability.REVIEW_REPORTS):
            raise AuthorizationError("Only public relations officers or admins can review reports")
        if current is not ReportStatus.PENDING:
            raise InvalidTransitionError(
                f"Report {report.id} has already been reviewed",
                current=current.value,
                target=target.value,
            )
        return

    if target in ASSIGNEE_TARGET_STATUSES:
        if not is_report_assignee(actor, report):
            raise AuthorizationError("Only the officer or external maintainer assigned to this report can update its status")
        if strict and (target is current or current not in ASSIGNEE_SOURCE_STATUSES):
            raise InvalidTransitionError(current=current.value, target=target.value)
        return

    raise InvalidTransitionError(current=current.value, target=target.value)


def authorize_delegation(actor: Actor, report: Report) -> None:
    """Only the assigned officer may delegate, and only while status is assigned."""
    if not is_report_officer(actor, report):
        raise AuthorizationError("Only the officer assigned to this report can delegate it")
    if report.status != ReportStatus.ASSIGNED.value:
        raise InvalidTransitionError(
            f"Report {report.id} can be delegated only while assigned",
            current=report.status,
            target=ReportStatus.ASSIGNED.value,
        )


def can_access_internal_comments(actor: Actor, report: Report) -> bool:
    return is_report_assignee(actor, report)


def can_write_message(actor: Actor, report: Report) -> bool:
    return is_report_owner(actor, report) or is_report_assignee(actor, report) or actor.is_admin


def can_read_messages(actor: Actor, report: Report) -> bool:
    return can_write_message(actor, report)


__all__ = [
    "Actor",
    "authorize_delegation",
    "authorize_transition",
    "can_access_internal_comments",
    "can_read_messages",
    "can_write_message",
    "is_report_assignee",
    "is_report_maintainer",
    "is_report_officer",
    "is_report_owner",
]
