"""
Role and capability model.

Every authorization decision goes through the predicates in this module so
that adding a role is a single edit here. Users carry a primitive
``UserType`` plus any number of granular ``Role`` values; a municipality
user may hold several technical roles at once.
"""

from __future__ import annotations

from enum import Enum
from typing import FrozenSet, Iterable, Optional, Union


class UserType(str, Enum):
    CITIZEN = "citizen"
    ADMIN = "admin"
    MUNICIPALITY_USER = "municipality_user"


class Role(str, Enum):
    PUBLIC_RELATIONS_OFFICER = "municipal_public_relations_officer"
    MUNICIPAL_ADMINISTRATOR = "municipal_administrator"
    URBAN_PLANNER = "urban_planner"
    BUILDING_PERMIT_OFFICER = "building_permit_officer"
    BUILDING_INSPECTOR = "building_inspector"
    SUAP_OFFICER = "suap_officer"
    PUBLIC_WORKS_ENGINEER = "public_works_engineer"
    MOBILITY_TRAFFIC_ENGINEER = "mobility_traffic_engineer"
    ENVIRONMENT_TECHNICIAN = "environment_technician"
    TECHNICAL_OFFICE_STAFF_MEMBER = "technical_office_staff_member"
    EXTERNAL_MAINTAINER = "external_maintainer"


class Capability(str, Enum):
    REVIEW_REPORTS = "review_reports"
    MANAGE_USERS = "manage_users"


ROLE_METADATA = {
    Role.PUBLIC_RELATIONS_OFFICER: {"label": "Public Relations (URP)"},
    Role.MUNICIPAL_ADMINISTRATOR: {"label": "Municipal Administrator"},
    Role.URBAN_PLANNER: {"label": "Urban Planner (Urbanistica)"},
    Role.BUILDING_PERMIT_OFFICER: {"label": "Building Permit Officer (Edilizia Privata)"},
    Role.BUILDING_INSPECTOR: {"label": "Building Inspector (Vigilanza Edilizia)"},
    Role.SUAP_OFFICER: {"label": "SUAP Officer"},
    Role.PUBLIC_WORKS_ENGINEER: {"label": "Public Works Engineer (Lavori Pubblici)"},
    Role.MOBILITY_TRAFFIC_ENGINEER: {"label": "Mobility & Traffic Engineer"},
    Role.ENVIRONMENT_TECHNICIAN: {"label": "Environment Technician (Ambiente)"},
    Role.TECHNICAL_OFFICE_STAFF_MEMBER: {"label": "Technical Office Staff (Generic)"},
    Role.EXTERNAL_MAINTAINER: {"label": "External Maintainer"},
}

TECHNICAL_ROLES: FrozenSet[Role] = frozenset(
    {
        Role.URBAN_PLANNER,
        Role.BUILDING_PERMIT_OFFICER,
        Role.BUILDING_INSPECTOR,
        Role.SUAP_OFFICER,
        Role.PUBLIC_WORKS_ENGINEER,
        Role.MOBILITY_TRAFFIC_ENGINEER,
        Role.ENVIRONMENT_TECHNICIAN,
        Role.EXTERNAL_MAINTAINER,
    }
)

INTERNAL_TECHNICAL_ROLES: FrozenSet[Role] = TECHNICAL_ROLES - {Role.EXTERNAL_MAINTAINER}

ROLE_CAPABILITIES = {
    Role.PUBLIC_RELATIONS_OFFICER: frozenset({Capability.REVIEW_REPORTS}),
    Role.MUNICIPAL_ADMINISTRATOR: frozenset({Capability.MANAGE_USERS}),
    Role.TECHNICAL_OFFICE_STAFF_MEMBER: frozenset(),
    Role.EXTERNAL_MAINTAINER: frozenset(),
    **{role: frozenset() for role in INTERNAL_TECHNICAL_ROLES},
}

USER_TYPE_CAPABILITIES = {
    UserType.CITIZEN: frozenset(),
    UserType.MUNICIPALITY_USER: frozenset(),
    UserType.ADMIN: frozenset({Capability.REVIEW_REPORTS, Capability.MANAGE_USERS}),
}

RoleLike = Union[Role, str, None]


def parse_role(value: RoleLike) -> Optional[Role]:
    """Return the ``Role`` for ``value`` or ``None`` when it is not a known role."""
    if isinstance(value, Role):
        return value
    if value is None:
        return None
    try:
        return Role(str(value).strip())
    except ValueError:
        return None


def parse_user_type(value: Union[UserType, str, None]) -> Optional[UserType]:
    if isinstance(value, UserType):
        return value
    if value is None:
        return None
    try:
        return UserType(str(value).strip())
    except ValueError:
        return None


def is_technical_role(role: RoleLike) -> bool:
    return parse_role(role) in TECHNICAL_ROLES


def is_internal_technical_role(role: RoleLike) -> bool:
    return parse_role(role) in INTERNAL_TECHNICAL_ROLES


def is_external_maintainer(role: RoleLike) -> bool:
    return parse_role(role) is Role.EXTERNAL_MAINTAINER


def is_public_relations_officer(role: RoleLike) -> bool:
    return parse_role(role) is Role.PUBLIC_RELATIONS_OFFICER


def is_admin(user_type: Union[UserType, str, None]) -> bool:
    return parse_user_type(user_type) is UserType.ADMIN


def capabilities_for(user_type: Union[UserType, str, None], roles: Iterable[RoleLike]) -> FrozenSet[Capability]:
    """Union of the capabilities granted by a user type and its roles."""
    caps = set(USER_TYPE_CAPABILITIES.get(parse_user_type(user_type), frozenset()))
    for value in roles:
        role = parse_role(value)
        if role is not None:
            caps |= ROLE_CAPABILITIES[role]
    return frozenset(caps)


__all__ = [
    "Capability",
    "INTERNAL_TECHNICAL_ROLES",
    "ROLE_CAPABILITIES",
    "ROLE_METADATA",
    "Role",
    "TECHNICAL_ROLES",
    "UserType",
    "capabilities_for",
    "is_admin",
    "is_external_maintainer",
    "is_internal_technical_role",
    "is_public_relations_officer",
    "is_technical_role",
    "parse_role",
    "parse_user_type",
]
