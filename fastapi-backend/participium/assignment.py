"""Officer assignment for newly accepted reports."""

import logging

from .constants import ACTIVE_ASSIGNMENT_STATUSES
from .errors import NoWorkersFoundError, ValidationError
from .repositories.users import UserStore
from .roles import RoleLike, is_internal_technical_role, parse_role

logger = logging.getLogger(__name__)


class OfficerAssignmentSelector:
    """Least-loaded policy.

    Load is the number of reports the officer holds in an active status
    (assigned, progress, suspended). Ties go to the lowest user id so the
    choice is deterministic.
    """

    def __init__(self, users: UserStore):
        self.users = users

    async def select_officer(self, technical_office: RoleLike) -> int:
        if not is_internal_technical_role(technical_office):
            raise ValidationError(f"Invalid technical office: {technical_office}")
        role = parse_role(technical_office)
        officer_id = await self.users.least_loaded_with_role(role, ACTIVE_ASSIGNMENT_STATUSES)
        if officer_id is None:
            logger.warning("No officer holds role %s", role.value)
            raise NoWorkersFoundError(role.value)
        logger.debug("Selected officer %s for role %s", officer_id, role.value)
        return officer_id
