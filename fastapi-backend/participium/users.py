"""
User management: citizen registration, staff accounts, role assignment and
the caller's own profile.

Creating staff accounts, assigning roles and listing municipality users
require ``Capability.MANAGE_USERS``. A user may only edit their own profile;
the ``mail_notifications`` flag set here decides whether status changes are
also emailed.
"""

import logging
from typing import Iterable, List, Optional

from email_validator import EmailNotValidError, validate_email

from .auth import get_password_hash
from .authorization import Actor
from .errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from .models import User, UserPublic
from .repositories.users import UserStore
from .roles import Capability, Role, UserType, parse_role, parse_user_type

logger = logging.getLogger(__name__)


def _required(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    return value.strip()


def _normalize_email(email: Optional[str]) -> Optional[str]:
    if not email:
        return None
    try:
        return validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email address: {e}") from e


def _parse_roles(values: Iterable) -> List[Role]:
    roles = []
    for value in values or ():
        role = parse_role(value)
        if role is None:
            raise ValidationError(f"Invalid role: {value}")
        roles.append(role)
    return roles


class UserService:
    def __init__(self, users: UserStore):
        self.users = users

    async def create_user(
        self,
        username: str,
        password: str,
        email: Optional[str] = None,
        user_type: UserType = UserType.CITIZEN,
        roles: Iterable[Role] = (),
        name: Optional[str] = None,
        surname: Optional[str] = None,
        mail_notifications: bool = True,
    ) -> User:
        """Create a user with a hashed password and its roles, without a permission check."""
        username = _required(username, "Username")
        password = _required(password, "Password")
        parsed_type = parse_user_type(user_type)
        if parsed_type is None:
            raise ValidationError(f"Invalid user type: {user_type}")
        roles = _parse_roles(roles)
        if roles and parsed_type is not UserType.MUNICIPALITY_USER:
            raise ValidationError("Only municipality users can hold roles")

        if await self.users.get_by_login(username) is not None:
            raise ConflictError(f"Username {username} is already taken")
        email = _normalize_email(email)
        if email and await self.users.get_by_login(email) is not None:
            raise ConflictError(f"Email {email} is already registered")

        user = User(
            username=username,
            email=email,
            name=name,
            surname=surname,
            user_type=parsed_type.value,
            password_hash=get_password_hash(password),
            mail_notifications=mail_notifications,
        )
        user = await self.users.create(user, roles)
        logger.info("Created %s user %s (id: %s)", user.user_type, user.username, user.id)
        return user

    async def register_citizen(self, *, username, password, email, name, surname) -> UserPublic:
        user = await self.create_user(
            username=username,
            password=password,
            email=_required(email, "Email"),
            name=_required(name, "Name"),
            surname=_required(surname, "Surname"),
        )
        return UserPublic.from_user(user, ())

    async def create_user_as_admin(
        self,
        actor: Actor,
        *,
        username,
        password,
        email,
        name,
        surname,
        user_type=UserType.MUNICIPALITY_USER,
        roles: Iterable = (),
    ) -> UserPublic:
        self._require_manager(actor)
        user = await self.create_user(
            username=username,
            password=password,
            email=_required(email, "Email"),
            name=_required(name, "Name"),
            surname=_required(surname, "Surname"),
            user_type=user_type,
            roles=roles,
        )
        return await self._present(user)

    async def assign_role(self, actor: Actor, user_id: int, role) -> UserPublic:
        """Grant one more role; holding it already is a ``ConflictError``."""
        self._require_manager(actor)
        parsed = parse_role(role)
        if parsed is None:
            raise ValidationError(f"Invalid role: {role}")

        user = await self.users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        if user.user_type != UserType.MUNICIPALITY_USER.value:
            raise ValidationError("Only municipality users can hold roles")

        user = await self.users.add_role(user.id, parsed)
        logger.info("Role %s assigned to user %s by user %s", parsed.value, user.id, actor.id)
        return await self._present(user)

    async def list_municipality_users(self, actor: Actor, role=None) -> List[UserPublic]:
        self._require_manager(actor)
        if role is None:
            users = await self.users.list_by_type(UserType.MUNICIPALITY_USER)
        else:
            parsed = parse_role(role)
            if parsed is None:
                raise ValidationError(f"Invalid role: {role}")
            users = await self.users.list_by_role(parsed)
        return [await self._present(user) for user in users]

    async def get_profile(self, actor: Actor) -> UserPublic:
        user = await self.users.get(actor.id)
        if user is None:
            raise NotFoundError("User not found")
        return await self._present(user)

    async def update_profile(
        self,
        actor: Actor,
        user_id: int,
        *,
        mail_notifications: Optional[bool] = None,
        email: Optional[str] = None,
        name: Optional[str] = None,
        surname: Optional[str] = None,
    ) -> UserPublic:
        if actor.id != user_id:
            raise AuthorizationError("You can only update your own profile")

        changes = {}
        if mail_notifications is not None:
            changes["mail_notifications"] = bool(mail_notifications)
        if email is not None:
            email = _normalize_email(_required(email, "Email"))
            existing = await self.users.get_by_login(email)
            if existing is not None and existing.id != user_id:
                raise ConflictError(f"Email {email} is already registered")
            changes["email"] = email
        if name is not None:
            changes["name"] = _required(name, "Name")
        if surname is not None:
            changes["surname"] = _required(surname, "Surname")

        user = await self.users.update(user_id, **changes)
        if user is None:
            raise NotFoundError("User not found")
        return await self._present(user)

    @staticmethod
    def _require_manager(actor: Actor) -> None:
        if not actor.can(Capability.MANAGE_USERS):
            raise AuthorizationError("Only administrators can manage users")

    async def _present(self, user: User) -> UserPublic:
        return UserPublic.from_user(user, await self.users.roles_of(user.id))


__all__ = ["UserService"]
