"""User and role storage."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Protocol

from sqlalchemy import and_, func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..errors import ConflictError, NotFoundError
from ..models import Report, User, UserRole
from ..roles import Role, UserType, parse_role


class UserStore(Protocol):
    async def get(self, user_id: int) -> Optional[User]: ...

    async def get_many(self, user_ids: Iterable[int]) -> Dict[int, User]: ...

    async def get_by_login(self, login: str) -> Optional[User]: ...

    async def roles_of(self, user_id: int) -> FrozenSet[Role]: ...

    async def has_role(self, user_id: int, role: Role) -> bool: ...

    async def list_by_role(self, role: Role) -> List[User]: ...

    async def list_by_type(self, user_type: UserType) -> List[User]: ...

    async def least_loaded_with_role(self, role: Role, active_statuses: Iterable[str]) -> Optional[int]: ...

    async def create(self, user: User, roles: Iterable[Role] = ()) -> User: ...

    async def add_role(self, user_id: int, role: Role) -> User: ...

    async def update(self, user_id: int, **changes: Any) -> Optional[User]: ...


class SqlUserStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: int) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def get_many(self, user_ids: Iterable[int]) -> Dict[int, User]:
        ids = {uid for uid in user_ids if uid is not None}
        if not ids:
            return {}
        result = await self.session.exec(select(User).where(User.id.in_(ids)))
        return {user.id: user for user in result.all()}

    async def get_by_login(self, login: str) -> Optional[User]:
        # Username first, then email: sequential lookups instead of an OR clause
        result = await self.session.exec(select(User).where(User.username == login))
        user = result.first()
        if user is None:
            result = await self.session.exec(select(User).where(User.email == login))
            user = result.first()
        return user

    async def roles_of(self, user_id: int) -> FrozenSet[Role]:
        result = await self.session.exec(select(UserRole.role).where(UserRole.user_id == user_id))
        roles = (parse_role(value) for value in result.all())
        return frozenset(role for role in roles if role is not None)

    async def has_role(self, user_id: int, role: Role) -> bool:
        return await self.session.get(UserRole, (user_id, role.value)) is not None

    async def list_by_role(self, role: Role) -> List[User]:
        statement = (
            select(User)
            .join(UserRole, UserRole.user_id == User.id)
            .where(UserRole.role == role.value)
            .order_by(User.id)
        )
        result = await self.session.exec(statement)
        return list(result.all())

    async def list_by_type(self, user_type: UserType) -> List[User]:
        statement = select(User).where(User.user_type == UserType(user_type).value).order_by(User.id)
        result = await self.session.exec(statement)
        return list(result.all())

    async def least_loaded_with_role(self, role: Role, active_statuses: Iterable[str]) -> Optional[int]:
        statuses = [getattr(s, "value", s) for s in active_statuses]
        workload = func.count(Report.id).label("workload")
        statement = (
            select(User.id, workload)
            .join(UserRole, UserRole.user_id == User.id)
            .outerjoin(Report, and_(Report.officer_id == User.id, Report.status.in_(statuses)))
            .where(UserRole.role == role.value)
            .group_by(User.id)
            .order_by(workload.asc(), User.id.asc())
            .limit(1)
        )
        result = await self.session.exec(statement)
        row = result.first()
        return row[0] if row else None

    async def create(self, user: User, roles: Iterable[Role] = ()) -> User:
        self.session.add(user)
        await self.session.flush()
        for role in dict.fromkeys(roles):
            self.session.add(UserRole(user_id=user.id, role=role.value))
        await self.session.commit()
        await self.session.refresh(user)
        return user

    async def add_role(self, user_id: int, role: Role) -> User:
        user = await self.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        if await self.has_role(user_id, role):
            raise ConflictError(f"User {user_id} already holds role {role.value}")
        self.session.add(UserRole(user_id=user_id, role=role.value))
        user.updated_at = datetime.now(timezone.utc)
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)
        return user

    async def update(self, user_id: int, **changes: Any) -> Optional[User]:
        user = await self.get(user_id)
        if user is None:
            return None
        for column, value in changes.items():
            setattr(user, column, value)
        user.updated_at = datetime.now(timezone.utc)
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)
        return user


__all__ = ["SqlUserStore", "UserStore"]
