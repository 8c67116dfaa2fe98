"""Notification storage. Every mutation is scoped to the recipient."""

from __future__ import annotations

from typing import List, Optional, Protocol

from sqlalchemy import delete, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..models import Notification


class NotificationStore(Protocol):
    async def create(self, user_id: int, title: str, message: str, report_id: Optional[int] = None) -> Notification: ...

    async def list_for_user(self, user_id: int, unread_only: bool = False) -> List[Notification]: ...

    async def mark_read(self, notification_id: int, user_id: int) -> Optional[Notification]: ...

    async def mark_all_read(self, user_id: int) -> int: ...

    async def delete(self, notification_id: int, user_id: int) -> bool: ...


class SqlNotificationStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user_id: int, title: str, message: str, report_id: Optional[int] = None) -> Notification:
        notification = Notification(user_id=user_id, report_id=report_id, title=title, message=message)
        self.session.add(notification)
        await self.session.commit()
        await self.session.refresh(notification)
        return notification

    async def list_for_user(self, user_id: int, unread_only: bool = False) -> List[Notification]:
        statement = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            statement = statement.where(Notification.is_read == False)  # noqa: E712
        statement = statement.order_by(Notification.created_at.desc(), Notification.id.desc())
        result = await self.session.exec(statement)
        return list(result.all())

    async def mark_read(self, notification_id: int, user_id: int) -> Optional[Notification]:
        table = Notification.__table__
        conn = await self.session.connection()
        result = await conn.execute(
            update(table)
            .where(table.c.id == notification_id, table.c.user_id == user_id)
            .values(is_read=True)
        )
        await self.session.commit()
        if result.rowcount == 0:
            return None
        return await self.session.get(Notification, notification_id, populate_existing=True)

    async def mark_all_read(self, user_id: int) -> int:
        table = Notification.__table__
        conn = await self.session.connection()
        result = await conn.execute(
            update(table)
            .where(table.c.user_id == user_id, table.c.is_read == False)  # noqa: E712
            .values(is_read=True)
        )
        await self.session.commit()
        return result.rowcount

    async def delete(self, notification_id: int, user_id: int) -> bool:
        table = Notification.__table__
        conn = await self.session.connection()
        result = await conn.execute(
            delete(table).where(table.c.id == notification_id, table.c.user_id == user_id)
        )
        await self.session.commit()
        return result.rowcount > 0


__all__ = ["NotificationStore", "SqlNotificationStore"]
