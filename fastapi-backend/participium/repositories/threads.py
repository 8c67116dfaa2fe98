"""Storage for the two per-report channels: internal comments and messages."""

from __future__ import annotations

from typing import List, Protocol

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..models import InternalComment, Message


class CommentStore(Protocol):
    async def create(self, report_id: int, author_id: int, text: str) -> InternalComment: ...

    async def list_for_report(self, report_id: int) -> List[InternalComment]: ...


class MessageStore(Protocol):
    async def create(self, report_id: int, sender_id: int, text: str) -> Message: ...

    async def list_for_report(self, report_id: int) -> List[Message]: ...


class SqlCommentStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, report_id: int, author_id: int, text: str) -> InternalComment:
        comment = InternalComment(report_id=report_id, author_id=author_id, text=text)
        self.session.add(comment)
        await self.session.commit()
        await self.session.refresh(comment)
        return comment

    async def list_for_report(self, report_id: int) -> List[InternalComment]:
        statement = (
            select(InternalComment)
            .where(InternalComment.report_id == report_id)
            .order_by(InternalComment.created_at.asc(), InternalComment.id.asc())
        )
        result = await self.session.exec(statement)
        return list(result.all())


class SqlMessageStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, report_id: int, sender_id: int, text: str) -> Message:
        message = Message(report_id=report_id, sender_id=sender_id, text=text)
        self.session.add(message)
        await self.session.commit()
        await self.session.refresh(message)
        return message

    async def list_for_report(self, report_id: int) -> List[Message]:
        statement = (
            select(Message)
            .where(Message.report_id == report_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        result = await self.session.exec(statement)
        return list(result.all())


__all__ = ["CommentStore", "MessageStore", "SqlCommentStore", "SqlMessageStore"]
