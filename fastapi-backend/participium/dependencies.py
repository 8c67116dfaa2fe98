"""Common FastAPI dependencies."""

from typing import Optional

from fastapi import Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from .database import async_session_factory, get_session
from .lifecycle import ReportLifecycleEngine
from .notifications import NotificationDispatcher, NotificationService
from .repositories.notifications import SqlNotificationStore
from .repositories.reports import SqlReportStore
from .repositories.threads import SqlCommentStore, SqlMessageStore
from .repositories.users import SqlUserStore
from .threads import CommentService, MessageService
from .users import UserService

_dispatcher: Optional[NotificationDispatcher] = None


def get_dispatcher() -> NotificationDispatcher:
    """Process-wide dispatcher; it opens its own sessions per notification."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher(async_session_factory)
    return _dispatcher


def get_lifecycle(
    session: AsyncSession = Depends(get_session),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> ReportLifecycleEngine:
    return ReportLifecycleEngine(SqlReportStore(session), SqlUserStore(session), dispatcher)


def get_notification_service(session: AsyncSession = Depends(get_session)) -> NotificationService:
    return NotificationService(SqlNotificationStore(session))


def get_comment_service(session: AsyncSession = Depends(get_session)) -> CommentService:
    return CommentService(SqlReportStore(session), SqlUserStore(session), SqlCommentStore(session))


def get_message_service(session: AsyncSession = Depends(get_session)) -> MessageService:
    return MessageService(SqlReportStore(session), SqlUserStore(session), SqlMessageStore(session))


def get_user_service(session: AsyncSession = Depends(get_session)) -> UserService:
    return UserService(SqlUserStore(session))


__all__ = [
    "get_comment_service",
    "get_dispatcher",
    "get_lifecycle",
    "get_message_service",
    "get_notification_service",
    "get_user_service",
]
