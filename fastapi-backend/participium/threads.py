"""Per-report channels: staff-only internal comments and citizen messages.

Eligibility is checked against the report row read for each call, so a
reassignment takes effect on the next request.
"""

import logging
from typing import Dict, List

from .authorization import (
    Actor,
    can_access_internal_comments,
    can_read_messages,
    can_write_message,
)
from .errors import AuthorizationError, NotFoundError, ValidationError
from .models import CommentPublic, MessagePublic, Report, User, UserSummary
from .repositories.reports import ReportStore
from .repositories.threads import CommentStore, MessageStore
from .repositories.users import UserStore

logger = logging.getLogger(__name__)


def _clean_text(text) -> str:
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Text is required")
    return text.strip()


class _ReportChannel:
    def __init__(self, reports: ReportStore, users: UserStore):
        self.reports = reports
        self.users = users

    async def _report(self, report_id: int) -> Report:
        report = await self.reports.get(report_id)
        if report is None:
            raise NotFoundError("Report not found")
        return report

    async def _authors(self, ids) -> Dict[int, User]:
        return await self.users.get_many(ids)


class CommentService(_ReportChannel):
    """Internal comments between the assigned officer and maintainer."""

    def __init__(self, reports: ReportStore, users: UserStore, comments: CommentStore):
        super().__init__(reports, users)
        self.comments = comments

    async def add_comment(self, report_id: int, actor: Actor, text) -> CommentPublic:
        text = _clean_text(text)
        report = await self._report(report_id)
        if not can_access_internal_comments(actor, report):
            raise AuthorizationError("Only the officer or external maintainer assigned to this report can comment")
        comment = await self.comments.create(report.id, actor.id, text)
        logger.info("comment %s added to report %s by user %s", comment.id, report.id, actor.id)
        authors = await self._authors([actor.id])
        return CommentPublic(
            id=comment.id,
            report_id=comment.report_id,
            author_id=comment.author_id,
            text=comment.text,
            created_at=comment.created_at,
            author=UserSummary.from_user(authors.get(actor.id)),
        )

    async def list_comments(self, report_id: int, actor: Actor) -> List[CommentPublic]:
        report = await self._report(report_id)
        if not can_access_internal_comments(actor, report):
            raise AuthorizationError("Only the officer or external maintainer assigned to this report can read comments")
        rows = await self.comments.list_for_report(report.id)
        authors = await self._authors(row.author_id for row in rows)
        return [
            CommentPublic(
                id=row.id,
                report_id=row.report_id,
                author_id=row.author_id,
                text=row.text,
                created_at=row.created_at,
                author=UserSummary.from_user(authors.get(row.author_id)),
            )
            for row in rows
        ]


class MessageService(_ReportChannel):
    """Messages between the reporting citizen and the assigned staff."""

    def __init__(self, reports: ReportStore, users: UserStore, messages: MessageStore):
        super().__init__(reports, users)
        self.messages = messages

    async def send_message(self, report_id: int, actor: Actor, text) -> MessagePublic:
        text = _clean_text(text)
        report = await self._report(report_id)
        if not can_write_message(actor, report):
            raise AuthorizationError("You are not allowed to send messages on this report")
        message = await self.messages.create(report.id, actor.id, text)
        logger.info("message %s sent on report %s by user %s", message.id, report.id, actor.id)
        senders = await self._authors([actor.id])
        return MessagePublic(
            id=message.id,
            report_id=message.report_id,
            sender_id=message.sender_id,
            text=message.text,
            created_at=message.created_at,
            sender=UserSummary.from_user(senders.get(actor.id)),
        )

    async def list_messages(self, report_id: int, actor: Actor) -> List[MessagePublic]:
        report = await self._report(report_id)
        if not can_read_messages(actor, report):
            raise AuthorizationError("You are not allowed to read messages on this report")
        rows = await self.messages.list_for_report(report.id)
        senders = await self._authors(row.sender_id for row in rows)
        return [
            MessagePublic(
                id=row.id,
                report_id=row.report_id,
                sender_id=row.sender_id,
                text=row.text,
                created_at=row.created_at,
                sender=UserSummary.from_user(senders.get(row.sender_id)),
            )
            for row in rows
        ]


__all__ = ["CommentService", "MessageService"]
