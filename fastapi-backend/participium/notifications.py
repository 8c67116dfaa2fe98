"""
Status change notifications.

The lifecycle engine commits a transition first and then hands a
``StatusChange`` to ``NotificationDispatcher.schedule``. Dispatch runs as an
independent asyncio task with its own database session: it persists one
notification for the report owner and, when the owner opted in, makes one
time-bounded email attempt. Nothing raised in here reaches the caller of
the transition; failures are visible only in logs and metrics.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Set, Tuple

from .config import get_settings
from .constants import ReportStatus, status_display_name
from .email_service import send_notification_email
from .errors import NotFoundError
from .models import Notification, NotificationPublic, Report, User
from .repositories.notifications import NotificationStore, SqlNotificationStore
from .repositories.reports import SqlReportStore
from .repositories.users import SqlUserStore
from .workflow_metrics import (
    NOTIFICATION_DISPATCH_FAILURES,
    NOTIFICATION_EMAILS,
    NOTIFICATION_TASKS_PENDING,
    NOTIFICATIONS_CREATED,
)

logger = logging.getLogger(__name__)

EmailSender = Callable[[str, str, str], Awaitable[bool]]


@dataclass(frozen=True)
class StatusChange:
    report_id: int
    new_status: str
    old_status: str
    rejection_reason: Optional[str] = None


_STATUS_SENTENCES = {
    ReportStatus.ASSIGNED: "The report has been assigned to a technical office and is being reviewed.",
    ReportStatus.PROGRESS: "Work on your report has started.",
    ReportStatus.SUSPENDED: "Work on your report has been temporarily suspended.",
    ReportStatus.RESOLVED: "Your report has been resolved! Thank you for your contribution.",
}


def compose_status_notification(
    report_title: str,
    new_status: str,
    old_status: str,
    rejection_reason: Optional[str] = None,
) -> Tuple[str, str]:
    """Return ``(title, message)`` for a status change."""
    new_name = status_display_name(new_status)
    title = f"Report Status Updated: {new_name}"
    message = (
        f'Your report "{report_title}" status has been updated from '
        f"{status_display_name(old_status)} to {new_name}."
    )

    try:
        status = ReportStatus(new_status)
    except ValueError:
        return title, message

    if status is ReportStatus.REJECTED:
        if rejection_reason:
            message += f"\n\nReason: {rejection_reason}"
    elif status in _STATUS_SENTENCES:
        message += f"\n\n{_STATUS_SENTENCES[status]}"
    return title, message


class NotificationDispatcher:
    def __init__(
        self,
        session_factory,
        send_email: EmailSender = send_notification_email,
        *,
        max_concurrency: Optional[int] = None,
        email_timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.session_factory = session_factory
        self.send_email = send_email
        self.email_timeout = email_timeout if email_timeout is not None else settings.email_timeout_seconds
        self._semaphore = asyncio.Semaphore(max_concurrency or settings.notification_max_concurrency)
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def schedule(self, change: StatusChange) -> asyncio.Task:
        """Queue ``change`` for dispatch and return immediately."""
        task = asyncio.create_task(self._run(change))
        self._tasks.add(task)
        NOTIFICATION_TASKS_PENDING.inc()
        task.add_done_callback(self._forget)
        return task

    def _forget(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        NOTIFICATION_TASKS_PENDING.dec()

    async def _run(self, change: StatusChange) -> None:
        async with self._semaphore:
            await self.dispatch(change)

    async def drain(self) -> None:
        """Wait until every scheduled dispatch has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def dispatch(self, change: StatusChange) -> Optional[Notification]:
        """Persist the notification and email the owner. Never raises."""
        try:
            async with self.session_factory() as session:
                report = await SqlReportStore(session).get(change.report_id)
                if report is None:
                    logger.error("Report %s not found for notification", change.report_id)
                    return None
                if report.user_id is None:
                    logger.debug("Report %s is anonymous; no notification", change.report_id)
                    return None
                owner = await SqlUserStore(session).get(report.user_id)
                if owner is None:
                    logger.error("Owner %s of report %s not found for notification", report.user_id, report.id)
                    return None

                title, message = compose_status_notification(
                    report.title, change.new_status, change.old_status, change.rejection_reason
                )
                notification = await SqlNotificationStore(session).create(
                    user_id=owner.id, report_id=report.id, title=title, message=message
                )
                NOTIFICATIONS_CREATED.inc()
        except Exception:
            NOTIFICATION_DISPATCH_FAILURES.inc()
            logger.exception(
                "Error creating status change notification for report %s", change.report_id
            )
            return None

        await self._email_owner(owner, report, message)
        logger.info(
            "Notification created for report %s status change: %s -> %s",
            change.report_id,
            change.old_status,
            change.new_status,
        )
        return notification

    async def _email_owner(self, owner: User, report: Report, message: str) -> None:
        if not owner.mail_notifications or not owner.email:
            NOTIFICATION_EMAILS.labels(outcome="skipped").inc()
            return

        subject = f"Report Status Update: {report.title}"
        try:
            sent = await asyncio.wait_for(
                self.send_email(owner.email, subject, message), timeout=self.email_timeout
            )
        except asyncio.TimeoutError:
            NOTIFICATION_EMAILS.labels(outcome="timeout").inc()
            logger.warning("Email to %s for report %s timed out after %ss", owner.email, report.id, self.email_timeout)
        except Exception as e:
            NOTIFICATION_EMAILS.labels(outcome="failed").inc()
            logger.error("Failed to email %s for report %s: %s", owner.email, report.id, e)
        else:
            NOTIFICATION_EMAILS.labels(outcome="sent" if sent else "failed").inc()


class NotificationService:
    """Recipient-scoped notification operations."""

    def __init__(self, notifications: NotificationStore):
        self.notifications = notifications

    async def list_notifications(self, user_id: int) -> List[NotificationPublic]:
        rows = await self.notifications.list_for_user(user_id)
        return [NotificationPublic.from_row(row) for row in rows]

    async def list_unread(self, user_id: int) -> List[NotificationPublic]:
        rows = await self.notifications.list_for_user(user_id, unread_only=True)
        return [NotificationPublic.from_row(row) for row in rows]

    async def mark_as_read(self, notification_id: int, user_id: int) -> NotificationPublic:
        row = await self.notifications.mark_read(notification_id, user_id)
        if row is None:
            raise NotFoundError("Notification not found")
        return NotificationPublic.from_row(row)

    async def mark_all_as_read(self, user_id: int) -> int:
        return await self.notifications.mark_all_read(user_id)

    async def delete_notification(self, notification_id: int, user_id: int) -> None:
        if not await self.notifications.delete(notification_id, user_id):
            raise NotFoundError("Notification not found")


__all__ = [
    "NotificationDispatcher",
    "NotificationService",
    "StatusChange",
    "compose_status_notification",
]
