"""Prometheus metrics shared by the report workflow modules."""

from prometheus_client import Counter, Gauge


REPORT_TRANSITIONS = Counter(
    "report_transitions_total",
    "Report workflow operations by outcome (applied or the error kind)",
    ["operation", "outcome"],
)
NOTIFICATIONS_CREATED = Counter(
    "notifications_created_total",
    "Total number of persisted status change notifications",
)
NOTIFICATION_EMAILS = Counter(
    "notification_emails_total",
    "Status change emails by outcome (sent, failed, timeout, skipped)",
    ["outcome"],
)
NOTIFICATION_DISPATCH_FAILURES = Counter(
    "notification_dispatch_failures_total",
    "Total number of notification dispatches that failed before persisting",
)
NOTIFICATION_TASKS_PENDING = Gauge(
    "notification_tasks_pending",
    "Number of notification dispatch tasks not yet finished",
)
