# Constants for the Participium report workflow

from enum import Enum


# --- Report Status (The State Machine) ---
# PENDING is the only initial state. REJECTED has no outgoing transition.


class ReportStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    REJECTED = "rejected"
    PROGRESS = "progress"
    SUSPENDED = "suspended"
    RESOLVED = "resolved"


class ReviewDecision(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


# Targets an assignee (officer or external maintainer) may request
ASSIGNEE_TARGET_STATUSES = frozenset(
    {ReportStatus.PROGRESS, ReportStatus.SUSPENDED, ReportStatus.RESOLVED}
)

# Current statuses from which an assignee update is accepted in strict mode
ASSIGNEE_SOURCE_STATUSES = frozenset(
    {
        ReportStatus.ASSIGNED,
        ReportStatus.PROGRESS,
        ReportStatus.SUSPENDED,
        ReportStatus.RESOLVED,
    }
)

# Statuses that count towards an officer's workload
ACTIVE_ASSIGNMENT_STATUSES = frozenset(
    {ReportStatus.ASSIGNED, ReportStatus.PROGRESS, ReportStatus.SUSPENDED}
)

# Statuses hidden from the public map
NON_PUBLIC_STATUSES = frozenset({ReportStatus.PENDING, ReportStatus.REJECTED})

STATUS_DISPLAY_NAMES = {
    ReportStatus.PENDING: "Pending",
    ReportStatus.ASSIGNED: "Assigned",
    ReportStatus.REJECTED: "Rejected",
    ReportStatus.PROGRESS: "In Progress",
    ReportStatus.SUSPENDED: "Suspended",
    ReportStatus.RESOLVED: "Resolved",
}


def status_display_name(status) -> str:
    try:
        return STATUS_DISPLAY_NAMES[ReportStatus(status)]
    except ValueError:
        return str(status)


# --- Report Categories ---
# Closed set; "Other" stays last.
REPORT_CATEGORIES = [
    "Water Supply - Drinking Water",
    "Architectural Barriers",
    "Sewer System",
    "Public Lighting",
    "Waste",
    "Road Signs and Traffic Lights",
    "Roads and Urban Furnishings",
    "Public Green Areas and Playgrounds",
    "Other",
]

# --- Report Content Limits ---
MIN_PHOTOS = 1
MAX_PHOTOS = 3
