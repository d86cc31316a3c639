"""
Figures shown on the dashboards, derived from the store's collections.

Nothing here is cached: every call filters and sums the lists it is given.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import settings
from schemas import (
    Announcement, Complaint, LeaveRequest, Payment, ServiceRequest, User, as_utc,
)

_UNITS = (
    (31536000, "year"),
    (2592000, "month"),
    (86400, "day"),
    (3600, "hour"),
    (60, "min"),
)


def time_ago(when: datetime, now: Optional[datetime] = None) -> str:
    now = as_utc(now) if now else datetime.now(timezone.utc)
    seconds = (now - as_utc(when)).total_seconds()
    for size, unit in _UNITS:
        count = int(seconds // size)
        if count >= 1:
            return f"{count} {unit}{'s' if count != 1 else ''} ago"
    return "Just now"


@dataclass
class ActivityItem:
    id: str
    title: str
    type: str
    date: datetime
    status: str


@dataclass
class StudentOverview:
    room: Optional[str]
    total_due: float
    active_complaints: int
    pending_leaves: int
    pinned_announcements: List[Announcement] = field(default_factory=list)
    recent_activity: List[ActivityItem] = field(default_factory=list)


@dataclass
class AdminOverview:
    total_users: int
    active_complaints: int
    pending_service_requests: int
    pending_leave_requests: int
    pending_revenue: float
    occupancy_rate: int
    urgent_issues: List[Complaint] = field(default_factory=list)


def owned_by(records: Sequence, user_id: str) -> list:
    return [r for r in records if r.student_id == user_id]


def total_due(payments: Sequence[Payment]) -> float:
    return sum(p.amount for p in payments if p.status != "Paid")


def total_paid(payments: Sequence[Payment]) -> float:
    return sum(p.amount for p in payments if p.status == "Paid")


def payment_summary(payments: Sequence[Payment]) -> Dict[str, float]:
    return {"total_due": total_due(payments), "total_paid": total_paid(payments)}


def leave_stats(requests: Sequence[LeaveRequest]) -> Dict[str, int]:
    return {
        "total": len(requests),
        "approved": sum(1 for r in requests if r.status == "Approved"),
        "pending": sum(1 for r in requests if r.status == "Pending"),
    }


def complaint_status_counts(complaints: Sequence[Complaint]) -> Dict[str, int]:
    counts = {"Pending": 0, "In-progress": 0, "Resolved": 0}
    for c in complaints:
        counts[c.status] += 1
    return counts


def pinned(announcements: Sequence[Announcement], limit: int = 2) -> List[Announcement]:
    return [a for a in announcements if a.is_pinned][:limit]


def recent_activity(complaints: Sequence[Complaint], service_requests: Sequence[ServiceRequest],
                    payments: Sequence[Payment], limit: int = 4) -> List[ActivityItem]:
    items = [ActivityItem(c.id, c.title, "Complaint", c.date, c.status) for c in complaints]
    items += [ActivityItem(s.id, s.service_type, "Service", s.requested_date, s.status) for s in service_requests]
    items += [ActivityItem(p.id, p.title, "Payment", p.paid_on or p.due_date, p.status) for p in payments]
    items.sort(key=lambda i: as_utc(i.date), reverse=True)
    return items[:limit]


def student_overview(state, user) -> StudentOverview:
    payments = owned_by(state.payments, user.id)
    complaints = owned_by(state.complaints, user.id)
    return StudentOverview(
        room=user.room,
        total_due=total_due(payments),
        active_complaints=sum(1 for c in complaints if c.status != "Resolved"),
        pending_leaves=sum(1 for r in owned_by(state.leave_requests, user.id) if r.status == "Pending"),
        pinned_announcements=pinned(state.announcements),
        recent_activity=recent_activity(complaints, owned_by(state.service_requests, user.id), payments),
    )


def occupancy_rate(users: Sequence[User], capacity: int = None) -> int:
    capacity = capacity or settings.HOSTEL_CAPACITY
    active = sum(1 for u in users if u.status == "Active")
    return round(active / capacity * 100)


def admin_overview(state, capacity: int = None) -> AdminOverview:
    return AdminOverview(
        total_users=len(state.users),
        active_complaints=sum(1 for c in state.complaints if c.status != "Resolved"),
        pending_service_requests=sum(1 for s in state.service_requests if s.status == "Pending"),
        pending_leave_requests=sum(1 for r in state.leave_requests if r.status == "Pending"),
        pending_revenue=sum(p.amount for p in state.payments if p.status in ("Pending", "Overdue")),
        occupancy_rate=occupancy_rate(state.users, capacity),
        urgent_issues=[c for c in state.complaints if c.priority == "High" and c.status != "Resolved"],
    )


def _contains(value: Optional[str], term: str) -> bool:
    return term in (value or "").lower()


def search_users(users: Sequence[User], term: str = "") -> List[User]:
    """Users whose name or room contains ``term``, ignoring case."""
    term = (term or "").strip().lower()
    return [u for u in users if _contains(u.name, term) or _contains(u.room, term)]


def filter_complaints(complaints: Sequence[Complaint], query: str = "") -> List[Complaint]:
    query = (query or "").strip().lower()
    return [c for c in complaints if _contains(c.title, query) or _contains(c.description, query)]


def filter_service_requests(requests: Sequence[ServiceRequest], category: Optional[str] = None,
                            query: str = "") -> List[ServiceRequest]:
    """Requests of one service type (any when ``category`` is empty) matching ``query``."""
    query = (query or "").strip().lower()
    return [
        r for r in requests
        if (not category or r.service_type.lower() == category.lower())
        and (_contains(r.description, query) or _contains(r.service_type, query))
    ]
