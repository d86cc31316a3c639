from datetime import datetime, timedelta, timezone

import pytest

from dashboard import (
    admin_overview, complaint_status_counts, filter_complaints, filter_service_requests, leave_stats,
    occupancy_rate, payment_summary, recent_activity, search_users, student_overview, time_ago,
)
from schemas import Announcement, AuthUser, Complaint, LeaveRequest, Payment, ServiceRequest, User
from store import AppState

NOW = datetime(2025, 6, 1, 12, tzinfo=timezone.utc)


@pytest.mark.parametrize("delta,expected", [
    (timedelta(seconds=30), "Just now"),
    (timedelta(minutes=1), "1 min ago"),
    (timedelta(minutes=45), "45 mins ago"),
    (timedelta(hours=2), "2 hours ago"),
    (timedelta(seconds=60), "1 min ago"),
    (timedelta(hours=23, minutes=59), "23 hours ago"),
    (timedelta(days=1), "1 day ago"),
    (timedelta(days=40), "1 month ago"),
    (timedelta(days=800), "2 years ago"),
])
def test_time_ago(delta, expected):
    assert time_ago(NOW - delta, NOW) == expected


def test_time_ago_naive_is_utc():
    assert time_ago(datetime(2025, 6, 1, 9), NOW) == "3 hours ago"


def owner(**extra):
    return {"student_id": "u1", "student_name": "Sam", "room": "12", **extra}


def payment(id, amount, status, days, **extra):
    data = owner(id=id, title=f"Fee {id}", amount=amount, status=status, due_date=NOW + timedelta(days=days))
    data.update(extra)
    return Payment(**data)


def complaint(id, status="Pending", priority="Medium", days=0, **extra):
    data = owner(id=id, title=f"C{id}", description="d", category="Other", status=status, priority=priority,
                 date=NOW - timedelta(days=days))
    data.update(extra)
    return Complaint(**data)


@pytest.fixture
def state():
    return AppState(
        users=(
            User(id="u1", name="Sam", email="s@h.com", room="12"),
            User(id="u2", name="Ana", email="a@h.com", room="14", status="Inactive"),
            User(id="a1", name="Warden", email="w@h.com", role="Admin"),
        ),
        complaints=(
            complaint("c1", priority="High", days=1),
            complaint("c2", status="Resolved", priority="High", days=5),
            complaint("c3", days=2, student_id="u2"),
        ),
        service_requests=(
            ServiceRequest(**owner(id="s1", service_type="Laundry", description="d",
                                   requested_date=NOW - timedelta(hours=1))),
        ),
        leave_requests=(
            LeaveRequest(**owner(id="l1", start_date=NOW, end_date=NOW, days=1, reason="r",
                                 submission_date=NOW)),
            LeaveRequest(**owner(id="l2", start_date=NOW, end_date=NOW, days=1, reason="r",
                                 submission_date=NOW, status="Approved")),
        ),
        payments=(
            payment("p1", 1000, "Pending", 5),
            payment("p2", 500, "Overdue", -3),
            payment("p3", 200, "Paid", -30, paid_on=NOW - timedelta(days=2)),
            payment("p4", 700, "Pending", 2, student_id="u2"),
        ),
        announcements=(
            Announcement(id="a1", title="One", content="x", is_pinned=True, date=NOW),
            Announcement(id="a2", title="Two", content="x", date=NOW),
            Announcement(id="a3", title="Three", content="x", is_pinned=True, date=NOW),
            Announcement(id="a4", title="Four", content="x", is_pinned=True, date=NOW),
        ),
    )


def test_student_overview(state):
    user = AuthUser(id="u1", name="Sam", email="s@h.com", role="User", room="12")

    overview = student_overview(state, user)

    assert overview.room == "12"
    assert overview.total_due == 1500
    assert overview.active_complaints == 1
    assert overview.pending_leaves == 1
    assert [a.id for a in overview.pinned_announcements] == ["a1", "a3"]
    assert [i.id for i in overview.recent_activity] == ["p1", "s1", "c1", "p3"]


def test_admin_overview(state):
    overview = admin_overview(state, capacity=4)

    assert overview.total_users == 3
    assert overview.active_complaints == 2
    assert overview.pending_service_requests == 1
    assert overview.pending_leave_requests == 1
    assert overview.pending_revenue == 2200
    assert overview.occupancy_rate == 50
    assert [c.id for c in overview.urgent_issues] == ["c1"]


def test_occupancy_rate_rounds():
    users = [User(id=str(i), name="x", email=f"{i}@h.com") for i in range(3)]

    assert occupancy_rate(users, capacity=50) == 6
    assert occupancy_rate([], capacity=50) == 0


def test_summaries(state):
    assert payment_summary(state.payments) == {"total_due": 2200, "total_paid": 200}
    assert leave_stats(state.leave_requests) == {"total": 2, "approved": 1, "pending": 1}
    assert complaint_status_counts(state.complaints) == {"Pending": 2, "In-progress": 0, "Resolved": 1}


def test_recent_activity_limit(state):
    items = recent_activity(state.complaints, state.service_requests, state.payments, limit=2)

    assert len(items) == 2


@pytest.mark.parametrize("term,expected", [
    ("", ["u1", "u2", "a1"]),
    ("sam", ["u1"]),
    ("AN", ["u2"]),
    ("14", ["u2"]),
    ("1", ["u1", "u2"]),
    ("nobody", []),
])
def test_search_users_by_name_or_room(state, term, expected):
    assert [u.id for u in search_users(state.users, term)] == expected


def test_filter_complaints_ignores_case():
    complaints = [
        complaint("c1", title="Leaking tap", description="Bathroom"),
        complaint("c2", title="Fan", description="Makes a LEAKY noise"),
        complaint("c3", title="Door", description="Hinge broken"),
    ]

    assert [c.id for c in filter_complaints(complaints, "leak")] == ["c1", "c2"]
    assert [c.id for c in filter_complaints(complaints, "  HINGE ")] == ["c3"]
    assert len(filter_complaints(complaints, "")) == 3


def test_filter_service_requests_by_category_and_text():
    requests = [
        ServiceRequest(**owner(id="s1", service_type="Plumbing", description="Sink blocked", requested_date=NOW)),
        ServiceRequest(**owner(id="s2", service_type="Laundry", description="Weekly wash", requested_date=NOW)),
        ServiceRequest(**owner(id="s3", service_type="Plumbing", description="Shower cold", requested_date=NOW)),
    ]

    assert [r.id for r in filter_service_requests(requests, "Plumbing")] == ["s1", "s3"]
    assert [r.id for r in filter_service_requests(requests, "plumbing", "SINK")] == ["s1"]
    assert [r.id for r in filter_service_requests(requests, None, "laund")] == ["s2"]
    assert filter_service_requests(requests, "Laundry", "shower") == []
