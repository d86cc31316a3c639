"""
Client-side application state.

``AppState`` is an immutable snapshot and ``reduce`` is the only way to get a
new one. ``HostelStore`` owns the current state and a backend; its commands
call the backend and dispatch the matching action once the call succeeds.
Failures are logged and posted as notices, and an unauthorized response ends
the session.
"""
import logging
import time
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from api_client import BackendError, UnauthorizedError
from backends import COLLECTION_FIELDS, HostelBackend
from schemas import AuthUser, Collections, User
from session_storage import SessionStorage

logger = logging.getLogger(__name__)

OWNED_FIELDS = ("complaints", "service_requests", "leave_requests", "payments")


@dataclass(frozen=True)
class Activity:
    id: str
    user: str
    action: str
    time: datetime
    type: str  # complaint | payment | request | other


@dataclass(frozen=True)
class AppState:
    current_user: Optional[AuthUser] = None
    token: Optional[str] = None
    users: Tuple[User, ...] = ()
    complaints: Tuple = ()
    service_requests: Tuple = ()
    leave_requests: Tuple = ()
    payments: Tuple = ()
    announcements: Tuple = ()
    recent_activity: Tuple[Activity, ...] = ()
    screen: str = "landing"
    tab: str = "Overview"
    notices: Tuple[str, ...] = ()

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None


# ---------------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------------
@dataclass(frozen=True)
class LoggedIn:
    user: AuthUser
    token: str


@dataclass(frozen=True)
class LoggedOut:
    pass


@dataclass(frozen=True)
class DataLoaded:
    collections: Collections


@dataclass(frozen=True)
class RecordAdded:
    resource: str
    record: Any
    prepend: bool = True


@dataclass(frozen=True)
class RecordUpdated:
    resource: str
    record: Any


@dataclass(frozen=True)
class UserAdded:
    user: User


@dataclass(frozen=True)
class UserRemoved:
    user_id: str


@dataclass(frozen=True)
class ActivityLogged:
    activity: Activity


@dataclass(frozen=True)
class Navigated:
    screen: str


@dataclass(frozen=True)
class TabSelected:
    tab: str


@dataclass(frozen=True)
class NoticePosted:
    message: str


@dataclass(frozen=True)
class NoticesCleared:
    pass


def _replace_record(records: Tuple, record: Any) -> Tuple:
    return tuple(record if r.id == record.id else r for r in records)


def reduce(state: AppState, action: Any) -> AppState:
    if isinstance(action, LoggedIn):
        return replace(state, current_user=action.user, token=action.token)
    if isinstance(action, LoggedOut):
        # keep the notices so the user can see why they were signed out
        return AppState(notices=state.notices)
    if isinstance(action, DataLoaded):
        c = action.collections
        return replace(
            state,
            users=tuple(c.users),
            complaints=tuple(c.complaints),
            service_requests=tuple(c.service_requests),
            leave_requests=tuple(c.leave_requests),
            payments=tuple(c.payments),
            announcements=tuple(c.announcements),
        )
    if isinstance(action, RecordAdded):
        name = COLLECTION_FIELDS[action.resource]
        current = getattr(state, name)
        records = (action.record,) + current if action.prepend else current + (action.record,)
        return replace(state, **{name: records})
    if isinstance(action, RecordUpdated):
        name = COLLECTION_FIELDS[action.resource]
        return replace(state, **{name: _replace_record(getattr(state, name), action.record)})
    if isinstance(action, UserAdded):
        return replace(state, users=state.users + (action.user,))
    if isinstance(action, UserRemoved):
        changes = {f: tuple(r for r in getattr(state, f) if r.student_id != action.user_id) for f in OWNED_FIELDS}
        changes["users"] = tuple(u for u in state.users if u.id != action.user_id)
        return replace(state, **changes)
    if isinstance(action, ActivityLogged):
        return replace(state, recent_activity=(action.activity,) + state.recent_activity)
    if isinstance(action, Navigated):
        return replace(state, screen=action.screen)
    if isinstance(action, TabSelected):
        return replace(state, tab=action.tab)
    if isinstance(action, NoticePosted):
        return replace(state, notices=state.notices + (action.message,))
    if isinstance(action, NoticesCleared):
        return replace(state, notices=())
    raise TypeError(f"Unknown action {action!r}")


def _json_date(value) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class HostelStore:
    def __init__(self, backend: HostelBackend, storage: SessionStorage = None):
        self.backend = backend
        self.storage = storage
        self._state = AppState()
        self._listeners: List[Callable[[AppState], None]] = []

    @property
    def state(self) -> AppState:
        return self._state

    def subscribe(self, listener: Callable[[AppState], None]) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def dispatch(self, action) -> AppState:
        self._state = reduce(self._state, action)
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    def _call(self, failure: str, fn: Callable, *args):
        """Run a backend call; on failure log it, post a notice and return None."""
        try:
            return fn(*args)
        except UnauthorizedError as exc:
            logger.warning("%s: %s", failure, exc.message)
            self.dispatch(NoticePosted("Your session has expired. Please log in again."))
            self.logout()
        except BackendError as exc:
            logger.error("%s: %s", failure, exc.message)
            self.dispatch(NoticePosted(f"{failure}: {exc.message}"))
        return None

    def _log_activity(self, user: str, action: str, kind: str) -> None:
        self.dispatch(ActivityLogged(Activity(
            id=str(time.time_ns()), user=user, action=action,
            time=datetime.now(timezone.utc), type=kind,
        )))

    # ---------------------------------------------------------------------------------
    # Session
    # ---------------------------------------------------------------------------------
    def login(self, email: str, password: str, role: str) -> bool:
        """Sign in; refuse the session when the account's role is not ``role``."""
        try:
            result = self.backend.login(email, password)
        except BackendError as exc:
            logger.warning("Login failed: %s", exc.message)
            return False

        if result.user.role != role:
            self.backend.logout()
            return False

        user = AuthUser(id=result.user.id, name=result.user.name, email=result.user.email,
                        role=result.user.role, room=result.user.room)
        self.dispatch(LoggedIn(user, result.token))
        if self.storage:
            self.storage.save_session(result.token, user.model_dump(mode="json"))
        self._enter_dashboard()
        self.refresh()
        return True

    def restore_session(self) -> bool:
        """Pick up a saved token, checking it with the backend first."""
        if not self.storage:
            return False
        saved = self.storage.load_session()
        if not saved:
            return False
        user = self._call("Could not restore session", self.backend.restore, saved["token"])
        if user is None:
            self.storage.clear_session()
            return False
        self.dispatch(LoggedIn(user, saved["token"]))
        self._enter_dashboard()
        self.refresh()
        return self.state.is_authenticated

    def logout(self) -> None:
        self.backend.logout()
        if self.storage:
            self.storage.clear_session()
        self.dispatch(LoggedOut())

    def _enter_dashboard(self) -> None:
        self.dispatch(Navigated("dashboard"))
        tab = self.storage.last_screen() if self.storage else None
        if tab:
            self.dispatch(TabSelected(tab))

    def navigate(self, screen: str) -> None:
        self.dispatch(Navigated(screen))

    def select_tab(self, tab: str) -> None:
        self.dispatch(TabSelected(tab))
        if self.storage and self.state.is_authenticated:
            self.storage.remember_screen(tab)

    def clear_notices(self) -> None:
        self.dispatch(NoticesCleared())

    def refresh(self) -> bool:
        user = self.state.current_user
        if user is None:
            return False
        collections = self._call("Error fetching data", self.backend.fetch_all, user.is_admin)
        if collections is None:
            return False
        self.dispatch(DataLoaded(collections))
        return True

    # ---------------------------------------------------------------------------------
    # Student submissions
    # ---------------------------------------------------------------------------------
    def _submit(self, resource: str, payload: Dict[str, Any], failure: str):
        if not self.state.is_authenticated:
            return None
        body = {k: _json_date(v) for k, v in payload.items()}
        record = self._call(failure, self.backend.create, resource, body)
        if record is not None:
            self.dispatch(RecordAdded(resource, record, prepend=resource != "payments"))
        return record

    def add_complaint(self, title: str, description: str, category: str, priority: str = "Medium"):
        record = self._submit("complaints", {
            "title": title, "description": description, "category": category, "priority": priority,
        }, "Could not submit complaint")
        if record is not None:
            self._log_activity(self.state.current_user.name, f"submitted a complaint: {title}", "complaint")
        return record

    def add_service_request(self, service_type: str, description: str, scheduled_date: datetime = None):
        payload = {"serviceType": service_type, "description": description}
        if scheduled_date:
            payload["scheduledDate"] = scheduled_date
        record = self._submit("service-requests", payload, "Could not request service")
        if record is not None:
            self._log_activity(self.state.current_user.name, f"requested service: {service_type}", "request")
        return record

    def add_leave_request(self, start_date: date, end_date: date, reason: str):
        record = self._submit("leave-requests", {
            "startDate": start_date, "endDate": end_date, "reason": reason,
        }, "Could not submit leave request")
        if record is not None:
            self._log_activity(self.state.current_user.name, "requested leave", "request")
        return record

    def pay_bill(self, payment_id: str):
        payment = next((p for p in self.state.payments if p.id == payment_id), None)
        if payment is None:
            return None
        if payment.status == "Paid":
            self.dispatch(NoticePosted(f"{payment.title} is already paid"))
            return None
        record = self._call("Payment failed", self.backend.update, "payments", payment_id, {
            "status": "Paid",
            "paidOn": datetime.now(timezone.utc).isoformat(),
            "transactionId": f"TXN{time.time_ns() // 1_000_000}",
        })
        if record is not None:
            self.dispatch(RecordUpdated("payments", record))
            self._log_activity(payment.student_name, f"paid bill: {payment.title}", "payment")
        return record

    # ---------------------------------------------------------------------------------
    # Admin actions
    # ---------------------------------------------------------------------------------
    def _set_status(self, resource: str, record_id: str, status: str, failure: str):
        record = self._call(failure, self.backend.update, resource, record_id, {"status": status})
        if record is not None:
            self.dispatch(RecordUpdated(resource, record))
        return record

    def update_complaint_status(self, complaint_id: str, status: str):
        return self._set_status("complaints", complaint_id, status, "Could not update complaint")

    def update_service_request_status(self, request_id: str, status: str):
        return self._set_status("service-requests", request_id, status, "Could not update service request")

    def update_leave_request_status(self, request_id: str, status: str):
        return self._set_status("leave-requests", request_id, status, "Could not update leave request")

    def update_payment_status(self, payment_id: str, status: str):
        return self._set_status("payments", payment_id, status, "Could not update payment")

    def add_announcement(self, title: str, content: str, type: str = "general", is_pinned: bool = False):
        record = self._submit("announcements", {
            "title": title, "content": content, "type": type, "isPinned": is_pinned,
        }, "Could not post announcement")
        if record is not None:
            self._log_activity("Admin", f"posted announcement: {title}", "other")
        return record

    def add_payment(self, title: str, amount: float, due_date: date, student_id: str):
        record = self._submit("payments", {
            "title": title, "amount": amount, "dueDate": due_date, "studentId": student_id,
        }, "Error creating payment")
        if record is not None:
            self._log_activity("Admin", f"scheduled fee: {title} for {record.student_name}", "payment")
        return record

    def add_user(self, name: str, email: str, password: str, room: str, contact: str = None):
        if not self.state.is_authenticated:
            return None
        user = self._call("Failed to create user", self.backend.add_user, {
            "name": name, "email": email, "password": password,
            "role": "User", "room": room, "contact": contact,
        })
        if user is not None:
            self.dispatch(UserAdded(user))
            self._log_activity("Admin", f"created new user account: {name}", "other")
        return user

    def delete_user(self, user_id: str) -> bool:
        if not self.state.is_authenticated:
            return False
        deleted = self._call("Failed to delete user data", self.backend.delete_user, user_id)
        if deleted is None:
            return False
        self.dispatch(UserRemoved(user_id))
        self._log_activity("Admin", "deleted a user and their data", "other")
        return True
