"""
Pluggable data backends for the client store.

``ApiBackend`` talks to the REST API over HTTP. ``InMemoryBackend`` runs the
same domain services against a mongomock database seeded with demo data, for
offline use and tests. Pick one with ``make_backend``.
"""
import logging
from abc import ABC, abstractmethod
from datetime import date, timedelta
from typing import Any, Dict, Optional

import mongomock
from pydantic import ValidationError as PydanticValidationError

import services
import settings
from api_client import BackendError, HostelApiClient, UnauthorizedError
from database import ensure_indexes
from errors import AuthenticationError, HostelError, ValidationError as HostelValidationError
from schemas import (
    AnnouncementCreate, AuthResponse, AuthUser, Collections, ComplaintCreate, LeaveRequestCreate,
    LoginRequest, PaymentCreate, RegisterRequest, ServiceRequestCreate, User,
)
from security import user_from_token

logger = logging.getLogger(__name__)

COLLECTION_FIELDS = {
    "complaints": "complaints",
    "service-requests": "service_requests",
    "leave-requests": "leave_requests",
    "payments": "payments",
    "announcements": "announcements",
}


class HostelBackend(ABC):
    """What the store needs from wherever the data lives."""

    @abstractmethod
    def login(self, email: str, password: str) -> AuthResponse: ...

    @abstractmethod
    def restore(self, token: str) -> AuthUser: ...

    @abstractmethod
    def logout(self) -> None: ...

    @abstractmethod
    def fetch_all(self, include_users: bool) -> Collections: ...

    @abstractmethod
    def create(self, resource: str, payload: Dict[str, Any]) -> Any: ...

    @abstractmethod
    def update(self, resource: str, record_id: str, payload: Dict[str, Any]) -> Any: ...

    @abstractmethod
    def add_user(self, payload: Dict[str, Any]) -> User: ...

    @abstractmethod
    def delete_user(self, user_id: str) -> Dict[str, Any]: ...


class ApiBackend(HostelBackend):
    def __init__(self, client: HostelApiClient = None):
        self.client = client or HostelApiClient()

    def login(self, email, password):
        result = self.client.login(email, password)
        self.client.token = result.token
        return result

    def restore(self, token):
        self.client.token = token
        return self.client.me()

    def logout(self):
        self.client.token = None

    def fetch_all(self, include_users):
        data = {field: self.client.list(resource) for resource, field in COLLECTION_FIELDS.items()}
        if include_users:
            data["users"] = self.client.list_users()
        return Collections(**data)

    def create(self, resource, payload):
        return self.client.create(resource, payload)

    def update(self, resource, record_id, payload):
        return self.client.update(resource, record_id, payload)

    def add_user(self, payload):
        return self.client.create_user(payload)

    def delete_user(self, user_id):
        return self.client.delete_user(user_id)


class InMemoryBackend(HostelBackend):
    """Everything lives in a mongomock database for the life of the process."""

    def __init__(self, seed: bool = True):
        self.db = mongomock.MongoClient().hostel
        ensure_indexes(self.db)
        self._user: Optional[AuthUser] = None
        if seed:
            seed_demo_data(self.db)

    def _call(self, fn, *args):
        try:
            return fn(*args)
        except PydanticValidationError as exc:
            raise BackendError(str(exc), 400)
        except AuthenticationError as exc:
            raise UnauthorizedError(exc.message, exc.status_code)
        except HostelError as exc:
            raise BackendError(exc.message, exc.status_code)

    def _actor(self) -> AuthUser:
        if self._user is None:
            raise UnauthorizedError("Not authenticated", 401)
        return self._user

    def login(self, email, password):
        result = self._call(lambda: services.login(self.db, LoginRequest(email=email, password=password)))
        self._user = self._call(user_from_token, self.db, result.token)
        return result

    def restore(self, token):
        self._user = self._call(user_from_token, self.db, token)
        return self._user

    def logout(self):
        self._user = None

    def fetch_all(self, include_users):
        actor = self._actor()
        data = {field: services.list_records(self.db, resource) for resource, field in COLLECTION_FIELDS.items()}
        if include_users and actor.is_admin:
            data["users"] = services.list_users(self.db)
        return Collections(**data)

    def create(self, resource, payload):
        actor = self._actor()

        def run():
            body = services.get_resource(resource).create_model.model_validate(payload)
            return services.create_record(self.db, resource, body, actor)
        return self._call(run)

    def update(self, resource, record_id, payload):
        actor = self._actor()

        def run():
            model = services.get_resource(resource).update_model
            if model is None:
                raise HostelValidationError(f"{resource} cannot be updated")
            return services.update_record(self.db, resource, record_id, model.model_validate(payload), actor)
        return self._call(run)

    def add_user(self, payload):
        if not self._actor().is_admin:
            raise BackendError("Forbidden: insufficient role", 403)
        return self._call(lambda: services.create_user(self.db, RegisterRequest.model_validate(payload)))

    def delete_user(self, user_id):
        if not self._actor().is_admin:
            raise BackendError("Forbidden: insufficient role", 403)
        return self._call(services.delete_user, self.db, user_id)


DEMO_ADMIN = {"name": "Admin User", "email": "admin@hostel.com", "password": "admin123", "role": "Admin"}
DEMO_STUDENT = {"name": "John Doe", "email": "john@hostel.com", "password": "user123",
                "role": "User", "room": "101", "contact": "+91 98765 43210"}


def seed_demo_data(db) -> None:
    """Two accounts and a handful of records so every screen has something to show."""
    admin = services.create_user(db, RegisterRequest(**DEMO_ADMIN))
    student = services.create_user(db, RegisterRequest(**DEMO_STUDENT))
    admin_actor = AuthUser(id=admin.id, name=admin.name, email=admin.email, role="Admin")
    student_actor = AuthUser(id=student.id, name=student.name, email=student.email, role="User", room=student.room)
    today = date.today()

    services.create_record(db, "complaints", ComplaintCreate(
        title="Leaking tap", description="Bathroom tap drips all night", priority="Medium",
        category="Plumbing"), student_actor)
    services.create_record(db, "service-requests", ServiceRequestCreate(
        service_type="Room Cleaning", description="Deep clean before inspection"), student_actor)
    services.create_record(db, "leave-requests", LeaveRequestCreate(
        start_date=today + timedelta(days=7), end_date=today + timedelta(days=9),
        reason="Family function"), student_actor)
    services.create_record(db, "payments", PaymentCreate(
        title=f"Hostel Fee - {today:%b %Y}", amount=15000, due_date=today + timedelta(days=10),
        student_id=student.id), admin_actor)
    services.create_record(db, "payments", PaymentCreate(
        title="Mess Charges", amount=4500, due_date=today - timedelta(days=3),
        student_id=student.id, status="Overdue"), admin_actor)
    services.create_record(db, "announcements", AnnouncementCreate(
        title="Water supply maintenance", content="No water on Sunday 10am to 2pm.",
        type="urgent", is_pinned=True), admin_actor)
    services.create_record(db, "announcements", AnnouncementCreate(
        title="Cultural night", content="Join us in the common room on Friday.",
        type="event"), admin_actor)


def make_backend(kind: str = None, api_url: str = None) -> HostelBackend:
    kind = (kind or settings.BACKEND).lower()
    if kind == "memory":
        logger.info("Using in-memory backend with demo data")
        return InMemoryBackend()
    if kind == "api":
        return ApiBackend(HostelApiClient(base_url=api_url))
    raise ValueError(f"Unknown backend {kind!r}; expected 'api' or 'memory'")
