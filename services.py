"""
Hostel domain operations over a pymongo database.

The API routes and the in-memory client backend both call into this module,
so the rules about owners, defaults, ordering and who may change what live in
one place.
"""
import logging
import secrets
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import create_document, get_document, get_documents, to_object_id, update_document
from errors import (
    AuthorizationError, ConflictError, DuplicateEmailError, InvalidCredentialsError,
    NotFoundError, ValidationError,
)
from schemas import (
    Announcement, AnnouncementCreate, AuthResponse, AuthUser, Complaint, ComplaintCreate,
    ComplaintStatusUpdate, LeaveRequest, LeaveRequestCreate, LeaveRequestStatusUpdate,
    LoginRequest, Payment, PaymentCreate, PaymentUpdate, RegisterRequest, ServiceRequest,
    ServiceRequestCreate, ServiceRequestStatusUpdate, User, leave_days,
)
from security import create_access_token, dummy_hash, hash_password, verify_password

logger = logging.getLogger(__name__)

# Collections whose documents belong to a student and go with them on delete
OWNED_COLLECTIONS = ("complaint", "servicerequest", "leaverequest", "payment")


@dataclass(frozen=True)
class Resource:
    collection: str
    label: str
    model: Type[BaseModel]
    create_model: Type[BaseModel]
    update_model: Optional[Type[BaseModel]]
    sort: List[Tuple[str, int]]


RESOURCES: Dict[str, Resource] = {
    "complaints": Resource("complaint", "Complaint", Complaint, ComplaintCreate,
                           ComplaintStatusUpdate, [("date", -1), ("_id", -1)]),
    "service-requests": Resource("servicerequest", "Service request", ServiceRequest, ServiceRequestCreate,
                                 ServiceRequestStatusUpdate, [("requested_date", -1), ("_id", -1)]),
    "leave-requests": Resource("leaverequest", "Leave request", LeaveRequest, LeaveRequestCreate,
                               LeaveRequestStatusUpdate, [("submission_date", -1), ("_id", -1)]),
    "payments": Resource("payment", "Payment", Payment, PaymentCreate,
                         PaymentUpdate, [("due_date", 1), ("_id", 1)]),
    "announcements": Resource("announcement", "Announcement", Announcement, AnnouncementCreate,
                              None, [("date", -1), ("_id", -1)]),
}


def get_resource(name: str) -> Resource:
    try:
        return RESOURCES[name]
    except KeyError:
        raise NotFoundError("Resource", name)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def generate_transaction_id() -> str:
    return f"TXN{secrets.token_hex(6).upper()}"


# ---------------------------------------------------------------------------------
# Users & auth
# ---------------------------------------------------------------------------------
def create_user(db: Database, req: RegisterRequest) -> User:
    email = req.email.lower()
    if db.user.find_one({"email": email}):
        raise DuplicateEmailError(email)
    data = {
        "name": req.name,
        "email": email,
        "password": hash_password(req.password),
        "role": req.role,
        "room": req.room,
        "contact": req.contact,
        "join_date": _now(),
        "status": "Active",
    }
    try:
        user_id = create_document(db, "user", data)
    except DuplicateKeyError:
        raise DuplicateEmailError(email)
    logger.info("Registered %s user %s", req.role, user_id)
    return User.model_validate(get_document(db, "user", user_id))


def register(db: Database, req: RegisterRequest) -> AuthResponse:
    user = create_user(db, req)
    return AuthResponse(token=create_access_token(user.model_dump()), user=user)


def login(db: Database, req: LoginRequest) -> AuthResponse:
    doc = db.user.find_one({"email": req.email.lower()})
    if doc is None:
        verify_password(req.password, dummy_hash())
        raise InvalidCredentialsError()
    if not verify_password(req.password, doc.get("password")):
        raise InvalidCredentialsError()
    user = User.model_validate({**doc, "id": str(doc["_id"])})
    return AuthResponse(token=create_access_token(user.model_dump()), user=user)


def list_users(db: Database) -> List[User]:
    return [User.model_validate(d) for d in get_documents(db, "user", sort=[("join_date", 1), ("_id", 1)])]


def _delete_owned(db: Database, collection: str, user_id: str) -> int:
    return db[collection].delete_many({"student_id": user_id}).deleted_count


def delete_user(db: Database, user_id: str) -> Dict[str, int]:
    """Remove a user's records from every owned collection, then the user.

    The four deletions run side by side and are all awaited before the user
    document goes. There is no rollback: if the user is missing the cascade
    has still run.
    """
    oid = to_object_id(user_id)
    with ThreadPoolExecutor(max_workers=len(OWNED_COLLECTIONS)) as pool:
        futures = {c: pool.submit(_delete_owned, db, c, user_id) for c in OWNED_COLLECTIONS}
        deleted = {c: f.result() for c, f in futures.items()}
    res = db.user.delete_one({"_id": oid})
    if res.deleted_count == 0:
        raise NotFoundError("User", user_id)
    logger.info("Deleted user %s and owned records %s", user_id, deleted)
    return deleted


# ---------------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------------
def list_records(db: Database, name: str) -> List[BaseModel]:
    resource = get_resource(name)
    docs = get_documents(db, resource.collection, sort=resource.sort)
    return [resource.model.model_validate(d) for d in docs]


def _owner_fields(db: Database, student_id: str) -> Dict[str, Any]:
    doc = get_document(db, "user", student_id)
    if doc is None:
        raise ValidationError("Unknown student", {"studentId": student_id})
    return {"student_id": doc["id"], "student_name": doc["name"], "room": doc.get("room") or "N/A"}


def _caller_fields(actor: AuthUser) -> Dict[str, Any]:
    return {"student_id": actor.id, "student_name": actor.name, "room": actor.room or "N/A"}


def create_record(db: Database, name: str, payload: BaseModel, actor: AuthUser) -> BaseModel:
    resource = get_resource(name)
    data = payload.model_dump(by_alias=False)
    now = _now()

    if name == "complaints":
        data.update(_caller_fields(actor), status="Pending", date=now)
    elif name == "service-requests":
        data.update(_caller_fields(actor), status="Pending", requested_date=now)
    elif name == "leave-requests":
        data.update(_caller_fields(actor), status="Pending", submission_date=now,
                    days=leave_days(data["start_date"], data["end_date"]))
    elif name == "payments":
        if not actor.is_admin:
            raise AuthorizationError("Only admins can schedule fees")
        data.update(_owner_fields(db, data.pop("student_id")))
        if data["status"] == "Paid":
            data.update(paid_on=now, transaction_id=generate_transaction_id())
    elif name == "announcements":
        if not actor.is_admin:
            raise AuthorizationError("Only admins can post announcements")
        data["date"] = now

    record_id = create_document(db, resource.collection, data)
    logger.info("%s %s created by %s", resource.label, record_id, actor.id)
    return resource.model.model_validate(get_document(db, resource.collection, record_id))


def _payment_changes(current: Dict[str, Any], update: PaymentUpdate,
                     actor: AuthUser) -> Tuple[Dict[str, Any], Tuple[str, ...]]:
    if not actor.is_admin:
        if current.get("student_id") != actor.id:
            raise AuthorizationError("Not your payment")
        if update.status != "Paid":
            raise AuthorizationError("Students can only pay a bill")
    changes: Dict[str, Any] = {"status": update.status}
    if update.status == "Paid":
        if current.get("status") == "Paid":
            raise ConflictError("Payment already paid", {"id": current["id"]})
        changes["paid_on"] = update.paid_on or _now()
        changes["transaction_id"] = update.transaction_id or generate_transaction_id()
        return changes, ()
    # only a Paid payment carries a payment date and transaction
    return changes, ("paid_on", "transaction_id")


def update_record(db: Database, name: str, record_id: str, payload: BaseModel, actor: AuthUser) -> BaseModel:
    resource = get_resource(name)
    if resource.update_model is None:
        raise ValidationError(f"{resource.label} records cannot be updated")

    current = get_document(db, resource.collection, record_id)
    if current is None:
        raise NotFoundError(resource.label, record_id)

    unset: Tuple[str, ...] = ()
    if name == "payments":
        changes, unset = _payment_changes(current, payload, actor)
    else:
        if not actor.is_admin:
            raise AuthorizationError("Only admins can change the status")
        changes = {"status": payload.status}

    updated = update_document(db, resource.collection, record_id, changes, unset=unset)
    if updated is None:
        raise NotFoundError(resource.label, record_id)
    logger.info("%s %s set to %s by %s", resource.label, record_id, changes["status"], actor.id)
    return resource.model.model_validate(updated)
