"""
Hostel Management Schemas (MongoDB via Pydantic)

Each stored model corresponds to a collection with the lowercase class name
(e.g., class ServiceRequest -> "servicerequest"). Documents are stored with
snake_case keys; the API speaks camelCase, so every model accepts both and
serializes by alias.
"""
import math
from datetime import date, datetime, time, timezone
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel

Role = Literal["Admin", "User"]
UserStatus = Literal["Active", "Inactive"]
Priority = Literal["High", "Medium", "Low"]
ComplaintStatus = Literal["Pending", "In-progress", "Resolved"]
ServiceStatus = Literal["Pending", "Approved", "In-progress", "Completed", "Rejected"]
LeaveStatus = Literal["Pending", "Approved", "Rejected"]
PaymentStatus = Literal["Pending", "Paid", "Overdue"]
AnnouncementType = Literal["urgent", "general", "event"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def as_utc(value: Union[date, datetime, None]) -> Optional[datetime]:
    """Return an aware UTC datetime; naive values are taken to be UTC already."""
    if value is None:
        return None
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def leave_days(start: Union[date, datetime], end: Union[date, datetime]) -> int:
    """Whole days between two dates, rounded up, never less than one."""
    delta = abs((as_utc(end) - as_utc(start)).total_seconds())
    return max(1, math.ceil(delta / 86400))


# ---------------------------------
# AUTH / USERS
# ---------------------------------
class User(CamelModel):
    id: str
    name: str
    email: str
    role: Role = "User"
    room: Optional[str] = None
    contact: Optional[str] = None
    join_date: Optional[datetime] = None
    status: UserStatus = "Active"


class RegisterRequest(CamelModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=1)
    role: Role = "User"
    room: Optional[str] = None
    contact: Optional[str] = None

    @model_validator(mode="after")
    def room_required_for_students(self):
        if self.role == "User" and not (self.room and self.room.strip()):
            raise ValueError("Room is required for students")
        if self.role == "Admin":
            self.room = None
        return self


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class AuthResponse(CamelModel):
    token: str
    user: User


class AuthUser(CamelModel):
    id: str
    name: str
    email: str
    role: Role
    room: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "Admin"


class UserDeletion(CamelModel):
    message: str
    deleted: dict


# ---------------------------------
# COMPLAINTS
# ---------------------------------
class Complaint(CamelModel):
    id: str
    title: str
    description: str
    priority: Priority = "Medium"
    status: ComplaintStatus = "Pending"
    category: str
    student_id: Optional[str] = None
    student_name: str
    room: str
    date: datetime


class ComplaintCreate(CamelModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    priority: Priority = "Medium"
    category: str = Field(min_length=1)


class ComplaintStatusUpdate(CamelModel):
    status: ComplaintStatus


# ---------------------------------
# SERVICE REQUESTS
# ---------------------------------
class ServiceRequest(CamelModel):
    id: str
    service_type: str
    description: str
    status: ServiceStatus = "Pending"
    student_id: Optional[str] = None
    student_name: str
    room: str
    requested_date: datetime
    scheduled_date: Optional[datetime] = None


class ServiceRequestCreate(CamelModel):
    service_type: str = Field(min_length=1)
    description: str = Field(min_length=1)
    scheduled_date: Optional[datetime] = None


class ServiceRequestStatusUpdate(CamelModel):
    status: ServiceStatus


# ---------------------------------
# LEAVE REQUESTS
# ---------------------------------
class LeaveRequest(CamelModel):
    id: str
    start_date: datetime
    end_date: datetime
    days: int
    reason: str
    status: LeaveStatus = "Pending"
    student_id: Optional[str] = None
    student_name: str
    room: str
    submission_date: datetime


class LeaveRequestCreate(CamelModel):
    start_date: date
    end_date: date
    reason: str = Field(min_length=1)


class LeaveRequestStatusUpdate(CamelModel):
    status: LeaveStatus


# ---------------------------------
# FEES / PAYMENTS
# ---------------------------------
class Payment(CamelModel):
    id: str
    title: str
    amount: float
    due_date: datetime
    status: PaymentStatus = "Pending"
    paid_on: Optional[datetime] = None
    transaction_id: Optional[str] = None
    student_id: Optional[str] = None
    student_name: str
    room: str


class PaymentCreate(CamelModel):
    title: str = Field(min_length=1)
    amount: float = Field(ge=0)
    due_date: date
    student_id: str
    status: PaymentStatus = "Pending"


class PaymentUpdate(CamelModel):
    status: PaymentStatus
    paid_on: Optional[datetime] = None
    transaction_id: Optional[str] = None


# ---------------------------------
# ANNOUNCEMENTS
# ---------------------------------
class Announcement(CamelModel):
    id: str
    title: str
    content: str
    type: AnnouncementType = "general"
    is_pinned: bool = False
    date: datetime


class AnnouncementCreate(CamelModel):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    type: AnnouncementType = "general"
    is_pinned: bool = False


# Shapes returned by the list endpoints, keyed by resource path
RECORD_MODELS = {
    "complaints": Complaint,
    "service-requests": ServiceRequest,
    "leave-requests": LeaveRequest,
    "payments": Payment,
    "announcements": Announcement,
}


class Collections(CamelModel):
    """Everything a dashboard needs, fetched in one go after login."""

    users: List[User] = []
    complaints: List[Complaint] = []
    service_requests: List[ServiceRequest] = []
    leave_requests: List[LeaveRequest] = []
    payments: List[Payment] = []
    announcements: List[Announcement] = []
