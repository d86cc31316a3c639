import logging
import os
from typing import List

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database

import services
import settings
from database import get_db
from errors import HostelError
from logging_config import RequestLoggingMiddleware, setup_logging
from schemas import (
    Announcement, AnnouncementCreate, AuthResponse, AuthUser, Complaint, ComplaintCreate,
    ComplaintStatusUpdate, LeaveRequest, LeaveRequestCreate, LeaveRequestStatusUpdate,
    LoginRequest, Payment, PaymentCreate, PaymentUpdate, RegisterRequest, ServiceRequest,
    ServiceRequestCreate, ServiceRequestStatusUpdate, User, UserDeletion,
)
from security import get_current_user, require_roles

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------------
# App & CORS
# ---------------------------------------------------------------------------------
app = FastAPI(title="Hostel Management API")

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

admin_only = require_roles("Admin")


# ---------------------------------------------------------------------------------
# Error rendering
# ---------------------------------------------------------------------------------
@app.exception_handler(HostelError)
async def hostel_error_handler(request: Request, exc: HostelError):
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        messages.append(f"{field}: {err.get('msg')}" if field else err.get("msg"))
    return JSONResponse(
        status_code=400,
        content={"detail": "; ".join(messages) or "Invalid request", "code": "VALIDATION_ERROR"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    content = {"detail": "Internal server error"}
    if settings.DEBUG:
        content["message"] = str(exc)
    return JSONResponse(status_code=500, content=content)


# ---------------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------------
@app.get("/")
def root():
    return {"message": "Hostel Management API running"}


@app.get("/test")
def test_database(request: Request):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if os.getenv("DATABASE_URL") else "❌ Not Set",
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }
    try:
        # resolved here so connection failures land in the report
        db = request.app.dependency_overrides.get(get_db, get_db)()
        response["database_name"] = db.name
        response["collections"] = db.list_collection_names()
        response["database"] = "✅ Connected & Working"
        response["connection_status"] = "Connected"
    except Exception as e:
        logger.warning("Database check failed: %s", e)
        response["database"] = f"❌ Error: {str(e)[:80]}"
    return response


# ---------------------------------------------------------------------------------
# Auth routes
# ---------------------------------------------------------------------------------
auth = APIRouter(prefix="/api/auth", tags=["auth"])


@auth.post("/register", response_model=AuthResponse, status_code=201)
def register(data: RegisterRequest, db: Database = Depends(get_db)):
    return services.register(db, data)


@auth.post("/login", response_model=AuthResponse)
def login(data: LoginRequest, db: Database = Depends(get_db)):
    return services.login(db, data)


@auth.get("/me", response_model=AuthUser)
def me(user: AuthUser = Depends(get_current_user)):
    return user


# ---------------------------------------------------------------------------------
# Users (admin only; deleting cascades to the student's records)
# ---------------------------------------------------------------------------------
users = APIRouter(prefix="/api/users", tags=["users"])


@users.get("", response_model=List[User])
def list_users(db: Database = Depends(get_db), _: AuthUser = Depends(admin_only)):
    return services.list_users(db)


@users.post("", response_model=User, status_code=201)
def create_user(data: RegisterRequest, db: Database = Depends(get_db), _: AuthUser = Depends(admin_only)):
    return services.create_user(db, data)


@users.delete("/{user_id}", response_model=UserDeletion)
def delete_user(user_id: str, db: Database = Depends(get_db), _: AuthUser = Depends(admin_only)):
    deleted = services.delete_user(db, user_id)
    return UserDeletion(message="User and all associated data deleted successfully", deleted=deleted)


# ---------------------------------------------------------------------------------
# Complaints, service requests, leave requests
# ---------------------------------------------------------------------------------
records = APIRouter(prefix="/api", tags=["records"])


@records.get("/complaints", response_model=List[Complaint])
def list_complaints(db: Database = Depends(get_db), _: AuthUser = Depends(get_current_user)):
    return services.list_records(db, "complaints")


@records.post("/complaints", response_model=Complaint, status_code=201)
def create_complaint(c: ComplaintCreate, db: Database = Depends(get_db), user: AuthUser = Depends(get_current_user)):
    return services.create_record(db, "complaints", c, user)


@records.patch("/complaints/{complaint_id}", response_model=Complaint)
def update_complaint(complaint_id: str, body: ComplaintStatusUpdate, db: Database = Depends(get_db),
                     user: AuthUser = Depends(get_current_user)):
    return services.update_record(db, "complaints", complaint_id, body, user)


@records.get("/service-requests", response_model=List[ServiceRequest])
def list_service_requests(db: Database = Depends(get_db), _: AuthUser = Depends(get_current_user)):
    return services.list_records(db, "service-requests")


@records.post("/service-requests", response_model=ServiceRequest, status_code=201)
def create_service_request(r: ServiceRequestCreate, db: Database = Depends(get_db),
                           user: AuthUser = Depends(get_current_user)):
    return services.create_record(db, "service-requests", r, user)


@records.patch("/service-requests/{request_id}", response_model=ServiceRequest)
def update_service_request(request_id: str, body: ServiceRequestStatusUpdate, db: Database = Depends(get_db),
                           user: AuthUser = Depends(get_current_user)):
    return services.update_record(db, "service-requests", request_id, body, user)


@records.get("/leave-requests", response_model=List[LeaveRequest])
def list_leave_requests(db: Database = Depends(get_db), _: AuthUser = Depends(get_current_user)):
    return services.list_records(db, "leave-requests")


@records.post("/leave-requests", response_model=LeaveRequest, status_code=201)
def create_leave_request(r: LeaveRequestCreate, db: Database = Depends(get_db),
                         user: AuthUser = Depends(get_current_user)):
    return services.create_record(db, "leave-requests", r, user)


@records.patch("/leave-requests/{request_id}", response_model=LeaveRequest)
def update_leave_request(request_id: str, body: LeaveRequestStatusUpdate, db: Database = Depends(get_db),
                         user: AuthUser = Depends(get_current_user)):
    return services.update_record(db, "leave-requests", request_id, body, user)


# ---------------------------------------------------------------------------------
# Fees & Payments
# ---------------------------------------------------------------------------------
@records.get("/payments", response_model=List[Payment])
def list_payments(db: Database = Depends(get_db), _: AuthUser = Depends(get_current_user)):
    return services.list_records(db, "payments")


@records.post("/payments", response_model=Payment, status_code=201)
def create_payment(p: PaymentCreate, db: Database = Depends(get_db), user: AuthUser = Depends(get_current_user)):
    return services.create_record(db, "payments", p, user)


@records.patch("/payments/{payment_id}", response_model=Payment)
def update_payment(payment_id: str, body: PaymentUpdate, db: Database = Depends(get_db),
                   user: AuthUser = Depends(get_current_user)):
    return services.update_record(db, "payments", payment_id, body, user)


# ---------------------------------------------------------------------------------
# Announcements
# ---------------------------------------------------------------------------------
@records.get("/announcements", response_model=List[Announcement])
def list_announcements(db: Database = Depends(get_db), _: AuthUser = Depends(get_current_user)):
    return services.list_records(db, "announcements")


@records.post("/announcements", response_model=Announcement, status_code=201)
def create_announcement(a: AnnouncementCreate, db: Database = Depends(get_db),
                        user: AuthUser = Depends(get_current_user)):
    return services.create_record(db, "announcements", a, user)


app.include_router(auth)
app.include_router(users)
app.include_router(records)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
