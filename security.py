"""
Password hashing, JWT issuance and the bearer-token dependencies.
"""
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pymongo.database import Database

import settings
from database import get_db, to_object_id
from errors import AuthenticationError, AuthorizationError, InvalidIdError
from schemas import AuthUser

# auto_error=False so a missing header is reported as 401 rather than 403
security = HTTPBearer(auto_error=False)


def hash_password(raw: str) -> str:
    # bcrypt only looks at the first 72 bytes
    password_bytes = raw.encode("utf-8")[:72]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(raw: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(raw.encode("utf-8")[:72], hashed.encode("utf-8"))
    except ValueError:
        # not a bcrypt hash
        return False


_dummy_hash: Optional[str] = None


def dummy_hash() -> str:
    """A throwaway hash checked for unknown emails so every login costs the same."""
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = hash_password("not-a-real-password")
    return _dummy_hash


def create_access_token(user: Dict[str, Any]) -> str:
    payload = {
        "sub": str(user.get("id") or user.get("_id")),
        "role": user.get("role", "User"),
        "exp": datetime.now(timezone.utc) + timedelta(minutes=settings.JWT_EXPIRES_MIN),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")


def user_from_token(db: Database, token: str) -> AuthUser:
    payload = decode_access_token(token)
    try:
        oid = to_object_id(payload.get("sub"))
    except InvalidIdError:
        raise AuthenticationError("Invalid token")
    user = db.user.find_one({"_id": oid})
    if not user:
        raise AuthenticationError("User not found")
    return AuthUser(
        id=str(user["_id"]),
        name=user.get("name"),
        email=user.get("email"),
        role=user.get("role", "User"),
        room=user.get("room"),
    )


def get_current_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(security),
                     db: Database = Depends(get_db)) -> AuthUser:
    if creds is None or not creds.credentials:
        raise AuthenticationError("Not authenticated")
    return user_from_token(db, creds.credentials)


def require_roles(*roles: str):
    def checker(user: AuthUser = Depends(get_current_user)):
        if user.role not in roles:
            raise AuthorizationError()
        return user
    return checker
