"""
HTTP client for the hostel REST API.

Responses are parsed into the models from ``schemas`` at this boundary so the
rest of the client never handles raw JSON. Transport failures and error
responses surface as ``BackendError``; a 401 becomes ``UnauthorizedError`` so
callers can drop the session.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

import settings
from schemas import RECORD_MODELS, AuthResponse, AuthUser, User

logger = logging.getLogger(__name__)


class BackendError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class UnauthorizedError(BackendError):
    pass


def normalize_id(item: Dict[str, Any]) -> Dict[str, Any]:
    """Make sure a record carries ``id``, taking it from ``_id`` when needed."""
    item = dict(item)
    if not item.get("id") and item.get("_id") is not None:
        item["id"] = str(item["_id"])
    item.pop("_id", None)
    return item


class HostelApiClient:
    def __init__(self, base_url: str = None, http: httpx.Client = None, timeout: float = None):
        self._http = http or httpx.Client(
            base_url=base_url or settings.API_URL,
            timeout=timeout or settings.HTTP_TIMEOUT,
        )
        self.token: Optional[str] = None

    def close(self) -> None:
        self._http.close()

    def _request(self, method: str, path: str, json: Any = None) -> Any:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            resp = self._http.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise BackendError(f"Network error: {exc}")

        if resp.status_code >= 400:
            try:
                detail = resp.json().get("detail") or resp.text
            except ValueError:
                detail = resp.text or resp.reason_phrase
            if resp.status_code == 401:
                raise UnauthorizedError(str(detail), resp.status_code)
            raise BackendError(str(detail), resp.status_code)
        return resp.json()

    # Auth
    def login(self, email: str, password: str) -> AuthResponse:
        data = self._request("POST", "/auth/login", {"email": email, "password": password})
        data["user"] = normalize_id(data["user"])
        return AuthResponse.model_validate(data)

    def register(self, payload: Dict[str, Any]) -> AuthResponse:
        data = self._request("POST", "/auth/register", payload)
        data["user"] = normalize_id(data["user"])
        return AuthResponse.model_validate(data)

    def me(self) -> AuthUser:
        return AuthUser.model_validate(normalize_id(self._request("GET", "/auth/me")))

    # Users
    def list_users(self) -> List[User]:
        return [User.model_validate(normalize_id(u)) for u in self._request("GET", "/users")]

    def create_user(self, payload: Dict[str, Any]) -> User:
        return User.model_validate(normalize_id(self._request("POST", "/users", payload)))

    def delete_user(self, user_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/users/{user_id}")

    # Records
    def list(self, resource: str) -> List[Any]:
        model = RECORD_MODELS[resource]
        return [model.model_validate(normalize_id(r)) for r in self._request("GET", f"/{resource}")]

    def create(self, resource: str, payload: Dict[str, Any]) -> Any:
        model = RECORD_MODELS[resource]
        return model.model_validate(normalize_id(self._request("POST", f"/{resource}", payload)))

    def update(self, resource: str, record_id: str, payload: Dict[str, Any]) -> Any:
        model = RECORD_MODELS[resource]
        return model.model_validate(normalize_id(self._request("PATCH", f"/{resource}/{record_id}", payload)))
