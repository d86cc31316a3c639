"""
Client session persisted between runs.

Holds the bearer token, the signed-in user's profile, the last dashboard tab
and optionally the last email used to sign in. Passwords are never written.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import settings

logger = logging.getLogger(__name__)


class SessionStorage:
    def __init__(self, path: str = None):
        self.path = Path(path or settings.SESSION_FILE)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, e)
            return {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.chmod(self.path, 0o600)

    def _update(self, **changes) -> None:
        data = self._read()
        for key, value in changes.items():
            if value is None:
                data.pop(key, None)
            else:
                data[key] = value
        self._write(data)

    def save_session(self, token: str, user: Dict[str, Any]) -> None:
        self._update(token=token, user=user)

    def load_session(self) -> Optional[Dict[str, Any]]:
        data = self._read()
        if data.get("token") and data.get("user"):
            return {"token": data["token"], "user": data["user"]}
        return None

    def clear_session(self) -> None:
        # the remembered email outlives a logout
        self._update(token=None, user=None, screen=None)

    def remember_screen(self, screen: str) -> None:
        self._update(screen=screen)

    def last_screen(self) -> Optional[str]:
        return self._read().get("screen")

    def remember_email(self, email: Optional[str]) -> None:
        self._update(remembered_email=email)

    def remembered_email(self) -> Optional[str]:
        return self._read().get("remembered_email")
