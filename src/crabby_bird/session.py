"""
session.py: Client-local storage of the signed-in username.
"""

import json
import logging
import os
from typing import Optional

from .constants import SESSION_FILE, SESSION_KEY

log = logging.getLogger(__name__)


class LocalSession:
    """A small JSON key/value file that remembers who is playing."""

    def __init__(self, path: str = SESSION_FILE):
        self.path = path

    def _read(self) -> dict:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            log.warning("Ignoring unreadable session file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict):
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f)

    def load_username(self) -> Optional[str]:
        username = self._read().get(SESSION_KEY)
        return username if isinstance(username, str) and username else None

    def save_username(self, username: str):
        data = self._read()
        data[SESSION_KEY] = username
        self._write(data)

    def clear(self):
        """Logout: forget the username."""
        data = self._read()
        if SESSION_KEY not in data:
            return
        del data[SESSION_KEY]
        if data:
            self._write(data)
        else:
            os.remove(self.path)
