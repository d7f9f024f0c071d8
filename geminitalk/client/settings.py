"""Durable client-side key-value storage (last user, server address, token)."""

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_HOME = Path(os.getenv("GEMINITALK_HOME") or (Path.home() / ".geminitalk"))

SERVER_ADDRESS = "serverAddress"
LAST_USER = "lastUser"
TOKEN = "token"


class ClientSettings:
    def __init__(self, path=None):
        self.path = Path(path) if path else DEFAULT_HOME / "settings.json"
        self._data = self._load()

    def _load(self):
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Error loading {self.path}: {e}")
            return {}

    def _save(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(".tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2, ensure_ascii=False)
        temp_path.replace(self.path)

    def get(self, key, default=None):
        return self._data.get(key, default)

    def set(self, key, value):
        self._data[key] = value
        self._save()

    def remove(self, key):
        if self._data.pop(key, None) is not None:
            self._save()

    def clear(self):
        self._data = {}
        self._save()

    @property
    def server_address(self):
        return self.get(SERVER_ADDRESS)

    @server_address.setter
    def server_address(self, address):
        self.set(SERVER_ADDRESS, address)

    @property
    def last_user(self):
        return self.get(LAST_USER)

    @last_user.setter
    def last_user(self, user):
        self.set(LAST_USER, user)

    @property
    def token(self):
        return self.get(TOKEN)

    @token.setter
    def token(self, token):
        self.set(TOKEN, token)
