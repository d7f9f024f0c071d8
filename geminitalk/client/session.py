"""Session-scoped client state: the signed-in user, cached threads and tasks.

Message and task writes are optimistic: the local cache changes first, a
``WriteIntent`` is recorded, and the server call runs. A failed write is logged and
kept in ``write_log`` but never raised. Account changes wait for the server.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..utils import format_timestamp
from .api import ApiClient, ApiError, AuthenticationError, ServerUnavailable
from .projection import build_contacts, display_text, group_by_counterparty
from .settings import ClientSettings

logger = logging.getLogger(__name__)

# used only when the server is unreachable
FALLBACK_USERS = {
    "user": {
        "id": "user1",
        "username": "user",
        "password": "1234",
        "name": "Kim Cheolsu",
        "avatar": "https://picsum.photos/id/1012/200/200",
        "statusMessage": "Doing my best today!",
        "gender": "male",
        "age": 25,
        "nationality": "Korea",
        "role": "user",
    },
    "admin": {
        "id": "admin1",
        "username": "admin",
        "password": "1234",
        "name": "Administrator",
        "avatar": "https://picsum.photos/id/1074/200/200",
        "statusMessage": "Managing the system",
        "gender": "male",
        "age": 30,
        "nationality": "Korea",
        "role": "admin",
    },
}


def _public(user):
    return {k: v for k, v in user.items() if k != "password"}


@dataclass
class WriteIntent:
    kind: str
    run: Callable[[], Any] = field(repr=False)
    status: str = "pending"
    error: Optional[str] = None
    created_at: float = field(default_factory=time.time)


class SessionError(Exception):
    pass


class ChatSession:
    def __init__(self, api=None, translator=None, settings=None):
        self.settings = settings or ClientSettings()
        self.api = api or ApiClient(self.settings.server_address, token=self.settings.token)
        self.translator = translator
        self.user: Optional[Dict[str, Any]] = None
        self.users: Dict[str, Dict[str, Any]] = {}
        self.messages: Dict[str, List[Dict[str, Any]]] = {}
        self.tasks: Dict[str, List[Dict[str, Any]]] = {}
        self.write_log: List[WriteIntent] = []
        self.offline = False

    # ---- lifecycle ----
    def restore(self):
        """Reinstate the last signed-in user from durable settings."""
        saved = self.settings.last_user
        if saved:
            self.user = saved
        return self.user

    def login(self, username, password):
        try:
            result = self.api.login(username, password)
        except ServerUnavailable:
            logger.warning("Server unreachable, falling back to local mode")
            self.offline = True
            return self._login_local(username, password)
        self.offline = False
        self.user = result["user"]
        self.settings.last_user = self.user
        if result.get("token"):
            self.settings.token = result["token"]
        self.load()
        return self.user

    def _login_local(self, username, password):
        account = FALLBACK_USERS.get(username)
        if not account or account["password"] != password:
            raise AuthenticationError("invalid username or password")
        self.user = _public(account)
        self.users = {name: _public(u) for name, u in FALLBACK_USERS.items()}
        self.settings.last_user = self.user
        return self.user

    def load(self):
        """Rebuild every cache from the server."""
        if self.offline or not self.user:
            return
        self.users = self.api.get_users()
        self.messages = self.api.get_user_messages(self.user["id"])
        self.tasks = self.api.get_user_tasks(self.user["id"])

    def logout(self):
        self.user = None
        self.users = {}
        self.messages = {}
        self.tasks = {}
        self.api.token = None
        self.settings.remove("lastUser")
        self.settings.remove("token")

    def set_server_address(self, address):
        self.settings.server_address = address
        self.api.address = address

    # ---- helpers ----
    def _require_user(self):
        if not self.user:
            raise SessionError("not signed in")
        return self.user

    def user_by_id(self, user_id):
        for u in self.users.values():
            if u.get("id") == user_id:
                return u
        return None

    @property
    def is_admin(self):
        return bool(self.user) and self.user.get("role") == "admin"

    def _submit(self, kind, run):
        intent = WriteIntent(kind=kind, run=run)
        self.write_log.append(intent)
        if self.offline:
            intent.status = "skipped"
            return intent
        try:
            run()
            intent.status = "done"
        except ApiError as e:
            intent.status = "failed"
            intent.error = str(e)
            logger.error("%s failed: %s", kind, e)
        return intent

    @property
    def failed_writes(self):
        return [w for w in self.write_log if w.status == "failed"]

    # ---- messages ----
    def translate_for(self, recipient, text):
        """Translated rendition for ``recipient``, or None when no translation applies."""
        me = self._require_user()
        if not recipient or not self.translator:
            return None
        if recipient.get("nationality") == me.get("nationality"):
            return None
        return self.translator.translate(
            text,
            target_nationality=recipient.get("nationality") or "Korea",
            target_gender=recipient.get("gender") or "male",
            target_age=recipient.get("age") or 25,
            sender_name=me.get("name") or me.get("username"),
        )

    def send_message(self, counterparty_id, text):
        me = self._require_user()
        text = (text or "").strip()
        if not text:
            raise SessionError("message text required")
        try:
            translated = self.translate_for(self.user_by_id(counterparty_id), text)
        except Exception:  # translation must never block delivery
            logger.exception("Translator raised; sending original text")
            translated = None
        message = {
            "id": str(uuid.uuid4()),
            "role": "user",
            "text": text,
            "translatedText": translated or text,
            "timestamp": format_timestamp(time.time()),
            "senderId": me["id"],
            "recipientId": counterparty_id,
            "senderName": me.get("name"),
        }
        self.messages.setdefault(counterparty_id, []).append(message)
        self._submit("save_message", lambda: self.api.save_message(me["id"], counterparty_id, message))
        return message

    def refresh_thread(self, counterparty_id):
        """Reload one thread from the server, replacing the cached copy."""
        me = self._require_user()
        if self.offline:
            return self.messages.get(counterparty_id, [])
        flat = self.api.get_thread(me["id"], counterparty_id)
        grouped = group_by_counterparty(flat, me["id"])
        self.messages[counterparty_id] = grouped.get(counterparty_id, [])
        return self.messages[counterparty_id]

    def resync_thread(self, counterparty_id):
        me = self._require_user()
        thread = list(self.messages.get(counterparty_id, []))
        return self._submit("replace_thread", lambda: self.api.replace_thread(me["id"], counterparty_id, thread))

    def detect_language(self, text):
        if not self.translator:
            return "Unknown"
        return self.translator.detect_language(text)

    def render(self, message, show_alternate=False):
        return display_text(message, self._require_user()["id"], show_alternate)

    def contacts(self):
        return build_contacts(self.users, self._require_user(), self.messages)

    # ---- tasks ----
    def _save_tasks(self):
        me = self._require_user()
        snapshot = {k: list(v) for k, v in self.tasks.items()}
        return self._submit("save_tasks", lambda: self.api.save_user_tasks(me["id"], snapshot))

    def add_task(self, counterparty_id, text):
        text = (text or "").strip()
        if not text:
            raise SessionError("task text required")
        task = {
            "id": str(uuid.uuid4()),
            "text": text,
            "completed": False,
            "timestamp": format_timestamp(time.time()),
        }
        self.tasks.setdefault(counterparty_id, []).append(task)
        self._save_tasks()
        return task

    def toggle_task(self, counterparty_id, task_id):
        self.tasks[counterparty_id] = [
            dict(t, completed=not t["completed"]) if t["id"] == task_id else t
            for t in self.tasks.get(counterparty_id, [])
        ]
        self._save_tasks()

    def delete_task(self, counterparty_id, task_id):
        self.tasks[counterparty_id] = [t for t in self.tasks.get(counterparty_id, []) if t["id"] != task_id]
        self._save_tasks()

    # ---- accounts (server-confirmed) ----
    def _require_online(self):
        if self.offline:
            raise ServerUnavailable("account changes need a server connection")

    def add_user(self, user):
        self._require_online()
        if user.get("username") in self.users:
            raise ApiError("username already exists", 400)
        result = self.api.add_user(user)
        created = result.get("user") or _public(user)
        self.users[created["username"]] = created
        return created

    def delete_user(self, username):
        me = self._require_user()
        if username == me.get("username"):
            raise SessionError("cannot delete your own account")
        self._require_online()
        self.api.delete_user(username)
        self.users.pop(username, None)

    def change_password(self, username, new_password):
        self._require_online()
        self.api.update_password(username, new_password)
