"""Thin ``requests`` wrapper over the GeminiTalk REST surface."""

import logging
import os

import requests

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS = os.getenv("SERVER_URL", "localhost:3001")
HEALTH_TIMEOUT = 5


class ApiError(Exception):
    def __init__(self, message, status=None):
        super().__init__(message)
        self.status = status


class AuthenticationError(ApiError):
    pass


class ServerUnavailable(ApiError):
    pass


def base_url(address):
    """Turn a user-entered server address into the API root URL."""
    address = (address or DEFAULT_ADDRESS).strip().rstrip("/")
    if address.startswith(("http://", "https://")):
        root = address
    elif "ngrok" in address:
        root = f"https://{address}"
    else:
        root = f"http://{address}"
    return f"{root}/api"


class ApiClient:
    def __init__(self, address=None, token=None, timeout=10, session=None):
        self.address = address or DEFAULT_ADDRESS
        self.token = token
        self.timeout = timeout
        self.http = session or requests.Session()

    @property
    def base(self):
        return base_url(self.address)

    def _request(self, method, path, json=None, timeout=None):
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            r = self.http.request(method, f"{self.base}{path}", json=json, headers=headers,
                                  timeout=timeout or self.timeout)
        except requests.RequestException as e:
            raise ServerUnavailable(f"cannot reach server at {self.address}: {e}") from e
        try:
            body = r.json()
        except ValueError:
            raise ApiError(f"unexpected response from server (HTTP {r.status_code})", r.status_code)
        if r.status_code >= 400:
            message = (body or {}).get("error") if isinstance(body, dict) else None
            message = message or f"HTTP {r.status_code}"
            if r.status_code == 401:
                raise AuthenticationError(message, r.status_code)
            raise ApiError(message, r.status_code)
        return body

    def health(self):
        return self._request("GET", "/health", timeout=HEALTH_TIMEOUT)

    def test_connection(self):
        try:
            self.health()
            return True
        except ApiError:
            return False

    # ---- accounts ----
    def login(self, username, password):
        body = self._request("POST", "/login", json={"username": username, "password": password})
        self.token = body.get("token")
        return body

    def get_users(self):
        return self._request("GET", "/users")

    def add_user(self, user):
        return self._request("POST", "/users", json=user)

    def edit_user(self, username, fields):
        return self._request("PATCH", f"/users/{username}", json=fields)

    def delete_user(self, username):
        return self._request("DELETE", f"/users/{username}")

    def update_password(self, username, new_password):
        return self._request("PATCH", f"/users/{username}/password", json={"newPassword": new_password})

    # ---- messages ----
    def get_user_messages(self, user_id):
        return self._request("GET", f"/messages/{user_id}")

    def get_thread(self, user_id, counterparty_id):
        return self._request("GET", f"/messages/{user_id}/{counterparty_id}")

    def save_message(self, user_id, counterparty_id, message):
        return self._request("POST", f"/messages/{user_id}/{counterparty_id}", json={"message": message})

    def replace_thread(self, user_id, counterparty_id, messages):
        return self._request("PUT", f"/messages/{user_id}/{counterparty_id}", json={"messages": messages})

    # ---- tasks ----
    def get_user_tasks(self, user_id):
        return self._request("GET", f"/tasks/{user_id}")

    def save_user_tasks(self, user_id, tasks):
        return self._request("PUT", f"/tasks/{user_id}", json={"tasks": tasks})
