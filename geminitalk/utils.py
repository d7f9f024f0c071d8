import jwt, functools, math
from flask import request, jsonify, g, current_app
from datetime import datetime, timedelta, timezone


class PayloadError(ValueError):
    """Raised when a request body is malformed; the message is shown to the caller."""


def make_token(user_id, username, role):
    cfg = current_app.config
    payload = {
        "user_id": user_id,
        "username": username,
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(hours=cfg["TOKEN_EXPIRE_HOURS"])
    }
    return jwt.encode(payload, cfg["SECRET_KEY"], algorithm=cfg["JWT_ALGORITHM"])

def verify_token(token):
    cfg = current_app.config
    try:
        return jwt.decode(token, cfg["SECRET_KEY"], algorithms=[cfg["JWT_ALGORITHM"]])
    except jwt.InvalidTokenError:
        return None

def token_required(f):
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        auth = request.headers.get("Authorization","")
        if auth.startswith("Bearer "):
            token = auth.split(" ",1)[1]
        else:
            return jsonify({"error": "Token required"}), 401
        data = verify_token(token)
        if not data:
            return jsonify({"error": "Invalid or expired token"}), 401
        g.user_id = data["user_id"]
        g.username = data.get("username")
        g.role = data.get("role","user")
        return f(*args, **kwargs)
    return wrapper

def admin_required(f):
    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        if getattr(g, "role", None) != "admin":
            return jsonify({"error": "Admin required"}), 403
        return f(*args, **kwargs)
    return wrapper


MILLIS_THRESHOLD = 1e11

def json_object():
    """The request body as a dict; ``{}`` when absent, None when it is not an object."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    return data if isinstance(data, dict) else None


def parse_timestamp(value):
    """Accept epoch seconds, epoch milliseconds or an ISO-8601 string; return epoch seconds (UTC)."""
    if isinstance(value, bool) or value is None:
        raise PayloadError("timestamp required")
    if isinstance(value, (int, float)):
        try:
            ts = float(value)
        except OverflowError:
            raise PayloadError(f"timestamp out of range: {value!r}")
        if not math.isfinite(ts):
            raise PayloadError(f"invalid timestamp: {value!r}")
        # JavaScript clients send Date.now() milliseconds
        if abs(ts) > MILLIS_THRESHOLD:
            ts = ts / 1000.0
        return _representable(ts, value)
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            raise PayloadError(f"invalid timestamp: {value!r}")
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return _representable(dt.timestamp(), value)
    raise PayloadError(f"invalid timestamp: {value!r}")

def _representable(ts, raw):
    try:
        datetime.fromtimestamp(ts, timezone.utc)
    except (ValueError, OverflowError, OSError):
        raise PayloadError(f"timestamp out of range: {raw!r}")
    return ts

def format_timestamp(ts):
    return datetime.fromtimestamp(ts, timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

def require_str(payload, key):
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise PayloadError(f"{key} required")
    return value
