import logging
from flask import Blueprint, jsonify
from werkzeug.security import check_password_hash
from .db import SessionLocal
from .models import User
from .utils import make_token, json_object

logger = logging.getLogger(__name__)

bp = Blueprint("auth", __name__)

@bp.route("/login", methods=["POST"])
def login():
    data = json_object()
    if data is None:
        return jsonify({"error": "request body must be an object"}), 400
    username = str(data.get("username") or "").strip()
    password = str(data.get("password") or "")
    if not username or not password:
        return jsonify({"success": False, "error": "username and password required"}), 400

    db = SessionLocal()
    try:
        user = db.query(User).filter(User.username == username).first()
        if not user or not check_password_hash(user.password_hash, password):
            logger.warning("Failed login for %r", username)
            return jsonify({"success": False, "error": "invalid username or password"}), 401
        token = make_token(user.id, user.username, user.role)
        return jsonify({"success": True, "user": user.to_dict(), "token": token})
    finally:
        db.close()
