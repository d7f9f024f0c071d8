import logging
from flask import Blueprint, jsonify, g
from sqlalchemy.exc import IntegrityError
from werkzeug.security import generate_password_hash
from .db import SessionLocal
from .models import User, ROLE_ADMIN, ROLE_USER
from .utils import token_required, admin_required, json_object

logger = logging.getLogger(__name__)

bp = Blueprint("admin", __name__)

ROLES = (ROLE_USER, ROLE_ADMIN)

# request key -> column for fields an admin may edit
PROFILE_FIELDS = {
    "name": "name",
    "avatar": "avatar",
    "statusMessage": "status_message",
    "gender": "gender",
    "age": "age",
    "nationality": "nationality",
    "role": "role",
}


def _check_profile(data):
    if "age" in data and data["age"] is not None:
        try:
            data["age"] = int(data["age"])
        except (TypeError, ValueError):
            return "age must be an integer"
    if "role" in data and data["role"] not in ROLES:
        return "invalid role"
    return None


def ensure_admin(db, password):
    """Seed the bootstrap admin when the users table is empty."""
    if db.query(User).count():
        return None
    admin = User(
        id="admin1",
        username="admin",
        password_hash=generate_password_hash(password),
        name="Administrator",
        avatar="https://picsum.photos/id/1074/200/200",
        status_message="Managing the system",
        gender="male",
        age=30,
        nationality="Korea",
        role=ROLE_ADMIN,
    )
    db.add(admin)
    db.commit()
    logger.info("Created bootstrap admin account 'admin'")
    return admin


@bp.route("/users", methods=["GET"])
def list_users():
    db = SessionLocal()
    try:
        users = db.query(User).order_by(User.created_at.asc()).all()
        return jsonify({u.username: u.to_dict() for u in users})
    finally:
        db.close()

@bp.route("/users", methods=["POST"])
@token_required
@admin_required
def create_user():
    data = json_object()
    if data is None:
        return jsonify({"error": "request body must be an object"}), 400
    username = str(data.get("username") or "").strip()
    password = str(data.get("password") or "")
    if not username or not password:
        return jsonify({"success": False, "error": "username and password required"}), 400
    error = _check_profile(data)
    if error:
        return jsonify({"success": False, "error": error}), 400

    db = SessionLocal()
    try:
        if db.query(User).filter(User.username == username).first():
            return jsonify({"success": False, "error": "username already exists"}), 400
        user = User(
            username=username,
            password_hash=generate_password_hash(password),
            name=(data.get("name") or username),
            avatar=data.get("avatar"),
            status_message=data.get("statusMessage"),
            gender=data.get("gender"),
            age=data.get("age"),
            nationality=data.get("nationality"),
            role=data.get("role") or ROLE_USER,
        )
        if data.get("id"):
            user.id = str(data["id"])
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            return jsonify({"success": False, "error": "user id already exists"}), 400
        logger.info("User %s created by %s", username, g.username)
        return jsonify({"success": True, "user": user.to_dict()})
    finally:
        db.close()

@bp.route("/users/<username>", methods=["PATCH"])
@token_required
@admin_required
def edit_user(username):
    data = json_object()
    if data is None:
        return jsonify({"error": "request body must be an object"}), 400
    error = _check_profile(data)
    if error:
        return jsonify({"success": False, "error": error}), 400
    db = SessionLocal()
    try:
        u = db.query(User).filter(User.username == username).first()
        if not u:
            return jsonify({"error": "not found"}), 404
        if u.id == g.user_id and data.get("role", u.role) != u.role:
            return jsonify({"success": False, "error": "cannot change your own role"}), 400
        for key, column in PROFILE_FIELDS.items():
            if key in data:
                setattr(u, column, data[key])
        db.commit()
        return jsonify({"success": True, "user": u.to_dict()})
    finally:
        db.close()

@bp.route("/users/<username>", methods=["DELETE"])
@token_required
@admin_required
def delete_user(username):
    db = SessionLocal()
    try:
        u = db.query(User).filter(User.username == username).first()
        if not u:
            return jsonify({"error": "not found"}), 404
        if u.id == g.user_id:
            return jsonify({"success": False, "error": "cannot delete your own account"}), 400
        db.delete(u)
        db.commit()
        logger.info("User %s deleted by %s", username, g.username)
        return jsonify({"success": True})
    finally:
        db.close()

@bp.route("/users/<username>/password", methods=["PATCH"])
@token_required
def change_password(username):
    data = json_object()
    if data is None:
        return jsonify({"error": "request body must be an object"}), 400
    new_password = data.get("newPassword") or ""
    if not new_password:
        return jsonify({"success": False, "error": "newPassword required"}), 400
    db = SessionLocal()
    try:
        u = db.query(User).filter(User.username == username).first()
        if not u:
            return jsonify({"error": "not found"}), 404
        if u.id != g.user_id and g.role != ROLE_ADMIN:
            return jsonify({"error": "Admin required"}), 403
        u.password_hash = generate_password_hash(new_password)
        db.commit()
        return jsonify({"success": True})
    finally:
        db.close()
