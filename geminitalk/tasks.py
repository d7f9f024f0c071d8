import logging
from flask import Blueprint, jsonify
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from .db import SessionLocal
from .models import Task
from .utils import PayloadError, json_object, parse_timestamp, format_timestamp, require_str

logger = logging.getLogger(__name__)

bp = Blueprint("tasks", __name__)


def _normalize(user_id, counterparty_id, payload):
    if not isinstance(payload, dict):
        raise PayloadError("task must be an object")
    return dict(
        id=require_str(payload, "id"),
        user_id=user_id,
        counterparty_id=str(counterparty_id),
        text=require_str(payload, "text"),
        completed=bool(payload.get("completed")),
        timestamp=parse_timestamp(payload.get("timestamp")),
    )


def serialize(t):
    return {
        "id": t.id,
        "text": t.text,
        "completed": bool(t.completed),
        "timestamp": format_timestamp(t.timestamp),
    }


def get_tasks_for_user(db, user_id):
    rows = (db.query(Task).filter(Task.user_id == user_id)
            .order_by(Task.timestamp.asc(), Task.created_at.asc(), Task.id.asc()).all())
    grouped = {}
    for t in rows:
        grouped.setdefault(t.counterparty_id, []).append(serialize(t))
    return grouped


def replace_all_tasks_for_user(db, user_id, tasks_by_counterparty):
    """Overwrite the user's whole task set. Callers always send the complete state."""
    if not isinstance(tasks_by_counterparty, dict):
        raise PayloadError("tasks must be an object keyed by counterparty id")
    rows = []
    for counterparty_id, task_list in tasks_by_counterparty.items():
        if not isinstance(task_list, list):
            raise PayloadError(f"tasks for {counterparty_id} must be a list")
        rows.extend(_normalize(user_id, counterparty_id, t) for t in task_list)
    try:
        db.execute(delete(Task).where(Task.user_id == user_id))
        db.add_all(Task(**r) for r in rows)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Task replace failed for user %s; rolled back", user_id)
        raise
    return len(rows)


@bp.route("/tasks/<user_id>", methods=["GET"])
def user_tasks(user_id):
    db = SessionLocal()
    try:
        return jsonify(get_tasks_for_user(db, user_id))
    finally:
        db.close()

@bp.route("/tasks/<user_id>", methods=["PUT"])
def put_tasks(user_id):
    data = json_object()
    if data is None:
        return jsonify({"error": "request body must be an object"}), 400
    db = SessionLocal()
    try:
        replace_all_tasks_for_user(db, user_id, data.get("tasks"))
        return jsonify({"success": True})
    except PayloadError as e:
        return jsonify({"error": str(e)}), 400
    except SQLAlchemyError:
        return jsonify({"error": "failed to save tasks"}), 500
    finally:
        db.close()
