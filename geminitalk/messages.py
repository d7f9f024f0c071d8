import logging
from flask import Blueprint, jsonify
from sqlalchemy import delete, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from .db import SessionLocal
from .models import Message
from .conversation import conversation_key, counterparty_of
from .utils import PayloadError, json_object, parse_timestamp, format_timestamp, require_str

logger = logging.getLogger(__name__)

bp = Blueprint("messages", __name__)

ROLES = ("user", "model")


def _normalize(payload, acting_user_id, counterparty_id):
    """Validate one message payload and resolve its participants."""
    if not isinstance(payload, dict):
        raise PayloadError("message must be an object")
    msg_id = require_str(payload, "id")
    text = require_str(payload, "text")
    timestamp = parse_timestamp(payload.get("timestamp"))
    role = payload.get("role") or "user"
    if role not in ROLES:
        raise PayloadError(f"invalid role: {role!r}")

    sender = payload.get("senderId") or acting_user_id
    if sender == acting_user_id:
        recipient = counterparty_id
    elif sender == counterparty_id:
        recipient = acting_user_id
    else:
        raise PayloadError("senderId must be one of the conversation participants")

    translated = payload.get("translatedText")
    if not isinstance(translated, str) or not translated.strip():
        translated = text

    return dict(
        id=msg_id,
        thread_key=conversation_key(sender, recipient),
        sender_id=sender,
        recipient_id=recipient,
        role=role,
        text=text,
        translated_text=translated,
        timestamp=timestamp,
        sender_name=payload.get("senderName") or None,
        is_error=bool(payload.get("isError")),
    )


def serialize(m):
    return {
        "id": m.id,
        "threadKey": m.thread_key,
        "senderId": m.sender_id,
        "recipientId": m.recipient_id,
        "role": m.role,
        "text": m.text,
        "translatedText": m.translated_text,
        "timestamp": format_timestamp(m.timestamp),
        "senderName": m.sender_name,
        "isError": bool(m.is_error),
    }


def _ordered(query):
    return query.order_by(Message.timestamp.asc(), Message.created_at.asc(), Message.id.asc())


def save_message(db, acting_user_id, counterparty_id, payload):
    """Append one message to the thread of ``acting_user_id`` and ``counterparty_id``."""
    row = Message(**_normalize(payload, acting_user_id, counterparty_id))
    try:
        db.add(row)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    return row


def replace_thread(db, acting_user_id, counterparty_id, payloads):
    """Delete the whole thread and reinsert ``payloads`` in one transaction."""
    if not isinstance(payloads, list):
        raise PayloadError("messages must be a list")
    rows = [_normalize(p, acting_user_id, counterparty_id) for p in payloads]
    key = conversation_key(acting_user_id, counterparty_id)
    try:
        db.execute(delete(Message).where(Message.thread_key == key))
        db.add_all(Message(**r) for r in rows)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Thread replace failed for %s; rolled back", key)
        raise
    return len(rows)


def get_messages_for_user(db, user_id):
    rows = _ordered(db.query(Message).filter(
        or_(Message.sender_id == user_id, Message.recipient_id == user_id)
    )).all()
    grouped = {}
    for m in rows:
        other = counterparty_of(user_id, m.sender_id, m.recipient_id)
        grouped.setdefault(other, []).append(serialize(m))
    return grouped


def get_messages_for_thread(db, thread_key):
    rows = _ordered(db.query(Message).filter(Message.thread_key == thread_key)).all()
    return [serialize(m) for m in rows]


@bp.route("/messages/<user_id>", methods=["GET"])
def user_messages(user_id):
    db = SessionLocal()
    try:
        return jsonify(get_messages_for_user(db, user_id))
    finally:
        db.close()

@bp.route("/messages/<user_id>/<counterparty_id>", methods=["GET"])
def thread_messages(user_id, counterparty_id):
    db = SessionLocal()
    try:
        return jsonify(get_messages_for_thread(db, conversation_key(user_id, counterparty_id)))
    finally:
        db.close()

@bp.route("/messages/<user_id>/<counterparty_id>", methods=["POST"])
def post_message(user_id, counterparty_id):
    data = json_object()
    if data is None:
        return jsonify({"error": "request body must be an object"}), 400
    db = SessionLocal()
    try:
        save_message(db, user_id, counterparty_id, data.get("message"))
        return jsonify({"success": True})
    except PayloadError as e:
        return jsonify({"error": str(e)}), 400
    except IntegrityError:
        return jsonify({"error": "message id already exists"}), 409
    except SQLAlchemyError:
        logger.exception("Failed to save message from %s to %s", user_id, counterparty_id)
        return jsonify({"error": "failed to save message"}), 500
    finally:
        db.close()

@bp.route("/messages/<user_id>/<counterparty_id>", methods=["PUT"])
def put_thread(user_id, counterparty_id):
    data = json_object()
    if data is None:
        return jsonify({"error": "request body must be an object"}), 400
    db = SessionLocal()
    try:
        count = replace_thread(db, user_id, counterparty_id, data.get("messages"))
        return jsonify({"success": True, "count": count})
    except PayloadError as e:
        return jsonify({"error": str(e)}), 400
    except SQLAlchemyError:
        return jsonify({"error": "failed to replace thread"}), 500
    finally:
        db.close()
