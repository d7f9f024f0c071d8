from __future__ import annotations

import pytest
from sqlalchemy.exc import SQLAlchemyError

from geminitalk.conversation import conversation_key
from geminitalk.messages import (
    get_messages_for_thread,
    get_messages_for_user,
    replace_thread,
    save_message,
)
from geminitalk.models import Message
from geminitalk.utils import PayloadError


def msg(msg_id: str, text: str, ts: str | int | float, **extra) -> dict:
    m = {"id": msg_id, "role": "user", "text": text, "timestamp": ts}
    m.update(extra)
    return m


def test_save_computes_thread_key_and_participants(db):
    save_message(db, "kim", "jane", msg("m1", "안녕", "2024-01-01T00:00:00Z", translatedText="Hello"))
    row = db.get(Message, "m1")
    assert row.sender_id == "kim"
    assert row.recipient_id == "jane"
    assert row.thread_key == conversation_key("kim", "jane") == "jane_kim"
    assert row.text == "안녕"
    assert row.translated_text == "Hello"


def test_explicit_sender_from_the_other_side(db):
    save_message(db, "kim", "jane", msg("m1", "hi", "2024-01-01T00:00:00Z", senderId="jane"))
    row = db.get(Message, "m1")
    assert (row.sender_id, row.recipient_id) == ("jane", "kim")
    assert row.thread_key == conversation_key(row.sender_id, row.recipient_id)


def test_sender_outside_the_thread_is_rejected(db):
    with pytest.raises(PayloadError):
        save_message(db, "kim", "jane", msg("m1", "hi", "2024-01-01T00:00:00Z", senderId="eve"))


@pytest.mark.parametrize("translated", [None, "", "   "])
def test_translated_text_defaults_to_original(db, translated):
    payload = msg("m1", "안녕", "2024-01-01T00:00:00Z")
    if translated is not None:
        payload["translatedText"] = translated
    save_message(db, "kim", "jane", payload)
    assert db.get(Message, "m1").translated_text == "안녕"


@pytest.mark.parametrize("payload", [
    None,
    "text",
    {"text": "no id", "timestamp": "2024-01-01T00:00:00Z"},
    {"id": "m1", "timestamp": "2024-01-01T00:00:00Z"},
    {"id": "m1", "text": "   ", "timestamp": "2024-01-01T00:00:00Z"},
    {"id": "m1", "text": "no timestamp"},
    {"id": "m1", "text": "bad timestamp", "timestamp": "yesterday"},
    {"id": "m1", "text": "bad role", "timestamp": "2024-01-01T00:00:00Z", "role": "robot"},
])
def test_malformed_payload_is_rejected_before_write(db, payload):
    with pytest.raises(PayloadError):
        save_message(db, "kim", "jane", payload)
    assert db.query(Message).count() == 0


def test_grouped_views_are_symmetric(db):
    save_message(db, "kim", "jane", msg("m1", "first", "2024-01-01T00:00:01Z"))
    save_message(db, "jane", "kim", msg("m2", "second", "2024-01-01T00:00:02Z"))
    save_message(db, "kim", "jane", msg("m3", "third", "2024-01-01T00:00:03Z"))
    save_message(db, "kim", "bob", msg("m4", "other thread", "2024-01-01T00:00:00Z"))

    kim = get_messages_for_user(db, "kim")
    jane = get_messages_for_user(db, "jane")
    assert set(kim) == {"jane", "bob"}
    assert set(jane) == {"kim"}
    assert [m["id"] for m in kim["jane"]] == ["m1", "m2", "m3"]
    assert kim["jane"] == jane["kim"]
    assert get_messages_for_user(db, "bob")["kim"][0]["text"] == "other thread"


def test_grouping_orders_by_timestamp_not_insert_order(db):
    save_message(db, "kim", "jane", msg("late", "late", "2024-01-02T00:00:00Z"))
    save_message(db, "kim", "jane", msg("early", "early", "2024-01-01T00:00:00Z"))
    assert [m["id"] for m in get_messages_for_user(db, "kim")["jane"]] == ["early", "late"]


def test_self_chat_groups_under_own_id(db):
    save_message(db, "kim", "kim", msg("m1", "note to self", "2024-01-01T00:00:00Z"))
    assert list(get_messages_for_user(db, "kim")) == ["kim"]
    assert len(get_messages_for_thread(db, "kim_kim")) == 1


def test_thread_lookup_is_viewer_independent(db):
    save_message(db, "kim", "jane", msg("m1", "a", "2024-01-01T00:00:01Z"))
    save_message(db, "jane", "kim", msg("m2", "b", "2024-01-01T00:00:02Z"))
    thread = get_messages_for_thread(db, conversation_key("jane", "kim"))
    assert [m["id"] for m in thread] == ["m1", "m2"]
    assert thread[0]["timestamp"] == "2024-01-01T00:00:01.000Z"


def test_replace_thread_overwrites_only_that_thread(db):
    save_message(db, "kim", "jane", msg("m1", "old", "2024-01-01T00:00:01Z"))
    save_message(db, "kim", "bob", msg("b1", "keep", "2024-01-01T00:00:01Z"))
    count = replace_thread(db, "kim", "jane", [
        msg("m1", "old", "2024-01-01T00:00:01Z"),
        msg("m2", "new", "2024-01-01T00:00:02Z", senderId="jane"),
    ])
    assert count == 2
    thread = get_messages_for_thread(db, "jane_kim")
    assert [m["id"] for m in thread] == ["m1", "m2"]
    assert thread[1]["senderId"] == "jane"
    assert get_messages_for_thread(db, "bob_kim")[0]["id"] == "b1"


def test_replace_thread_rejects_invalid_payload_without_deleting(db):
    save_message(db, "kim", "jane", msg("m1", "old", "2024-01-01T00:00:01Z"))
    with pytest.raises(PayloadError):
        replace_thread(db, "kim", "jane", [msg("m2", "ok", "2024-01-01T00:00:02Z"), {"id": "m3"}])
    assert [m["id"] for m in get_messages_for_thread(db, "jane_kim")] == ["m1"]


def test_replace_thread_is_atomic_on_insert_failure(db):
    save_message(db, "kim", "jane", msg("m1", "keep me", "2024-01-01T00:00:01Z"))
    # the duplicate id fails during insert, after the delete already ran
    with pytest.raises(SQLAlchemyError):
        replace_thread(db, "kim", "jane", [
            msg("dup", "one", "2024-01-01T00:00:02Z"),
            msg("dup", "two", "2024-01-01T00:00:03Z"),
        ])
    thread = get_messages_for_thread(db, "jane_kim")
    assert [(m["id"], m["text"]) for m in thread] == [("m1", "keep me")]


def test_replace_thread_with_empty_list_clears_it(db):
    save_message(db, "kim", "jane", msg("m1", "bye", "2024-01-01T00:00:01Z"))
    assert replace_thread(db, "kim", "jane", []) == 0
    assert get_messages_for_user(db, "kim") == {}


# ---- HTTP ----

def test_post_and_get_grouped(client):
    r = client.post("/api/messages/kim/jane", json={"message": msg("m1", "안녕", "2024-01-01T00:00:00Z", translatedText="Hello")})
    assert r.status_code == 200
    assert r.get_json() == {"success": True}

    kim = client.get("/api/messages/kim").get_json()
    jane = client.get("/api/messages/jane").get_json()
    assert kim["jane"] == jane["kim"]
    assert kim["jane"][0]["translatedText"] == "Hello"
    assert kim["jane"][0]["threadKey"] == "jane_kim"


def test_post_malformed_returns_400(client):
    r = client.post("/api/messages/kim/jane", json={"message": {"id": "m1"}})
    assert r.status_code == 400
    assert "text" in r.get_json()["error"]
    r = client.post("/api/messages/kim/jane", json={})
    assert r.status_code == 400


def test_post_duplicate_id_returns_409(client):
    body = {"message": msg("m1", "hi", "2024-01-01T00:00:00Z")}
    assert client.post("/api/messages/kim/jane", json=body).status_code == 200
    assert client.post("/api/messages/kim/jane", json=body).status_code == 409


def test_put_replaces_thread(client):
    client.post("/api/messages/kim/jane", json={"message": msg("m1", "old", "2024-01-01T00:00:00Z")})
    r = client.put("/api/messages/jane/kim", json={"messages": [msg("m2", "fresh", "2024-01-01T00:00:05Z")]})
    assert r.status_code == 200
    assert r.get_json()["count"] == 1
    thread = client.get("/api/messages/kim/jane").get_json()
    assert [m["id"] for m in thread] == ["m2"]
    assert thread[0]["senderId"] == "jane"


def test_put_storage_failure_returns_500_and_keeps_thread(client):
    client.post("/api/messages/kim/jane", json={"message": msg("m1", "old", "2024-01-01T00:00:00Z")})
    r = client.put("/api/messages/kim/jane", json={"messages": [
        msg("dup", "a", "2024-01-01T00:00:01Z"),
        msg("dup", "b", "2024-01-01T00:00:02Z"),
    ]})
    assert r.status_code == 500
    assert [m["id"] for m in client.get("/api/messages/kim/jane").get_json()] == ["m1"]


def test_millisecond_timestamps_are_normalized(db):
    save_message(db, "kim", "jane", msg("m1", "hi", 1704067200000))
    assert get_messages_for_user(db, "jane")["kim"][0]["timestamp"] == "2024-01-01T00:00:00.000Z"


@pytest.mark.parametrize("ts", [10**20, -(10**20), 10**400, float("inf"), float("nan"), "9999-12-31T23:59:59-05:00"])
def test_unrepresentable_timestamps_are_rejected(db, ts):
    with pytest.raises(PayloadError):
        save_message(db, "kim", "jane", msg("m1", "hi", ts))
    assert db.query(Message).count() == 0


def test_out_of_range_timestamp_is_400_and_reads_keep_working(client):
    r = client.post("/api/messages/kim/jane", json={"message": msg("m1", "hi", 10**20)})
    assert r.status_code == 400
    assert "timestamp" in r.get_json()["error"]
    assert client.get("/api/messages/jane").get_json() == {}


def test_non_object_bodies_return_400(client):
    r = client.post("/api/messages/kim/jane", json=[{"id": "m1"}])
    assert r.status_code == 400
    assert r.get_json() == {"error": "request body must be an object"}
    assert client.put("/api/messages/kim/jane", json=["x"]).status_code == 400
