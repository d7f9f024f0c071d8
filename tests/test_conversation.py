from __future__ import annotations

import pytest

from geminitalk.conversation import conversation_key, counterparty_of


@pytest.mark.parametrize("a,b", [
    ("kim", "jane"),
    ("admin1", "user1"),
    ("b", "a"),
    ("same", "same"),
    ("", "x"),
])
def test_key_is_order_independent(a, b):
    assert conversation_key(a, b) == conversation_key(b, a)


def test_key_format_and_stability():
    assert conversation_key("user1", "admin1") == "admin1_user1"
    assert conversation_key("user1", "admin1") == conversation_key("user1", "admin1")


def test_self_chat_key():
    assert conversation_key("a", "a") == "a_a"


def test_counterparty_of():
    assert counterparty_of("kim", "kim", "jane") == "jane"
    assert counterparty_of("jane", "kim", "jane") == "kim"
    assert counterparty_of("kim", "kim", "kim") == "kim"
