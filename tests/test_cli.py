from __future__ import annotations

import pytest

from geminitalk.client.cli import build_parser, main, resolve_user
from geminitalk.client.session import ChatSession, SessionError
from geminitalk.client.settings import ClientSettings


def test_parser_wires_commands():
    args = build_parser().parse_args(["send", "jane", "-m", "hi"])
    assert (args.cmd, args.recipient, args.message) == ("send", "jane", "hi")
    args = build_parser().parse_args(["add-user", "lee", "pw", "--role", "admin", "--age", "40"])
    assert (args.role, args.age, args.nationality) == ("admin", 40, "Korea")


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out


def test_resolve_user_by_username_or_id(tmp_path):
    session = ChatSession(api=object(), settings=ClientSettings(tmp_path / "s.json"))
    session.users = {"jane": {"id": "jane1", "username": "jane"}}
    assert resolve_user(session, "jane")["id"] == "jane1"
    assert resolve_user(session, "jane1")["username"] == "jane"
    with pytest.raises(SessionError):
        resolve_user(session, "nobody")


def test_history_and_detect_options():
    args = build_parser().parse_args(["history", "jane", "--server", "--alternate"])
    assert args.server and args.alternate
    assert build_parser().parse_args(["detect", "안녕"]).text == "안녕"
