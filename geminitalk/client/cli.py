#!/usr/bin/env python3
"""
Command-line GeminiTalk client: sign in, chat with translation, manage tasks and
(for admins) accounts. State between runs lives in ~/.geminitalk/settings.json.
"""

import argparse
import logging
import sys

from ..translation import Translator
from .api import ApiClient, ApiError, ServerUnavailable
from .projection import has_translation
from .session import ChatSession, SessionError
from .settings import ClientSettings


def make_session(settings=None):
    settings = settings or ClientSettings()
    api = ApiClient(settings.server_address, token=settings.token)
    session = ChatSession(api=api, translator=Translator(), settings=settings)
    if session.restore():
        try:
            session.load()
        except ServerUnavailable as e:
            logging.getLogger(__name__).warning("Working offline: %s", e)
            session.offline = True
    return session

def resolve_user(session, name_or_id):
    if name_or_id in session.users:
        return session.users[name_or_id]
    user = session.user_by_id(name_or_id)
    if not user:
        raise SessionError(f"unknown user: {name_or_id}")
    return user

def cmd_server(session, args):
    if args.address:
        session.set_server_address(args.address)
    ok = session.api.test_connection()
    print("Server:", session.api.address, "OK" if ok else "UNREACHABLE")

def cmd_login(session, args):
    user = session.login(args.username, args.password)
    mode = " (local mode)" if session.offline else ""
    print(f"Logged in as {user['name']} ({user['username']}){mode}")

def cmd_logout(session, args):
    session.logout()
    print("Logged out.")

def cmd_contacts(session, args):
    for c in session.contacts():
        print(f"{c['username']:<16} {c['name']:<20} {c['lastMessage'][:40]}")

def cmd_send(session, args):
    peer = resolve_user(session, args.recipient)
    message = args.message or input("Message: ")
    m = session.send_message(peer["id"], message)
    print("Sent:", m["text"])
    if m["translatedText"] != m["text"]:
        print("Delivered as:", m["translatedText"])
    for w in session.failed_writes:
        print("Warning: not saved on server:", w.error)

def cmd_history(session, args):
    peer = resolve_user(session, args.peer)
    if args.server:
        session.refresh_thread(peer["id"])
    for m in session.messages.get(peer["id"], []):
        who = "me" if m.get("senderId") == session.user["id"] else (m.get("senderName") or peer["name"])
        mark = " *" if has_translation(m) else ""
        print(f"[{m['timestamp']}] {who}: {session.render(m, show_alternate=args.alternate)}{mark}")

def cmd_detect(session, args):
    print(session.detect_language(args.text))

def cmd_resync(session, args):
    peer = resolve_user(session, args.peer)
    w = session.resync_thread(peer["id"])
    print("Resync:", w.status, w.error or "")

def cmd_tasks(session, args):
    for cp, tasks in session.tasks.items():
        peer = session.user_by_id(cp)
        print("==", peer["name"] if peer else cp)
        for t in tasks:
            print(f"  [{'x' if t['completed'] else ' '}] {t['id'][:8]} {t['text']}")

def cmd_task_add(session, args):
    peer = resolve_user(session, args.peer)
    t = session.add_task(peer["id"], args.text)
    print("Added task", t["id"][:8])

def _find_task(session, prefix):
    for cp, tasks in session.tasks.items():
        for t in tasks:
            if t["id"].startswith(prefix):
                return cp, t
    raise SessionError(f"unknown task: {prefix}")

def cmd_task_toggle(session, args):
    cp, t = _find_task(session, args.task)
    session.toggle_task(cp, t["id"])
    print("Toggled", t["text"])

def cmd_task_delete(session, args):
    cp, t = _find_task(session, args.task)
    session.delete_task(cp, t["id"])
    print("Deleted", t["text"])

def cmd_add_user(session, args):
    session.add_user({
        "username": args.username, "password": args.password, "name": args.name or args.username,
        "nationality": args.nationality, "gender": args.gender, "age": args.age, "role": args.role,
    })
    print("Created", args.username)

def cmd_delete_user(session, args):
    session.delete_user(args.username)
    print("Deleted", args.username)

def cmd_passwd(session, args):
    session.change_password(args.username, args.new_password)
    print("Password changed for", args.username)

def build_parser():
    parser = argparse.ArgumentParser(prog="geminitalk")
    parser.add_argument("--verbose", "-v", action="store_true")
    sub = parser.add_subparsers(dest="cmd")
    p = sub.add_parser("server"); p.add_argument("address", nargs="?"); p.set_defaults(func=cmd_server)
    p = sub.add_parser("login"); p.add_argument("username"); p.add_argument("password"); p.set_defaults(func=cmd_login)
    sub.add_parser("logout").set_defaults(func=cmd_logout)
    sub.add_parser("contacts").set_defaults(func=cmd_contacts)
    p = sub.add_parser("send"); p.add_argument("recipient"); p.add_argument("--message", "-m"); p.set_defaults(func=cmd_send)
    p = sub.add_parser("history"); p.add_argument("peer"); p.add_argument("--alternate", action="store_true", help="show the other text variant"); p.add_argument("--server", action="store_true", help="reload the thread from the server first"); p.set_defaults(func=cmd_history)
    p = sub.add_parser("detect"); p.add_argument("text"); p.set_defaults(func=cmd_detect)
    p = sub.add_parser("resync"); p.add_argument("peer"); p.set_defaults(func=cmd_resync)
    sub.add_parser("tasks").set_defaults(func=cmd_tasks)
    p = sub.add_parser("task-add"); p.add_argument("peer"); p.add_argument("text"); p.set_defaults(func=cmd_task_add)
    p = sub.add_parser("task-toggle"); p.add_argument("task"); p.set_defaults(func=cmd_task_toggle)
    p = sub.add_parser("task-delete"); p.add_argument("task"); p.set_defaults(func=cmd_task_delete)
    p = sub.add_parser("add-user"); p.add_argument("username"); p.add_argument("password")
    p.add_argument("--name"); p.add_argument("--nationality", default="Korea"); p.add_argument("--gender", default="male")
    p.add_argument("--age", type=int, default=25); p.add_argument("--role", default="user", choices=["user", "admin"])
    p.set_defaults(func=cmd_add_user)
    p = sub.add_parser("delete-user"); p.add_argument("username"); p.set_defaults(func=cmd_delete_user)
    p = sub.add_parser("passwd"); p.add_argument("username"); p.add_argument("new_password"); p.set_defaults(func=cmd_passwd)
    return parser

def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s: %(message)s")
    if not getattr(args, "func", None):
        parser.print_help()
        return 1
    try:
        session = make_session()
        if args.func not in (cmd_server, cmd_login) and not session.user:
            print("Not logged in")
            return 1
        args.func(session, args)
    except (ApiError, SessionError) as e:
        print("Error:", e)
        return 1
    return 0

if __name__ == "__main__":
    sys.exit(main())
