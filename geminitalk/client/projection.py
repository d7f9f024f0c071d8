"""Pure view helpers: which text a viewer sees, thread grouping, contact list."""

from ..conversation import counterparty_of


def is_own_message(message, viewer_id):
    sender = message.get("senderId")
    if sender is None:
        # records without a sender id are attributed by role
        return message.get("role", "user") == "user"
    return sender == viewer_id


def display_text(message, viewer_id, show_alternate=False):
    """Text to render for ``viewer_id``.

    The sender reads the original; everybody else reads the translation (or the
    original when none exists). ``show_alternate`` flips to the other variant.
    """
    original = message.get("text") or ""
    translated = message.get("translatedText") or original
    own = is_own_message(message, viewer_id)
    if show_alternate:
        own = not own
    return original if own else translated


def has_translation(message):
    translated = message.get("translatedText")
    return bool(translated) and translated != message.get("text")


def group_by_counterparty(messages, viewer_id):
    """Group flat message records by the other participant, ordered by timestamp."""
    grouped = {}
    for m in sorted(messages, key=lambda m: m.get("timestamp") or ""):
        sender = m.get("senderId")
        recipient = m.get("recipientId")
        if viewer_id not in (sender, recipient):
            continue
        grouped.setdefault(counterparty_of(viewer_id, sender, recipient), []).append(m)
    return grouped


def build_contacts(users, viewer, messages):
    """One contact entry per other user with a last-message preview."""
    contacts = []
    for user in users.values():
        if user.get("id") == viewer.get("id"):
            continue
        thread = messages.get(user.get("id")) or []
        last = thread[-1] if thread else None
        contacts.append({
            "id": user.get("id"),
            "username": user.get("username"),
            "name": user.get("name"),
            "avatar": user.get("avatar"),
            "description": user.get("statusMessage") or "",
            "lastMessage": display_text(last, viewer.get("id")) if last else "",
            "lastMessageTime": last.get("timestamp") if last else None,
        })
    return contacts
