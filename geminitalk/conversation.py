"""Order-independent thread keys for two-party conversations."""

SEPARATOR = "_"


def conversation_key(a, b):
    """Return the thread key shared by participants ``a`` and ``b``.

    ``conversation_key(a, b) == conversation_key(b, a)``; a self-chat yields ``a_a``.
    """
    first, second = sorted((str(a), str(b)))
    return f"{first}{SEPARATOR}{second}"


def counterparty_of(user_id, sender_id, recipient_id):
    """The participant on the other side of ``user_id`` (``user_id`` itself for a self-chat)."""
    return recipient_id if sender_id == user_id else sender_id
