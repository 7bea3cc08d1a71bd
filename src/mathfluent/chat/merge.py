"""Reconciliation of live snapshots with optimistically shown messages."""

from .models import Message, MessageStatus


def _matches(local: Message, server: Message) -> bool:
    if local.client_token is not None and server.client_token is not None:
        return local.client_token == server.client_token
    return local.sender.id == server.sender.id and local.text == server.text


def merge_snapshot(previous: list[Message], server_messages: list[Message]) -> list[Message]:
    """Build the visible message list after a snapshot arrives.

    Server messages come first, in store order. Local messages follow when
    the snapshot does not yet contain them: pending and sent messages are
    dropped once a server message matches (same client token, or same sender
    and text when either side has no token), each server message matching at
    most one local message. Failed messages were never stored and always stay.

    Args:
        previous: The list currently shown
        server_messages: The authoritative snapshot from the store

    Returns:
        The new visible list
    """
    server = [m for m in server_messages if m.status != MessageStatus.PENDING]
    unclaimed = list(server)
    kept: list[Message] = []

    for message in previous:
        if not message.is_local:
            continue
        if message.status == MessageStatus.FAILED:
            kept.append(message)
            continue
        match = next((s for s in unclaimed if _matches(message, s)), None)
        if match is None:
            kept.append(message)
        else:
            unclaimed.remove(match)

    return server + kept
