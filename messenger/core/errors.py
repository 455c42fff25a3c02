# messenger/core/errors.py

from __future__ import annotations


class ChatError(Exception):
    """Base class for errors raised by the chat service layer."""


class NotMemberError(ChatError):
    """An author tried to post to a room they never joined."""

    def __init__(self, room_id: str, person: str) -> None:
        super().__init__(f"{person!r} is not a member of room {room_id}")
        self.room_id = room_id
        self.person = person


class StorageError(ChatError):
    """
    The document store failed (I/O, connection or a corrupt document).

    The operation that raised it did not commit anything.
    """


class MalformedInputError(ChatError):
    """A required field is missing or invalid."""
