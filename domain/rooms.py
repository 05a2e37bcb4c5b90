"""Room keys used to address broadcast groups"""
from dataclasses import dataclass


@dataclass(frozen=True)
class PersonalRoom:
    """Room every connection of one user joins automatically"""
    user_id: int


@dataclass(frozen=True, order=True)
class ConversationKey:
    """Order-independent key for the conversation between two users

    Always built through conversation_key() so that low <= high.
    """
    low: int
    high: int


RoomKey = PersonalRoom | ConversationKey


def conversation_key(a: int, b: int) -> ConversationKey:
    """Return the canonical conversation room key for users a and b"""
    if a <= b:
        return ConversationKey(a, b)
    return ConversationKey(b, a)
