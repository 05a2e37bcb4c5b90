"""Unit tests for room keys"""
import pytest

from domain.rooms import ConversationKey, PersonalRoom, conversation_key


@pytest.mark.unit
class TestConversationKey:
    """Test canonical pairing of conversation participants"""

    def test_order_independent(self):
        assert conversation_key(5, 9) == conversation_key(9, 5)

    def test_orders_participants(self):
        key = conversation_key(9, 5)
        assert (key.low, key.high) == (5, 9)

    def test_no_separator_collisions(self):
        """Test pairs that would collide as joined strings stay distinct"""
        assert conversation_key(1, 23) != conversation_key(12, 3)
        assert conversation_key(1, 123) != conversation_key(11, 23)

    def test_usable_as_dict_key(self):
        rooms = {conversation_key(5, 9): "room"}
        assert rooms[conversation_key(9, 5)] == "room"

    def test_same_user_pair(self):
        assert conversation_key(4, 4) == ConversationKey(4, 4)


@pytest.mark.unit
class TestPersonalRoom:
    """Test personal room keys"""

    def test_equal_for_same_user(self):
        assert PersonalRoom(5) == PersonalRoom(5)

    def test_never_equals_conversation_key(self):
        assert PersonalRoom(5) != conversation_key(5, 5)
        assert len({PersonalRoom(5), conversation_key(5, 5)}) == 2
