from chat_ledger.domain import conversation
from chat_ledger.models import ConversationTurn, UserProfile


def _profile_awaiting_answer() -> UserProfile:
    profile = UserProfile(user_id="1")
    conversation.add_turn(profile, ConversationTurn.user("coffee"))
    conversation.add_turn(profile, ConversationTurn.assistant("How much?", was_clarification=True))
    return profile


def test_looks_like_answer() -> None:
    assert conversation.looks_like_answer("150")
    assert conversation.looks_like_answer("in euros please")
    assert not conversation.looks_like_answer("one two three four five six")
    assert not conversation.looks_like_answer("x" * 60)


def test_empty_history_is_new_conversation() -> None:
    assert conversation.is_new_conversation("150", UserProfile(user_id="1"))


def test_short_answer_to_clarification_continues() -> None:
    profile = _profile_awaiting_answer()

    assert conversation.awaiting_clarification(profile)
    assert not conversation.is_new_conversation("150", profile)


def test_long_message_after_clarification_starts_fresh() -> None:
    profile = _profile_awaiting_answer()

    assert conversation.is_new_conversation("taxi to the airport 2000 with the card yesterday", profile)


def test_answer_without_clarification_starts_fresh() -> None:
    profile = UserProfile(user_id="1")
    conversation.add_turn(profile, ConversationTurn.user("coffee 300"))
    conversation.add_turn(profile, ConversationTurn.assistant("Recorded"))

    assert not conversation.awaiting_clarification(profile)
    assert conversation.is_new_conversation("150", profile)


def test_add_turn_keeps_most_recent_turns() -> None:
    profile = UserProfile(user_id="1")
    for index in range(25):
        conversation.add_turn(profile, ConversationTurn.user(f"message {index}"), limit=20)

    assert len(profile.conversation_history) == 20
    assert profile.conversation_history[0].text == "message 5"
    assert profile.conversation_history[-1].text == "message 24"


def test_clear_empties_history() -> None:
    profile = _profile_awaiting_answer()

    conversation.clear(profile)

    assert profile.conversation_history == []
    assert conversation.last_assistant_turn(profile) is None
