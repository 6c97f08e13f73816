from chat_ledger.logger import get_logger
from chat_ledger.models import ConversationTurn, Role, UserProfile

logger = get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 20
SHORT_ANSWER_MAX_CHARS = 50
SHORT_ANSWER_MAX_WORDS = 5


def looks_like_answer(message: str) -> bool:
    """Short replies such as "150", "cash" or "in euros" after a question."""
    text = (message or "").strip()
    return len(text) < SHORT_ANSWER_MAX_CHARS and len(text.split()) <= SHORT_ANSWER_MAX_WORDS


def last_assistant_turn(profile: UserProfile) -> ConversationTurn | None:
    for turn in reversed(profile.conversation_history):
        if turn.role == Role.ASSISTANT:
            return turn
    return None


def awaiting_clarification(profile: UserProfile) -> bool:
    turn = last_assistant_turn(profile)
    return turn is not None and turn.was_clarification


def is_new_conversation(message: str, profile: UserProfile) -> bool:
    """
    Decide whether a message starts a new conversation.

    Only a short answer to an outstanding clarification continues the
    previous exchange. Everything else starts fresh so a new expense never
    inherits the previous turn's account or fund.
    """
    if not profile.conversation_history:
        logger.debug("[CONVERSATION] Empty history, new conversation.")
        return True
    if awaiting_clarification(profile) and looks_like_answer(message):
        logger.debug("[CONVERSATION] Short answer to a clarification, continuing.")
        return False
    logger.debug("[CONVERSATION] Treating message as a new conversation.")
    return True


def add_turn(profile: UserProfile, turn: ConversationTurn, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
    history = [*profile.conversation_history, turn]
    if len(history) > limit:
        history = history[-limit:]
    profile.conversation_history = history


def clear(profile: UserProfile) -> None:
    profile.conversation_history = []
    logger.debug("[CONVERSATION] History cleared for user %s", profile.user_id)
