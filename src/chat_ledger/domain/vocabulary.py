from enum import Enum

# Whole-message answers to "remember this?". Anything else is an ordinary message.
AFFIRMATIVE_ANSWERS = frozenset({
    "да", "yes", "ок", "окей", "ok", "okay", "конечно", "запомни", "сохрани",
    "ага", "угу", "давай", "го", "1", "+",
})

NEGATIVE_ANSWERS = frozenset({
    "нет", "no", "не надо", "не нужно", "отмена", "cancel", "0", "-", "неа", "не",
})

# Phrases that skip onboarding when they appear anywhere in the message.
SKIP_ONBOARDING_PHRASES = frozenset({
    "skip all",
    "skip everything",
    "skip setup",
    "пропустить всё",
    "пропустить все",
    "пропустить настройку",
})

ADMIN_PREFIX = "/"
FEEDBACK_PREFIX = "ps:"

HELP_COMMANDS = frozenset({"/info", "/help", "/commands"})
RESET_COMMANDS = frozenset({"/reset", "/restart", "/clear"})
DEBUG_COMMAND = "/debug"
NOTE_COMMAND = "/note"

DEBUG_ON_ARGS = frozenset({"on", "1", "true"})
DEBUG_OFF_ARGS = frozenset({"off", "0", "false"})


class LearningAnswer(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"


def normalize_answer(message: str | None) -> str:
    return (message or "").strip().lower()


def classify_learning_answer(message: str | None) -> LearningAnswer | None:
    answer = normalize_answer(message)
    if answer in AFFIRMATIVE_ANSWERS:
        return LearningAnswer.ACCEPT
    if answer in NEGATIVE_ANSWERS:
        return LearningAnswer.DECLINE
    return None


def is_skip_request(message: str | None) -> bool:
    text = normalize_answer(message)
    return any(phrase in text for phrase in SKIP_ONBOARDING_PHRASES)


def looks_like_admin(message: str | None) -> bool:
    text = normalize_answer(message)
    return text.startswith(ADMIN_PREFIX) or text.startswith(FEEDBACK_PREFIX)
