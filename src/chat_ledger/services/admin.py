from dataclasses import dataclass
from enum import Enum

from chat_ledger.domain import vocabulary
from chat_ledger.logger import get_logger
from chat_ledger.models import UserProfile

from .messages import get_message, language_of

logger = get_logger(__name__)


class AdminCommandKind(str, Enum):
    HELP = "help"
    DEBUG = "debug"
    RESET = "reset"
    NOTE = "note"


@dataclass(frozen=True)
class AdminCommand:
    kind: AdminCommandKind
    argument: str = ""


@dataclass
class AdminOutcome:
    reply: str
    reset: bool = False


def parse_admin_command(message: str | None) -> AdminCommand | None:
    """Recognise the slash-command grammar. Unknown commands return None."""
    text = (message or "").strip()
    lowered = text.lower()
    if not vocabulary.looks_like_admin(lowered):
        return None

    head, *tail = text.split(maxsplit=1)
    rest = tail[0] if tail else ""
    command = head.lower()

    if lowered in vocabulary.HELP_COMMANDS:
        return AdminCommand(AdminCommandKind.HELP)
    if command == vocabulary.DEBUG_COMMAND:
        return AdminCommand(AdminCommandKind.DEBUG, rest.lower())
    if lowered in vocabulary.RESET_COMMANDS:
        return AdminCommand(AdminCommandKind.RESET)
    if command == vocabulary.NOTE_COMMAND:
        return AdminCommand(AdminCommandKind.NOTE, rest)
    if lowered.startswith(vocabulary.FEEDBACK_PREFIX):
        return AdminCommand(AdminCommandKind.NOTE, text[len(vocabulary.FEEDBACK_PREFIX):].strip())
    return None


def handle_admin_command(command: AdminCommand, profile: UserProfile) -> AdminOutcome:
    """Apply an admin command to the profile. Reset is reported, not performed."""
    language = language_of(profile)

    if command.kind == AdminCommandKind.HELP:
        return AdminOutcome(get_message("admin_help", language))

    if command.kind == AdminCommandKind.DEBUG:
        if command.argument in vocabulary.DEBUG_ON_ARGS:
            profile.debug_mode = True
            logger.info("[ADMIN] Debug mode enabled for user %s", profile.user_id)
            return AdminOutcome(get_message("debug_on", language))
        if command.argument in vocabulary.DEBUG_OFF_ARGS:
            profile.debug_mode = False
            logger.info("[ADMIN] Debug mode disabled for user %s", profile.user_id)
            return AdminOutcome(get_message("debug_off", language))
        status = "ON" if profile.debug_mode else "OFF"
        return AdminOutcome(get_message("debug_status", language, status=status))

    if command.kind == AdminCommandKind.RESET:
        logger.info("[ADMIN] User %s requested a reset", profile.user_id)
        return AdminOutcome(get_message("reset_done", language), reset=True)

    logger.warning("[USER_FEEDBACK] userId=%s note=%s", profile.user_id, command.argument)
    return AdminOutcome(get_message("note_saved", language))
