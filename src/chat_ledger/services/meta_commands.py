from collections.abc import Callable
from dataclasses import dataclass, field

from chat_ledger.domain.ledger import DEFAULT_LEDGER_LIMIT, OperationLedger, compensating_entry
from chat_ledger.domain.names import merge_names, normalize_name
from chat_ledger.integration.base import Dispatch
from chat_ledger.logger import get_logger
from chat_ledger.models import UserProfile

from .messages import get_message, language_of
from .replies import format_settings_summary, format_undo_description

logger = get_logger(__name__)

SHOW_SETTINGS = "SHOW_SETTINGS"
ADD_ACCOUNT = "ADD_ACCOUNT"
ADD_FUND = "ADD_FUND"
ADD_INSTRUCTION = "ADD_INSTRUCTION"
REMOVE_INSTRUCTION = "REMOVE_INSTRUCTION"
SET_DEFAULT_CURRENCY = "SET_DEFAULT_CURRENCY"
SET_DEFAULT_ACCOUNT = "SET_DEFAULT_ACCOUNT"
SET_DEFAULT_FUND = "SET_DEFAULT_FUND"
CLEAR_INSTRUCTIONS = "CLEAR_INSTRUCTIONS"
UNDO = "UNDO"
HELP = "HELP"

META_COMMAND_TYPES = frozenset({
    SHOW_SETTINGS,
    ADD_ACCOUNT,
    ADD_FUND,
    ADD_INSTRUCTION,
    REMOVE_INSTRUCTION,
    SET_DEFAULT_CURRENCY,
    SET_DEFAULT_ACCOUNT,
    SET_DEFAULT_FUND,
    CLEAR_INSTRUCTIONS,
    UNDO,
    HELP,
})


@dataclass
class MetaOutcome:
    reply: str
    success: bool = True
    dispatches: list[Dispatch] = field(default_factory=list)


def _has_value(value: str | None) -> bool:
    return value is not None and bool(value.strip())


class MetaCommandRouter:
    """Applies settings-style intents to a profile. Only UNDO touches the ledger."""

    def __init__(self, ledger_limit: int = DEFAULT_LEDGER_LIMIT):
        self.ledger_limit = ledger_limit
        self._handlers: dict[str, Callable[[str | None, UserProfile, str | None], MetaOutcome]] = {
            SHOW_SETTINGS: self._show_settings,
            ADD_ACCOUNT: self._add_account,
            ADD_FUND: self._add_fund,
            ADD_INSTRUCTION: self._add_instruction,
            REMOVE_INSTRUCTION: self._remove_instruction,
            SET_DEFAULT_CURRENCY: self._set_default_currency,
            SET_DEFAULT_ACCOUNT: self._set_default_account,
            SET_DEFAULT_FUND: self._set_default_fund,
            CLEAR_INSTRUCTIONS: self._clear_instructions,
            UNDO: self._undo,
            HELP: self._help,
        }

    def route(
        self,
        meta_type: str | None,
        meta_value: str | None,
        profile: UserProfile,
        message: str | None = None,
    ) -> MetaOutcome | None:
        """
        Handle one meta command.

        ``message`` is the interpreter's user-facing confirmation text. Returns
        None for types outside the known set so the caller can carry on as if
        no meta command was present.
        """
        handler = self._handlers.get((meta_type or "").strip().upper())
        if handler is None:
            logger.warning("[META] Unknown meta command type: %s", meta_type)
            return None
        logger.info("[META] %s value=%s user=%s", meta_type, meta_value, profile.user_id)
        return handler(meta_value, profile, message if _has_value(message) else None)

    @staticmethod
    def _confirm(message: str | None, profile: UserProfile) -> str:
        return message or get_message("meta_done", language_of(profile))

    def _show_settings(self, value: str | None, profile: UserProfile, message: str | None) -> MetaOutcome:
        summary = format_settings_summary(profile, language_of(profile))
        return MetaOutcome(f"{message}\n\n{summary}" if message else summary)

    def _add_account(self, value: str | None, profile: UserProfile, message: str | None) -> MetaOutcome:
        account = normalize_name(value)
        if account:
            profile.accounts = merge_names(profile.accounts, [account])
        return MetaOutcome(self._confirm(message, profile))

    def _add_fund(self, value: str | None, profile: UserProfile, message: str | None) -> MetaOutcome:
        fund = normalize_name(value)
        if fund:
            profile.funds = merge_names(profile.funds, [fund])
        return MetaOutcome(self._confirm(message, profile))

    def _add_instruction(self, value: str | None, profile: UserProfile, message: str | None) -> MetaOutcome:
        reply = self._confirm(message, profile)
        if not _has_value(value):
            logger.warning("[META] ADD_INSTRUCTION without a value for user %s", profile.user_id)
            return MetaOutcome(reply)
        if value in profile.custom_instructions:
            logger.info("[META] Instruction already known for user %s: %s", profile.user_id, value)
            return MetaOutcome(reply + get_message("instruction_exists", language_of(profile)))
        profile.custom_instructions = [*profile.custom_instructions, value]
        logger.info("[META] Added instruction for user %s: %s", profile.user_id, value)
        return MetaOutcome(reply)

    def _remove_instruction(self, value: str | None, profile: UserProfile, message: str | None) -> MetaOutcome:
        reply = self._confirm(message, profile)
        if not _has_value(value):
            return MetaOutcome(reply)
        try:
            index = int(value.strip())
        except ValueError:
            logger.warning("[META] REMOVE_INSTRUCTION: invalid index '%s' for user %s", value, profile.user_id)
            return MetaOutcome(reply)

        instructions = profile.custom_instructions
        if 0 <= index < len(instructions):
            removed = instructions[index]
            profile.custom_instructions = instructions[:index] + instructions[index + 1:]
            logger.info("[META] Removed instruction [%s] for user %s: %s", index, profile.user_id, removed)
        else:
            logger.warning(
                "[META] REMOVE_INSTRUCTION: index %s out of range for user %s (has %s)",
                index,
                profile.user_id,
                len(instructions),
            )
        return MetaOutcome(reply)

    def _set_default_currency(self, value: str | None, profile: UserProfile, message: str | None) -> MetaOutcome:
        if _has_value(value):
            profile.default_currency = value.strip().upper()
        return MetaOutcome(self._confirm(message, profile))

    def _set_default_account(self, value: str | None, profile: UserProfile, message: str | None) -> MetaOutcome:
        if _has_value(value):
            profile.default_account = value.strip().upper()
        return MetaOutcome(self._confirm(message, profile))

    def _set_default_fund(self, value: str | None, profile: UserProfile, message: str | None) -> MetaOutcome:
        if _has_value(value):
            profile.default_fund = value.strip().upper()
        return MetaOutcome(self._confirm(message, profile))

    def _clear_instructions(self, value: str | None, profile: UserProfile, message: str | None) -> MetaOutcome:
        profile.custom_instructions = []
        return MetaOutcome(self._confirm(message, profile))

    def _undo(self, value: str | None, profile: UserProfile, message: str | None) -> MetaOutcome:
        language = language_of(profile)
        last = OperationLedger(profile, self.ledger_limit).pop_last()
        if last is None:
            return MetaOutcome(message or get_message("nothing_to_undo", language), success=False)
        logger.info("[META] Undoing operation for user %s: %s", profile.user_id, last)
        reply = message or get_message("undo_done", language, description=format_undo_description(last))
        return MetaOutcome(reply, dispatches=[Dispatch(compensating_entry(last), undo=True)])

    def _help(self, value: str | None, profile: UserProfile, message: str | None) -> MetaOutcome:
        return MetaOutcome(self._confirm(message, profile))
