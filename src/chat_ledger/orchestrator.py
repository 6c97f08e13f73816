from dataclasses import dataclass, field

from chat_ledger.core.errors import ProfileStoreError
from chat_ledger.core.settings import Settings
from chat_ledger.domain import conversation
from chat_ledger.domain.ledger import DEFAULT_LEDGER_LIMIT, OperationLedger, compensating_entry
from chat_ledger.domain.merge import merge, merge_operation
from chat_ledger.domain.names import linked_user_id
from chat_ledger.domain.vocabulary import LearningAnswer, classify_learning_answer
from chat_ledger.integration.base import Dispatch, OperationDispatcher, ReplyDispatcher
from chat_ledger.interpreter.base import Interpreter
from chat_ledger.logger import get_logger
from chat_ledger.models import (
    CandidateBatch,
    CandidateOperation,
    ChatReply,
    ChatRequest,
    ConversationTurn,
    UserProfile,
)
from chat_ledger.services import replies
from chat_ledger.services.admin import handle_admin_command, parse_admin_command
from chat_ledger.services.messages import PLACEHOLDER_REPLY, get_message, language_of
from chat_ledger.services.meta_commands import MetaCommandRouter
from chat_ledger.services.onboarding import OnboardingFlow, needs_onboarding
from chat_ledger.storage.profiles import ProfileStore

logger = get_logger(__name__)


@dataclass
class Resolution:
    reply: ChatReply
    profile: UserProfile
    dispatches: list[Dispatch] = field(default_factory=list)


def is_committable(batch: CandidateBatch) -> bool:
    return (
        batch.understood
        and bool(batch.operations)
        and all(op.is_known_kind and op.amount is not None for op in batch.operations)
    )


class CommandOrchestrator:
    """
    Resolves one chat message against the user's stored profile.

    Stages run in order: admin commands, onboarding, answers to a pending
    learning suggestion, conversation reset, interpretation, merging with
    pending operations, then either a meta command or financial finalisation.
    The profile is saved exactly once per message and operations are only
    dispatched after that save succeeded.
    """

    def __init__(
        self,
        store: ProfileStore,
        interpreter: Interpreter,
        operations: OperationDispatcher,
        replies_dispatcher: ReplyDispatcher | None = None,
        history_limit: int = conversation.DEFAULT_HISTORY_LIMIT,
        ledger_limit: int = DEFAULT_LEDGER_LIMIT,
    ):
        self.store = store
        self.interpreter = interpreter
        self.operations = operations
        self.replies_dispatcher = replies_dispatcher
        self.history_limit = history_limit
        self.ledger_limit = ledger_limit
        self.onboarding = OnboardingFlow(interpreter)
        self.meta_router = MetaCommandRouter(ledger_limit)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: ProfileStore,
        interpreter: Interpreter,
        operations: OperationDispatcher,
        replies_dispatcher: ReplyDispatcher | None = None,
    ) -> "CommandOrchestrator":
        return cls(
            store=store,
            interpreter=interpreter,
            operations=operations,
            replies_dispatcher=replies_dispatcher,
            history_limit=settings.history_limit,
            ledger_limit=settings.ledger_limit,
        )

    def process(self, request: ChatRequest) -> ChatReply:
        message = (request.message or "").strip()
        logger.info("[ORCHESTRATOR] Message from %s (%s): %s", request.user_name, request.user_id, message)

        profile = self.store.get(request.user_id)
        resolution = self._resolve(request, message, profile)

        # Raises ProfileStoreError before anything leaves the process.
        self.store.save(resolution.profile)

        actor = resolution.profile.display_name or resolution.profile.user_id
        for item in resolution.dispatches:
            self.operations.dispatch(item.operation, actor, undo=item.undo)

        if self.replies_dispatcher is not None:
            self.replies_dispatcher.deliver(resolution.reply)
        return resolution.reply

    def _resolve(self, request: ChatRequest, message: str, profile: UserProfile) -> Resolution:
        admin = self._check_admin(request, message, profile)
        if admin is not None:
            return admin

        if needs_onboarding(profile):
            logger.info("[ORCHESTRATOR] User %s needs onboarding", profile.user_id)
            step = self.onboarding.handle(message, profile)
            return Resolution(self._reply(request, step.reply), profile)

        learning = self._check_learning_response(request, message, profile)
        if learning is not None:
            return learning

        if conversation.is_new_conversation(message, profile):
            conversation.clear(profile)
            profile.pending_commands = []
        else:
            logger.info(
                "[ORCHESTRATOR] Continuing conversation for %s, history size %s",
                profile.user_id,
                len(profile.conversation_history),
            )

        conversation.add_turn(profile, ConversationTurn.user(message), self.history_limit)
        batch = self.interpreter.interpret(message, profile, self._load_linked_profiles(profile))
        if batch.failed:
            text = batch.clarification or batch.error or PLACEHOLDER_REPLY
            return Resolution(self._reply(request, text, success=False), profile)

        if profile.pending_commands:
            batch.operations = merge(profile.pending_commands, batch.operations)

        if batch.has_meta_command:
            outcome = self.meta_router.route(
                batch.meta_command.type,
                batch.meta_command.value,
                profile,
                batch.clarification,
            )
            if outcome is not None:
                return Resolution(
                    self._reply(request, outcome.reply, success=outcome.success),
                    profile,
                    outcome.dispatches,
                )

        return self._finalize(request, batch, profile)

    def _check_admin(self, request: ChatRequest, message: str, profile: UserProfile) -> Resolution | None:
        command = parse_admin_command(message)
        if command is None:
            return None
        outcome = handle_admin_command(command, profile)
        if outcome.reset:
            self.store.delete(profile.user_id)
            profile = UserProfile(user_id=profile.user_id)
            logger.info("[ADMIN] User %s deleted by reset command", profile.user_id)
        return Resolution(self._reply(request, outcome.reply), profile)

    def _check_learning_response(
        self, request: ChatRequest, message: str, profile: UserProfile
    ) -> Resolution | None:
        suggestion = profile.pending_suggestion
        if not suggestion or not suggestion.strip():
            return None

        answer = classify_learning_answer(message)
        profile.pending_suggestion = None
        language = language_of(profile)

        if answer == LearningAnswer.ACCEPT:
            if suggestion not in profile.custom_instructions:
                profile.custom_instructions = [*profile.custom_instructions, suggestion]
            conversation.clear(profile)
            logger.info("[ORCHESTRATOR] Learned instruction for %s: %s", profile.user_id, suggestion)
            return Resolution(
                self._reply(request, get_message("learning_saved", language, instruction=suggestion)),
                profile,
            )
        if answer == LearningAnswer.DECLINE:
            conversation.clear(profile)
            return Resolution(self._reply(request, get_message("learning_declined", language)), profile)

        logger.debug("[ORCHESTRATOR] Message is not an answer to the suggestion, dropping it.")
        return None

    def _finalize(self, request: ChatRequest, batch: CandidateBatch, profile: UserProfile) -> Resolution:
        ledger = OperationLedger(profile, self.ledger_limit)
        language = language_of(profile)
        previous = ledger.peek_last()

        if batch.correction and batch.operations and previous is not None:
            batch.operations[0] = merge_operation(previous, batch.operations[0])

        if is_committable(batch):
            return self._commit(request, batch, profile, ledger, previous, language)

        text = batch.clarification or batch.error
        if not text or not text.strip():
            logger.warning(
                "[ORCHESTRATOR] Interpreter gave no clarification or error for user %s", profile.user_id
            )
            text = PLACEHOLDER_REPLY

        was_clarification = not batch.understood and batch.clarification is not None
        conversation.add_turn(
            profile,
            ConversationTurn.assistant(text, batch.first, was_clarification),
            self.history_limit,
        )
        profile.pending_commands = list(batch.operations)
        if batch.operations:
            logger.info("[ORCHESTRATOR] Saved %s pending operations for %s", len(batch.operations), profile.user_id)

        if profile.debug_mode:
            text = f"{text}\n\n{self._debug_block(batch, profile)}"
        return Resolution(self._reply(request, text, success=False), profile)

    def _commit(
        self,
        request: ChatRequest,
        batch: CandidateBatch,
        profile: UserProfile,
        ledger: OperationLedger,
        previous: CandidateOperation | None,
        language: str,
    ) -> Resolution:
        operations = list(batch.operations)
        dispatches: list[Dispatch] = []

        if batch.correction:
            text = replies.format_correction(previous, operations[0], language)
            cancelled = ledger.pop_last()
            if cancelled is not None:
                logger.info("[ORCHESTRATOR] Correction, cancelling: %s", cancelled)
                dispatches.append(Dispatch(compensating_entry(cancelled)))
        else:
            text = replies.format_success(operations, language)

        for operation in operations:
            dispatches.append(Dispatch(operation))
            ledger.record(operation)
        profile.pending_commands = []

        suggestion = batch.suggested_instruction
        if suggestion and suggestion.strip():
            profile.pending_suggestion = suggestion
            text += "\n\n" + get_message("learning_question", language, instruction=suggestion)

        defaults = batch.set_as_default
        if defaults is not None and defaults.has_any():
            if defaults.account is not None:
                profile.default_account = defaults.account
            if defaults.currency is not None:
                profile.default_currency = defaults.currency
            if defaults.fund is not None:
                profile.default_fund = defaults.fund
            text += "\n\n" + replies.format_defaults_update(defaults, language)
            logger.info("[ORCHESTRATOR] Updated defaults for %s: %s", profile.user_id, defaults)

        conversation.clear(profile)

        if profile.debug_mode:
            text = f"{text}\n\n{self._debug_block(batch, profile)}"
        reply = ChatReply(
            chat_id=request.chat_id,
            message=text,
            success=True,
            operations=operations,
            operations_count=len(operations),
        )
        return Resolution(reply, profile, dispatches)

    def _debug_block(self, batch: CandidateBatch, profile: UserProfile) -> str:
        return replies.format_debug_info(batch, profile, conversation.awaiting_clarification(profile))

    def _load_linked_profiles(self, profile: UserProfile) -> list[UserProfile]:
        linked_profiles: list[UserProfile] = []
        for entry in profile.linked_users:
            linked_id = linked_user_id(entry)
            if not linked_id or linked_id == profile.user_id or not self.store.exists(linked_id):
                continue
            try:
                linked_profiles.append(self.store.get(linked_id))
            except ProfileStoreError as exc:
                logger.warning("[ORCHESTRATOR] Failed to load linked user %s: %s", linked_id, exc)
        return linked_profiles

    @staticmethod
    def _reply(request: ChatRequest, text: str, success: bool = True) -> ChatReply:
        return ChatReply(chat_id=request.chat_id, message=text, success=success)
