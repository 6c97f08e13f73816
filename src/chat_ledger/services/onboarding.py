from dataclasses import dataclass

from chat_ledger.domain import vocabulary
from chat_ledger.domain.names import merge_names, normalize_names
from chat_ledger.interpreter.base import Interpreter
from chat_ledger.logger import get_logger
from chat_ledger.models import OnboardingExtraction, OnboardingState, UserProfile

from .messages import get_message, language_of

logger = get_logger(__name__)

NEXT_STATE = {
    OnboardingState.NOT_STARTED: OnboardingState.ASK_ACCOUNTS,
    OnboardingState.ASK_ACCOUNTS: OnboardingState.ASK_FUNDS,
    OnboardingState.ASK_FUNDS: OnboardingState.COMPLETED,
    OnboardingState.ASK_CURRENCY: OnboardingState.ASK_NAME,
    OnboardingState.ASK_NAME: OnboardingState.ASK_ACCOUNTS,
    OnboardingState.ASK_LINKED_USERS: OnboardingState.COMPLETED,
    OnboardingState.COMPLETED: OnboardingState.COMPLETED,
}

SKIP_DEFAULT_ACCOUNTS = ["CARD", "CASH"]
SKIP_DEFAULT_FUNDS = ["GENERAL"]

_STEP_PROMPTS = {
    OnboardingState.ASK_ACCOUNTS: "onboarding_ask_accounts",
    OnboardingState.ASK_FUNDS: "onboarding_ask_funds",
    OnboardingState.ASK_CURRENCY: "onboarding_ask_currency",
    OnboardingState.ASK_NAME: "onboarding_ask_name",
    OnboardingState.ASK_LINKED_USERS: "onboarding_ask_linked_users",
    OnboardingState.COMPLETED: "onboarding_completed",
}


@dataclass
class StepResult:
    reply: str
    extracted: bool
    step_complete: bool
    state: OnboardingState | None


def has_minimum_setup(profile: UserProfile) -> bool:
    return bool(profile.accounts) and bool(profile.funds)


def needs_onboarding(profile: UserProfile) -> bool:
    if not has_minimum_setup(profile):
        return True
    state = profile.onboarding_state
    if state is None or state == OnboardingState.NOT_STARTED:
        # Profiles configured outside the chat are ready as they are.
        return False
    return state != OnboardingState.COMPLETED


def resolve_step(profile: UserProfile) -> OnboardingState:
    """The step to run for this message."""
    state = profile.onboarding_state
    if state in {None, OnboardingState.NOT_STARTED, OnboardingState.COMPLETED}:
        return OnboardingState.ASK_FUNDS if profile.accounts else OnboardingState.ASK_ACCOUNTS
    return state


def has_required_data(profile: UserProfile, state: OnboardingState) -> bool:
    if state == OnboardingState.ASK_ACCOUNTS:
        return bool(profile.accounts)
    if state == OnboardingState.ASK_FUNDS:
        return bool(profile.funds)
    if state == OnboardingState.ASK_NAME:
        return bool(profile.display_name)
    if state == OnboardingState.ASK_CURRENCY:
        return bool(profile.default_currency)
    return True


def step_prompt(state: OnboardingState, language: str | None = None) -> str:
    return get_message(_STEP_PROMPTS.get(state, "onboarding_ask_accounts"), language)


class OnboardingFlow:
    """Drives a new user through the minimum setup before money can be recorded."""

    def __init__(self, interpreter: Interpreter):
        self.interpreter = interpreter

    def handle(self, message: str, profile: UserProfile) -> StepResult:
        if vocabulary.is_skip_request(message):
            return self.skip(profile)
        return self.handle_step(message, profile, resolve_step(profile))

    def skip(self, profile: UserProfile) -> StepResult:
        if not profile.accounts:
            profile.accounts = list(SKIP_DEFAULT_ACCOUNTS)
        if not profile.funds:
            profile.funds = list(SKIP_DEFAULT_FUNDS)
        profile.onboarding_state = OnboardingState.COMPLETED
        logger.info("[ONBOARDING] User %s skipped onboarding", profile.user_id)
        return StepResult(
            reply=get_message("onboarding_skipped", language_of(profile)),
            extracted=False,
            step_complete=True,
            state=OnboardingState.COMPLETED,
        )

    def handle_step(self, message: str, profile: UserProfile, state: OnboardingState) -> StepResult:
        extraction = self.interpreter.extract_onboarding(message, profile, state)
        if extraction.failed:
            logger.warning("[ONBOARDING] Extraction failed for user %s at %s", profile.user_id, state.value)
            return StepResult(
                reply=get_message("onboarding_retry", language_of(profile)),
                extracted=False,
                step_complete=False,
                state=profile.onboarding_state,
            )

        extracted = self._apply(extraction, profile, state)
        # The interpreter's own stepComplete claim is not trusted.
        step_complete = has_required_data(profile, state)
        new_state = NEXT_STATE[state] if step_complete else state
        profile.onboarding_state = new_state
        if new_state != state:
            logger.info("[ONBOARDING] User %s: %s -> %s", profile.user_id, state.value, new_state.value)
        if extraction.step_complete and not step_complete:
            logger.info(
                "[ONBOARDING] Interpreter claimed %s complete without data for user %s",
                state.value,
                profile.user_id,
            )

        reply = extraction.response_message or step_prompt(new_state, language_of(profile))
        return StepResult(reply=reply, extracted=extracted, step_complete=step_complete, state=new_state)

    def _apply(self, extraction: OnboardingExtraction, profile: UserProfile, state: OnboardingState) -> bool:
        if extraction.detected_language:
            profile.preferred_language = extraction.detected_language

        if state == OnboardingState.ASK_ACCOUNTS:
            accounts = normalize_names(extraction.extracted_accounts)
            if accounts:
                profile.accounts = merge_names(profile.accounts, accounts)
                logger.info("[ONBOARDING] Saved accounts for %s: %s", profile.user_id, profile.accounts)
            return bool(accounts)
        if state == OnboardingState.ASK_FUNDS:
            funds = normalize_names(extraction.extracted_funds)
            if funds:
                profile.funds = merge_names(profile.funds, funds)
                logger.info("[ONBOARDING] Saved funds for %s: %s", profile.user_id, profile.funds)
            return bool(funds)
        if state == OnboardingState.ASK_NAME and extraction.extracted_name:
            profile.display_name = extraction.extracted_name.strip()
            return True
        if state == OnboardingState.ASK_CURRENCY and extraction.extracted_currency:
            profile.default_currency = extraction.extracted_currency.strip().upper()
            return True
        if state == OnboardingState.ASK_LINKED_USERS and extraction.extracted_partner:
            partner = extraction.extracted_partner.strip()
            if partner not in profile.linked_users:
                profile.linked_users = [*profile.linked_users, partner]
            return True
        return False
