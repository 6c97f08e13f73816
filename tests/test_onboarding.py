from unittest.mock import MagicMock

import pytest

from chat_ledger.interpreter.base import Interpreter
from chat_ledger.models import OnboardingExtraction, OnboardingState, UserProfile
from chat_ledger.services.onboarding import OnboardingFlow, needs_onboarding, resolve_step


@pytest.fixture
def interpreter() -> MagicMock:
    return MagicMock(spec=Interpreter)


@pytest.fixture
def flow(interpreter: MagicMock) -> OnboardingFlow:
    return OnboardingFlow(interpreter)


@pytest.mark.parametrize(
    ("accounts", "funds", "state", "expected"),
    [
        ([], [], None, True),
        (["CARD"], [], None, True),
        ([], ["FOOD"], OnboardingState.COMPLETED, True),
        (["CARD"], ["FOOD"], None, False),
        (["CARD"], ["FOOD"], OnboardingState.NOT_STARTED, False),
        (["CARD"], ["FOOD"], OnboardingState.ASK_FUNDS, True),
        (["CARD"], ["FOOD"], OnboardingState.COMPLETED, False),
    ],
)
def test_needs_onboarding(accounts, funds, state, expected) -> None:
    profile = UserProfile(user_id="1", accounts=accounts, funds=funds, onboarding_state=state)

    assert needs_onboarding(profile) is expected


def test_resolve_step() -> None:
    assert resolve_step(UserProfile(user_id="1")) == OnboardingState.ASK_ACCOUNTS
    assert resolve_step(UserProfile(user_id="1", accounts=["CARD"])) == OnboardingState.ASK_FUNDS
    assert (
        resolve_step(UserProfile(user_id="1", onboarding_state=OnboardingState.ASK_NAME))
        == OnboardingState.ASK_NAME
    )


def test_accounts_step_advances_to_funds(flow: OnboardingFlow, interpreter: MagicMock) -> None:
    interpreter.extract_onboarding.return_value = OnboardingExtraction(
        response_message="Saved CARD and CASH. Which categories?",
        extracted_accounts=["card", "cash"],
        detected_language="en",
        step_complete=True,
    )
    profile = UserProfile(user_id="1")

    result = flow.handle("I have a card and cash", profile)

    assert profile.accounts == ["CARD", "CASH"]
    assert profile.onboarding_state == OnboardingState.ASK_FUNDS
    assert profile.preferred_language == "en"
    assert result.step_complete
    assert result.reply == "Saved CARD and CASH. Which categories?"
    interpreter.extract_onboarding.assert_called_once_with(
        "I have a card and cash", profile, OnboardingState.ASK_ACCOUNTS
    )


def test_step_complete_claim_without_data_is_ignored(flow: OnboardingFlow, interpreter: MagicMock) -> None:
    interpreter.extract_onboarding.return_value = OnboardingExtraction(
        response_message="Great!",
        step_complete=True,
    )
    profile = UserProfile(user_id="1")

    result = flow.handle("hello", profile)

    assert not result.step_complete
    assert profile.accounts == []
    assert profile.onboarding_state == OnboardingState.ASK_ACCOUNTS


def test_funds_step_completes_onboarding(flow: OnboardingFlow, interpreter: MagicMock) -> None:
    interpreter.extract_onboarding.return_value = OnboardingExtraction(extracted_funds="food, public transport")
    profile = UserProfile(user_id="1", accounts=["CARD"], onboarding_state=OnboardingState.ASK_FUNDS)

    result = flow.handle("food and public transport", profile)

    assert profile.funds == ["FOOD", "PUBLIC_TRANSPORT"]
    assert profile.onboarding_state == OnboardingState.COMPLETED
    assert result.reply == "All set! Try: 'coffee 300'"
    assert not needs_onboarding(profile)


def test_extraction_failure_leaves_profile_unchanged(flow: OnboardingFlow, interpreter: MagicMock) -> None:
    interpreter.extract_onboarding.return_value = OnboardingExtraction.failure()
    profile = UserProfile(user_id="1", onboarding_state=OnboardingState.ASK_ACCOUNTS)

    result = flow.handle("card", profile)

    assert result.reply == "Sorry, something went wrong. Please try again."
    assert profile.accounts == []
    assert profile.onboarding_state == OnboardingState.ASK_ACCOUNTS


def test_skip_fills_defaults(flow: OnboardingFlow, interpreter: MagicMock) -> None:
    profile = UserProfile(user_id="1", accounts=["WALLET"])

    result = flow.handle("please skip setup", profile)

    assert profile.accounts == ["WALLET"]
    assert profile.funds == ["GENERAL"]
    assert profile.onboarding_state == OnboardingState.COMPLETED
    assert result.state == OnboardingState.COMPLETED
    interpreter.extract_onboarding.assert_not_called()


def test_skip_on_empty_profile(flow: OnboardingFlow) -> None:
    profile = UserProfile(user_id="1")

    flow.skip(profile)

    assert profile.accounts == ["CARD", "CASH"]
    assert profile.funds == ["GENERAL"]
