from unittest.mock import MagicMock

import pytest

from chat_ledger.integration.base import OperationDispatcher, ReplyDispatcher
from chat_ledger.interpreter.base import Interpreter
from chat_ledger.models import OnboardingState, UserProfile
from chat_ledger.orchestrator import CommandOrchestrator
from chat_ledger.storage.profiles import InMemoryProfileStore


@pytest.fixture
def store() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@pytest.fixture
def interpreter() -> MagicMock:
    return MagicMock(spec=Interpreter)


@pytest.fixture
def operations() -> MagicMock:
    return MagicMock(spec=OperationDispatcher)


@pytest.fixture
def replies_dispatcher() -> MagicMock:
    return MagicMock(spec=ReplyDispatcher)


@pytest.fixture
def orchestrator(store, interpreter, operations, replies_dispatcher) -> CommandOrchestrator:
    return CommandOrchestrator(store, interpreter, operations, replies_dispatcher)


@pytest.fixture
def ready_profile(store) -> UserProfile:
    profile = UserProfile(
        user_id="42",
        accounts=["CARD", "CASH"],
        funds=["FOOD", "TRANSPORT"],
        default_currency="RSD",
        default_account="CARD",
        onboarding_state=OnboardingState.COMPLETED,
    )
    store.save(profile)
    return profile
