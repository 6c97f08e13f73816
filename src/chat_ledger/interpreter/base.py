from abc import ABC, abstractmethod
from collections.abc import Sequence

from chat_ledger.models import CandidateBatch, OnboardingExtraction, OnboardingState, UserProfile


class Interpreter(ABC):
    """Turns chat text into structured candidates. Implementations never raise."""

    @abstractmethod
    def interpret(
        self,
        message: str,
        profile: UserProfile,
        linked_profiles: Sequence[UserProfile] = (),
    ) -> CandidateBatch:
        """Parse a message into candidate operations and meta intent."""
        pass

    @abstractmethod
    def extract_onboarding(
        self, message: str, profile: UserProfile, state: OnboardingState
    ) -> OnboardingExtraction:
        """Extract the values the current onboarding step asks for."""
        pass
