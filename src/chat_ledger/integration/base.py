from abc import ABC, abstractmethod
from dataclasses import dataclass

from chat_ledger.models import CandidateOperation, ChatReply


@dataclass(frozen=True)
class Dispatch:
    """An operation queued for sending once the profile has been saved."""

    operation: CandidateOperation
    undo: bool = False


class OperationDispatcher(ABC):
    @abstractmethod
    def dispatch(self, operation: CandidateOperation, actor: str | None, undo: bool = False) -> None:
        """Send one committed operation downstream. Fire-and-forget."""
        pass

    def close(self) -> None:
        pass


class ReplyDispatcher(ABC):
    @abstractmethod
    def deliver(self, reply: ChatReply) -> None:
        """Deliver a reply to the chat. Fire-and-forget."""
        pass

    def close(self) -> None:
        pass
