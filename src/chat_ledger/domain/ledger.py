from chat_ledger.models import CandidateOperation, UserProfile

DEFAULT_LEDGER_LIMIT = 5
CANCEL_PREFIX = "CANCEL: "


class OperationLedger:
    """Bounded stack of the user's most recent committed operations, newest last."""

    def __init__(self, profile: UserProfile, capacity: int = DEFAULT_LEDGER_LIMIT):
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.profile = profile
        self.capacity = capacity

    def __len__(self) -> int:
        return len(self.profile.operation_history)

    def record(self, operation: CandidateOperation) -> None:
        history = [*self.profile.operation_history, operation.model_copy()]
        if len(history) > self.capacity:
            history = history[-self.capacity:]
        self.profile.operation_history = history

    def peek_last(self) -> CandidateOperation | None:
        history = self.profile.operation_history
        return history[-1] if history else None

    def pop_last(self) -> CandidateOperation | None:
        history = self.profile.operation_history
        if not history:
            return None
        self.profile.operation_history = history[:-1]
        return history[-1]

    def has_any(self) -> bool:
        return bool(self.profile.operation_history)


def compensating_entry(operation: CandidateOperation) -> CandidateOperation:
    """Entry that cancels ``operation`` when appended after it."""
    return operation.model_copy(
        update={
            "amount": -operation.amount if operation.amount is not None else None,
            "comment": f"{CANCEL_PREFIX}{operation.comment or ''}".rstrip(),
            "understood": True,
            "error": None,
            "clarification": None,
        }
    )
