from chat_ledger.logger import get_logger
from chat_ledger.models import CandidateOperation

logger = get_logger(__name__)

_CARRIED_FIELDS = (
    "currency",
    "account",
    "fund",
    "comment",
    "second_person",
    "second_account",
    "second_currency",
)


def merge_operation(base: CandidateOperation, update: CandidateOperation) -> CandidateOperation:
    """
    Combine two partial operations field by field.

    A value from ``update`` wins only when present; the amount counts as
    present only when positive and the kind only when known. Status flags
    always come from ``update``.
    """
    values = {name: getattr(update, name) if getattr(update, name) is not None else getattr(base, name)
              for name in _CARRIED_FIELDS}
    values["kind"] = update.kind if update.is_known_kind or base.kind is None else base.kind
    values["amount"] = update.amount if update.amount is not None and update.amount > 0 else base.amount
    return CandidateOperation(
        **values,
        understood=update.understood,
        error=update.error,
        clarification=update.clarification,
    )


def _status_only(operation: CandidateOperation) -> CandidateOperation:
    return CandidateOperation(
        understood=operation.understood,
        error=operation.error,
        clarification=operation.clarification,
    )


def merge(pending: list[CandidateOperation], fresh: list[CandidateOperation]) -> list[CandidateOperation]:
    """Reconcile operations awaiting completion with the interpreter's latest answer."""
    if not fresh:
        return list(pending)

    merged = list(fresh)
    for index, pending_op in enumerate(pending):
        if index < len(fresh):
            merged[index] = merge_operation(pending_op, fresh[index])
            logger.debug("[MERGE] Pending %s merged with fresh: %s", index, merged[index])
        elif fresh[0].amount is not None:
            # One answer ("split it") applied to every outstanding entry.
            merged.append(merge_operation(pending_op, fresh[0]))
            logger.debug("[MERGE] Pending %s merged with first fresh operation.", index)
        else:
            merged.append(merge_operation(pending_op, _status_only(fresh[0])))
            logger.debug("[MERGE] Pending %s carried forward unchanged.", index)
    return merged
