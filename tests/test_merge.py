from chat_ledger.domain.merge import merge, merge_operation
from chat_ledger.models import CandidateOperation, OperationKind

from factories import expense


def test_answer_fills_missing_amount() -> None:
    pending = [expense(amount=None, understood=False, clarification="How much?")]
    fresh = [CandidateOperation(amount=500, understood=True)]

    merged = merge(pending, fresh)

    assert len(merged) == 1
    op = merged[0]
    assert op.amount == 500
    assert op.kind == OperationKind.EXPENSE
    assert op.comment == "coffee"
    assert op.account == "CARD"
    assert op.currency == "RSD"
    assert op.understood is True
    assert op.clarification is None


def test_non_positive_amount_does_not_override() -> None:
    base = expense(amount=300)

    assert merge_operation(base, CandidateOperation(amount=0)).amount == 300
    assert merge_operation(base, CandidateOperation(amount=-5)).amount == 300


def test_unknown_kind_does_not_override() -> None:
    pending = [CandidateOperation(kind=OperationKind.EXPENSE, fund="FOOD")]
    fresh = [CandidateOperation.model_validate({"operationType": "UNKNOWN", "amount": 500})]

    merged = merge(pending, fresh)

    assert merged[0].kind == OperationKind.EXPENSE
    assert merged[0].amount == 500
    assert merged[0].fund == "FOOD"


def test_unknown_kind_kept_when_nothing_known() -> None:
    merged = merge_operation(CandidateOperation(), CandidateOperation(kind=OperationKind.UNKNOWN))

    assert merged.kind == OperationKind.UNKNOWN


def test_fresh_values_win_when_present() -> None:
    merged = merge_operation(expense(), CandidateOperation(currency="EUR", account="CASH"))

    assert merged.currency == "EUR"
    assert merged.account == "CASH"
    assert merged.fund == "FOOD"


def test_empty_fresh_keeps_pending() -> None:
    pending = [expense(amount=None)]

    merged = merge(pending, [])

    assert merged == pending
    assert merged is not pending


def test_extra_pending_merge_with_first_fresh_amount() -> None:
    pending = [expense(amount=None, comment="coffee"), expense(amount=None, comment="cake")]
    fresh = [CandidateOperation(amount=250, understood=True)]

    merged = merge(pending, fresh)

    assert [op.amount for op in merged] == [250, 250]
    assert [op.comment for op in merged] == ["coffee", "cake"]


def test_extra_pending_carried_forward_without_fresh_amount() -> None:
    pending = [expense(amount=100, comment="coffee"), expense(amount=200, comment="cake")]
    fresh = [CandidateOperation(currency="EUR", understood=False, clarification="Which account?")]

    merged = merge(pending, fresh)

    assert merged[0].currency == "EUR"
    assert merged[1].amount == 200
    assert merged[1].currency == "RSD"
    assert merged[1].comment == "cake"
    assert merged[1].clarification == "Which account?"


def test_extra_fresh_operations_are_kept() -> None:
    fresh = [CandidateOperation(amount=10), expense(amount=20, comment="bread")]

    merged = merge([expense(amount=None)], fresh)

    assert len(merged) == 2
    assert merged[1].comment == "bread"
