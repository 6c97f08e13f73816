from chat_ledger.models import CandidateBatch, CandidateOperation, OperationKind, SetAsDefault, UserProfile

from .messages import get_message

DEBUG_RULE = "━━━━━━━━━━━━━━━━━━━━"


def _amount(value: float | None, decimals: int = 2) -> str:
    if value is None:
        return "?"
    return f"{value:.{decimals}f}"


def _text(value: str | None) -> str:
    return value if value is not None else "-"


def format_operation(operation: CandidateOperation, language: str | None = None) -> str:
    params = {
        "amount": _amount(operation.amount),
        "currency": _text(operation.currency),
        "account": _text(operation.account),
        "fund": _text(operation.fund),
        "second_account": _text(operation.second_account),
    }
    if operation.kind == OperationKind.EXPENSE:
        return get_message("recorded_expense", language, **params)
    if operation.kind == OperationKind.INCOME:
        return get_message("recorded_income", language, **params)
    if operation.kind == OperationKind.TRANSFER:
        return get_message("recorded_transfer", language, **params)
    if operation.kind == OperationKind.CREDIT:
        return get_message("recorded_credit", language, **params)
    return get_message("recorded_generic", language)


def format_operation_short(operation: CandidateOperation, language: str | None = None) -> str:
    amount = _amount(operation.amount, 0)
    currency = _text(operation.currency)
    if operation.kind == OperationKind.EXPENSE:
        label = operation.comment if operation.comment is not None else _text(operation.fund)
        return f"{amount} {currency} — {label}"
    if operation.kind == OperationKind.INCOME:
        return f"+{amount} {currency} — {get_message('short_income', language)}"
    if operation.kind == OperationKind.TRANSFER:
        return f"{amount} {currency} — {get_message('short_transfer', language)}"
    if operation.kind == OperationKind.CREDIT:
        return f"{amount} {currency} — {get_message('short_credit', language)}"
    return get_message("short_generic", language)


def format_success(operations: list[CandidateOperation], language: str | None = None) -> str:
    if len(operations) == 1:
        return format_operation(operations[0], language)
    lines = [get_message("recorded_many", language, count=len(operations))]
    for index, operation in enumerate(operations, start=1):
        lines.append(f"{index}. {format_operation_short(operation, language)}")
    return "\n".join(lines)


def format_correction(
    previous: CandidateOperation | None,
    current: CandidateOperation,
    language: str | None = None,
) -> str:
    """Describe the first field that changed: amount, account, fund, then comment."""
    prefix = get_message("corrected", language)
    if previous is None:
        return prefix + format_operation_short(current, language)
    if previous.amount != current.amount:
        return prefix + (
            f"{_amount(previous.amount, 0)} → {_amount(current.amount, 0)} {_text(current.currency)}"
        )
    if previous.account != current.account:
        return prefix + f"{previous.account} → {current.account}"
    if previous.fund != current.fund:
        return prefix + f"{previous.fund} → {current.fund}"
    if previous.comment != current.comment:
        return prefix + f"'{previous.comment}' → '{current.comment}'"
    return prefix + format_operation_short(current, language)


def format_undo_description(operation: CandidateOperation) -> str:
    return f"{_amount(operation.amount or 0.0, 0)} {operation.currency or ''} — {operation.comment or ''}"


def format_defaults_update(defaults: SetAsDefault, language: str | None = None) -> str:
    lines = []
    if defaults.account is not None:
        lines.append(get_message("default_account_set", language, value=defaults.account))
    if defaults.currency is not None:
        lines.append(get_message("default_currency_set", language, value=defaults.currency))
    if defaults.fund is not None:
        lines.append(get_message("default_fund_set", language, value=defaults.fund))
    return "\n".join(lines)


def format_settings_summary(profile: UserProfile, language: str | None = None) -> str:
    lines = []
    if profile.display_name:
        lines.append(f"{get_message('settings_name', language)}: {profile.display_name}")
    if profile.default_currency:
        lines.append(f"{get_message('settings_currency', language)}: {profile.default_currency}")
    if profile.default_account:
        lines.append(f"{get_message('settings_account', language)}: {profile.default_account}")
    if profile.default_fund:
        lines.append(f"{get_message('settings_fund', language)}: {profile.default_fund}")
    if profile.accounts:
        lines.append(f"{get_message('settings_accounts', language)}: {', '.join(profile.accounts)}")
    if profile.funds:
        lines.append(f"{get_message('settings_funds', language)}: {', '.join(profile.funds)}")
    if profile.linked_users:
        lines.append(f"{get_message('settings_linked', language)}: {', '.join(profile.linked_users)}")
    if profile.custom_instructions:
        lines.append(f"{get_message('settings_instructions', language)}:")
        lines.extend(f"  [{index}] {text}" for index, text in enumerate(profile.custom_instructions))
    if not lines:
        return get_message("settings_empty", language)
    return "\n".join(lines)


def format_debug_info(batch: CandidateBatch, profile: UserProfile, awaiting_clarification: bool) -> str:
    lines = ["🔧 DEBUG:", DEBUG_RULE]
    if batch.token_usage:
        lines.append(batch.token_usage)
    lines.append(f"understood: {str(batch.understood).lower()}")
    lines.append(f"commands: {len(batch.operations)}")
    if batch.has_meta_command:
        lines.append(f"metaCommand: {batch.meta_command.type} = {batch.meta_command.value}")
    if batch.clarification is not None:
        lines.append(f"clarification: {batch.clarification}")
    if batch.correction:
        lines.append("correction: true")
    if batch.operations:
        lines.append("")
        lines.append("Operations:")
        for index, operation in enumerate(batch.operations, start=1):
            kind = operation.kind.wire_name if operation.kind else None
            lines.append(
                f"  {index}. {kind} {operation.amount} {operation.currency} "
                f"→ {operation.account} / {operation.fund}"
            )
    lines.append("")
    lines.append("Context:")
    lines.append(f"  pendingCommands: {len(profile.pending_commands)}")
    lines.append(f"  awaitingClarification: {str(awaiting_clarification).lower()}")
    lines.append(f"  historySize: {len(profile.conversation_history)}")
    lines.append(DEBUG_RULE)
    return "\n".join(lines)
