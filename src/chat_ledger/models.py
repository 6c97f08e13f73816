from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class OperationKind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"
    CREDIT = "credit"
    UNKNOWN = "unknown"

    @property
    def wire_name(self) -> str:
        """Name used by the interpreter and the operations sink."""
        return _WIRE_NAMES[self]

    @classmethod
    def parse(cls, raw: Any) -> Optional["OperationKind"]:
        if raw is None:
            return None
        if isinstance(raw, cls):
            return raw
        text = str(raw).strip().lower()
        if not text:
            return None
        return _KIND_ALIASES.get(text, cls.UNKNOWN)


_WIRE_NAMES = {
    OperationKind.INCOME: "INCOME",
    OperationKind.EXPENSE: "EXPENSES",
    OperationKind.TRANSFER: "TRANSFER",
    OperationKind.CREDIT: "CREDIT",
    OperationKind.UNKNOWN: "UNKNOWN",
}

_KIND_ALIASES = {
    "income": OperationKind.INCOME,
    "incomes": OperationKind.INCOME,
    "expense": OperationKind.EXPENSE,
    "expenses": OperationKind.EXPENSE,
    "transfer": OperationKind.TRANSFER,
    "transfers": OperationKind.TRANSFER,
    "credit": OperationKind.CREDIT,
    "credits": OperationKind.CREDIT,
    "unknown": OperationKind.UNKNOWN,
}


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


def _false_if_none(value: Any) -> Any:
    return False if value is None else value


class CandidateOperation(WireModel):
    """A financial action as understood so far. Any field may still be missing."""

    kind: OperationKind | None = Field(default=None, alias="operationType")
    amount: float | None = None
    currency: str | None = None
    account: str | None = Field(default=None, alias="accountName")
    fund: str | None = Field(default=None, alias="fundName")
    comment: str | None = None
    second_person: str | None = Field(default=None, alias="secondPerson")
    second_account: str | None = Field(default=None, alias="secondAccount")
    second_currency: str | None = Field(default=None, alias="secondCurrency")
    understood: bool = False
    error: str | None = Field(default=None, alias="errorMessage")
    clarification: str | None = None

    @field_validator("kind", mode="before")
    @classmethod
    def _parse_kind(cls, value: Any) -> OperationKind | None:
        return OperationKind.parse(value)

    @field_validator("understood", mode="before")
    @classmethod
    def _understood_default(cls, value: Any) -> Any:
        return _false_if_none(value)

    @property
    def is_known_kind(self) -> bool:
        return self.kind is not None and self.kind != OperationKind.UNKNOWN


class MetaCommand(WireModel):
    type: str | None = None
    value: str | None = None

    @field_validator("type", "value", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> str | None:
        # Indices for REMOVE_INSTRUCTION arrive as JSON numbers.
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @property
    def is_present(self) -> bool:
        return bool(self.type and self.type.strip())


class SetAsDefault(WireModel):
    account: str | None = None
    currency: str | None = None
    fund: str | None = None

    def has_any(self) -> bool:
        return self.account is not None or self.currency is not None or self.fund is not None


class CandidateBatch(WireModel):
    """Structured result of one interpreter invocation."""

    operations: list[CandidateOperation] = Field(default_factory=list, alias="commands")
    understood: bool = False
    clarification: str | None = None
    error: str | None = Field(default=None, alias="errorMessage")
    correction: bool = False
    set_as_default: SetAsDefault | None = Field(default=None, alias="setAsDefault")
    meta_command: MetaCommand | None = Field(default=None, alias="metaCommand")
    suggested_instruction: str | None = Field(default=None, alias="suggestedInstruction")
    token_usage: str | None = Field(default=None, alias="tokenUsage")
    failed: bool = False

    @field_validator("operations", mode="before")
    @classmethod
    def _operations_default(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("understood", "correction", "failed", mode="before")
    @classmethod
    def _flags_default(cls, value: Any) -> Any:
        return _false_if_none(value)

    @classmethod
    def failure(cls, error: str, clarification: str) -> "CandidateBatch":
        return cls(
            operations=[],
            understood=False,
            error=error,
            clarification=clarification,
            failed=True,
        )

    @property
    def first(self) -> CandidateOperation | None:
        return self.operations[0] if self.operations else None

    @property
    def has_meta_command(self) -> bool:
        return self.meta_command is not None and self.meta_command.is_present


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ConversationTurn(WireModel):
    role: Role
    text: str
    timestamp: datetime = Field(default_factory=_now)
    operation: CandidateOperation | None = None
    was_clarification: bool = Field(default=False, alias="wasClarification")

    @classmethod
    def user(cls, text: str) -> "ConversationTurn":
        return cls(role=Role.USER, text=text)

    @classmethod
    def assistant(
        cls,
        text: str,
        operation: CandidateOperation | None = None,
        was_clarification: bool = False,
    ) -> "ConversationTurn":
        return cls(
            role=Role.ASSISTANT,
            text=text,
            operation=operation,
            was_clarification=was_clarification,
        )


class OnboardingState(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    ASK_ACCOUNTS = "ASK_ACCOUNTS"
    ASK_FUNDS = "ASK_FUNDS"
    ASK_CURRENCY = "ASK_CURRENCY"
    ASK_NAME = "ASK_NAME"
    ASK_LINKED_USERS = "ASK_LINKED_USERS"
    COMPLETED = "COMPLETED"


# Lists whose "never set" state is kept distinct from "set and empty" on disk.
TRACKED_LIST_FIELDS = ("accounts", "funds", "custom_instructions", "linked_users")


class UserProfile(WireModel):
    """Everything the engine remembers about one user."""

    user_id: str = Field(alias="userId")
    display_name: str | None = Field(default=None, alias="displayName")
    preferred_language: str | None = Field(default=None, alias="preferredLanguage")
    default_account: str | None = Field(default=None, alias="defaultAccount")
    default_currency: str | None = Field(default=None, alias="defaultCurrency")
    default_fund: str | None = Field(default=None, alias="defaultFund")
    accounts: list[str] = Field(default_factory=list)
    funds: list[str] = Field(default_factory=list)
    linked_users: list[str] = Field(default_factory=list, alias="linkedUsers")
    custom_instructions: list[str] = Field(default_factory=list, alias="customInstructions")
    conversation_history: list[ConversationTurn] = Field(default_factory=list, alias="conversationHistory")
    pending_commands: list[CandidateOperation] = Field(default_factory=list, alias="pendingCommands")
    pending_suggestion: str | None = Field(default=None, alias="pendingSuggestion")
    operation_history: list[CandidateOperation] = Field(default_factory=list, alias="operationHistory")
    onboarding_state: OnboardingState | None = Field(default=None, alias="onboardingState")
    debug_mode: bool = Field(default=False, alias="debugMode")

    @field_validator(
        "accounts",
        "funds",
        "linked_users",
        "custom_instructions",
        "conversation_history",
        "pending_commands",
        "operation_history",
        mode="before",
    )
    @classmethod
    def _list_default(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("debug_mode", mode="before")
    @classmethod
    def _debug_default(cls, value: Any) -> Any:
        return _false_if_none(value)

    @field_validator("onboarding_state", mode="before")
    @classmethod
    def _parse_state(cls, value: Any) -> Any:
        if value is None or isinstance(value, OnboardingState):
            return value
        text = str(value).strip().upper()
        if not text:
            return None
        try:
            return OnboardingState(text)
        except ValueError:
            # Unrecognised stored states restart at the first real step.
            return OnboardingState.ASK_ACCOUNTS

    def is_list_set(self, field_name: str) -> bool:
        return field_name in self.model_fields_set

    def to_document(self) -> dict[str, Any]:
        """Serialise for storage, omitting tracked lists that were never set and are empty."""
        document = self.model_dump(mode="json", by_alias=True)
        for field_name in TRACKED_LIST_FIELDS:
            if not getattr(self, field_name) and not self.is_list_set(field_name):
                alias = type(self).model_fields[field_name].alias or field_name
                document.pop(alias, None)
        return document

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "UserProfile":
        return cls.model_validate(document)


def _none_if_null_text(value: Any) -> Any:
    if isinstance(value, str) and value.strip().lower() in {"", "null", "none"}:
        return None
    return value


class OnboardingExtraction(WireModel):
    """What the interpreter pulled out of one onboarding message."""

    response_message: str | None = Field(default=None, alias="responseMessage")
    extracted_accounts: list[str] | None = Field(default=None, alias="extractedAccounts")
    extracted_funds: list[str] | None = Field(default=None, alias="extractedFunds")
    extracted_name: str | None = Field(default=None, alias="extractedName")
    extracted_currency: str | None = Field(default=None, alias="extractedCurrency")
    extracted_partner: str | None = Field(default=None, alias="extractedPartner")
    detected_language: str | None = Field(default=None, alias="detectedLanguage")
    step_complete: bool = Field(default=False, alias="stepComplete")
    failed: bool = False

    @field_validator(
        "response_message",
        "extracted_name",
        "extracted_currency",
        "extracted_partner",
        "detected_language",
        mode="before",
    )
    @classmethod
    def _null_text(cls, value: Any) -> Any:
        return _none_if_null_text(value)

    @field_validator("extracted_accounts", "extracted_funds", mode="before")
    @classmethod
    def _text_list(cls, value: Any) -> Any:
        if value is None or isinstance(value, list):
            return value
        if isinstance(value, str):
            return [part for part in value.split(",") if part.strip()]
        return None

    @field_validator("step_complete", mode="before")
    @classmethod
    def _step_default(cls, value: Any) -> Any:
        return _false_if_none(value)

    @classmethod
    def failure(cls) -> "OnboardingExtraction":
        return cls(failed=True)


class ChatRequest(WireModel):
    chat_id: str = Field(alias="chatId")
    user_id: str = Field(alias="userId")
    user_name: str | None = Field(default=None, alias="userName")
    message: str | None = None

    @field_validator("chat_id", "user_id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> Any:
        # Chat platforms hand out numeric ids.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class ChatReply(WireModel):
    chat_id: str = Field(alias="chatId")
    message: str
    success: bool = True
    operations: list[CandidateOperation] = Field(default_factory=list)
    operations_count: int = Field(default=0, alias="operationsCount")


class OperationRecord(WireModel):
    """Payload sent to the operations sink for one committed (or cancelled) entry."""

    amount: float | None = None
    currency: str | None = None
    user_name: str | None = Field(default=None, alias="userName")
    account_name: str | None = Field(default=None, alias="accountName")
    fund_name: str | None = Field(default=None, alias="fundName")
    operation_type: str | None = Field(default=None, alias="operationType")
    comment: str | None = None
    second_person: str | None = Field(default=None, alias="secondPerson")
    second_account: str | None = Field(default=None, alias="secondAccount")
    second_currency: str | None = Field(default=None, alias="secondCurrency")
    undo: bool = False

    @classmethod
    def from_operation(
        cls, operation: CandidateOperation, user_name: str | None, undo: bool = False
    ) -> "OperationRecord":
        return cls(
            amount=operation.amount,
            currency=operation.currency,
            user_name=user_name,
            account_name=operation.account,
            fund_name=operation.fund,
            operation_type=operation.kind.wire_name if operation.kind else None,
            comment=operation.comment,
            second_person=operation.second_person,
            second_account=operation.second_account,
            second_currency=operation.second_currency,
            undo=undo,
        )
