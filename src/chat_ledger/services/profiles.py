from chat_ledger.domain.names import merge_names, normalize_name
from chat_ledger.logger import get_logger
from chat_ledger.models import UserProfile
from chat_ledger.storage.profiles import ProfileStore

logger = get_logger(__name__)


class ProfileService:
    """Direct profile management outside the chat flow."""

    def __init__(self, store: ProfileStore):
        self.store = store

    def get(self, user_id: str) -> UserProfile:
        return self.store.get(user_id)

    def replace(self, user_id: str, profile: UserProfile) -> UserProfile:
        if profile.user_id != user_id:
            profile = profile.model_copy(update={"user_id": user_id})
        self.store.save(profile)
        logger.info("[PROFILES] Replaced profile %s", user_id)
        return profile

    def update_defaults(
        self,
        user_id: str,
        currency: str | None = None,
        account: str | None = None,
        fund: str | None = None,
    ) -> UserProfile:
        profile = self.store.get(user_id)
        if currency is not None:
            profile.default_currency = currency.strip().upper() or None
        if account is not None:
            profile.default_account = account.strip().upper() or None
        if fund is not None:
            profile.default_fund = fund.strip().upper() or None
        self.store.save(profile)
        return profile

    def add_instruction(self, user_id: str, instruction: str) -> UserProfile:
        profile = self.store.get(user_id)
        if instruction not in profile.custom_instructions:
            profile.custom_instructions = [*profile.custom_instructions, instruction]
        self.store.save(profile)
        return profile

    def remove_instruction(self, user_id: str, index: int) -> str:
        """Remove by 0-based index. Raises IndexError when out of range."""
        profile = self.store.get(user_id)
        instructions = profile.custom_instructions
        if not 0 <= index < len(instructions):
            raise IndexError(f"Instruction index {index} out of range ({len(instructions)} instructions)")
        removed = instructions[index]
        profile.custom_instructions = instructions[:index] + instructions[index + 1:]
        self.store.save(profile)
        return removed

    def add_account(self, user_id: str, account: str) -> UserProfile:
        return self._add_name(user_id, "accounts", account)

    def add_fund(self, user_id: str, fund: str) -> UserProfile:
        return self._add_name(user_id, "funds", fund)

    def _add_name(self, user_id: str, field_name: str, raw_name: str) -> UserProfile:
        name = normalize_name(raw_name)
        if not name:
            raise ValueError(f"Empty {field_name[:-1]} name")
        profile = self.store.get(user_id)
        setattr(profile, field_name, merge_names(getattr(profile, field_name), [name]))
        self.store.save(profile)
        return profile

    def delete(self, user_id: str) -> None:
        self.store.delete(user_id)
        logger.info("[PROFILES] Deleted profile %s", user_id)
