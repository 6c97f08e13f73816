import json
import os
from abc import ABC, abstractmethod
from typing import Any
from urllib.parse import quote

from pydantic import ValidationError

from chat_ledger.core.errors import ProfileStoreError
from chat_ledger.logger import get_logger
from chat_ledger.models import UserProfile

logger = get_logger(__name__)


class ProfileStore(ABC):
    @abstractmethod
    def get(self, user_id: str) -> UserProfile:
        """Return the stored profile, or a fresh empty one for an unknown id."""
        pass

    @abstractmethod
    def save(self, profile: UserProfile) -> None:
        """Persist the whole profile."""
        pass

    @abstractmethod
    def delete(self, user_id: str) -> None:
        """Forget the profile. Unknown ids are ignored."""
        pass

    @abstractmethod
    def exists(self, user_id: str) -> bool:
        pass

class InMemoryProfileStore(ProfileStore):
    """Keeps serialised documents in a dict, so reads never share objects with callers."""

    def __init__(self) -> None:
        self.documents: dict[str, dict[str, Any]] = {}

    def get(self, user_id: str) -> UserProfile:
        document = self.documents.get(user_id)
        if document is None:
            return UserProfile(user_id=user_id)
        return UserProfile.from_document(json.loads(json.dumps(document)))

    def save(self, profile: UserProfile) -> None:
        self.documents[profile.user_id] = profile.to_document()

    def delete(self, user_id: str) -> None:
        self.documents.pop(user_id, None)

    def exists(self, user_id: str) -> bool:
        return user_id in self.documents

class JsonProfileStore(ProfileStore):
    """One JSON document per user under ``base_dir``."""

    def __init__(self, base_dir: str):
        self.base_dir = base_dir
        os.makedirs(self.base_dir, exist_ok=True)

    def _path(self, user_id: str) -> str:
        # Percent-encoding keeps distinct ids in distinct files.
        return os.path.join(self.base_dir, f"{quote(user_id, safe='')}.json")

    def exists(self, user_id: str) -> bool:
        return os.path.exists(self._path(user_id))

    def get(self, user_id: str) -> UserProfile:
        path = self._path(user_id)
        if not os.path.exists(path):
            return UserProfile(user_id=user_id)
        try:
            with open(path, encoding="utf-8") as handle:
                document = json.load(handle)
        except OSError as exc:
            raise ProfileStoreError(user_id, f"Failed to read profile: {exc}") from exc
        except json.JSONDecodeError as exc:
            logger.error("[STORE] Corrupt profile file %s: %s", path, exc)
            raise ProfileStoreError(user_id, f"Corrupt profile file: {exc}") from exc

        if not isinstance(document, dict):
            logger.error("[STORE] Profile file %s does not hold an object", path)
            raise ProfileStoreError(user_id, "Profile file does not hold an object")
        document["userId"] = user_id
        try:
            return UserProfile.from_document(document)
        except ValidationError as exc:
            logger.error("[STORE] Invalid profile in %s: %s", path, exc)
            raise ProfileStoreError(user_id, f"Invalid profile: {exc}") from exc

    def save(self, profile: UserProfile) -> None:
        path = self._path(profile.user_id)
        tmp_path = f"{path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as handle:
                json.dump(profile.to_document(), handle, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except OSError as exc:
            raise ProfileStoreError(profile.user_id, f"Failed to save profile: {exc}") from exc
        logger.debug("[STORE] Saved profile %s", profile.user_id)

    def delete(self, user_id: str) -> None:
        path = self._path(user_id)
        try:
            os.remove(path)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise ProfileStoreError(user_id, f"Failed to delete profile: {exc}") from exc
        logger.info("[STORE] Deleted profile %s", user_id)
