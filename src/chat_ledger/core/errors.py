class ChatLedgerError(Exception):
    """Base class for errors raised by the engine."""


class ProfileStoreError(ChatLedgerError):
    """The profile store could not read or write a profile."""

    def __init__(self, user_id: str, message: str):
        super().__init__(f"{message} (user {user_id})")
        self.user_id = user_id
