import httpx

from chat_ledger.logger import get_logger
from chat_ledger.models import ChatReply

from .base import ReplyDispatcher

logger = get_logger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"
DEFAULT_TIMEOUT_SECONDS = 10.0


class TelegramReplyDispatcher(ReplyDispatcher):
    def __init__(
        self,
        token: str | None,
        dry_run: bool = False,
        client: httpx.Client | None = None,
        base_url: str = TELEGRAM_API_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.token = token
        self.dry_run = dry_run
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        if not self.token:
            logger.warning("[DISPATCH] TELEGRAM_BOT_TOKEN not set. Replies will not be delivered.")

    @property
    def enabled(self) -> bool:
        return bool(self.token)

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self._client

    def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            self._client.close()

    def deliver(self, reply: ChatReply) -> None:
        if not self.enabled:
            logger.debug("[DISPATCH] Reply to chat %s dropped, no token.", reply.chat_id)
            return
        if self.dry_run:
            logger.info("[DISPATCH] (not sent) reply to chat %s: %s", reply.chat_id, reply.message)
            return

        try:
            response = self._get_client().post(
                f"{self.base_url}/bot{self.token}/sendMessage",
                json={"chat_id": reply.chat_id, "text": reply.message},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            # The URL carries the token.
            logger.error("[DISPATCH] Failed to deliver reply to chat %s: %s", reply.chat_id, type(exc).__name__)
            return
        logger.debug("[DISPATCH] Reply delivered to chat %s", reply.chat_id)
