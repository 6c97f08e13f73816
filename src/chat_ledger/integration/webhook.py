import httpx

from chat_ledger.logger import get_logger
from chat_ledger.models import CandidateOperation, OperationRecord

from .base import OperationDispatcher

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class WebhookOperationDispatcher(OperationDispatcher):
    """POSTs each operation as an ``OperationRecord`` JSON document to a webhook."""

    def __init__(
        self,
        url: str | None,
        dry_run: bool = False,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.url = url
        self.dry_run = dry_run
        self.timeout = timeout
        self._client = client
        if not self.url and not self.dry_run:
            logger.warning("[DISPATCH] OPERATIONS_WEBHOOK_URL not set. Operations will only be logged.")

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self._client

    def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            self._client.close()

    def dispatch(self, operation: CandidateOperation, actor: str | None, undo: bool = False) -> None:
        record = OperationRecord.from_operation(operation, actor, undo=undo)
        payload = record.model_dump(mode="json", by_alias=True)

        if self.dry_run or not self.url:
            logger.info("[DISPATCH] (not sent) %s", payload)
            return

        try:
            response = self._get_client().post(self.url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("[DISPATCH] Failed to send operation for %s: %s", actor, exc)
            return
        logger.info(
            "[DISPATCH] Sent %s %s %s for %s (undo=%s)",
            record.operation_type,
            record.amount,
            record.currency,
            actor,
            undo,
        )
