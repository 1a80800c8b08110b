"""Pull consumer for bucket notifications delivered through an HTTP queue.

R2 buckets publish object-created notifications to a Cloudflare Queue.
The consumer leases a batch over the queue's HTTP pull API, hands every
notification to the pipeline, then settles the whole batch in one call:
leases whose files all completed are acked, the rest are released for
redelivery after ``retry_delay_seconds``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

Dispatch = Callable[[Any], Awaitable[Any]]


@dataclass
class QueueMessage:
    """One leased notification."""

    message_id: str
    lease_id: str
    body: Any
    attempts: int = 1

    @classmethod
    def from_api(cls, raw: Any) -> QueueMessage:
        """Build a message from one entry of a pull response.

        Raises:
            ValueError: If the entry lacks an id or lease id.
        """
        if not isinstance(raw, dict) or "id" not in raw or "lease_id" not in raw:
            raise ValueError(f"Pulled entry has no id/lease_id: {raw!r}")
        return cls(
            message_id=raw["id"],
            lease_id=raw["lease_id"],
            body=raw.get("body"),
            attempts=raw.get("attempts", 1),
        )

    def decoded_body(self) -> Any:
        """Message body as a JSON value.

        Raises:
            ValueError: If a string body is not valid JSON.
        """
        if isinstance(self.body, str):
            try:
                return json.loads(self.body)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Message body is not JSON: {exc}") from exc
        return self.body


class QueueConsumer:
    """Leases notification batches and settles them after dispatch.

    Configuration from environment variables:
        CF_QUEUE_API_URL, CF_QUEUE_ID, CF_API_TOKEN
    """

    def __init__(
        self,
        queue_api_url: str | None = None,
        queue_id: str | None = None,
        cf_api_token: str | None = None,
        poll_interval: float = 5.0,
        batch_size: int = 10,
        retry_delay_seconds: int = 60,
    ) -> None:
        self.queue_api_url = (
            queue_api_url or os.environ.get("CF_QUEUE_API_URL", "")
        ).rstrip("/")
        self.queue_id = queue_id or os.environ.get("CF_QUEUE_ID", "")
        self.cf_api_token = cf_api_token or os.environ.get("CF_API_TOKEN", "")
        self.poll_interval = poll_interval
        self.batch_size = batch_size
        self.retry_delay_seconds = retry_delay_seconds
        self._running = False

        if not self.queue_api_url:
            raise ValueError("CF_QUEUE_API_URL is required")
        if not self.queue_id:
            raise ValueError("CF_QUEUE_ID is required")

    def _url(self, action: str) -> str:
        return f"{self.queue_api_url}/queues/{self.queue_id}/messages/{action}"

    async def _post(self, client: httpx.AsyncClient, action: str, payload: dict) -> Any:
        response = await client.post(
            self._url(action),
            headers={"Authorization": f"Bearer {self.cf_api_token}"},
            json=payload,
            timeout=30.0,
        )
        response.raise_for_status()
        return response.json()

    async def _pull_messages(self, client: httpx.AsyncClient) -> list[QueueMessage]:
        """Lease up to ``batch_size`` messages; empty on any transport error."""
        try:
            data = await self._post(client, "pull", {"batch_size": self.batch_size})
        except httpx.HTTPError as exc:
            logger.error("Pulling from queue %s failed: %s", self.queue_id, exc)
            return []

        messages: list[QueueMessage] = []
        for raw in (data.get("result") or {}).get("messages", []):
            try:
                messages.append(QueueMessage.from_api(raw))
            except ValueError as exc:
                logger.warning("Skipping malformed pull entry: %s", exc)
        return messages

    async def _settle(
        self,
        client: httpx.AsyncClient,
        acks: list[str],
        retries: list[str],
    ) -> None:
        """Ack and release leases in a single call."""
        if not acks and not retries:
            return
        payload = {
            "acks": [{"lease_id": lease} for lease in acks],
            "retries": [
                {"lease_id": lease, "delay_seconds": self.retry_delay_seconds}
                for lease in retries
            ],
        }
        try:
            await self._post(client, "ack", payload)
        except httpx.HTTPError as exc:
            # Unsettled leases expire and are redelivered by the queue
            logger.error(
                "Settling %d acks / %d retries failed: %s",
                len(acks),
                len(retries),
                exc,
            )

    async def _handle(self, message: QueueMessage, dispatch_fn: Dispatch) -> bool:
        """Dispatch one message.

        Returns:
            True to ack the lease, False to release it for redelivery.
        """
        try:
            body = message.decoded_body()
            result = await dispatch_fn(body)
        except ValueError as exc:
            logger.error("Dropping invalid notification %s: %s", message.message_id, exc)
            return True
        except Exception:
            logger.error(
                "Dispatch raised for message %s (attempt %d)",
                message.message_id,
                message.attempts,
                exc_info=True,
            )
            return False

        failed = result.failed
        if failed:
            logger.warning(
                "Message %s: %d of %d files failed, releasing for redelivery",
                message.message_id,
                len(failed),
                len(result.results),
            )
            return False
        return True

    async def poll_once(self, dispatch_fn: Dispatch) -> int:
        """Lease, dispatch and settle one batch.

        Returns:
            Number of messages handled.
        """
        async with httpx.AsyncClient() as client:
            messages = await self._pull_messages(client)
            acks: list[str] = []
            retries: list[str] = []
            for message in messages:
                if await self._handle(message, dispatch_fn):
                    acks.append(message.lease_id)
                else:
                    retries.append(message.lease_id)
            await self._settle(client, acks, retries)
        return len(messages)

    async def run(self, dispatch_fn: Dispatch) -> None:
        """Poll until stop() is called."""
        self._running = True
        logger.info("Polling queue %s", self.queue_id)

        while self._running:
            try:
                count = await self.poll_once(dispatch_fn)
                if count > 0:
                    logger.info("Handled %d messages this cycle", count)
            except Exception:
                logger.error("Unexpected error in poll cycle", exc_info=True)

            await asyncio.sleep(self.poll_interval)

    def stop(self) -> None:
        """Let the current cycle finish, then leave the polling loop."""
        self._running = False
        logger.info("Queue consumer stopping")
