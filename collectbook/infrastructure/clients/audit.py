"""Audit webhook client with exponential backoff retry logic"""

import asyncio
import logging
from dataclasses import asdict
from typing import Any, Dict, Iterable

import httpx
from collectbook.config import settings
from collectbook.domain.models import DomainEvent
from collectbook.infrastructure.observability.metrics import webhook_latency_histogram, webhook_failure_counter

logger = logging.getLogger(__name__)


class AuditClient:
    """Client for sending domain events to the audit service"""

    def __init__(self, webhook_url: str | None = None):
        self.webhook_url = settings.audit_webhook_url if webhook_url is None else webhook_url
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self.timeout = settings.http_timeout_seconds

    async def send_event(self, payload: Dict[str, Any]) -> None:
        """
        Send one audit event with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s (base * 2^attempt)
        - Retries on 5xx errors and network failures
        - Tracks latency histogram and failure counter

        Raises:
            httpx.HTTPStatusError / httpx.RequestError after the final attempt
        """
        attempt = 0
        async with httpx.AsyncClient() as client:
            while attempt < self.max_retries:
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(
                            self.webhook_url,
                            json=payload,
                            timeout=self.timeout,
                        )
                        response.raise_for_status()
                        return  # Success

                except (httpx.HTTPStatusError, httpx.RequestError):
                    attempt += 1
                    webhook_failure_counter.inc()

                    if attempt >= self.max_retries:
                        raise

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)

    async def notify(self, events: Iterable[DomainEvent], request_id: str | None = None) -> None:
        """
        Fire-and-forget delivery run after the primary operation committed.

        Delivery failures are logged and dropped; they never reach the caller.
        """
        if not self.webhook_url:
            return

        for event in events:
            try:
                await self.send_event({**asdict(event), "request_id": request_id})
            except (httpx.HTTPError, OSError) as e:
                logger.warning(
                    f"Audit event {event.action} not delivered: {e}",
                    extra={"request_id": request_id, "action": event.action},
                )
