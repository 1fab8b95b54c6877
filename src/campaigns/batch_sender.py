"""
Recipient batch sender.

Recipients are split into fixed-size chunks. Chunks run one after another;
inside a chunk every send runs concurrently and the chunk ends only when each
recipient has a terminal status persisted. Failures are isolated per recipient
and counted from the collected outcomes after each join.
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, List, Optional, Sequence, TypeVar

from api.metrics import CAMPAIGN_BATCH_SECONDS, RECIPIENTS_TOTAL
from campaigns.delivery import EmailDelivery
from storage.base import TaskStore
from taskagent.models import Recipient, RecipientStatus, utcnow

logger = logging.getLogger(__name__)

CAMPAIGN_BATCH_SIZE = int(os.getenv("CAMPAIGN_BATCH_SIZE", "100"))

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    if size < 1:
        raise ValueError("chunk size must be >= 1")
    for start in range(0, len(items), size):
        yield items[start : start + size]


@dataclass(frozen=True)
class RecipientOutcome:
    recipient_id: str
    email: str
    status: RecipientStatus
    sent_at: Optional[datetime] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == RecipientStatus.FAILED


class BatchSender:

    def __init__(
        self,
        delivery: EmailDelivery,
        store: TaskStore,
        chunk_size: int = CAMPAIGN_BATCH_SIZE,
    ):
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self.delivery = delivery
        self.store = store
        self.chunk_size = chunk_size

    async def send_batch(
        self, recipients: Sequence[Recipient], subject: str, html_body: str
    ) -> List[RecipientOutcome]:
        """Send to every recipient; returns one outcome per recipient, in input order."""
        outcomes: List[RecipientOutcome] = []
        total_chunks = (len(recipients) + self.chunk_size - 1) // self.chunk_size

        for index, chunk in enumerate(chunked(recipients, self.chunk_size), start=1):
            started = time.time()
            results = await asyncio.gather(
                *(self._send_one(r, subject, html_body) for r in chunk),
                return_exceptions=True,
            )

            # Delivery errors never get here; only store or programming errors do.
            errors = [r for r in results if isinstance(r, BaseException)]
            if errors:
                logger.error(
                    f"Chunk {index}/{total_chunks} hit {len(errors)} unexpected error(s)"
                )
                raise errors[0]

            outcomes.extend(results)
            failed = sum(1 for o in results if o.failed)
            logger.info(
                f"Chunk {index}/{total_chunks} done: {len(results) - failed} sent, {failed} failed"
            )

            try:
                CAMPAIGN_BATCH_SECONDS.observe(time.time() - started)
            except Exception:
                pass

        return outcomes

    async def _send_one(
        self, recipient: Recipient, subject: str, html_body: str
    ) -> RecipientOutcome:
        try:
            await self.delivery.send(
                to=recipient.email,
                subject=subject,
                html=html_body,
                track_opens=True,
                track_clicks=True,
            )
        except Exception as e:
            error = str(e) or type(e).__name__
            logger.warning(f"Delivery to {recipient.email} failed: {error}")
            await self.store.mark_recipient_failed(recipient.id, error)
            _count(RecipientStatus.FAILED)
            return RecipientOutcome(
                recipient_id=recipient.id,
                email=recipient.email,
                status=RecipientStatus.FAILED,
                error=error,
            )

        sent_at = utcnow()
        await self.store.mark_recipient_sent(recipient.id, sent_at)
        _count(RecipientStatus.SENT)
        return RecipientOutcome(
            recipient_id=recipient.id,
            email=recipient.email,
            status=RecipientStatus.SENT,
            sent_at=sent_at,
        )


def _count(status: RecipientStatus) -> None:
    try:
        RECIPIENTS_TOTAL.labels(status=status.value).inc()
    except Exception:
        pass
