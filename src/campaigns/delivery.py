from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from taskagent.errors import RemoteCallFailed

logger = logging.getLogger(__name__)

SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY", "").strip()
SENDGRID_FROM_EMAIL = os.getenv("SENDGRID_FROM_EMAIL", "noreply@example.com").strip()
SENDGRID_BASE_URL = os.getenv("SENDGRID_BASE_URL", "https://api.sendgrid.com").strip()
DELIVERY_TIMEOUT_S = float(os.getenv("DELIVERY_TIMEOUT_S", "15"))


class EmailDelivery(ABC):
    """Remote delivery capability: accepts one message or raises."""

    @abstractmethod
    async def send(
        self,
        *,
        to: str,
        subject: str,
        html: str,
        track_opens: bool = True,
        track_clicks: bool = True,
    ) -> None:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class SendGridDelivery(EmailDelivery):
    """SendGrid v3 mail/send over a shared httpx.AsyncClient."""

    def __init__(
        self,
        api_key: str = SENDGRID_API_KEY,
        from_email: str = SENDGRID_FROM_EMAIL,
        base_url: str = SENDGRID_BASE_URL,
        timeout_s: float = DELIVERY_TIMEOUT_S,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not api_key:
            raise RuntimeError("SENDGRID_API_KEY is missing")

        self.from_email = from_email
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_s,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    async def send(
        self,
        *,
        to: str,
        subject: str,
        html: str,
        track_opens: bool = True,
        track_clicks: bool = True,
    ) -> None:
        payload = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self.from_email},
            "subject": subject,
            "content": [{"type": "text/html", "value": html}],
            "tracking_settings": {
                "click_tracking": {"enable": track_clicks},
                "open_tracking": {"enable": track_opens},
            },
        }

        try:
            r = await self.client.post("/v3/mail/send", json=payload)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RemoteCallFailed(
                "Email delivery rejected",
                f"{e.response.status_code}: {e.response.text[:200]}",
            ) from e
        except httpx.HTTPError as e:
            raise RemoteCallFailed("Email delivery failed", str(e) or type(e).__name__) from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()


class LogOnlyDelivery(EmailDelivery):
    """Accepts every message and only logs it. Used when no provider key is set."""

    async def send(
        self,
        *,
        to: str,
        subject: str,
        html: str,
        track_opens: bool = True,
        track_clicks: bool = True,
    ) -> None:
        logger.info(f"[log-only delivery] to={to} subject={subject!r} ({len(html)} bytes)")


def build_delivery() -> EmailDelivery:
    if SENDGRID_API_KEY:
        return SendGridDelivery()
    logger.warning("SENDGRID_API_KEY not set. Emails will be logged, not sent.")
    return LogOnlyDelivery()
