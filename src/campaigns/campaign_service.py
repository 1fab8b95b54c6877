import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from campaigns.batch_sender import CAMPAIGN_BATCH_SIZE, BatchSender
from campaigns.delivery import EmailDelivery
from storage.base import TaskStore
from taskagent.errors import NotFound, PersistenceFailed, ValidationError
from taskagent.models import Campaign, CampaignStatus, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CampaignReport:
    campaign_id: str
    total_recipients: int
    failed_count: int

    def to_response(self) -> dict:
        return {
            "success": True,
            "campaignId": self.campaign_id,
            "totalRecipients": self.total_recipients,
            "failedCount": self.failed_count,
        }


class CampaignService:
    """Creates a campaign, runs the batch sender over it and finalizes its status."""

    def __init__(
        self,
        store: TaskStore,
        delivery: EmailDelivery,
        chunk_size: int = CAMPAIGN_BATCH_SIZE,
    ):
        self.store = store
        self.sender = BatchSender(delivery, store, chunk_size=chunk_size)

    async def send_campaign(
        self,
        user_id: str,
        subject: Optional[str],
        body: Optional[str],
        recipients: Optional[Sequence[str]],
    ) -> CampaignReport:
        if not subject or not body or not recipients:
            raise ValidationError("Subject, body, and recipients are required")

        campaign = await self.store.create_campaign(user_id, subject, body, list(recipients))
        total = len(campaign.recipients)
        logger.info(f"Sending campaign {campaign.id} to {total} recipients")

        try:
            outcomes = await self.sender.send_batch(campaign.recipients, subject, body)
        except Exception as e:
            await self._abort(campaign.id, str(e) or type(e).__name__)
            raise

        failed_count = sum(1 for o in outcomes if o.failed)
        status = CampaignStatus.FAILED if failed_count == total else CampaignStatus.COMPLETED
        await self.store.finalize_campaign(campaign.id, status, utcnow())

        logger.info(
            f"Campaign {campaign.id} finished as {status.value}: "
            f"{total - failed_count}/{total} delivered"
        )
        return CampaignReport(
            campaign_id=campaign.id,
            total_recipients=total,
            failed_count=failed_count,
        )

    async def _abort(self, campaign_id: str, reason: str) -> None:
        logger.error(f"Campaign {campaign_id} aborted: {reason}")
        try:
            await self.store.abort_campaign(campaign_id, f"Campaign aborted: {reason}", utcnow())
        except PersistenceFailed as e:
            # The send error is the one reported to the caller.
            logger.error(f"Could not mark campaign {campaign_id} as failed: {e}")

    async def get_campaign(self, user_id: str, campaign_id: str) -> Campaign:
        campaign = await self.store.get_campaign(campaign_id, user_id)
        if campaign is None:
            raise NotFound("Campaign not found")
        return campaign
