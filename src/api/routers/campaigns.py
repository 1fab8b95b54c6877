import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.dependencies import get_campaign_service, get_current_user
from campaigns.campaign_service import CampaignService
from taskagent.models import Campaign, CurrentUser, RecipientStatus

router = APIRouter(prefix="/api/email")
logger = logging.getLogger(__name__)


class CampaignIn(BaseModel):
    subject: Optional[str] = None
    body: Optional[str] = None
    recipients: Optional[List[str]] = None


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def _serialize_campaign(campaign: Campaign) -> dict:
    counts = {s: 0 for s in RecipientStatus}
    for r in campaign.recipients:
        counts[r.status] += 1

    return {
        "id": campaign.id,
        "subject": campaign.subject,
        "status": campaign.status.value,
        "createdAt": _iso(campaign.created_at),
        "sentAt": _iso(campaign.sent_at),
        "totalRecipients": len(campaign.recipients),
        "sentCount": counts[RecipientStatus.SENT],
        "failedCount": counts[RecipientStatus.FAILED],
        "pendingCount": counts[RecipientStatus.PENDING],
        "recipients": [
            {
                "id": r.id,
                "email": r.email,
                "status": r.status.value,
                "sentAt": _iso(r.sent_at),
                "error": r.error,
            }
            for r in campaign.recipients
        ],
    }


@router.post("/campaign")
async def send_campaign(
    user: CurrentUser = Depends(get_current_user),
    payload: Optional[CampaignIn] = None,
    service: CampaignService = Depends(get_campaign_service),
) -> dict:
    """
    Send one subject/body to every recipient.

    Partial or total delivery failure is reported through failedCount with a
    200 response; only bad input or a storage error fails the request.
    """
    payload = payload or CampaignIn()
    report = await service.send_campaign(
        user.id, payload.subject, payload.body, payload.recipients
    )
    return report.to_response()


@router.get("/campaign/{campaign_id}")
async def get_campaign(
    campaign_id: str,
    user: CurrentUser = Depends(get_current_user),
    service: CampaignService = Depends(get_campaign_service),
) -> dict:
    """Live view of a campaign and its per-recipient progress."""
    campaign = await service.get_campaign(user.id, campaign_id)
    return _serialize_campaign(campaign)
