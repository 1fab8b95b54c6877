"""
In-memory store used when DATABASE_URL is not configured (local runs and tests).

All access happens on the event loop thread, so plain dicts are enough.
Records are copied on the way in and out so callers never share state with the store.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from storage.base import TaskStore, UserSnapshot
from taskagent.errors import PersistenceFailed
from taskagent.models import (
    Campaign,
    CampaignStatus,
    Presentation,
    PresentationContent,
    PresentationStatus,
    Recipient,
    RecipientStatus,
    Task,
    TaskKind,
    TaskStatus,
)

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


class InMemoryStore(TaskStore):

    def __init__(self):
        self.tasks: Dict[str, Task] = {}
        self.campaigns: Dict[str, Campaign] = {}
        self.recipients: Dict[str, Recipient] = {}
        self.presentations: Dict[str, Presentation] = {}

    async def create_task(
        self,
        user_id: str,
        kind: TaskKind,
        prompt: str,
        status: TaskStatus = TaskStatus.PROCESSING,
        result: Optional[Dict[str, Any]] = None,
    ) -> Task:
        task = Task(
            id=_new_id(),
            user_id=user_id,
            kind=kind,
            prompt=prompt,
            status=status,
            result=dict(result or {}),
        )
        self.tasks[task.id] = task
        return task.model_copy(deep=True)

    async def finalize_task(
        self, task_id: str, status: TaskStatus, result: Dict[str, Any]
    ) -> Task:
        task = self.tasks.get(task_id)
        if task is None:
            raise PersistenceFailed(detail=f"task {task_id} not found")
        task.status = status
        task.result = dict(result)
        return task.model_copy(deep=True)

    async def create_campaign(
        self, user_id: str, subject: str, body: str, emails: Sequence[str]
    ) -> Campaign:
        campaign_id = _new_id()
        recipients = [
            Recipient(id=_new_id(), campaign_id=campaign_id, email=email)
            for email in emails
        ]
        campaign = Campaign(
            id=campaign_id,
            user_id=user_id,
            subject=subject,
            body=body,
            status=CampaignStatus.SENDING,
        )
        self.campaigns[campaign_id] = campaign
        for r in recipients:
            self.recipients[r.id] = r
        return self._assemble(campaign)

    def _assemble(self, campaign: Campaign) -> Campaign:
        out = campaign.model_copy(deep=True)
        out.recipients = [
            r.model_copy() for r in self.recipients.values() if r.campaign_id == campaign.id
        ]
        return out

    def _pending_recipient(self, recipient_id: str) -> Optional[Recipient]:
        recipient = self.recipients.get(recipient_id)
        if recipient is None:
            raise PersistenceFailed(detail=f"recipient {recipient_id} not found")
        if recipient.status != RecipientStatus.PENDING:
            logger.warning(
                f"Recipient {recipient_id} already {recipient.status.value}, ignoring transition"
            )
            return None
        return recipient

    async def mark_recipient_sent(self, recipient_id: str, sent_at: datetime) -> bool:
        recipient = self._pending_recipient(recipient_id)
        if recipient is None:
            return False
        recipient.status = RecipientStatus.SENT
        recipient.sent_at = sent_at
        return True

    async def mark_recipient_failed(self, recipient_id: str, error: str) -> bool:
        recipient = self._pending_recipient(recipient_id)
        if recipient is None:
            return False
        recipient.status = RecipientStatus.FAILED
        recipient.error = error
        return True

    async def finalize_campaign(
        self, campaign_id: str, status: CampaignStatus, sent_at: datetime
    ) -> Campaign:
        campaign = self.campaigns.get(campaign_id)
        if campaign is None:
            raise PersistenceFailed(detail=f"campaign {campaign_id} not found")
        campaign.status = status
        campaign.sent_at = sent_at
        return self._assemble(campaign)

    async def abort_campaign(self, campaign_id: str, error: str, ended_at: datetime) -> None:
        campaign = self.campaigns.get(campaign_id)
        if campaign is None:
            raise PersistenceFailed(detail=f"campaign {campaign_id} not found")
        for r in self.recipients.values():
            if r.campaign_id == campaign_id and r.status == RecipientStatus.PENDING:
                r.status = RecipientStatus.FAILED
                r.error = error
        if campaign.status == CampaignStatus.SENDING:
            campaign.status = CampaignStatus.FAILED
            campaign.sent_at = ended_at

    async def get_campaign(self, campaign_id: str, user_id: str) -> Optional[Campaign]:
        campaign = self.campaigns.get(campaign_id)
        if campaign is None or campaign.user_id != user_id:
            return None
        return self._assemble(campaign)

    async def create_presentation(self, user_id: str, topic: str) -> Presentation:
        presentation = Presentation(id=_new_id(), user_id=user_id, topic=topic)
        self.presentations[presentation.id] = presentation
        return presentation.model_copy(deep=True)

    async def complete_presentation(
        self, presentation_id: str, content: PresentationContent, pdf_url: str
    ) -> Presentation:
        presentation = self.presentations.get(presentation_id)
        if presentation is None:
            raise PersistenceFailed(detail=f"presentation {presentation_id} not found")
        presentation.content = content.model_copy(deep=True)
        presentation.pdf_url = pdf_url
        presentation.status = PresentationStatus.COMPLETED
        return presentation.model_copy(deep=True)

    async def fail_presentation(self, presentation_id: str) -> None:
        presentation = self.presentations.get(presentation_id)
        if presentation is None:
            raise PersistenceFailed(detail=f"presentation {presentation_id} not found")
        presentation.status = PresentationStatus.FAILED

    async def snapshot_for_user(self, user_id: str) -> UserSnapshot:
        def newest_first(items: List) -> List:
            return sorted(items, key=lambda x: x.created_at, reverse=True)

        return UserSnapshot(
            tasks=newest_first([
                t.model_copy(deep=True)
                for t in self.tasks.values()
                if t.user_id == user_id
            ]),
            campaigns=newest_first([
                c.model_copy(deep=True)
                for c in self.campaigns.values()
                if c.user_id == user_id
            ]),
            presentations=newest_first([
                p.model_copy(deep=True)
                for p in self.presentations.values()
                if p.user_id == user_id
            ]),
        )

    async def health_check(self) -> dict:
        return {"status": "healthy", "database": "in-memory"}
