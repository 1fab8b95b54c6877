from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from taskagent.models import (
    Campaign,
    CampaignStatus,
    Presentation,
    PresentationContent,
    Task,
    TaskKind,
    TaskStatus,
)


@dataclass
class UserSnapshot:
    """The three record kinds of one user, read together."""

    tasks: List[Task] = field(default_factory=list)
    campaigns: List[Campaign] = field(default_factory=list)
    presentations: List[Presentation] = field(default_factory=list)


class TaskStore(ABC):
    """Persistence operations needed by the orchestration core.

    Implementations raise PersistenceFailed when the backing store errors.
    Recipient transitions only apply to PENDING rows and return False otherwise.
    """

    # Tasks

    @abstractmethod
    async def create_task(
        self,
        user_id: str,
        kind: TaskKind,
        prompt: str,
        status: TaskStatus = TaskStatus.PROCESSING,
        result: Optional[Dict[str, Any]] = None,
    ) -> Task:
        raise NotImplementedError

    @abstractmethod
    async def finalize_task(
        self, task_id: str, status: TaskStatus, result: Dict[str, Any]
    ) -> Task:
        raise NotImplementedError

    # Campaigns

    @abstractmethod
    async def create_campaign(
        self, user_id: str, subject: str, body: str, emails: Sequence[str]
    ) -> Campaign:
        """Create the campaign (SENDING) and all its recipients (PENDING) atomically."""
        raise NotImplementedError

    @abstractmethod
    async def mark_recipient_sent(self, recipient_id: str, sent_at: datetime) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def mark_recipient_failed(self, recipient_id: str, error: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def finalize_campaign(
        self, campaign_id: str, status: CampaignStatus, sent_at: datetime
    ) -> Campaign:
        raise NotImplementedError

    @abstractmethod
    async def abort_campaign(self, campaign_id: str, error: str, ended_at: datetime) -> None:
        """Fail every still-PENDING recipient and mark a SENDING campaign FAILED."""
        raise NotImplementedError

    @abstractmethod
    async def get_campaign(self, campaign_id: str, user_id: str) -> Optional[Campaign]:
        raise NotImplementedError

    # Presentations

    @abstractmethod
    async def create_presentation(self, user_id: str, topic: str) -> Presentation:
        raise NotImplementedError

    @abstractmethod
    async def complete_presentation(
        self, presentation_id: str, content: PresentationContent, pdf_url: str
    ) -> Presentation:
        raise NotImplementedError

    @abstractmethod
    async def fail_presentation(self, presentation_id: str) -> None:
        raise NotImplementedError

    # Timeline

    @abstractmethod
    async def snapshot_for_user(self, user_id: str) -> UserSnapshot:
        """Tasks, campaigns and presentations of a user, newest first."""
        raise NotImplementedError

    async def health_check(self) -> dict:
        return {"status": "healthy", "database": type(self).__name__}

    async def close(self) -> None:
        return None
