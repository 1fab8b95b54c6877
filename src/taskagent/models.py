from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskKind(str, Enum):
    GENERAL = "GENERAL"
    EMAIL = "EMAIL"
    PRESENTATION = "PRESENTATION"


class TaskStatus(str, Enum):
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class CampaignStatus(str, Enum):
    SENDING = "SENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class RecipientStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class PresentationStatus(str, Enum):
    GENERATING = "GENERATING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class Task(BaseModel):
    """One user request and its tracked outcome. The shape of `result` depends on `kind`."""

    id: str
    user_id: str
    kind: TaskKind
    prompt: str
    result: Dict[str, Any] = Field(default_factory=dict)
    status: TaskStatus = TaskStatus.PROCESSING
    created_at: datetime = Field(default_factory=utcnow)


class Recipient(BaseModel):
    id: str
    campaign_id: str
    email: str
    status: RecipientStatus = RecipientStatus.PENDING
    sent_at: Optional[datetime] = None
    error: Optional[str] = None


class Campaign(BaseModel):
    id: str
    user_id: str
    subject: str
    body: str
    status: CampaignStatus = CampaignStatus.SENDING
    created_at: datetime = Field(default_factory=utcnow)
    sent_at: Optional[datetime] = None
    recipients: List[Recipient] = Field(default_factory=list)


class Slide(BaseModel):
    title: str = Field(..., min_length=1)
    points: List[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("slide title must not be blank")
        return v2


class PresentationContent(BaseModel):
    slides: List[Slide] = Field(default_factory=list)


class Presentation(BaseModel):
    id: str
    user_id: str
    topic: str
    status: PresentationStatus = PresentationStatus.GENERATING
    content: PresentationContent = Field(default_factory=PresentationContent)
    pdf_url: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class TaskSummary(BaseModel):
    """Uniform timeline row built from plans, campaigns and presentations."""

    id: str
    kind: TaskKind
    prompt: str
    response: str
    created_at: datetime
    status: str

    def to_response(self) -> dict:
        return {
            "id": self.id,
            "type": self.kind.value,
            "prompt": self.prompt,
            "response": self.response,
            "createdAt": self.created_at.isoformat(),
            "status": self.status,
        }


class CurrentUser(BaseModel):
    id: str
