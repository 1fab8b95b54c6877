from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.dependencies import get_current_user, get_presentation_service
from presentation.presentation_service import PresentationService
from taskagent.models import CurrentUser

router = APIRouter(prefix="/api/presentation")


class PresentationIn(BaseModel):
    topic: Optional[str] = None


@router.post("/create")
async def create_presentation(
    user: CurrentUser = Depends(get_current_user),
    payload: Optional[PresentationIn] = None,
    service: PresentationService = Depends(get_presentation_service),
) -> dict:
    topic = payload.topic if payload else None
    report = await service.create(user.id, topic)
    return report.to_response()
