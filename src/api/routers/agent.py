import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from api.dependencies import get_current_user, get_dispatcher, get_planner, get_store
from orchestration.dispatcher import TaskDispatcher
from planning.planner import Planner
from storage.base import TaskStore
from taskagent.models import CurrentUser

router = APIRouter(prefix="/api/agent")
logger = logging.getLogger(__name__)


class PromptIn(BaseModel):
    prompt: Optional[str] = None


@router.post("/master")
async def generate_plan(
    user: CurrentUser = Depends(get_current_user),
    payload: Optional[PromptIn] = None,
    planner: Planner = Depends(get_planner),
    store: TaskStore = Depends(get_store),
) -> dict:
    """Turn a prompt into a step-by-step plan and log it as a task."""
    prompt = payload.prompt if payload else None
    out = await planner.generate_plan(store, user.id, prompt)
    return {"success": True, "plan": out["plan"], "requestId": out["request_id"]}


@router.post("/orchestrator")
async def orchestrate(
    user: CurrentUser = Depends(get_current_user),
    payload: Optional[PromptIn] = None,
    dispatcher: TaskDispatcher = Depends(get_dispatcher),
) -> JSONResponse:
    """
    Classify a free-text request and route it to the email, presentation or
    planning handler. Handler failures are recorded on the task and returned
    with their own status code.
    """
    prompt = payload.prompt if payload else None
    logger.info(f"Orchestrating request for user {user.id}")

    result = await dispatcher.run(user.id, prompt)
    return JSONResponse(status_code=result.status_code, content=result.to_response())
