from fastapi import APIRouter, Depends

from api.dependencies import get_current_user, get_store
from orchestration.timeline import list_tasks
from storage.base import TaskStore
from taskagent.models import CurrentUser

router = APIRouter(prefix="/api/tasks")


@router.get("/list")
async def get_tasks(
    user: CurrentUser = Depends(get_current_user),
    store: TaskStore = Depends(get_store),
) -> dict:
    """Plans, campaigns and presentations of the user, newest first."""
    tasks = await list_tasks(store, user.id)
    return {"tasks": [t.to_response() for t in tasks]}
