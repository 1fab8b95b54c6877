import asyncio
import logging
from typing import Optional

from llm.llm_client import LLMClient
from storage.base import TaskStore
from taskagent.errors import ValidationError
from taskagent.models import TaskKind, TaskStatus

logger = logging.getLogger(__name__)

PLANNER_SYSTEM_PROMPT = """You are a professional project planner.
Create a clear, actionable plan for the given task.
Break it down into numbered steps with brief explanations.
Focus on practical, achievable steps."""

ACTION_PLAN_SYSTEM_PROMPT = """Create a detailed action plan for the following task.
Break it down into numbered steps with explanations."""

PLAN_MAX_TOKENS = 500
NO_RESPONSE = "No response generated"


class Planner:

    def __init__(self, llm_client: Optional[LLMClient] = None):
        self.llm = llm_client or LLMClient()

    async def plan(
        self,
        prompt: str,
        system: str = PLANNER_SYSTEM_PROMPT,
        max_tokens: Optional[int] = PLAN_MAX_TOKENS,
    ) -> str:
        text = await asyncio.to_thread(
            self.llm.complete, system=system, user=prompt, max_tokens=max_tokens
        )
        return text or NO_RESPONSE

    async def generate_plan(self, store: TaskStore, user_id: str, prompt: Optional[str]) -> dict:
        """Plan a request directly and log it as a completed GENERAL task."""
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt is required")

        plan = await self.plan(prompt)
        task = await store.create_task(
            user_id,
            TaskKind.GENERAL,
            prompt,
            status=TaskStatus.COMPLETED,
            result={"plan": plan},
        )
        logger.info(f"Generated plan {task.id} for user {user_id}")
        return {"plan": plan, "request_id": task.id}
