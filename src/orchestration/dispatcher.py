"""
Task router.

A request is classified, recorded as a PROCESSING task, handed to exactly one
handler (campaign, presentation or planner) by direct call, and the task row is
then finalized once with the handler's result.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from api.metrics import TASKS_DISPATCHED_TOTAL
from campaigns.campaign_service import CampaignService
from classification.task_classifier import TaskClassifier
from llm.schemas import ClassificationResult
from planning.planner import ACTION_PLAN_SYSTEM_PROMPT, Planner
from presentation.presentation_service import PresentationService
from storage.base import TaskStore
from taskagent.errors import InternalError, PersistenceFailed, TaskAgentError, ValidationError
from taskagent.models import Task, TaskKind, TaskStatus

logger = logging.getLogger(__name__)

DEFAULT_CAMPAIGN_SUBJECT = "Generated Campaign"


@dataclass
class TaskResult:
    """Common envelope for every handler outcome."""

    kind: TaskKind
    success: bool
    result: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    status_code: int = 200
    task_id: Optional[str] = None

    @classmethod
    def failure(cls, kind: TaskKind, exc: TaskAgentError) -> "TaskResult":
        return cls(
            kind=kind,
            success=False,
            result={"message": exc.message, "error": exc.detail},
            error=exc.message,
            status_code=exc.status_code,
        )

    def to_response(self) -> dict:
        body = {
            "success": self.success,
            "type": self.kind.value,
            "result": self.result,
            "requestId": self.task_id,
        }
        if self.error:
            body["message"] = self.error
            body["error"] = self.result.get("error")
        return body


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.replace(";", ",").split(",") if v.strip()]
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return []


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


class TaskDispatcher:

    def __init__(
        self,
        store: TaskStore,
        classifier: TaskClassifier,
        planner: Planner,
        campaigns: CampaignService,
        presentations: PresentationService,
    ):
        self.store = store
        self.classifier = classifier
        self.planner = planner
        self.campaigns = campaigns
        self.presentations = presentations

    async def run(self, user_id: str, prompt: Optional[str]) -> TaskResult:
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt is required")

        classified = await asyncio.to_thread(self.classifier.classify, prompt)
        task = await self.store.create_task(user_id, classified.kind, prompt)

        result = await self.dispatch(task, classified)
        result.task_id = task.id

        status = TaskStatus.COMPLETED if result.success else TaskStatus.FAILED
        try:
            await self.store.finalize_task(task.id, status, result.result)
        except PersistenceFailed:
            # Not retried: the handler already ran, the row stays PROCESSING.
            logger.error(
                f"Task {task.id} ({task.kind.value}) was dispatched but its record was not finalized"
            )
            raise

        try:
            TASKS_DISPATCHED_TOTAL.labels(
                kind=task.kind.value, outcome="success" if result.success else "failure"
            ).inc()
        except Exception:
            pass

        return result

    async def dispatch(self, task: Task, classified: ClassificationResult) -> TaskResult:
        """Invoke the one handler matching the task kind."""
        params = classified.parameters
        logger.info(f"Dispatching task {task.id} as {task.kind.value}")

        try:
            if task.kind == TaskKind.EMAIL:
                report = await self.campaigns.send_campaign(
                    task.user_id,
                    _as_text(params.get("subject")) or DEFAULT_CAMPAIGN_SUBJECT,
                    _as_text(params.get("body")),
                    _as_list(params.get("recipients")),
                )
                payload = report.to_response()
            elif task.kind == TaskKind.PRESENTATION:
                topic = _as_text(params.get("topic")) or task.prompt
                report = await self.presentations.create(task.user_id, topic)
                payload = report.to_response()
            else:
                plan = await self.planner.plan(
                    task.prompt, system=ACTION_PLAN_SYSTEM_PROMPT, max_tokens=None
                )
                payload = {"plan": plan}
        except TaskAgentError as e:
            logger.warning(f"Task {task.id} handler failed: {e}")
            return TaskResult.failure(task.kind, e)
        except Exception as e:
            logger.exception(f"Task {task.id} handler crashed")
            return TaskResult.failure(task.kind, InternalError(detail=str(e) or type(e).__name__))

        return TaskResult(kind=task.kind, success=True, result=payload)
