import json
from typing import Iterable, List

from storage.base import TaskStore
from taskagent.models import Campaign, Presentation, Task, TaskKind, TaskSummary


def summarize_task(task: Task) -> TaskSummary:
    return TaskSummary(
        id=task.id,
        kind=task.kind,
        prompt=task.prompt,
        response=json.dumps(task.result),
        created_at=task.created_at,
        status=task.status.value,
    )


def summarize_campaign(campaign: Campaign) -> TaskSummary:
    return TaskSummary(
        id=campaign.id,
        kind=TaskKind.EMAIL,
        prompt=f"Email Campaign: {campaign.subject}",
        response=json.dumps({"campaignId": campaign.id, "status": campaign.status.value}),
        created_at=campaign.created_at,
        status=campaign.status.value,
    )


def summarize_presentation(presentation: Presentation) -> TaskSummary:
    return TaskSummary(
        id=presentation.id,
        kind=TaskKind.PRESENTATION,
        prompt=f"Presentation: {presentation.topic}",
        response=json.dumps(
            {
                "presentationId": presentation.id,
                "status": presentation.status.value,
                "pdfUrl": presentation.pdf_url,
            }
        ),
        created_at=presentation.created_at,
        status=presentation.status.value,
    )


# Keys under which a routed task result points at the record shown in its place.
_ROUTED_RECORD_KEYS = {
    TaskKind.EMAIL: "campaignId",
    TaskKind.PRESENTATION: "presentationId",
}


def is_represented_elsewhere(task: Task) -> bool:
    key = _ROUTED_RECORD_KEYS.get(task.kind)
    return key is not None and bool(task.result.get(key))


def merge_timeline(
    tasks: Iterable[Task],
    campaigns: Iterable[Campaign],
    presentations: Iterable[Presentation],
) -> List[TaskSummary]:
    """Newest first. Equal timestamps keep task rows, then campaigns, then presentations.

    A routed task whose campaign or presentation exists is listed once, through
    that record. Routed tasks that never produced one (rejected input) are
    listed as task rows.
    """
    rows = [summarize_task(t) for t in tasks if not is_represented_elsewhere(t)]
    rows += [summarize_campaign(c) for c in campaigns]
    rows += [summarize_presentation(p) for p in presentations]
    # list.sort is stable, also with reverse=True
    rows.sort(key=lambda r: r.created_at, reverse=True)
    return rows


async def list_tasks(store: TaskStore, user_id: str) -> List[TaskSummary]:
    snapshot = await store.snapshot_for_user(user_id)
    return merge_timeline(snapshot.tasks, snapshot.campaigns, snapshot.presentations)
