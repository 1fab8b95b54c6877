import asyncio
import json
from datetime import datetime, timedelta, timezone

from orchestration.timeline import list_tasks, merge_timeline
from taskagent.models import (
    Campaign,
    CampaignStatus,
    Presentation,
    PresentationStatus,
    Task,
    TaskKind,
    TaskStatus,
)

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _at(minutes):
    return T0 + timedelta(minutes=minutes)


def test_merge_orders_newest_first():
    task = Task(
        id="t1", user_id="u1", kind=TaskKind.GENERAL, prompt="plan my week",
        result={"plan": "1. rest"}, status=TaskStatus.COMPLETED, created_at=_at(1),
    )
    campaign = Campaign(
        id="c1", user_id="u1", subject="Launch", body="<p>x</p>",
        status=CampaignStatus.COMPLETED, created_at=_at(3),
    )
    presentation = Presentation(
        id="p1", user_id="u1", topic="Solar", status=PresentationStatus.COMPLETED,
        pdf_url="/uploads/presentation-p1.pdf", created_at=_at(2),
    )

    rows = merge_timeline([task], [campaign], [presentation])

    assert [r.id for r in rows] == ["c1", "p1", "t1"]
    c, p, t = (r.to_response() for r in rows)

    assert c["type"] == "EMAIL"
    assert c["prompt"] == "Email Campaign: Launch"
    assert json.loads(c["response"]) == {"campaignId": "c1", "status": "COMPLETED"}

    assert p["type"] == "PRESENTATION"
    assert p["prompt"] == "Presentation: Solar"
    assert json.loads(p["response"])["pdfUrl"] == "/uploads/presentation-p1.pdf"

    assert t["type"] == "GENERAL"
    assert t["prompt"] == "plan my week"
    assert json.loads(t["response"]) == {"plan": "1. rest"}
    assert t["createdAt"] == _at(1).isoformat()


def test_merge_empty():
    assert merge_timeline([], [], []) == []


def test_equal_timestamps_keep_source_order():
    task = Task(id="t1", user_id="u1", kind=TaskKind.GENERAL, prompt="x", created_at=T0)
    campaign = Campaign(id="c1", user_id="u1", subject="s", body="b", created_at=T0)

    rows = merge_timeline([task], [campaign], [])

    assert [r.id for r in rows] == ["t1", "c1"]


def test_list_tasks_scopes_to_user_and_skips_routed_rows(store):
    async def run():
        await store.create_task("u1", TaskKind.GENERAL, "plan", status=TaskStatus.COMPLETED)
        campaign = await store.create_campaign("u1", "Hello", "<p>hi</p>", ["a@test.com"])
        # the campaign itself is what the timeline shows for this routed request
        await store.create_task(
            "u1", TaskKind.EMAIL, "email folks",
            status=TaskStatus.COMPLETED, result={"campaignId": campaign.id},
        )
        await store.create_presentation("u1", "Deck")
        await store.create_task("u2", TaskKind.GENERAL, "someone else")
        return await list_tasks(store, "u1")

    rows = asyncio.run(run())

    assert sorted(r.kind.value for r in rows) == ["EMAIL", "GENERAL", "PRESENTATION"]
    assert all(r.prompt != "someone else" for r in rows)
    assert [r.created_at for r in rows] == sorted((r.created_at for r in rows), reverse=True)


def test_rejected_routed_request_is_listed(store):
    async def run():
        await store.create_task(
            "u1", TaskKind.EMAIL, "send the newsletter",
            status=TaskStatus.FAILED,
            result={"message": "Subject, body, and recipients are required", "error": None},
        )
        return await list_tasks(store, "u1")

    (row,) = asyncio.run(run())

    body = row.to_response()
    assert body["type"] == "EMAIL"
    assert body["status"] == "FAILED"
    assert body["prompt"] == "send the newsletter"
    assert json.loads(body["response"])["message"] == "Subject, body, and recipients are required"
