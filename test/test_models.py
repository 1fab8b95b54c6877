from taskagent.models import (
    Campaign,
    CampaignStatus,
    Presentation,
    PresentationStatus,
    Recipient,
    RecipientStatus,
    Task,
    TaskKind,
    TaskStatus,
)


def test_task_defaults():
    t = Task(id="t1", user_id="u1", kind=TaskKind.GENERAL, prompt="Plan a trip")
    assert t.status == TaskStatus.PROCESSING
    assert t.result == {}
    assert t.created_at.tzinfo is not None


def test_campaign_starts_sending_with_pending_recipients():
    c = Campaign(
        id="c1",
        user_id="u1",
        subject="Hi",
        body="<p>Hi</p>",
        recipients=[Recipient(id="r1", campaign_id="c1", email="a@test.com")],
    )
    assert c.status == CampaignStatus.SENDING
    assert c.sent_at is None
    assert c.recipients[0].status == RecipientStatus.PENDING
    assert c.recipients[0].error is None


def test_presentation_starts_generating_and_empty():
    p = Presentation(id="p1", user_id="u1", topic="Solar power")
    assert p.status == PresentationStatus.GENERATING
    assert p.content.slides == []
    assert p.pdf_url is None
