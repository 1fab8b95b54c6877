import asyncio

import pytest

from campaigns.batch_sender import BatchSender, chunked
from taskagent.models import RecipientStatus


def _emails(n):
    return [f"user{i}@test.com" for i in range(n)]


def test_chunked_sizes():
    sizes = [len(c) for c in chunked(_emails(250), 100)]
    assert sizes == [100, 100, 50]


def test_chunked_rejects_zero():
    with pytest.raises(ValueError):
        list(chunked([1, 2], 0))


def test_all_sent(store, delivery_factory):
    delivery = delivery_factory()

    async def run():
        campaign = await store.create_campaign("u1", "Hi", "<p>Hi</p>", _emails(3))
        sender = BatchSender(delivery, store, chunk_size=2)
        outcomes = await sender.send_batch(campaign.recipients, "Hi", "<p>Hi</p>")
        return campaign, outcomes

    campaign, outcomes = asyncio.run(run())

    assert [o.email for o in outcomes] == _emails(3)
    assert all(o.status == RecipientStatus.SENT for o in outcomes)
    assert all(o.sent_at is not None for o in outcomes)
    assert all(s["track_opens"] and s["track_clicks"] for s in delivery.sent)
    for r in campaign.recipients:
        assert store.recipients[r.id].status == RecipientStatus.SENT


def test_failure_is_isolated_per_recipient(store, delivery_factory):
    emails = _emails(5)
    delivery = delivery_factory(failing={emails[1], emails[4]})

    async def run():
        campaign = await store.create_campaign("u1", "Hi", "<p>Hi</p>", emails)
        sender = BatchSender(delivery, store, chunk_size=2)
        return await sender.send_batch(campaign.recipients, "Hi", "<p>Hi</p>")

    outcomes = asyncio.run(run())

    statuses = [o.status for o in outcomes]
    assert statuses == [
        RecipientStatus.SENT,
        RecipientStatus.FAILED,
        RecipientStatus.SENT,
        RecipientStatus.SENT,
        RecipientStatus.FAILED,
    ]
    failed = [o for o in outcomes if o.failed]
    assert all("Failed to send email" in o.error for o in failed)
    stored = {r.email: r for r in store.recipients.values()}
    assert stored[emails[1]].status == RecipientStatus.FAILED
    assert stored[emails[1]].error
    assert stored[emails[1]].sent_at is None
    assert stored[emails[2]].error is None


def test_chunks_are_sequential_and_bounded(store):
    emails = _emails(250)
    position = {email: i for i, email in enumerate(emails)}

    class BarrierCheckingDelivery:
        """Checks that every earlier chunk is fully persisted before a send starts."""

        def __init__(self):
            self.in_flight = 0
            self.max_in_flight = 0
            self.violations = []

        async def send(self, *, to, subject, html, track_opens=True, track_clicks=True):
            index = position[to]
            chunk_start = (index // 100) * 100
            pending_before = [
                r for r in store.recipients.values()
                if position[r.email] < chunk_start and r.status == RecipientStatus.PENDING
            ]
            if pending_before:
                self.violations.append(to)

            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            await asyncio.sleep(0)
            self.in_flight -= 1

    delivery = BarrierCheckingDelivery()

    async def run():
        campaign = await store.create_campaign("u1", "Hi", "<p>Hi</p>", emails)
        return await BatchSender(delivery, store, chunk_size=100).send_batch(
            campaign.recipients, "Hi", "<p>Hi</p>"
        )

    outcomes = asyncio.run(run())

    assert len(outcomes) == 250
    assert delivery.violations == []
    assert delivery.max_in_flight <= 100
    # sends inside a chunk overlap
    assert delivery.max_in_flight > 1


def test_store_error_surfaces_after_chunk_resolves(store, delivery_factory):
    delivery = delivery_factory()

    class FlakyStore:
        def __init__(self, inner):
            self.inner = inner

        async def mark_recipient_sent(self, recipient_id, sent_at):
            if self.inner.recipients[recipient_id].email == "user0@test.com":
                raise RuntimeError("disk full")
            return await self.inner.mark_recipient_sent(recipient_id, sent_at)

        async def mark_recipient_failed(self, recipient_id, error):
            return await self.inner.mark_recipient_failed(recipient_id, error)

    async def run():
        campaign = await store.create_campaign("u1", "Hi", "<p>Hi</p>", _emails(3))
        sender = BatchSender(delivery, FlakyStore(store), chunk_size=10)
        await sender.send_batch(campaign.recipients, "Hi", "<p>Hi</p>")

    with pytest.raises(RuntimeError):
        asyncio.run(run())

    # siblings in the same chunk still completed
    assert len(delivery.sent) == 3
    stored = {r.email: r.status for r in store.recipients.values()}
    assert stored["user1@test.com"] == RecipientStatus.SENT
    assert stored["user2@test.com"] == RecipientStatus.SENT
