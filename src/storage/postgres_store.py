"""
PostgreSQL-backed store for tasks, campaigns and presentations.

Uses the shared asyncpg pool from storage.db. JSON columns are written as
encoded strings and decoded on read.
"""

import functools
import json
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

import asyncpg

from storage import db
from storage.base import TaskStore, UserSnapshot
from taskagent.errors import PersistenceFailed
from taskagent.models import (
    Campaign,
    CampaignStatus,
    Presentation,
    PresentationContent,
    PresentationStatus,
    Recipient,
    Task,
    TaskKind,
    TaskStatus,
)

logger = logging.getLogger(__name__)


def _persistence_op(fn):
    """Translate driver errors into PersistenceFailed."""

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except PersistenceFailed:
            raise
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, RuntimeError) as e:
            logger.error(f"Store operation {fn.__name__} failed: {e}")
            raise PersistenceFailed(detail=str(e)) from e

    return wrapper


def _uuid(value: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError as e:
        raise PersistenceFailed(detail=f"invalid id: {value}") from e


def _json(value) -> Any:
    if value is None:
        return {}
    if isinstance(value, str):
        return json.loads(value)
    return value


def _task_from_record(record) -> Task:
    return Task(
        id=str(record["id"]),
        user_id=record["user_id"],
        kind=TaskKind(record["kind"]),
        prompt=record["prompt"],
        result=_json(record["result"]),
        status=TaskStatus(record["status"]),
        created_at=record["created_at"],
    )


def _recipient_from_record(record) -> Recipient:
    return Recipient(
        id=str(record["id"]),
        campaign_id=str(record["campaign_id"]),
        email=record["email"],
        status=record["status"],
        sent_at=record["sent_at"],
        error=record["error"],
    )


def _campaign_from_record(record, recipients=()) -> Campaign:
    return Campaign(
        id=str(record["id"]),
        user_id=record["user_id"],
        subject=record["subject"],
        body=record["body"],
        status=CampaignStatus(record["status"]),
        created_at=record["created_at"],
        sent_at=record["sent_at"],
        recipients=[_recipient_from_record(r) for r in recipients],
    )


def _presentation_from_record(record) -> Presentation:
    content = _json(record["content"])
    return Presentation(
        id=str(record["id"]),
        user_id=record["user_id"],
        topic=record["topic"],
        status=PresentationStatus(record["status"]),
        content=PresentationContent.model_validate(content) if content else PresentationContent(),
        pdf_url=record["pdf_url"],
        created_at=record["created_at"],
    )


class PostgresStore(TaskStore):

    @_persistence_op
    async def create_task(
        self,
        user_id: str,
        kind: TaskKind,
        prompt: str,
        status: TaskStatus = TaskStatus.PROCESSING,
        result: Optional[Dict[str, Any]] = None,
    ) -> Task:
        query = """
            INSERT INTO tasks (user_id, kind, prompt, status, result)
            VALUES ($1, $2, $3, $4, $5::jsonb)
            RETURNING *
        """
        record = await db.fetchrow(
            query, user_id, kind.value, prompt, status.value, json.dumps(result or {})
        )
        logger.info(f"Created task {record['id']} ({kind.value}) for user {user_id}")
        return _task_from_record(record)

    @_persistence_op
    async def finalize_task(
        self, task_id: str, status: TaskStatus, result: Dict[str, Any]
    ) -> Task:
        query = """
            UPDATE tasks SET status = $2, result = $3::jsonb
            WHERE id = $1
            RETURNING *
        """
        record = await db.fetchrow(query, _uuid(task_id), status.value, json.dumps(result))
        if record is None:
            raise PersistenceFailed(detail=f"task {task_id} not found")
        return _task_from_record(record)

    @_persistence_op
    async def create_campaign(
        self, user_id: str, subject: str, body: str, emails: Sequence[str]
    ) -> Campaign:
        async with db.transaction() as conn:
            campaign = await conn.fetchrow(
                """
                INSERT INTO campaigns (user_id, subject, body, status)
                VALUES ($1, $2, $3, 'SENDING')
                RETURNING *
                """,
                user_id,
                subject,
                body,
            )
            recipients = await conn.fetch(
                """
                INSERT INTO campaign_recipients (campaign_id, position, email)
                SELECT $1, t.ord::int, t.email
                FROM unnest($2::text[]) WITH ORDINALITY AS t(email, ord)
                RETURNING *
                """,
                campaign["id"],
                list(emails),
            )

        recipients = sorted(recipients, key=lambda r: r["position"])
        logger.info(f"Created campaign {campaign['id']} with {len(recipients)} recipients")
        return _campaign_from_record(campaign, recipients)

    @_persistence_op
    async def mark_recipient_sent(self, recipient_id: str, sent_at: datetime) -> bool:
        result = await db.execute(
            """
            UPDATE campaign_recipients SET status = 'SENT', sent_at = $2
            WHERE id = $1 AND status = 'PENDING'
            """,
            _uuid(recipient_id),
            sent_at,
        )
        return result == "UPDATE 1"

    @_persistence_op
    async def mark_recipient_failed(self, recipient_id: str, error: str) -> bool:
        result = await db.execute(
            """
            UPDATE campaign_recipients SET status = 'FAILED', error = $2
            WHERE id = $1 AND status = 'PENDING'
            """,
            _uuid(recipient_id),
            error,
        )
        return result == "UPDATE 1"

    @_persistence_op
    async def finalize_campaign(
        self, campaign_id: str, status: CampaignStatus, sent_at: datetime
    ) -> Campaign:
        async with db.transaction() as conn:
            campaign = await conn.fetchrow(
                """
                UPDATE campaigns SET status = $2, sent_at = $3
                WHERE id = $1 AND status = 'SENDING'
                RETURNING *
                """,
                _uuid(campaign_id),
                status.value,
                sent_at,
            )
            if campaign is None:
                raise PersistenceFailed(detail=f"campaign {campaign_id} not in SENDING state")
            recipients = await conn.fetch(
                "SELECT * FROM campaign_recipients WHERE campaign_id = $1 ORDER BY position",
                campaign["id"],
            )
        return _campaign_from_record(campaign, recipients)

    @_persistence_op
    async def abort_campaign(self, campaign_id: str, error: str, ended_at: datetime) -> None:
        async with db.transaction() as conn:
            await conn.execute(
                """
                UPDATE campaign_recipients SET status = 'FAILED', error = $2
                WHERE campaign_id = $1 AND status = 'PENDING'
                """,
                _uuid(campaign_id),
                error,
            )
            await conn.execute(
                """
                UPDATE campaigns SET status = 'FAILED', sent_at = $2
                WHERE id = $1 AND status = 'SENDING'
                """,
                _uuid(campaign_id),
                ended_at,
            )

    @_persistence_op
    async def get_campaign(self, campaign_id: str, user_id: str) -> Optional[Campaign]:
        try:
            cid = uuid.UUID(str(campaign_id))
        except ValueError:
            return None

        async with db.transaction(isolation="repeatable_read", readonly=True) as conn:
            campaign = await conn.fetchrow(
                "SELECT * FROM campaigns WHERE id = $1 AND user_id = $2", cid, user_id
            )
            if campaign is None:
                return None
            recipients = await conn.fetch(
                "SELECT * FROM campaign_recipients WHERE campaign_id = $1 ORDER BY position",
                cid,
            )
        return _campaign_from_record(campaign, recipients)

    @_persistence_op
    async def create_presentation(self, user_id: str, topic: str) -> Presentation:
        record = await db.fetchrow(
            """
            INSERT INTO presentations (user_id, topic, status, content)
            VALUES ($1, $2, 'GENERATING', '{}'::jsonb)
            RETURNING *
            """,
            user_id,
            topic,
        )
        return _presentation_from_record(record)

    @_persistence_op
    async def complete_presentation(
        self, presentation_id: str, content: PresentationContent, pdf_url: str
    ) -> Presentation:
        record = await db.fetchrow(
            """
            UPDATE presentations
            SET content = $2::jsonb, pdf_url = $3, status = 'COMPLETED'
            WHERE id = $1
            RETURNING *
            """,
            _uuid(presentation_id),
            content.model_dump_json(),
            pdf_url,
        )
        if record is None:
            raise PersistenceFailed(detail=f"presentation {presentation_id} not found")
        return _presentation_from_record(record)

    @_persistence_op
    async def fail_presentation(self, presentation_id: str) -> None:
        await db.execute(
            "UPDATE presentations SET status = 'FAILED' WHERE id = $1 AND status = 'GENERATING'",
            _uuid(presentation_id),
        )

    @_persistence_op
    async def snapshot_for_user(self, user_id: str) -> UserSnapshot:
        # One read-only snapshot so the three lists are mutually consistent.
        async with db.transaction(isolation="repeatable_read", readonly=True) as conn:
            tasks = await conn.fetch(
                """
                SELECT * FROM tasks WHERE user_id = $1
                ORDER BY created_at DESC
                """,
                user_id,
            )
            campaigns = await conn.fetch(
                "SELECT * FROM campaigns WHERE user_id = $1 ORDER BY created_at DESC",
                user_id,
            )
            presentations = await conn.fetch(
                "SELECT * FROM presentations WHERE user_id = $1 ORDER BY created_at DESC",
                user_id,
            )

        return UserSnapshot(
            tasks=[_task_from_record(r) for r in tasks],
            campaigns=[_campaign_from_record(r) for r in campaigns],
            presentations=[_presentation_from_record(r) for r in presentations],
        )

    async def health_check(self) -> dict:
        return await db.health_check()

    async def close(self) -> None:
        await db.close_db_pool()
