"""PostgreSQL-backed interaction store."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Sequence

import asyncpg

from learnboard.infra.auth import Role
from learnboard.interactions.domain.exceptions import ConflictError
from learnboard.interactions.domain.models import (
    ContentItem,
    Report,
    ReportReason,
    ReportView,
    Target,
    TargetKind,
    UserRecord,
    Vote,
)
from learnboard.interactions.domain.visibility import ListFilter

_POST_COLUMNS = "p.id, p.author_id, p.title, p.body, p.suppressed, p.deleted_at, p.created_at"
_COMMENT_COLUMNS = "c.id, c.post_id, c.author_id, c.body, c.suppressed, c.created_at"

_REPORT_VIEW_SELECT = """
SELECT
    r.id, r.reporter_id, r.post_id, r.comment_id, r.reason::text AS reason, r.detail, r.created_at,
    reporter.username AS reporter_username,
    author.username AS author_username,
    p.author_id AS post_author_id, p.title AS post_title, p.body AS post_body,
    p.suppressed AS post_suppressed, p.deleted_at AS post_deleted_at, p.created_at AS post_created_at,
    c.author_id AS comment_author_id, c.post_id AS comment_post_id, c.body AS comment_body,
    c.suppressed AS comment_suppressed, c.created_at AS comment_created_at,
    (
        SELECT COUNT(*) FROM reports r2
        WHERE r2.post_id IS NOT DISTINCT FROM r.post_id
          AND r2.comment_id IS NOT DISTINCT FROM r.comment_id
    ) AS total_reports
FROM reports r
LEFT JOIN users reporter ON reporter.id = r.reporter_id
LEFT JOIN posts p ON p.id = r.post_id
LEFT JOIN comments c ON c.id = r.comment_id
LEFT JOIN users author ON author.id = COALESCE(p.author_id, c.author_id)
"""


def _target_column(target: Target) -> str:
    return "post_id" if target.kind is TargetKind.POST else "comment_id"


def _post_from_record(record: asyncpg.Record) -> ContentItem:
    return ContentItem(
        kind=TargetKind.POST,
        id=int(record["id"]),
        author_id=str(record["author_id"]),
        suppressed=bool(record["suppressed"]),
        deleted_at=record["deleted_at"],
        created_at=record["created_at"],
        title=record["title"],
        body=record["body"] or "",
    )


def _comment_from_record(record: asyncpg.Record) -> ContentItem:
    return ContentItem(
        kind=TargetKind.COMMENT,
        id=int(record["id"]),
        author_id=str(record["author_id"]),
        suppressed=bool(record["suppressed"]),
        created_at=record["created_at"],
        post_id=int(record["post_id"]),
        body=record["body"] or "",
    )


def _vote_from_record(record: asyncpg.Record) -> Vote:
    return Vote(
        id=int(record["id"]),
        voter_id=str(record["voter_id"]),
        post_id=record["post_id"],
        comment_id=record["comment_id"],
        kind=record["kind"],
        created_at=record["created_at"],
    )


def _report_from_record(record: asyncpg.Record) -> Report:
    return Report(
        id=int(record["id"]),
        reporter_id=str(record["reporter_id"]),
        post_id=record["post_id"],
        comment_id=record["comment_id"],
        reason=ReportReason(record["reason"]),
        detail=record["detail"],
        created_at=record["created_at"],
    )


def _report_view_from_record(record: asyncpg.Record) -> ReportView:
    report = _report_from_record(record)
    item: Optional[ContentItem] = None
    if report.post_id is not None and record["post_author_id"] is not None:
        item = ContentItem(
            kind=TargetKind.POST,
            id=report.post_id,
            author_id=str(record["post_author_id"]),
            suppressed=bool(record["post_suppressed"]),
            deleted_at=record["post_deleted_at"],
            created_at=record["post_created_at"],
            title=record["post_title"],
            body=record["post_body"] or "",
        )
    elif report.comment_id is not None and record["comment_author_id"] is not None:
        item = ContentItem(
            kind=TargetKind.COMMENT,
            id=report.comment_id,
            author_id=str(record["comment_author_id"]),
            suppressed=bool(record["comment_suppressed"]),
            created_at=record["comment_created_at"],
            post_id=record["comment_post_id"],
            body=record["comment_body"] or "",
        )
    return ReportView(
        report=report,
        reporter_username=record["reporter_username"],
        item=item,
        item_author_username=record["author_username"],
        total_reports=int(record["total_reports"]),
    )


class PostgresInteractionSession:
    """Interaction queries bound to one asyncpg connection."""

    def __init__(self, conn: asyncpg.Connection) -> None:
        self.conn = conn

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        record = await self.conn.fetchrow(
            "SELECT id, username, role, reputation FROM users WHERE id = $1",
            user_id,
        )
        if record is None:
            return None
        return UserRecord(
            id=str(record["id"]),
            username=record["username"],
            role=Role.parse(record["role"]),
            reputation=int(record["reputation"]),
        )

    async def adjust_reputation(self, user_id: str, delta: int) -> int:
        value = await self.conn.fetchval(
            "UPDATE users SET reputation = reputation + $2 WHERE id = $1 RETURNING reputation",
            user_id,
            delta,
        )
        return int(value or 0)

    async def get_item(self, target: Target, *, lock: bool = False) -> Optional[ContentItem]:
        suffix = " FOR UPDATE" if lock else ""
        if target.kind is TargetKind.POST:
            record = await self.conn.fetchrow(
                f"SELECT {_POST_COLUMNS} FROM posts p WHERE p.id = $1{suffix}",
                target.id,
            )
            return _post_from_record(record) if record else None
        record = await self.conn.fetchrow(
            f"SELECT {_COMMENT_COLUMNS} FROM comments c WHERE c.id = $1{suffix}",
            target.id,
        )
        return _comment_from_record(record) if record else None

    async def list_posts(self, flt: ListFilter, *, limit: int, offset: int) -> Sequence[ContentItem]:
        params: list[object] = []
        where = flt.where_clause("p", params)
        params.extend([limit, offset])
        query = f"""
        SELECT {_POST_COLUMNS}
        FROM posts p
        WHERE {where}
        ORDER BY p.created_at DESC, p.id DESC
        LIMIT ${len(params) - 1} OFFSET ${len(params)}
        """
        rows = await self.conn.fetch(query, *params)
        return [_post_from_record(row) for row in rows]

    async def list_comments(
        self, post_id: int, flt: ListFilter, *, limit: int, offset: int
    ) -> Sequence[ContentItem]:
        params: list[object] = [post_id]
        where = flt.where_clause("c", params, soft_delete=False)
        params.extend([limit, offset])
        query = f"""
        SELECT {_COMMENT_COLUMNS}
        FROM comments c
        WHERE c.post_id = $1 AND {where}
        ORDER BY c.created_at ASC, c.id ASC
        LIMIT ${len(params) - 1} OFFSET ${len(params)}
        """
        rows = await self.conn.fetch(query, *params)
        return [_comment_from_record(row) for row in rows]

    async def set_suppressed(self, target: Target, suppressed: bool) -> None:
        table = "posts" if target.kind is TargetKind.POST else "comments"
        await self.conn.execute(f"UPDATE {table} SET suppressed = $2 WHERE id = $1", target.id, suppressed)

    async def find_vote(self, voter_id: str, target: Target) -> Optional[Vote]:
        column = _target_column(target)
        record = await self.conn.fetchrow(
            f"""
            SELECT id, voter_id, post_id, comment_id, kind, created_at
            FROM votes
            WHERE voter_id = $1 AND {column} = $2
            """,
            voter_id,
            target.id,
        )
        return _vote_from_record(record) if record else None

    async def get_vote(self, vote_id: int) -> Optional[Vote]:
        record = await self.conn.fetchrow(
            "SELECT id, voter_id, post_id, comment_id, kind, created_at FROM votes WHERE id = $1",
            vote_id,
        )
        return _vote_from_record(record) if record else None

    async def insert_vote(self, voter_id: str, target: Target) -> Vote:
        try:
            record = await self.conn.fetchrow(
                """
                INSERT INTO votes (voter_id, post_id, comment_id, kind)
                VALUES ($1, $2, $3, 'upvote')
                RETURNING id, voter_id, post_id, comment_id, kind, created_at
                """,
                voter_id,
                target.post_id,
                target.comment_id,
            )
        except asyncpg.UniqueViolationError as exc:
            raise ConflictError("already_voted") from exc
        assert record is not None
        return _vote_from_record(record)

    async def delete_vote(self, vote_id: int) -> bool:
        deleted = await self.conn.fetchval("DELETE FROM votes WHERE id = $1 RETURNING id", vote_id)
        return deleted is not None

    async def count_votes(self, target: Target) -> int:
        column = _target_column(target)
        value = await self.conn.fetchval(f"SELECT COUNT(*) FROM votes WHERE {column} = $1", target.id)
        return int(value or 0)

    async def insert_report(
        self, reporter_id: str, target: Target, reason: ReportReason, detail: Optional[str]
    ) -> Report:
        try:
            record = await self.conn.fetchrow(
                """
                INSERT INTO reports (reporter_id, post_id, comment_id, reason, detail)
                VALUES ($1, $2, $3, $4::report_reason, $5)
                RETURNING id, reporter_id, post_id, comment_id, reason::text AS reason, detail, created_at
                """,
                reporter_id,
                target.post_id,
                target.comment_id,
                reason.value,
                detail,
            )
        except asyncpg.UniqueViolationError as exc:
            raise ConflictError("already_reported") from exc
        assert record is not None
        return _report_from_record(record)

    async def get_report(self, report_id: int) -> Optional[Report]:
        record = await self.conn.fetchrow(
            """
            SELECT id, reporter_id, post_id, comment_id, reason::text AS reason, detail, created_at
            FROM reports
            WHERE id = $1
            """,
            report_id,
        )
        return _report_from_record(record) if record else None

    async def count_reports(self, target: Target) -> int:
        column = _target_column(target)
        value = await self.conn.fetchval(f"SELECT COUNT(*) FROM reports WHERE {column} = $1", target.id)
        return int(value or 0)

    async def list_reports(self, *, limit: int, offset: int) -> Sequence[ReportView]:
        rows = await self.conn.fetch(
            _REPORT_VIEW_SELECT + " ORDER BY r.created_at DESC, r.id DESC LIMIT $1 OFFSET $2",
            limit,
            offset,
        )
        return [_report_view_from_record(row) for row in rows]

    async def list_reports_for_target(self, target: Target) -> Sequence[ReportView]:
        column = _target_column(target)
        rows = await self.conn.fetch(
            _REPORT_VIEW_SELECT + f" WHERE r.{column} = $1 ORDER BY r.created_at DESC, r.id DESC",
            target.id,
        )
        return [_report_view_from_record(row) for row in rows]

    async def delete_reports(self, target: Target) -> int:
        column = _target_column(target)
        rows = await self.conn.fetch(f"DELETE FROM reports WHERE {column} = $1 RETURNING id", target.id)
        return len(rows)


class PostgresInteractionStore:
    """Hands out sessions over pooled connections."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    @asynccontextmanager
    async def session(self) -> AsyncIterator[PostgresInteractionSession]:
        async with self.pool.acquire() as conn:
            yield PostgresInteractionSession(conn)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[PostgresInteractionSession]:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield PostgresInteractionSession(conn)
