"""In-memory interaction store used by tests and single-process development."""

from __future__ import annotations

import asyncio
import copy
from contextlib import asynccontextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import AsyncIterator, Optional, Sequence

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
    now_utc,
)
from learnboard.interactions.domain.visibility import ListFilter


@dataclass
class _State:
    users: dict[str, UserRecord] = field(default_factory=dict)
    items: dict[Target, ContentItem] = field(default_factory=dict)
    votes: dict[int, Vote] = field(default_factory=dict)
    reports: dict[int, Report] = field(default_factory=dict)
    vote_keys: dict[tuple[str, Target], int] = field(default_factory=dict)
    report_keys: dict[tuple[str, Target], int] = field(default_factory=dict)
    next_post_id: int = 1
    next_comment_id: int = 1
    next_vote_id: int = 1
    next_report_id: int = 1


class InMemoryInteractionSession:
    def __init__(self, state: _State) -> None:
        self._state = state

    # users

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        user = self._state.users.get(user_id)
        return replace(user) if user is not None else None

    async def adjust_reputation(self, user_id: str, delta: int) -> int:
        user = self._state.users.get(user_id)
        if user is None:
            user = self._state.users[user_id] = UserRecord(id=user_id, username=user_id)
        user.reputation += delta
        return user.reputation

    # content

    async def get_item(self, target: Target, *, lock: bool = False) -> Optional[ContentItem]:
        item = self._state.items.get(target)
        return replace(item) if item is not None else None

    async def list_posts(self, flt: ListFilter, *, limit: int, offset: int) -> Sequence[ContentItem]:
        posts = [
            item
            for item in self._state.items.values()
            if item.kind is TargetKind.POST and flt.matches(item)
        ]
        posts.sort(key=lambda item: (item.created_at, item.id), reverse=True)
        return [replace(item) for item in posts[offset : offset + limit]]

    async def list_comments(
        self, post_id: int, flt: ListFilter, *, limit: int, offset: int
    ) -> Sequence[ContentItem]:
        comments = [
            item
            for item in self._state.items.values()
            if item.kind is TargetKind.COMMENT and item.post_id == post_id and flt.matches(item)
        ]
        comments.sort(key=lambda item: (item.created_at, item.id))
        return [replace(item) for item in comments[offset : offset + limit]]

    async def set_suppressed(self, target: Target, suppressed: bool) -> None:
        item = self._state.items.get(target)
        if item is not None:
            item.suppressed = suppressed

    # votes

    async def find_vote(self, voter_id: str, target: Target) -> Optional[Vote]:
        vote_id = self._state.vote_keys.get((voter_id, target))
        return await self.get_vote(vote_id) if vote_id is not None else None

    async def get_vote(self, vote_id: int) -> Optional[Vote]:
        vote = self._state.votes.get(vote_id)
        return replace(vote) if vote is not None else None

    async def insert_vote(self, voter_id: str, target: Target) -> Vote:
        key = (voter_id, target)
        if key in self._state.vote_keys:
            raise ConflictError("already_voted")
        vote = Vote(
            id=self._state.next_vote_id,
            voter_id=voter_id,
            post_id=target.post_id,
            comment_id=target.comment_id,
        )
        self._state.next_vote_id += 1
        self._state.votes[vote.id] = vote
        self._state.vote_keys[key] = vote.id
        return replace(vote)

    async def delete_vote(self, vote_id: int) -> bool:
        vote = self._state.votes.pop(vote_id, None)
        if vote is None:
            return False
        self._state.vote_keys.pop((vote.voter_id, vote.target), None)
        return True

    async def count_votes(self, target: Target) -> int:
        return sum(1 for vote in self._state.votes.values() if vote.target == target)

    # reports

    async def insert_report(
        self, reporter_id: str, target: Target, reason: ReportReason, detail: Optional[str]
    ) -> Report:
        key = (reporter_id, target)
        if key in self._state.report_keys:
            raise ConflictError("already_reported")
        report = Report(
            id=self._state.next_report_id,
            reporter_id=reporter_id,
            post_id=target.post_id,
            comment_id=target.comment_id,
            reason=reason,
            detail=detail,
        )
        self._state.next_report_id += 1
        self._state.reports[report.id] = report
        self._state.report_keys[key] = report.id
        return replace(report)

    async def get_report(self, report_id: int) -> Optional[Report]:
        report = self._state.reports.get(report_id)
        return replace(report) if report is not None else None

    async def count_reports(self, target: Target) -> int:
        return sum(1 for report in self._state.reports.values() if report.target == target)

    async def list_reports(self, *, limit: int, offset: int) -> Sequence[ReportView]:
        ordered = sorted(
            self._state.reports.values(),
            key=lambda report: (report.created_at, report.id),
            reverse=True,
        )
        return [await self._view(report) for report in ordered[offset : offset + limit]]

    async def list_reports_for_target(self, target: Target) -> Sequence[ReportView]:
        ordered = sorted(
            (report for report in self._state.reports.values() if report.target == target),
            key=lambda report: (report.created_at, report.id),
            reverse=True,
        )
        return [await self._view(report) for report in ordered]

    async def delete_reports(self, target: Target) -> int:
        doomed = [report for report in self._state.reports.values() if report.target == target]
        for report in doomed:
            del self._state.reports[report.id]
            self._state.report_keys.pop((report.reporter_id, target), None)
        return len(doomed)

    async def _view(self, report: Report) -> ReportView:
        target = report.target
        item = await self.get_item(target)
        reporter = self._state.users.get(report.reporter_id)
        author = self._state.users.get(item.author_id) if item is not None else None
        return ReportView(
            report=replace(report),
            reporter_username=reporter.username if reporter else None,
            item=item,
            item_author_username=author.username if author else None,
            total_reports=await self.count_reports(target),
        )


class InMemoryInteractionStore:
    """Reference store; transactions run one at a time and roll back on error."""

    def __init__(self) -> None:
        self._state = _State()
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[InMemoryInteractionSession]:
        yield InMemoryInteractionSession(self._state)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[InMemoryInteractionSession]:
        async with self._lock:
            snapshot = copy.deepcopy(self._state)
            try:
                yield InMemoryInteractionSession(self._state)
            except BaseException:
                self._restore(snapshot)
                raise

    def _restore(self, snapshot: _State) -> None:
        # Sessions hold a reference to the state object, so restore in place.
        for name in _State.__dataclass_fields__:
            setattr(self._state, name, getattr(snapshot, name))

    # seeding helpers

    def add_user(self, user_id: str, *, username: Optional[str] = None, role: Role = Role.USER) -> UserRecord:
        user = UserRecord(id=user_id, username=username or user_id, role=role)
        self._state.users[user_id] = user
        return user

    def add_post(
        self,
        author_id: str,
        *,
        title: str = "untitled",
        body: str = "",
        suppressed: bool = False,
        created_at: Optional[datetime] = None,
    ) -> ContentItem:
        self._ensure_user(author_id)
        post = ContentItem(
            kind=TargetKind.POST,
            id=self._state.next_post_id,
            author_id=author_id,
            suppressed=suppressed,
            created_at=created_at or now_utc(),
            title=title,
            body=body,
        )
        self._state.next_post_id += 1
        self._state.items[post.target] = post
        return post

    def add_comment(
        self,
        post_id: int,
        author_id: str,
        *,
        body: str = "",
        suppressed: bool = False,
        created_at: Optional[datetime] = None,
    ) -> ContentItem:
        if Target.post(post_id) not in self._state.items:
            raise KeyError(f"unknown post {post_id}")
        self._ensure_user(author_id)
        comment = ContentItem(
            kind=TargetKind.COMMENT,
            id=self._state.next_comment_id,
            author_id=author_id,
            suppressed=suppressed,
            created_at=created_at or now_utc(),
            post_id=post_id,
            body=body,
        )
        self._state.next_comment_id += 1
        self._state.items[comment.target] = comment
        return comment

    def soft_delete_post(self, post_id: int) -> None:
        self._state.items[Target.post(post_id)].deleted_at = now_utc()

    def item(self, target: Target) -> Optional[ContentItem]:
        return self._state.items.get(target)

    def user(self, user_id: str) -> Optional[UserRecord]:
        return self._state.users.get(user_id)

    def _ensure_user(self, user_id: str) -> None:
        if user_id not in self._state.users:
            self.add_user(user_id)
