"""Domain records for votes, reports, and the content they point at."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Sequence

from learnboard.infra.auth import Role
from learnboard.interactions.domain.exceptions import InvalidReasonError, InvalidTargetError

SUPPRESSION_THRESHOLD = 5


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


class TargetKind(str, Enum):
    POST = "post"
    COMMENT = "comment"


@dataclass(slots=True, frozen=True)
class Target:
    """A reference to exactly one post or one comment."""

    kind: TargetKind
    id: int

    @classmethod
    def from_ids(cls, post_id: Optional[int], comment_id: Optional[int]) -> "Target":
        if (post_id is None) == (comment_id is None):
            raise InvalidTargetError()
        if post_id is not None:
            kind, raw = TargetKind.POST, post_id
        else:
            kind, raw = TargetKind.COMMENT, comment_id
        if isinstance(raw, bool) or not isinstance(raw, int) or raw <= 0:
            raise InvalidTargetError("invalid_target_id")
        return cls(kind=kind, id=raw)

    @classmethod
    def post(cls, post_id: int) -> "Target":
        return cls.from_ids(post_id, None)

    @classmethod
    def comment(cls, comment_id: int) -> "Target":
        return cls.from_ids(None, comment_id)

    @property
    def post_id(self) -> Optional[int]:
        return self.id if self.kind is TargetKind.POST else None

    @property
    def comment_id(self) -> Optional[int]:
        return self.id if self.kind is TargetKind.COMMENT else None


class ReportReason(str, Enum):
    SPAM = "spam"
    INAPPROPRIATE = "inappropriate"
    HARASSMENT = "harassment"
    MISINFORMATION = "misinformation"
    OFF_TOPIC = "off-topic"
    OTHER = "other"

    @classmethod
    def parse(cls, value: object) -> "ReportReason":
        """Match case-insensitively; `off_topic` and `OFF_TOPIC` are accepted."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise InvalidReasonError()
        text = value.strip().lower().replace("_", "-")
        for reason in cls:
            if reason.value == text:
                return reason
        raise InvalidReasonError()


@dataclass(slots=True)
class UserRecord:
    id: str
    username: str
    role: Role = Role.USER
    reputation: int = 0


@dataclass(slots=True)
class ContentItem:
    """A post or comment as seen by the engine.

    Only posts are soft-deleted; comments always carry `deleted_at=None`.
    """

    kind: TargetKind
    id: int
    author_id: str
    suppressed: bool = False
    deleted_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=now_utc)
    post_id: Optional[int] = None
    title: Optional[str] = None
    body: str = ""

    @property
    def target(self) -> Target:
        return Target(kind=self.kind, id=self.id)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


@dataclass(slots=True)
class Vote:
    id: int
    voter_id: str
    post_id: Optional[int]
    comment_id: Optional[int]
    kind: str = "upvote"
    created_at: datetime = field(default_factory=now_utc)

    @property
    def target(self) -> Target:
        return Target.from_ids(self.post_id, self.comment_id)


@dataclass(slots=True)
class VoteSummary:
    target: Target
    count: int
    has_voted: bool
    user_vote_id: Optional[int] = None


@dataclass(slots=True)
class Report:
    id: int
    reporter_id: str
    post_id: Optional[int]
    comment_id: Optional[int]
    reason: ReportReason
    detail: Optional[str] = None
    created_at: datetime = field(default_factory=now_utc)

    @property
    def target(self) -> Target:
        return Target.from_ids(self.post_id, self.comment_id)


@dataclass(slots=True)
class ReportReceipt:
    """Result of a recorded report, including the threshold decision."""

    report: Report
    total_reports: int
    suppressed: bool
    newly_suppressed: bool = False


@dataclass(slots=True)
class ReportView:
    """Report joined with reporter and content context for admin listings."""

    report: Report
    reporter_username: Optional[str]
    item: Optional[ContentItem]
    item_author_username: Optional[str]
    total_reports: int


@dataclass(slots=True)
class ReportPage:
    items: Sequence[ReportView]
    limit: int
    offset: int
    has_more: bool


@dataclass(slots=True)
class ReportDetail:
    view: ReportView
    all_reports: Sequence[ReportView]

    @property
    def total_reports(self) -> int:
        return len(self.all_reports)


@dataclass(slots=True)
class DismissResult:
    target: Target
    deleted_reports: int
