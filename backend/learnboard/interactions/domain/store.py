"""Storage contracts for the interaction engine.

A session is a unit of work bound to one connection. Sessions obtained from
`InteractionStore.transaction()` commit everything on a clean exit and roll
everything back when an exception escapes. Unique keys are enforced by the
store itself: `insert_vote` and `insert_report` raise `ConflictError` on a
duplicate, whatever the caller checked beforehand.
"""

from __future__ import annotations

from typing import AsyncContextManager, Optional, Protocol, Sequence

from learnboard.interactions.domain.models import (
    ContentItem,
    Report,
    ReportReason,
    ReportView,
    Target,
    UserRecord,
    Vote,
)
from learnboard.interactions.domain.visibility import ListFilter


class InteractionSession(Protocol):
    # --- users ------------------------------------------------------------

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        ...

    async def adjust_reputation(self, user_id: str, delta: int) -> int:
        """Apply `delta` to the counter and return the new value."""
        ...

    # --- content ----------------------------------------------------------

    async def get_item(self, target: Target, *, lock: bool = False) -> Optional[ContentItem]:
        """Return the item including soft-deleted posts.

        With `lock=True` the item row stays locked until the transaction ends.
        """
        ...

    async def list_posts(self, flt: ListFilter, *, limit: int, offset: int) -> Sequence[ContentItem]:
        ...

    async def list_comments(
        self, post_id: int, flt: ListFilter, *, limit: int, offset: int
    ) -> Sequence[ContentItem]:
        ...

    async def set_suppressed(self, target: Target, suppressed: bool) -> None:
        ...

    # --- votes ------------------------------------------------------------

    async def find_vote(self, voter_id: str, target: Target) -> Optional[Vote]:
        ...

    async def get_vote(self, vote_id: int) -> Optional[Vote]:
        ...

    async def insert_vote(self, voter_id: str, target: Target) -> Vote:
        ...

    async def delete_vote(self, vote_id: int) -> bool:
        ...

    async def count_votes(self, target: Target) -> int:
        ...

    # --- reports ----------------------------------------------------------

    async def insert_report(
        self, reporter_id: str, target: Target, reason: ReportReason, detail: Optional[str]
    ) -> Report:
        ...

    async def get_report(self, report_id: int) -> Optional[Report]:
        ...

    async def count_reports(self, target: Target) -> int:
        ...

    async def list_reports(self, *, limit: int, offset: int) -> Sequence[ReportView]:
        """Newest first, each with its item's live report total."""
        ...

    async def list_reports_for_target(self, target: Target) -> Sequence[ReportView]:
        ...

    async def delete_reports(self, target: Target) -> int:
        ...


class InteractionStore(Protocol):
    def session(self) -> AsyncContextManager[InteractionSession]:
        """Connection for reads; each statement commits on its own."""
        ...

    def transaction(self) -> AsyncContextManager[InteractionSession]:
        ...
