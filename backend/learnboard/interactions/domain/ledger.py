"""Interaction ledger: upvotes and the author reputation counter.

Vote rows and the reputation counter always change in the same transaction.
The duplicate pre-check is optimistic; two identical requests racing past it
are separated by the store's unique key, and the loser surfaces as
`ConflictError` exactly like a request that failed the pre-check.
"""

from __future__ import annotations

import logging
from typing import Optional

from learnboard.interactions.domain.exceptions import (
    ConflictError,
    ForbiddenError,
    InteractionError,
    NotFoundError,
    SelfInteractionError,
)
from learnboard.interactions.domain.models import ContentItem, Target, Vote, VoteSummary
from learnboard.interactions.domain.store import InteractionSession, InteractionStore
from learnboard.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


def _require_live(item: Optional[ContentItem], target: Target) -> ContentItem:
    if item is None or item.is_deleted:
        raise NotFoundError(f"{target.kind.value}_not_found")
    return item


class InteractionLedger:
    """Records and removes votes, one per (voter, item)."""

    def __init__(self, store: InteractionStore) -> None:
        self._store = store

    async def add(self, voter_id: str, target: Target) -> Vote:
        try:
            async with self._store.transaction() as tx:
                item = _require_live(await tx.get_item(target), target)
                if item.author_id == voter_id:
                    raise SelfInteractionError("cannot_vote_own_content")
                if await tx.find_vote(voter_id, target) is not None:
                    raise ConflictError("already_voted")
                vote = await tx.insert_vote(voter_id, target)
                reputation = await tx.adjust_reputation(item.author_id, 1)
        except InteractionError as exc:
            obs_metrics.inc_interaction_reject("vote_add", exc.outcome.value)
            raise
        obs_metrics.inc_vote_created(target.kind.value)
        logger.info(
            "vote_created",
            extra={
                "vote_id": vote.id,
                "voter_id": voter_id,
                "target": target.kind.value,
                "target_id": target.id,
                "author_id": item.author_id,
                "reputation": reputation,
            },
        )
        return vote

    async def remove(self, voter_id: str, vote_id: int) -> Vote:
        try:
            async with self._store.transaction() as tx:
                vote = await tx.get_vote(vote_id)
                if vote is None:
                    raise NotFoundError("vote_not_found")
                if vote.voter_id != voter_id:
                    raise ForbiddenError("not_vote_owner")
                # Soft-deleted posts still own their votes, so no liveness check here.
                item = await tx.get_item(vote.target)
                if not await tx.delete_vote(vote_id):
                    raise NotFoundError("vote_not_found")
                reputation = None
                if item is not None:
                    reputation = await tx.adjust_reputation(item.author_id, -1)
        except InteractionError as exc:
            obs_metrics.inc_interaction_reject("vote_remove", exc.outcome.value)
            raise
        obs_metrics.inc_vote_removed(vote.target.kind.value)
        logger.info(
            "vote_removed",
            extra={
                "vote_id": vote_id,
                "voter_id": voter_id,
                "author_id": item.author_id if item is not None else None,
                "reputation": reputation,
            },
        )
        return vote

    async def count(self, target: Target) -> int:
        async with self._store.session() as session:
            await self._load_live(session, target)
            return await session.count_votes(target)

    async def has_voted(self, voter_id: Optional[str], target: Target) -> bool:
        if not voter_id:
            return False
        async with self._store.session() as session:
            await self._load_live(session, target)
            return await session.find_vote(voter_id, target) is not None

    async def summary(self, voter_id: Optional[str], target: Target) -> VoteSummary:
        """Count plus the caller's own vote id, if any, in one round trip."""
        async with self._store.session() as session:
            await self._load_live(session, target)
            count = await session.count_votes(target)
            own = await session.find_vote(voter_id, target) if voter_id else None
        return VoteSummary(
            target=target,
            count=count,
            has_voted=own is not None,
            user_vote_id=own.id if own is not None else None,
        )

    async def reputation(self, user_id: str) -> int:
        async with self._store.session() as session:
            user = await session.get_user(user_id)
        if user is None:
            raise NotFoundError("user_not_found")
        return user.reputation

    @staticmethod
    async def _load_live(session: InteractionSession, target: Target) -> ContentItem:
        return _require_live(await session.get_item(target), target)
