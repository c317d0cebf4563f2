"""Read paths for posts and comments that honour moderation visibility."""

from __future__ import annotations

from typing import Optional, Sequence

from learnboard.infra.auth import AuthenticatedUser
from learnboard.interactions.domain.exceptions import NotFoundError
from learnboard.interactions.domain.models import ContentItem, Target
from learnboard.interactions.domain.store import InteractionStore
from learnboard.interactions.domain.visibility import list_filter, visible

MAX_PAGE_SIZE = 100


class ContentReader:
    def __init__(self, store: InteractionStore) -> None:
        self._store = store

    async def get_post(self, viewer: Optional[AuthenticatedUser], post_id: int) -> ContentItem:
        async with self._store.session() as session:
            post = await session.get_item(Target.post(post_id))
        if post is None or not visible(viewer, post):
            raise NotFoundError("post_not_found")
        return post

    async def list_posts(
        self,
        viewer: Optional[AuthenticatedUser],
        *,
        author_id: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Sequence[ContentItem]:
        flt = list_filter(viewer, author_scope=author_id)
        async with self._store.session() as session:
            return await session.list_posts(
                flt,
                limit=max(1, min(limit, MAX_PAGE_SIZE)),
                offset=max(0, offset),
            )

    async def list_comments(
        self,
        viewer: Optional[AuthenticatedUser],
        post_id: int,
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[ContentItem]:
        """Comments of a post the viewer can see; a hidden post yields NotFound."""
        await self.get_post(viewer, post_id)
        # The viewer's own suppressed comments stay visible to them in-thread.
        flt = list_filter(viewer, keep_own=True)
        async with self._store.session() as session:
            return await session.list_comments(
                post_id,
                flt,
                limit=max(1, min(limit, MAX_PAGE_SIZE)),
                offset=max(0, offset),
            )

    async def get_comment(self, viewer: Optional[AuthenticatedUser], comment_id: int) -> ContentItem:
        async with self._store.session() as session:
            comment = await session.get_item(Target.comment(comment_id))
            post = await session.get_item(Target.post(comment.post_id)) if comment and comment.post_id else None
        if comment is None or post is None or not visible(viewer, post) or not visible(viewer, comment):
            raise NotFoundError("comment_not_found")
        return comment
