"""Visibility decisions for suppressed and soft-deleted content.

`visible` answers the question for one item; `list_filter` produces the same
decision as a predicate that list queries push into storage.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from learnboard.infra.auth import AuthenticatedUser, Role
from learnboard.interactions.domain.models import ContentItem


def _is_admin(viewer: Optional[AuthenticatedUser]) -> bool:
    return viewer is not None and viewer.role is Role.ADMIN


def visible(viewer: Optional[AuthenticatedUser], item: ContentItem) -> bool:
    if item.deleted_at is not None:
        return False
    if _is_admin(viewer):
        return True
    if viewer is not None and viewer.id == item.author_id:
        return True
    return not item.suppressed


@dataclass(slots=True, frozen=True)
class ListFilter:
    """Predicate for listing content a viewer may see."""

    include_suppressed: bool = False
    author_id: Optional[str] = None
    # Suppressed items by this author are kept alongside the visible ones
    include_own_suppressed_for: Optional[str] = None

    def matches(self, item: ContentItem) -> bool:
        if item.deleted_at is not None:
            return False
        if self.author_id is not None and item.author_id != self.author_id:
            return False
        if self.include_suppressed or not item.suppressed:
            return True
        return self.include_own_suppressed_for is not None and item.author_id == self.include_own_suppressed_for

    def where_clause(self, alias: str, params: list[object], *, soft_delete: bool = True) -> str:
        """Render as SQL, appending bind values to `params`.

        `alias` must be a trusted table alias. Comments have no `deleted_at`
        column, so callers pass `soft_delete=False` for them.
        """
        clauses: list[str] = []
        if soft_delete:
            clauses.append(f"{alias}.deleted_at IS NULL")
        if self.author_id is not None:
            params.append(self.author_id)
            clauses.append(f"{alias}.author_id = ${len(params)}")
        if not self.include_suppressed:
            if self.include_own_suppressed_for is not None:
                params.append(self.include_own_suppressed_for)
                clauses.append(f"({alias}.suppressed = FALSE OR {alias}.author_id = ${len(params)})")
            else:
                clauses.append(f"{alias}.suppressed = FALSE")
        return " AND ".join(clauses) if clauses else "TRUE"


def list_filter(
    viewer: Optional[AuthenticatedUser],
    author_scope: Optional[str] = None,
    *,
    keep_own: bool = False,
) -> ListFilter:
    """Suppressed items are only listed for admins or for a viewer's own content.

    With `keep_own`, an unscoped listing still carries the viewer's own
    suppressed items, as a comment thread does.
    """
    own_scope = viewer is not None and author_scope is not None and author_scope == viewer.id
    include_suppressed = _is_admin(viewer) or own_scope
    own_for = viewer.id if keep_own and viewer is not None and not include_suppressed else None
    return ListFilter(
        include_suppressed=include_suppressed,
        author_id=author_scope,
        include_own_suppressed_for=own_for,
    )
