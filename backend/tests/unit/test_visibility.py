from __future__ import annotations

import pytest

from learnboard.infra.auth import AuthenticatedUser, Role
from learnboard.interactions.domain.models import ContentItem, TargetKind, now_utc
from learnboard.interactions.domain.visibility import ListFilter, list_filter, visible

AUTHOR = AuthenticatedUser(id="author")
STRANGER = AuthenticatedUser(id="stranger")
ADMIN = AuthenticatedUser(id="root", role=Role.ADMIN)
BOT = AuthenticatedUser(id="crawler", role=Role.BOT)


def _post(*, suppressed: bool = False, deleted: bool = False) -> ContentItem:
    return ContentItem(
        kind=TargetKind.POST,
        id=1,
        author_id="author",
        suppressed=suppressed,
        deleted_at=now_utc() if deleted else None,
    )


@pytest.mark.parametrize(
    "viewer, suppressed, deleted, expected",
    [
        (None, False, False, True),
        (None, True, False, False),
        (None, True, True, False),
        (STRANGER, True, False, False),
        (BOT, True, False, False),
        (AUTHOR, True, False, True),
        (AUTHOR, False, True, False),
        (ADMIN, True, False, True),
        (ADMIN, True, True, False),
        (ADMIN, False, True, False),
    ],
)
def test_visibility_matrix(viewer, suppressed, deleted, expected):
    assert visible(viewer, _post(suppressed=suppressed, deleted=deleted)) is expected


def test_list_filter_hides_suppressed_from_other_viewers():
    assert list_filter(None).include_suppressed is False
    assert list_filter(STRANGER).include_suppressed is False
    assert list_filter(STRANGER, author_scope="author").include_suppressed is False


def test_list_filter_shows_suppressed_to_admins_and_own_scope():
    assert list_filter(ADMIN).include_suppressed is True
    own = list_filter(AUTHOR, author_scope="author")
    assert own.include_suppressed is True
    assert own.author_id == "author"


def test_list_filter_matches_agrees_with_visible_for_lists():
    flt = list_filter(None)
    assert flt.matches(_post()) is True
    assert flt.matches(_post(suppressed=True)) is False
    assert list_filter(ADMIN).matches(_post(deleted=True)) is False


def test_where_clause_renders_bind_parameters():
    params: list[object] = ["existing"]
    clause = ListFilter(include_suppressed=False, author_id="author").where_clause("p", params)

    assert clause == "p.deleted_at IS NULL AND p.author_id = $2 AND p.suppressed = FALSE"
    assert params == ["existing", "author"]


def test_where_clause_for_comments_skips_soft_delete():
    params: list[object] = []
    assert ListFilter(include_suppressed=True).where_clause("c", params, soft_delete=False) == "TRUE"
    assert params == []


def test_keep_own_lists_the_viewers_suppressed_items_only():
    own_thread = list_filter(AUTHOR, keep_own=True)
    other_thread = list_filter(STRANGER, keep_own=True)

    assert own_thread.include_suppressed is False
    assert own_thread.matches(_post(suppressed=True)) is True
    assert own_thread.matches(_post(suppressed=True, deleted=True)) is False
    assert other_thread.matches(_post(suppressed=True)) is False
    assert list_filter(None, keep_own=True).include_own_suppressed_for is None
    assert list_filter(ADMIN, keep_own=True).include_own_suppressed_for is None


def test_where_clause_keeps_own_suppressed_in_one_predicate():
    params: list[object] = [7]
    clause = list_filter(AUTHOR, keep_own=True).where_clause("c", params, soft_delete=False)

    assert clause == "(c.suppressed = FALSE OR c.author_id = $2)"
    assert params == [7, "author"]
