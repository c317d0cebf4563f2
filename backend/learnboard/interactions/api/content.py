"""Read paths for posts, comments and reputation, filtered by visibility."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from learnboard.infra.auth import AuthenticatedUser, get_optional_user
from learnboard.interactions.api.votes import get_ledger_dep
from learnboard.interactions.domain.container import get_content_reader
from learnboard.interactions.domain.content import ContentReader
from learnboard.interactions.domain.ledger import InteractionLedger
from learnboard.interactions.schemas import dto

router = APIRouter(prefix="/api", tags=["interactions:content"])


def get_content_reader_dep() -> ContentReader:
	return get_content_reader()


@router.get("/posts", response_model=dto.ContentListResponse)
async def list_posts_endpoint(
	author_id: Optional[str] = Query(default=None),
	limit: int = Query(default=20, ge=1, le=100),
	offset: int = Query(default=0, ge=0),
	viewer: Optional[AuthenticatedUser] = Depends(get_optional_user),
	reader: ContentReader = Depends(get_content_reader_dep),
) -> dto.ContentListResponse:
	items = await reader.list_posts(viewer, author_id=author_id, limit=limit, offset=offset)
	return dto.ContentListResponse(
		items=[dto.ContentResponse.from_item(item) for item in items],
		limit=limit,
		offset=offset,
	)


@router.get("/posts/{post_id}", response_model=dto.ContentResponse)
async def get_post_endpoint(
	post_id: int,
	viewer: Optional[AuthenticatedUser] = Depends(get_optional_user),
	reader: ContentReader = Depends(get_content_reader_dep),
) -> dto.ContentResponse:
	return dto.ContentResponse.from_item(await reader.get_post(viewer, post_id))


@router.get("/posts/{post_id}/comments", response_model=dto.ContentListResponse)
async def list_comments_endpoint(
	post_id: int,
	limit: int = Query(default=50, ge=1, le=100),
	offset: int = Query(default=0, ge=0),
	viewer: Optional[AuthenticatedUser] = Depends(get_optional_user),
	reader: ContentReader = Depends(get_content_reader_dep),
) -> dto.ContentListResponse:
	items = await reader.list_comments(viewer, post_id, limit=limit, offset=offset)
	return dto.ContentListResponse(
		items=[dto.ContentResponse.from_item(item) for item in items],
		limit=limit,
		offset=offset,
	)


@router.get("/comments/{comment_id}", response_model=dto.ContentResponse)
async def get_comment_endpoint(
	comment_id: int,
	viewer: Optional[AuthenticatedUser] = Depends(get_optional_user),
	reader: ContentReader = Depends(get_content_reader_dep),
) -> dto.ContentResponse:
	return dto.ContentResponse.from_item(await reader.get_comment(viewer, comment_id))


@router.get("/users/{user_id}/reputation", response_model=dto.ReputationResponse)
async def reputation_endpoint(
	user_id: str,
	ledger: InteractionLedger = Depends(get_ledger_dep),
) -> dto.ReputationResponse:
	return dto.ReputationResponse(user_id=user_id, reputation=await ledger.reputation(user_id))
