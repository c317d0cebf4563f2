"""Vote endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Response, status

from learnboard.infra.auth import AuthenticatedUser, get_current_user, get_optional_user
from learnboard.interactions.api.rate_limits import RateBudget, rate_budget
from learnboard.interactions.domain.container import get_ledger
from learnboard.interactions.domain.ledger import InteractionLedger
from learnboard.interactions.domain.models import Target
from learnboard.interactions.schemas import dto

router = APIRouter(prefix="/api/votes", tags=["interactions:votes"])


def get_ledger_dep() -> InteractionLedger:
	return get_ledger()


@router.post("", response_model=dto.VoteCreatedResponse, status_code=status.HTTP_201_CREATED)
async def add_vote_endpoint(
	payload: dto.VoteRequest,
	response: Response,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	budget: RateBudget = Depends(rate_budget("vote")),
	ledger: InteractionLedger = Depends(get_ledger_dep),
) -> dto.VoteCreatedResponse:
	target = Target.from_ids(payload.post_id, payload.comment_id)
	vote = await ledger.add(auth_user.id, target)
	await budget.spend(response)
	return dto.VoteCreatedResponse(vote=dto.VoteResponse.from_vote(vote))


@router.delete("/{vote_id}", response_model=dto.VoteRemovedResponse)
async def remove_vote_endpoint(
	vote_id: int,
	response: Response,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	budget: RateBudget = Depends(rate_budget("vote")),
	ledger: InteractionLedger = Depends(get_ledger_dep),
) -> dto.VoteRemovedResponse:
	vote = await ledger.remove(auth_user.id, vote_id)
	await budget.spend(response)
	return dto.VoteRemovedResponse(vote_id=vote.id)


@router.get("/posts/{post_id}", response_model=dto.VoteSummaryResponse)
async def post_votes_endpoint(
	post_id: int,
	viewer: Optional[AuthenticatedUser] = Depends(get_optional_user),
	ledger: InteractionLedger = Depends(get_ledger_dep),
) -> dto.VoteSummaryResponse:
	summary = await ledger.summary(viewer.id if viewer else None, Target.post(post_id))
	return dto.VoteSummaryResponse.from_summary(summary)


@router.get("/comments/{comment_id}", response_model=dto.VoteSummaryResponse)
async def comment_votes_endpoint(
	comment_id: int,
	viewer: Optional[AuthenticatedUser] = Depends(get_optional_user),
	ledger: InteractionLedger = Depends(get_ledger_dep),
) -> dto.VoteSummaryResponse:
	summary = await ledger.summary(viewer.id if viewer else None, Target.comment(comment_id))
	return dto.VoteSummaryResponse.from_summary(summary)
