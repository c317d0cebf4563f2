"""Abuse report submission."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from learnboard.infra.auth import AuthenticatedUser, get_current_user
from learnboard.interactions.api.rate_limits import RateBudget, rate_budget
from learnboard.interactions.domain.container import get_aggregator
from learnboard.interactions.domain.models import Target
from learnboard.interactions.domain.reports import ReportAggregator
from learnboard.interactions.schemas import dto

router = APIRouter(prefix="/api/reports", tags=["interactions:reports"])


def get_aggregator_dep() -> ReportAggregator:
	return get_aggregator()


@router.post("", response_model=dto.ReportCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_report_endpoint(
	payload: dto.ReportRequest,
	response: Response,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	budget: RateBudget = Depends(rate_budget("report")),
	aggregator: ReportAggregator = Depends(get_aggregator_dep),
) -> dto.ReportCreatedResponse:
	target = Target.from_ids(payload.post_id, payload.comment_id)
	receipt = await aggregator.report(auth_user.id, target, payload.reason, payload.detail)
	await budget.spend(response)
	return dto.ReportCreatedResponse.from_receipt(receipt)
