"""Admin moderation queue over submitted reports."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response

from learnboard.infra.auth import AuthenticatedUser, get_admin_user
from learnboard.interactions.api.rate_limits import RateBudget, rate_budget
from learnboard.interactions.api.reports import get_aggregator_dep
from learnboard.interactions.domain.reports import DEFAULT_PAGE_SIZE, ReportAggregator
from learnboard.interactions.schemas import dto

router = APIRouter(prefix="/api/admin/reports", tags=["interactions:admin"])


@router.get("", response_model=dto.AdminReportListResponse)
async def list_reports_endpoint(
	response: Response,
	limit: int = Query(default=DEFAULT_PAGE_SIZE),
	offset: int = Query(default=0),
	admin: AuthenticatedUser = Depends(get_admin_user),
	budget: RateBudget = Depends(rate_budget("admin")),
	aggregator: ReportAggregator = Depends(get_aggregator_dep),
) -> dto.AdminReportListResponse:
	page = await aggregator.list_reports(limit=limit, offset=offset)
	await budget.spend(response)
	return dto.AdminReportListResponse.from_page(page)


@router.get("/{report_id}", response_model=dto.AdminReportDetailResponse)
async def report_detail_endpoint(
	report_id: int,
	response: Response,
	admin: AuthenticatedUser = Depends(get_admin_user),
	budget: RateBudget = Depends(rate_budget("admin")),
	aggregator: ReportAggregator = Depends(get_aggregator_dep),
) -> dto.AdminReportDetailResponse:
	detail = await aggregator.get_report_detail(report_id)
	await budget.spend(response)
	return dto.AdminReportDetailResponse.from_detail(detail)


@router.post("/{report_id}/unsuppress", response_model=dto.AdminActionResponse)
async def unsuppress_endpoint(
	report_id: int,
	response: Response,
	admin: AuthenticatedUser = Depends(get_admin_user),
	budget: RateBudget = Depends(rate_budget("admin")),
	aggregator: ReportAggregator = Depends(get_aggregator_dep),
) -> dto.AdminActionResponse:
	target = await aggregator.unsuppress(report_id)
	await budget.spend(response)
	return dto.AdminActionResponse.for_target(target)


@router.post("/{report_id}/dismiss", response_model=dto.AdminActionResponse)
async def dismiss_endpoint(
	report_id: int,
	response: Response,
	admin: AuthenticatedUser = Depends(get_admin_user),
	budget: RateBudget = Depends(rate_budget("admin")),
	aggregator: ReportAggregator = Depends(get_aggregator_dep),
) -> dto.AdminActionResponse:
	result = await aggregator.dismiss(report_id)
	await budget.spend(response)
	return dto.AdminActionResponse.from_dismiss(result)
