"""Pydantic schemas for the interaction API."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from learnboard.interactions.domain.models import (
	ContentItem,
	DismissResult,
	Report,
	ReportDetail,
	ReportPage,
	ReportReceipt,
	ReportView,
	Target,
	Vote,
	VoteSummary,
)


class TargetRequest(BaseModel):
	"""Exactly one of the two ids must be set; the engine checks the shape."""

	post_id: Optional[int] = None
	comment_id: Optional[int] = None


class VoteRequest(TargetRequest):
	pass


class ReportRequest(TargetRequest):
	reason: str = Field(..., min_length=1, max_length=32)
	detail: Optional[str] = Field(default=None, max_length=1000)


class VoteResponse(BaseModel):
	id: int
	voter_id: str
	post_id: Optional[int] = None
	comment_id: Optional[int] = None
	kind: str = "upvote"
	created_at: datetime

	@classmethod
	def from_vote(cls, vote: Vote) -> "VoteResponse":
		return cls(
			id=vote.id,
			voter_id=vote.voter_id,
			post_id=vote.post_id,
			comment_id=vote.comment_id,
			kind=vote.kind,
			created_at=vote.created_at,
		)


class VoteCreatedResponse(BaseModel):
	outcome: Literal["created"] = "created"
	vote: VoteResponse


class VoteRemovedResponse(BaseModel):
	outcome: Literal["removed"] = "removed"
	vote_id: int


class VoteSummaryResponse(BaseModel):
	target: str
	target_id: int
	count: int
	has_voted: bool
	user_vote_id: Optional[int] = None

	@classmethod
	def from_summary(cls, summary: VoteSummary) -> "VoteSummaryResponse":
		return cls(
			target=summary.target.kind.value,
			target_id=summary.target.id,
			count=summary.count,
			has_voted=summary.has_voted,
			user_vote_id=summary.user_vote_id,
		)


class ReportResponse(BaseModel):
	id: int
	reporter_id: str
	post_id: Optional[int] = None
	comment_id: Optional[int] = None
	reason: str
	detail: Optional[str] = None
	created_at: datetime

	@classmethod
	def from_report(cls, report: Report) -> "ReportResponse":
		return cls(
			id=report.id,
			reporter_id=report.reporter_id,
			post_id=report.post_id,
			comment_id=report.comment_id,
			reason=report.reason.value,
			detail=report.detail,
			created_at=report.created_at,
		)


class ReportCreatedResponse(BaseModel):
	outcome: Literal["created"] = "created"
	report: ReportResponse
	total_reports: int
	suppressed: bool

	@classmethod
	def from_receipt(cls, receipt: ReportReceipt) -> "ReportCreatedResponse":
		return cls(
			report=ReportResponse.from_report(receipt.report),
			total_reports=receipt.total_reports,
			suppressed=receipt.suppressed,
		)


class ContentResponse(BaseModel):
	kind: str
	id: int
	author_id: str
	post_id: Optional[int] = None
	title: Optional[str] = None
	body: str = ""
	suppressed: bool = False
	deleted: bool = False
	created_at: datetime

	@classmethod
	def from_item(cls, item: ContentItem) -> "ContentResponse":
		return cls(
			kind=item.kind.value,
			id=item.id,
			author_id=item.author_id,
			post_id=item.post_id,
			title=item.title,
			body=item.body,
			suppressed=item.suppressed,
			deleted=item.is_deleted,
			created_at=item.created_at,
		)


class ContentListResponse(BaseModel):
	items: List[ContentResponse]
	limit: int
	offset: int


class ReputationResponse(BaseModel):
	user_id: str
	reputation: int


class AdminReportResponse(BaseModel):
	report: ReportResponse
	reporter_username: Optional[str] = None
	item: Optional[ContentResponse] = None
	item_author_username: Optional[str] = None
	total_reports: int

	@classmethod
	def from_view(cls, view: ReportView) -> "AdminReportResponse":
		return cls(
			report=ReportResponse.from_report(view.report),
			reporter_username=view.reporter_username,
			item=ContentResponse.from_item(view.item) if view.item is not None else None,
			item_author_username=view.item_author_username,
			total_reports=view.total_reports,
		)


class AdminReportListResponse(BaseModel):
	items: List[AdminReportResponse]
	limit: int
	offset: int
	has_more: bool

	@classmethod
	def from_page(cls, page: ReportPage) -> "AdminReportListResponse":
		return cls(
			items=[AdminReportResponse.from_view(view) for view in page.items],
			limit=page.limit,
			offset=page.offset,
			has_more=page.has_more,
		)


class AdminReportDetailResponse(AdminReportResponse):
	all_reports: List[AdminReportResponse]

	@classmethod
	def from_detail(cls, detail: ReportDetail) -> "AdminReportDetailResponse":
		base = AdminReportResponse.from_view(detail.view)
		return cls(
			**base.model_dump(),
			all_reports=[AdminReportResponse.from_view(view) for view in detail.all_reports],
		)


class AdminActionResponse(BaseModel):
	outcome: Literal["ok"] = "ok"
	target: str
	target_id: int
	suppressed: bool = False
	deleted_reports: Optional[int] = None

	@classmethod
	def for_target(cls, target: Target) -> "AdminActionResponse":
		return cls(target=target.kind.value, target_id=target.id)

	@classmethod
	def from_dismiss(cls, result: DismissResult) -> "AdminActionResponse":
		return cls(
			target=result.target.kind.value,
			target_id=result.target.id,
			deleted_reports=result.deleted_reports,
		)
