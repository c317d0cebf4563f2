"""Report aggregation and threshold suppression."""

from __future__ import annotations

import logging
from typing import Optional

from learnboard.interactions.domain.exceptions import (
    InteractionError,
    NotFoundError,
    SelfInteractionError,
)
from learnboard.interactions.domain.models import (
    SUPPRESSION_THRESHOLD,
    DismissResult,
    ReportDetail,
    ReportPage,
    ReportReason,
    ReportReceipt,
    Target,
)
from learnboard.interactions.domain.store import InteractionStore
from learnboard.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


class ReportAggregator:
    """Records one report per (reporter, item) and hides items that cross the threshold."""

    def __init__(self, store: InteractionStore, *, threshold: int = SUPPRESSION_THRESHOLD) -> None:
        if threshold < 1:
            raise ValueError("threshold must be positive")
        self._store = store
        self._threshold = threshold

    @property
    def threshold(self) -> int:
        return self._threshold

    async def report(
        self,
        reporter_id: str,
        target: Target,
        reason: ReportReason | str,
        detail: Optional[str] = None,
    ) -> ReportReceipt:
        """Insert, count and flip inside one transaction.

        The item row is locked first, so concurrent reports on the same item
        run one after another and the count that reaches the threshold has seen
        every earlier report.
        """
        try:
            parsed_reason = ReportReason.parse(reason)
            async with self._store.transaction() as tx:
                item = await tx.get_item(target, lock=True)
                if item is None or item.is_deleted:
                    raise NotFoundError(f"{target.kind.value}_not_found")
                if item.author_id == reporter_id:
                    raise SelfInteractionError("cannot_report_own_content")
                report = await tx.insert_report(reporter_id, target, parsed_reason, detail or None)
                total = await tx.count_reports(target)
                newly_suppressed = total >= self._threshold and not item.suppressed
                if newly_suppressed:
                    await tx.set_suppressed(target, True)
        except InteractionError as exc:
            obs_metrics.inc_interaction_reject("report", exc.outcome.value)
            raise

        obs_metrics.inc_report_created(target.kind.value, parsed_reason.value)
        logger.info(
            "report_created",
            extra={
                "report_id": report.id,
                "reporter_id": reporter_id,
                "target": target.kind.value,
                "target_id": target.id,
                "reason": parsed_reason.value,
                "total_reports": total,
            },
        )
        if newly_suppressed:
            obs_metrics.inc_content_suppressed(target.kind.value)
            logger.warning(
                "content_suppressed",
                extra={"target": target.kind.value, "target_id": target.id, "total_reports": total},
            )
        return ReportReceipt(
            report=report,
            total_reports=total,
            suppressed=item.suppressed or newly_suppressed,
            newly_suppressed=newly_suppressed,
        )

    # ------------------------------------------------------------------
    # Admin surface; callers are expected to have checked the admin role.

    async def list_reports(self, *, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0) -> ReportPage:
        limit = max(1, min(int(limit), MAX_PAGE_SIZE))
        offset = max(0, int(offset))
        async with self._store.session() as session:
            items = list(await session.list_reports(limit=limit, offset=offset))
        return ReportPage(items=items, limit=limit, offset=offset, has_more=len(items) == limit)

    async def get_report_detail(self, report_id: int) -> ReportDetail:
        async with self._store.session() as session:
            report = await session.get_report(report_id)
            if report is None:
                raise NotFoundError("report_not_found")
            all_reports = list(await session.list_reports_for_target(report.target))
        view = next((entry for entry in all_reports if entry.report.id == report_id), None)
        if view is None:
            # Dismissed between the two reads
            raise NotFoundError("report_not_found")
        return ReportDetail(view=view, all_reports=all_reports)

    async def unsuppress(self, report_id: int) -> Target:
        """Clear the suppressed flag on the reported item; reports are kept."""
        async with self._store.transaction() as tx:
            report = await tx.get_report(report_id)
            if report is None:
                raise NotFoundError("report_not_found")
            target = report.target
            await tx.set_suppressed(target, False)
        obs_metrics.inc_admin_action("unsuppress")
        logger.info(
            "content_unsuppressed",
            extra={"report_id": report_id, "target": target.kind.value, "target_id": target.id},
        )
        return target

    async def dismiss(self, report_id: int) -> DismissResult:
        """Delete every report on the reported item and clear its suppressed flag."""
        async with self._store.transaction() as tx:
            report = await tx.get_report(report_id)
            if report is None:
                raise NotFoundError("report_not_found")
            target = report.target
            await tx.get_item(target, lock=True)
            deleted = await tx.delete_reports(target)
            await tx.set_suppressed(target, False)
        obs_metrics.inc_admin_action("dismiss")
        logger.info(
            "reports_dismissed",
            extra={
                "report_id": report_id,
                "target": target.kind.value,
                "target_id": target.id,
                "deleted_reports": deleted,
            },
        )
        return DismissResult(target=target, deleted_reports=deleted)
