"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

import logging

from prometheus_client import Counter, Histogram

log = logging.getLogger(__name__)


REQUEST_COUNTER = Counter(
	"learnboard_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"learnboard_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

AUTH_REJECTS = Counter(
	"learnboard_auth_rejects_total",
	"Caller credentials rejected at the boundary",
	["reason"],
)

VOTES_CREATED = Counter(
	"learnboard_votes_created_total",
	"Upvotes recorded",
	["target"],
)

VOTES_REMOVED = Counter(
	"learnboard_votes_removed_total",
	"Upvotes removed by their voter",
	["target"],
)

INTERACTION_REJECTS = Counter(
	"learnboard_interaction_rejects_total",
	"Vote and report attempts rejected with a typed outcome",
	["operation", "outcome"],
)

REPORTS_CREATED = Counter(
	"learnboard_reports_created_total",
	"Abuse reports recorded",
	["target", "reason"],
)

CONTENT_SUPPRESSED = Counter(
	"learnboard_content_suppressed_total",
	"Content items flipped into the suppressed state by report threshold",
	["target"],
)

MODERATION_ADMIN_ACTIONS = Counter(
	"learnboard_moderation_admin_actions_total",
	"Admin moderation actions",
	["action"],
)

RATE_LIMITED = Counter(
	"learnboard_rate_limited_total",
	"Requests denied by the rate governor",
	["operation"],
)

RATE_LIMIT_EXEMPT = Counter(
	"learnboard_rate_limit_exempt_total",
	"Requests admitted without budget because the caller role is exempt",
	["operation"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_auth_reject(reason: str) -> None:
	AUTH_REJECTS.labels(reason=reason).inc()


def inc_vote_created(target: str) -> None:
	VOTES_CREATED.labels(target=target).inc()


def inc_vote_removed(target: str) -> None:
	VOTES_REMOVED.labels(target=target).inc()


def inc_interaction_reject(operation: str, outcome: str) -> None:
	INTERACTION_REJECTS.labels(operation=operation, outcome=outcome).inc()


def inc_report_created(target: str, reason: str) -> None:
	REPORTS_CREATED.labels(target=target, reason=reason).inc()


def inc_content_suppressed(target: str) -> None:
	CONTENT_SUPPRESSED.labels(target=target).inc()


def inc_admin_action(action: str) -> None:
	MODERATION_ADMIN_ACTIONS.labels(action=action).inc()


def inc_rate_limited(operation: str) -> None:
	RATE_LIMITED.labels(operation=operation).inc()


def inc_rate_limit_exempt(operation: str) -> None:
	RATE_LIMIT_EXEMPT.labels(operation=operation).inc()
