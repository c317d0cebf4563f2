"""Lightweight service container shared by interaction modules."""

from __future__ import annotations

from typing import Optional

import asyncpg

from learnboard.infra.rate_limit import InMemoryWindowStore, RateGovernor, RedisWindowStore
from learnboard.infra.redis import RedisProxy, redis_client
from learnboard.interactions.domain.content import ContentReader
from learnboard.interactions.domain.ledger import InteractionLedger
from learnboard.interactions.domain.memory import InMemoryInteractionStore
from learnboard.interactions.domain.models import SUPPRESSION_THRESHOLD
from learnboard.interactions.domain.reports import ReportAggregator
from learnboard.interactions.domain.store import InteractionStore
from learnboard.interactions.infra.postgres_store import PostgresInteractionStore
from learnboard.settings import settings


def _governor_from_settings(redis_proxy: Optional[RedisProxy] = None) -> RateGovernor:
    if settings.rate_limit_backend.lower() == "redis":
        store = RedisWindowStore(redis_proxy or redis_client)
    else:
        store = InMemoryWindowStore()
    return RateGovernor(
        store,
        exempt_roles=settings.rate_limit_exempt_roles,
        ipv6_subnet=settings.rate_limit_ipv6_subnet,
    )


_store: InteractionStore = InMemoryInteractionStore()
_threshold: int = SUPPRESSION_THRESHOLD
_ledger = InteractionLedger(_store)
_aggregator = ReportAggregator(_store, threshold=_threshold)
_content = ContentReader(_store)
_governor: RateGovernor = _governor_from_settings()


def configure(
    *,
    store: Optional[InteractionStore] = None,
    governor: Optional[RateGovernor] = None,
    threshold: Optional[int] = None,
) -> None:
    global _store, _threshold, _ledger, _aggregator, _content, _governor
    if store is not None:
        _store = store
    if threshold is not None:
        _threshold = threshold
    if governor is not None:
        _governor = governor
    _ledger = InteractionLedger(_store)
    _aggregator = ReportAggregator(_store, threshold=_threshold)
    _content = ContentReader(_store)


def configure_postgres(pool: asyncpg.Pool, redis: Optional[RedisProxy] = None) -> None:
    configure(store=PostgresInteractionStore(pool), governor=_governor_from_settings(redis))


def configure_from_settings(pool: Optional[asyncpg.Pool] = None) -> None:
    """Wire the backends named in settings; the memory store needs no pool."""
    if settings.storage_backend.lower() == "postgres":
        if pool is None:
            raise RuntimeError("postgres storage requires a connection pool")
        configure_postgres(pool)
    else:
        configure(store=InMemoryInteractionStore(), governor=_governor_from_settings())


def get_store() -> InteractionStore:
    return _store


def get_ledger() -> InteractionLedger:
    return _ledger


def get_aggregator() -> ReportAggregator:
    return _aggregator


def get_content_reader() -> ContentReader:
    return _content


def get_governor() -> RateGovernor:
    return _governor
