from __future__ import annotations

import pytest

from learnboard.infra.auth import Role
from learnboard.infra.rate_limit import (
    DEFAULT_POLICIES,
    HOUR,
    InMemoryWindowStore,
    RateGovernor,
    RatePolicy,
    RedisWindowStore,
    identity_key,
    normalize_address,
)
from learnboard.infra.redis import redis_client


def _governor(clock, **policies: RatePolicy) -> RateGovernor:
    return RateGovernor(InMemoryWindowStore(clock), policies={**DEFAULT_POLICIES, **policies})


@pytest.mark.asyncio
async def test_check_denies_after_cap_then_recovers_after_window(clock):
    governor = _governor(clock, vote=RatePolicy("vote", 3, HOUR))
    key = identity_key("alice", "10.0.0.1")

    for _ in range(3):
        assert (await governor.check(key, "vote")).allowed
        await governor.consume(key, "vote")

    denied = await governor.check(key, "vote")
    assert denied.allowed is False
    assert 0 < denied.retry_after_seconds <= HOUR
    assert denied.remaining == 0

    clock.advance(HOUR)
    assert (await governor.check(key, "vote")).allowed


@pytest.mark.asyncio
async def test_check_alone_never_spends_budget(clock):
    governor = _governor(clock, report=RatePolicy("report", 1, HOUR))

    for _ in range(10):
        decision = await governor.check("user:alice", "report")
        assert decision.allowed and decision.remaining == 1


@pytest.mark.asyncio
async def test_retry_after_rounds_up_to_at_least_one_second(clock):
    governor = _governor(clock, vote=RatePolicy("vote", 1, 60))
    await governor.consume("user:alice", "vote")

    clock.advance(59.8)
    decision = await governor.check("user:alice", "vote")

    assert decision.allowed is False
    assert decision.retry_after_seconds == 1


@pytest.mark.asyncio
async def test_window_opens_on_first_counted_request(clock):
    governor = _governor(clock, vote=RatePolicy("vote", 1, 60))
    clock.advance(500)
    await governor.consume("user:alice", "vote")

    clock.advance(30)
    assert (await governor.check("user:alice", "vote")).retry_after_seconds == 30


@pytest.mark.asyncio
async def test_operation_classes_keep_independent_counters(clock):
    governor = _governor(clock, vote=RatePolicy("vote", 1, HOUR), report=RatePolicy("report", 1, HOUR))
    await governor.consume("user:alice", "vote")

    assert not (await governor.check("user:alice", "vote")).allowed
    assert (await governor.check("user:alice", "report")).allowed
    assert (await governor.check("user:bob", "vote")).allowed


@pytest.mark.parametrize("role", [Role.SYSTEM, Role.BOT, "bot"])
@pytest.mark.asyncio
async def test_exempt_roles_bypass_identity_budgets(clock, role):
    governor = _governor(clock, vote=RatePolicy("vote", 1, HOUR))

    for _ in range(5):
        assert (await governor.check("user:svc", "vote", role=role)).allowed
        await governor.consume("user:svc", "vote", role=role)

    assert (await governor.check("user:svc", "vote")).allowed


@pytest.mark.asyncio
async def test_address_classes_are_not_exemptable(clock):
    governor = _governor(clock, registration=RatePolicy("registration", 1, 900, address_only=True, exemptable=False))
    key = governor.key_for("registration", "svc", "203.0.113.9")
    assert key == "ip:203.0.113.9"

    await governor.consume(key, "registration", role=Role.SYSTEM)

    assert not (await governor.check(key, "registration", role=Role.SYSTEM)).allowed


def test_unknown_operation_class_is_a_key_error(clock):
    with pytest.raises(KeyError):
        _governor(clock).policy("teleport")


def test_default_policy_table():
    assert {name: (p.limit, p.window_seconds) for name, p in DEFAULT_POLICIES.items()} == {
        "registration": (10, 900),
        "login": (20, 900),
        "post_create": (30, 3600),
        "comment_create": (60, 3600),
        "content_update": (30, 3600),
        "content_delete": (30, 3600),
        "vote": (100, 3600),
        "save": (30, 3600),
        "report": (10, 3600),
        "account_settings": (30, 3600),
        "contact": (5, 3600),
        "admin": (300, 900),
    }
    assert {name for name, p in DEFAULT_POLICIES.items() if p.address_only} == {"registration", "login", "contact"}


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("198.51.100.7", "198.51.100.7"),
        ("::ffff:198.51.100.7", "198.51.100.7"),
        ("2001:db8:abcd:12ff:1:2:3:4", "2001:db8:abcd:1200::/56"),
        ("2001:db8:abcd:1234::1", "2001:db8:abcd:1200::/56"),
        (None, "unknown"),
        ("not-an-ip", "not-an-ip"),
    ],
)
def test_normalize_address(raw, expected):
    assert normalize_address(raw) == expected


def test_ipv6_prefix_is_configurable():
    assert normalize_address("2001:db8:abcd:1234::1", ipv6_subnet=64) == "2001:db8:abcd:1234::/64"


def test_identity_key_prefers_user_unless_address_only():
    assert identity_key("alice", "10.0.0.1") == "user:alice"
    assert identity_key(None, "10.0.0.1") == "ip:10.0.0.1"
    assert identity_key("alice", "10.0.0.1", address_only=True) == "ip:10.0.0.1"


@pytest.mark.asyncio
async def test_ipv6_neighbours_share_one_budget(clock):
    governor = _governor(clock, vote=RatePolicy("vote", 1, HOUR))
    first = governor.key_for("vote", None, "2001:db8:abcd:1201::1")
    second = governor.key_for("vote", None, "2001:db8:abcd:12aa::2")
    assert first == second

    await governor.consume(first, "vote")
    assert not (await governor.check(second, "vote")).allowed


@pytest.mark.asyncio
async def test_redis_window_store_enforces_the_same_contract(fake_redis):
    governor = RateGovernor(
        RedisWindowStore(redis_client),
        policies={**DEFAULT_POLICIES, "vote": RatePolicy("vote", 2, 120)},
    )

    for _ in range(2):
        assert (await governor.check("user:alice", "vote")).allowed
        await governor.consume("user:alice", "vote")

    denied = await governor.check("user:alice", "vote")
    assert denied.allowed is False
    assert 1 <= denied.retry_after_seconds <= 120
    assert await fake_redis.get("rl:vote:user:alice") == "2"
    assert 0 < await fake_redis.ttl("rl:vote:user:alice") <= 120


@pytest.mark.asyncio
async def test_expired_windows_are_swept_from_memory(clock):
    store = InMemoryWindowStore(clock)
    for index in range(1000):
        await store.incr(f"vote:ip:10.0.{index // 256}.{index % 256}", HOUR)
    assert len(store) == 1000

    clock.advance(HOUR)
    await store.incr("vote:ip:192.0.2.1", HOUR)

    assert len(store) == 1
    assert await store.peek("vote:ip:10.0.0.0") == (0, 0.0)
