import os
import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Settings require a signing key at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-learnboard-tests")
os.environ.setdefault("STORAGE_BACKEND", "memory")

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from learnboard.infra import postgres
from learnboard.infra.auth import Role
from learnboard.infra.rate_limit import InMemoryWindowStore, RateGovernor
from learnboard.interactions.domain import container
from learnboard.interactions.domain.memory import InMemoryInteractionStore
from learnboard.main import app
from learnboard.settings import settings


class FakeClock:
	def __init__(self, start: float = 1_000.0) -> None:
		self.now = start

	def __call__(self) -> float:
		return self.now

	def advance(self, seconds: float) -> None:
		self.now += seconds


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from learnboard.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""API tests authenticate via X-User-Id/X-User-Role headers, which are only accepted in dev mode."""
	original_env = settings.environment
	original_metrics_public = settings.obs_metrics_public
	settings.environment = "dev"
	settings.obs_metrics_public = False
	try:
		yield
	finally:
		settings.environment = original_env
		settings.obs_metrics_public = original_metrics_public


@pytest.fixture
def clock() -> FakeClock:
	return FakeClock()


@pytest.fixture
def store() -> InMemoryInteractionStore:
	return InMemoryInteractionStore()


@pytest.fixture
def governor(clock) -> RateGovernor:
	return RateGovernor(InMemoryWindowStore(clock))


@pytest.fixture(autouse=True)
def wire_container(store, governor):
	container.configure(store=store, governor=governor, threshold=5)
	yield


@pytest.fixture
def seed(store):
	"""Create the users most tests need: authors, voters and one admin."""
	store.add_user("author", username="Author")
	store.add_user("alice", username="Alice")
	store.add_user("bob", username="Bob")
	store.add_user("admin", username="Admin", role=Role.ADMIN)
	return store


def user_headers(user_id: str, role: str = "user") -> dict[str, str]:
	return {"X-User-Id": user_id, "X-User-Role": role}


@pytest.fixture
def headers():
	return user_headers


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
