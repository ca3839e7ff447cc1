import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from meetmux.domain import container
from meetmux.domain.spatial.models import Point
from meetmux.domain.users.models import LocationVisibility, User
from meetmux.infra import postgres
from meetmux.infra.realtime import InMemoryBroadcaster
from meetmux.main import app
from meetmux.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from meetmux.infra.redis import redis_client, set_redis_client

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
	"""Dev mode so X-User-Id headers authenticate; repositories stay in memory."""
	original_env = settings.environment
	original_backend = settings.storage_backend
	original_tz = settings.local_timezone
	settings.environment = "dev"
	settings.storage_backend = "memory"
	settings.local_timezone = "UTC"
	try:
		yield
	finally:
		settings.environment = original_env
		settings.storage_backend = original_backend
		settings.local_timezone = original_tz


@pytest.fixture(autouse=True)
def broadcaster():
	"""Fresh in-memory repositories and a recording broadcaster per test."""
	original = container.broadcaster()
	recorder = InMemoryBroadcaster()
	container.configure_memory()
	container.set_broadcaster(recorder)
	try:
		yield recorder
	finally:
		container.set_broadcaster(original)


@pytest.fixture
def make_user():
	async def _make(
		user_id: str,
		*,
		name: str | None = None,
		interests=None,
		visibility: LocationVisibility = LocationVisibility.EVERYONE,
		location: Point | None = None,
	) -> User:
		user = User(
			id=user_id,
			name=name or user_id.title(),
			interests=list(interests or []),
			location_visibility=visibility,
			location=location,
		)
		return await container.get_user_repository().create(user)

	return _make


@pytest.fixture
def fixed_now():
	# A Wednesday afternoon
	return datetime(2026, 10, 14, 13, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
