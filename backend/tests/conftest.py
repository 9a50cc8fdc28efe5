import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis
from httpx import ASGITransport, AsyncClient

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from hackmatch.domain.matchmaking import container
from hackmatch.domain.matchmaking.ledger import InMemorySwipeLedger
from hackmatch.domain.matchmaking.models import (
	ExperienceLevel,
	GitHubStats,
	HackathonParticipation,
	HackerProfile,
	MatchRecord,
)
from hackmatch.domain.matchmaking.preferences import InMemoryPreferencesRepository
from hackmatch.domain.matchmaking.profiles import InMemoryProfileStore
from hackmatch.domain.matchmaking.queue import InMemoryQueueStore
from hackmatch.domain.matchmaking.service import MatchmakingService
from hackmatch.infra import postgres
from hackmatch.main import app

START = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
	"""Deterministic clock; each read ticks one millisecond so swipes stay ordered."""

	def __init__(self, start: datetime = START) -> None:
		self.now = start

	def __call__(self) -> datetime:
		self.now += timedelta(milliseconds=1)
		return self.now

	def advance(self, seconds: float) -> None:
		self.now += timedelta(seconds=seconds)


class RecordingNotifier:
	def __init__(self) -> None:
		self.created: list[MatchRecord] = []
		self.removed: list[MatchRecord] = []

	async def match_created(self, match: MatchRecord) -> None:
		self.created.append(match)

	async def match_removed(self, match: MatchRecord) -> None:
		self.removed.append(match)


def make_profile(user_id: str, **overrides) -> HackerProfile:
	payload = {
		"user_id": user_id,
		"full_name": user_id.title(),
		"programming_languages": ("Python",),
		"frameworks": (),
		"experience_level": ExperienceLevel.INTERMEDIATE,
	}
	payload.update(overrides)
	return HackerProfile(**payload)


def github(stars: int = 0, streak: int = 0, contributions: int = 0) -> GitHubStats:
	return GitHubStats(username="gh", stars=stars, current_streak=streak, contributions=contributions)


def hackathon(hackathon_id: str, *, won: bool = False, categories: tuple[str, ...] = ()) -> HackathonParticipation:
	return HackathonParticipation(hackathon_id=hackathon_id, title=hackathon_id, categories=categories, won=won)


@dataclass
class Engine:
	service: MatchmakingService
	profiles: InMemoryProfileStore
	ledger: InMemorySwipeLedger
	preferences: InMemoryPreferencesRepository
	queue_store: InMemoryQueueStore
	notifier: RecordingNotifier
	clock: FrozenClock
	ids: list[str] = field(default_factory=list)

	async def add(self, *profiles: HackerProfile) -> None:
		for profile in profiles:
			await self.profiles.upsert(profile)
			self.ids.append(profile.user_id)


def build_engine(**options) -> Engine:
	profiles = InMemoryProfileStore()
	ledger = InMemorySwipeLedger()
	preferences = InMemoryPreferencesRepository()
	queue_store = options.pop("queue_store", None) or InMemoryQueueStore()
	notifier = RecordingNotifier()
	clock = FrozenClock()
	service = MatchmakingService(
		profiles=profiles,
		ledger=ledger,
		preferences=preferences,
		queue_store=queue_store,
		notifier=notifier,
		clock=clock,
		undo_window_seconds=options.pop("undo_window_seconds", 30),
		**options,
	)
	return Engine(service, profiles, ledger, preferences, queue_store, notifier, clock)


@pytest.fixture
def engine() -> Engine:
	return build_engine()


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from hackmatch.infra.redis import redis_client, set_redis_client

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
def reset_container():
	container.reset()
	try:
		yield
	finally:
		container.reset()


@pytest_asyncio.fixture
async def api_engine() -> Engine:
	"""An engine installed in the container so HTTP requests reach it."""
	built = build_engine()
	built.service = container.configure(
		profiles=built.profiles,
		ledger=built.ledger,
		preferences=built.preferences,
		queue_store=built.queue_store,
		notifier=built.notifier,
		clock=built.clock,
		undo_window_seconds=30,
		require_serving=False,
	)
	return built


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
