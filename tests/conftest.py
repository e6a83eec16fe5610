"""Pytest configuration and fixtures."""

import asyncio
from typing import Awaitable, Callable, List

import logfire
import pytest

from voicebatch.application.services.error_recovery_service import ErrorRecoveryService
from voicebatch.application.services.job_locks import KeyedLock
from voicebatch.application.services.job_orchestrator import JobOrchestrator
from voicebatch.domain.entities.content_item import ContentItem
from voicebatch.domain.entities.job import Job
from voicebatch.domain.events import DomainEvent
from voicebatch.domain.services.retry_policy import RetryPolicy
from voicebatch.infrastructure.config import AppConfig, Settings
from voicebatch.infrastructure.events.in_memory_event_bus import InMemoryEventBus
from voicebatch.infrastructure.persistence.in_memory import (
    InMemoryContentItemRepository,
    InMemoryErrorLogRepository,
    InMemoryJobRepository,
)
from voicebatch.infrastructure.queue.queue_manager import InMemoryQueueManager


@pytest.fixture(scope="session", autouse=True)
def configure_logfire_for_tests():
    """Keep spans local; nothing is exported during tests."""
    logfire.configure(send_to_logfire=False, console=False)


class RecordingSleep:
    """Stand-in for ``asyncio.sleep`` that returns immediately."""

    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class EventRecorder:
    """Catch-all bus subscriber collecting published events."""

    def __init__(self) -> None:
        self.events: List[DomainEvent] = []

    def __call__(self, event: DomainEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type) -> List[DomainEvent]:
        return [e for e in self.events if e.event_type == event_type]


@pytest.fixture
def settings() -> Settings:
    """Test settings with overrides."""
    return Settings(app=AppConfig(environment="test"))


@pytest.fixture
def event_bus() -> InMemoryEventBus:
    return InMemoryEventBus()


@pytest.fixture
def recorder(event_bus: InMemoryEventBus) -> EventRecorder:
    recorder = EventRecorder()
    event_bus.subscribe_all(recorder)
    return recorder


@pytest.fixture
async def queue_manager(settings: Settings):
    manager = InMemoryQueueManager(settings.queue)
    yield manager
    await manager.close()


@pytest.fixture
def job_repo() -> InMemoryJobRepository:
    return InMemoryJobRepository()


class YieldingJobRepository(InMemoryJobRepository):
    """Job store that suspends on every call, as a database driver does."""

    async def get(self, id):
        await asyncio.sleep(0)
        return await super().get(id)

    async def save(self, entity):
        await asyncio.sleep(0)
        return await super().save(entity)


@pytest.fixture
def yielding_job_repo() -> YieldingJobRepository:
    return YieldingJobRepository()


@pytest.fixture
def item_repo() -> InMemoryContentItemRepository:
    return InMemoryContentItemRepository()


@pytest.fixture
def error_repo() -> InMemoryErrorLogRepository:
    return InMemoryErrorLogRepository()


@pytest.fixture
def locks() -> KeyedLock:
    return KeyedLock()


@pytest.fixture
def orchestrator(
    job_repo, item_repo, event_bus, queue_manager, settings, locks
) -> JobOrchestrator:
    orchestrator = JobOrchestrator(
        job_repo,
        item_repo,
        event_bus,
        queue_manager,
        config=settings.orchestrator,
        queue_config=settings.queue,
        locks=locks,
    )
    orchestrator.register()
    yield orchestrator
    orchestrator.unregister()


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def retry_policy() -> RetryPolicy:
    """Backoff policy without jitter."""
    return RetryPolicy(random_source=lambda: 0.0)


@pytest.fixture
def recovery(
    error_repo, event_bus, queue_manager, settings, retry_policy, fake_sleep
) -> ErrorRecoveryService:
    service = ErrorRecoveryService(
        error_repo,
        event_bus,
        queue_manager,
        policy=retry_policy,
        config=settings.retry,
        queue_config=settings.queue,
        sleep=fake_sleep,
    )
    service.register()
    yield service
    service.unregister()


@pytest.fixture
def make_job(job_repo, item_repo) -> Callable[..., Awaitable[Job]]:
    """Persist a submitted (PENDING) job with ``total_items`` items."""

    async def factory(total_items: int = 10, name: str = "Weekly episodes") -> Job:
        job = Job.create(name, voice_settings={"voice": "alloy"})
        items = [ContentItem.create(job.id, position) for position in range(total_items)]
        await item_repo.save_many(items)
        job.submit(total_items=total_items)
        await job_repo.save(job)
        return job

    return factory
