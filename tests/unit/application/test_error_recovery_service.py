"""Tests for the error recovery service."""

from unittest.mock import AsyncMock

import pytest

from voicebatch.domain.entities.error_log import (
    MAX_MESSAGE_LENGTH,
    ErrorLog,
    ErrorLogStatus,
)
from voicebatch.domain.events import ErrorOccurredEvent, EventType
from voicebatch.domain.exceptions import EntityNotFoundError, RecoveryError
from voicebatch.domain.value_objects.timestamp import Timestamp


def _error_event(error_type="network_error", error_id="error_1", **context):
    return ErrorOccurredEvent(
        error_id=error_id,
        error_type=error_type,
        error_message=f"{error_type} while calling provider",
        context=context,
    )


async def _scheduled_log(error_repo, error_type, **context):
    error_log = ErrorLog.create(error_type, "provider call failed", context=context)
    error_log.mark_retry_scheduled(Timestamp.now())
    await error_repo.save(error_log)
    return error_log


class TestHandleErrorOccurred:
    """Test how reported errors are logged and classified."""

    async def test_retryable_error_scheduled(
        self, recovery, event_bus, error_repo, queue_manager, recorder
    ):
        await event_bus.publish(_error_event(item_id="item_1"))

        error_log = await error_repo.get("error_1")
        assert error_log.status == ErrorLogStatus.RETRY_SCHEDULED
        assert error_log.retry_count == 1
        assert error_log.context == {"item_id": "item_1"}
        assert error_log.next_retry_at is not None

        scheduled = recorder.of_type(EventType.RETRY_SCHEDULED)
        assert len(scheduled) == 1
        assert scheduled[0].delay_ms == 1000
        assert scheduled[0].retry_count == 1
        assert await queue_manager.get_queue("retry").delayed_count() == 1

    async def test_non_retryable_error_failed_immediately(
        self, recovery, event_bus, error_repo, queue_manager, recorder
    ):
        await event_bus.publish(_error_event("validation_error"))

        error_log = await error_repo.get("error_1")
        assert error_log.status == ErrorLogStatus.FAILED
        assert error_log.retry_count == 0
        assert error_log.final_error == error_log.message
        assert ErrorLogStatus.RETRY_SCHEDULED not in error_log.status_history
        assert recorder.of_type(EventType.RETRY_SCHEDULED) == []
        assert await queue_manager.get_queue("retry").delayed_count() == 0

    async def test_error_type_is_case_insensitive(self, recovery, event_bus, error_repo):
        await event_bus.publish(_error_event("TIMEOUT"))

        error_log = await error_repo.get("error_1")
        assert error_log.error_type == "timeout"
        assert error_log.status == ErrorLogStatus.RETRY_SCHEDULED

    async def test_duplicate_event_ignored(self, recovery, event_bus, error_repo, recorder):
        await event_bus.publish(_error_event())
        await event_bus.publish(_error_event())

        assert len(error_repo) == 1
        assert (await error_repo.get("error_1")).retry_count == 1
        assert len(recorder.of_type(EventType.RETRY_SCHEDULED)) == 1

    async def test_oversized_message_is_clipped(self, recovery, event_bus, error_repo):
        await event_bus.publish(
            ErrorOccurredEvent(
                error_id="error_1",
                error_type="network_error",
                error_message="Traceback " + "x" * MAX_MESSAGE_LENGTH,
                context={},
            )
        )

        error_log = await error_repo.get("error_1")
        assert len(error_log.message) == MAX_MESSAGE_LENGTH
        assert error_log.message.startswith("Traceback ")
        assert error_log.status == ErrorLogStatus.RETRY_SCHEDULED

    async def test_handler_never_raises(self, recovery, error_repo):
        error_repo.save = AsyncMock(side_effect=RuntimeError("database gone"))

        await recovery.handle_error_occurred(_error_event())


class TestScheduleRetry:
    """Test backoff scheduling."""

    async def test_backoff_grows_with_retry_count(
        self, recovery, error_repo, recorder
    ):
        error_log = ErrorLog.create("service_unavailable", "503")
        await error_repo.save(error_log)

        await recovery.schedule_retry(error_log.id)
        stored = await error_repo.get(error_log.id)
        stored.mark_retrying()
        await error_repo.save(stored)
        await recovery.schedule_retry(error_log.id)

        delays = [e.delay_ms for e in recorder.of_type(EventType.RETRY_SCHEDULED)]
        assert delays == [1000, 2000]
        assert (await error_repo.get(error_log.id)).retry_count == 2

    async def test_explicit_delay(self, recovery, error_repo, queue_manager):
        error_log = ErrorLog.create("timeout", "slow")
        await error_repo.save(error_log)

        updated = await recovery.schedule_retry(error_log.id, delay_ms=50)

        assert updated.retry_count == 1
        envelope_queue = queue_manager.get_queue("retry")
        assert await envelope_queue.delayed_count() == 1

    async def test_retry_envelope_is_single_attempt(self, recovery, error_repo, queue_manager):
        queue_manager.add_job = AsyncMock(return_value="qjob_1")
        error_log = ErrorLog.create("timeout", "slow")
        await error_repo.save(error_log)

        await recovery.schedule_retry(error_log.id)

        queue_manager.add_job.assert_awaited_once_with(
            "retry",
            {"error_id": error_log.id, "retry_count": 1},
            job_type="retry",
            delay_ms=1000,
            max_attempts=1,
        )

    async def test_missing_log_wrapped(self, recovery):
        with pytest.raises(RecoveryError) as exc_info:
            await recovery.schedule_retry("error_missing")

        assert exc_info.value.error_id == "error_missing"
        assert isinstance(exc_info.value.__cause__, EntityNotFoundError)

    async def test_queue_failure_marks_log_failed(
        self, recovery, error_repo, queue_manager
    ):
        queue_manager.add_job = AsyncMock(side_effect=ConnectionError("broker down"))
        error_log = ErrorLog.create("timeout", "slow")
        await error_repo.save(error_log)

        with pytest.raises(RecoveryError) as exc_info:
            await recovery.schedule_retry(error_log.id)

        assert isinstance(exc_info.value.__cause__, ConnectionError)
        stored = await error_repo.get(error_log.id)
        assert stored.status == ErrorLogStatus.FAILED
        assert stored.final_error == "Retry could not be scheduled: broker down"
        assert stored.resolved_at is not None
        assert (await recovery.get_error_stats()).pending_retries == 0

    async def test_invalid_state_leaves_log_alone(self, recovery, error_repo):
        error_log = ErrorLog.create("timeout", "slow")
        error_log.mark_failed("gave up")
        await error_repo.save(error_log)

        with pytest.raises(RecoveryError):
            await recovery.schedule_retry(error_log.id)

        stored = await error_repo.get(error_log.id)
        assert stored.status == ErrorLogStatus.FAILED
        assert stored.final_error == "gave up"


class TestRetryError:
    """Test execution of scheduled retries."""

    async def test_transient_error_recovered(self, recovery, error_repo):
        error_log = await _scheduled_log(error_repo, "network_error")

        result = await recovery.retry_error(error_log.id)

        assert result.status == ErrorLogStatus.RECOVERED
        stored = await error_repo.get(error_log.id)
        assert stored.status == ErrorLogStatus.RECOVERED
        assert stored.retry_count == 1
        assert stored.resolved_at is not None

    async def test_original_operation_re_enqueued(
        self, recovery, error_repo, queue_manager
    ):
        error_log = await _scheduled_log(
            error_repo,
            "timeout",
            queue="audio-generation",
            payload={"item_id": "item_1", "chunk": 3},
            job_type="generate_audio",
            job_id="job_1",
        )

        await recovery.retry_error(error_log.id)

        envelope = await queue_manager.get_queue("audio-generation").dequeue()
        assert envelope.payload == {"item_id": "item_1", "chunk": 3}
        assert envelope.type == "generate_audio"
        assert envelope.job_id == "job_1"

    async def test_rate_limit_waits_for_cooldown(self, recovery, error_repo, fake_sleep):
        error_log = await _scheduled_log(error_repo, "rate_limit")

        result = await recovery.retry_error(error_log.id)

        assert fake_sleep.calls == [5.0]
        assert result.status == ErrorLogStatus.RECOVERED

    async def test_unsupported_type_marked_failed(self, recovery, error_repo):
        error_log = await _scheduled_log(error_repo, "unknown")

        result = await recovery.retry_error(error_log.id)

        assert result.status == ErrorLogStatus.FAILED
        assert result.final_error == "Error type 'unknown' cannot be retried"

    async def test_failed_retry_marks_log_failed(self, recovery, error_repo, queue_manager):
        error_log = await _scheduled_log(
            error_repo, "network_error", queue="upload", payload={"item_id": "item_1"}
        )
        queue_manager.add_job = AsyncMock(side_effect=ConnectionError("broker down"))

        with pytest.raises(RecoveryError) as exc_info:
            await recovery.retry_error(error_log.id)

        assert isinstance(exc_info.value.__cause__, ConnectionError)
        stored = await error_repo.get(error_log.id)
        assert stored.status == ErrorLogStatus.FAILED
        assert stored.final_error == "broker down"

    async def test_retry_requires_scheduled_state(self, recovery, error_repo):
        error_log = ErrorLog.create("network_error", "reset")
        await error_repo.save(error_log)

        with pytest.raises(RecoveryError):
            await recovery.retry_error(error_log.id)

        assert (await error_repo.get(error_log.id)).status == ErrorLogStatus.FAILED

    async def test_missing_log(self, recovery):
        with pytest.raises(EntityNotFoundError):
            await recovery.retry_error("error_missing")


class TestMaintenance:
    """Test statistics and cleanup."""

    async def test_error_stats(self, recovery, event_bus, error_repo):
        await event_bus.publish(_error_event("network_error", error_id="error_1"))
        await event_bus.publish(_error_event("validation_error", error_id="error_2"))
        await event_bus.publish(_error_event("rate_limit", error_id="error_3"))
        await recovery.retry_error("error_3")

        stats = await recovery.get_error_stats()

        assert stats.to_dict() == {
            "total_errors": 3,
            "retryable_errors": 2,
            "recovered_errors": 1,
            "failed_errors": 1,
            "pending_retries": 1,
        }

    async def test_cleanup_removes_old_resolved_logs(self, recovery, error_repo):
        old = ErrorLog.create("validation_error", "bad input")
        old.mark_failed("bad input")
        old.resolved_at = Timestamp.now().subtract_days(45)
        recent = ErrorLog.create("validation_error", "bad input")
        recent.mark_failed("bad input")
        open_log = ErrorLog.create("timeout", "slow")
        open_log.mark_retry_scheduled(Timestamp.now())
        for error_log in (old, recent, open_log):
            await error_repo.save(error_log)

        deleted = await recovery.cleanup_resolved_errors()

        assert deleted == 1
        assert await error_repo.get(old.id) is None
        assert await error_repo.exists(recent.id)
        assert await error_repo.exists(open_log.id)

    async def test_cleanup_with_explicit_age(self, recovery, error_repo):
        error_log = ErrorLog.create("validation_error", "bad input")
        error_log.mark_failed("bad input")
        error_log.resolved_at = Timestamp.now().subtract_days(2)
        await error_repo.save(error_log)

        assert await recovery.cleanup_resolved_errors(max_age_days=1) == 1
