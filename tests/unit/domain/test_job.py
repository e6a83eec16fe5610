"""Tests for the Job aggregate state machine and counters."""

import pytest

from voicebatch.domain.entities.job import Job, JobStatus
from voicebatch.domain.events import (
    EventType,
    JobCancelledEvent,
    JobCompletedEvent,
    JobFailedEvent,
    JobStartedEvent,
)
from voicebatch.domain.exceptions import (
    BusinessRuleViolation,
    InvalidStateTransition,
    InvalidValueError,
)


def _processing_job(total_items: int = 10) -> Job:
    job = Job.create("Podcast batch")
    job.submit(total_items=total_items)
    job.start()
    job.clear_domain_events()
    return job


class TestJobCreation:
    """Test job construction and validation."""

    def test_create_generates_id_and_starts_as_draft(self):
        job = Job.create("  Podcast batch  ", voice_settings={"voice": "nova"})

        assert job.id.startswith("job_")
        assert job.name == "Podcast batch"
        assert job.status == JobStatus.DRAFT
        assert job.total_items == 0
        assert job.voice_settings == {"voice": "nova"}
        assert job.domain_events == []

    def test_blank_name_rejected(self):
        with pytest.raises(InvalidValueError, match="name is required"):
            Job.create("   ")

    def test_negative_total_rejected(self):
        with pytest.raises(InvalidValueError):
            Job(id="job_1", name="x", total_items=-1)

    def test_inconsistent_counters_rejected(self):
        with pytest.raises(BusinessRuleViolation):
            Job(id="job_1", name="x", total_items=5, completed_items=2, failed_items=3)

    def test_jobs_compare_by_id(self):
        first = Job(id="job_1", name="x")
        second = Job(id="job_1", name="renamed", total_items=3)

        assert first == second
        assert first != Job(id="job_2", name="x")
        assert len({first, second}) == 1


class TestJobTransitions:
    """Test the job status state machine."""

    def test_submit_sets_total_and_moves_to_pending(self):
        job = Job.create("batch")

        job.submit(total_items=4)

        assert job.status == JobStatus.PENDING
        assert job.total_items == 4

    def test_submit_twice_rejected(self):
        job = Job.create("batch")
        job.submit(total_items=4)

        with pytest.raises(BusinessRuleViolation):
            job.submit(total_items=5)

    def test_start_records_started_event(self):
        job = Job.create("batch")
        job.submit(total_items=2)

        job.start()

        assert job.status == JobStatus.PROCESSING
        events = job.domain_events
        assert len(events) == 1
        assert isinstance(events[0], JobStartedEvent)
        assert events[0].job_id == job.id

    @pytest.mark.parametrize("status", [JobStatus.DRAFT, JobStatus.PAUSED])
    def test_start_only_from_pending(self, status):
        job = Job(id="job_1", name="x", status=status, total_items=1)

        with pytest.raises(InvalidStateTransition) as exc_info:
            job.start()

        assert exc_info.value.transition_info.from_state == status.value
        assert exc_info.value.transition_info.allowed_states == ["pending"]

    def test_pause_and_resume(self):
        job = _processing_job()

        job.pause()
        assert job.status == JobStatus.PAUSED

        job.resume()
        assert job.status == JobStatus.PROCESSING
        assert [e.event_type for e in job.domain_events] == [
            EventType.JOB_PAUSED,
            EventType.JOB_RESUMED,
        ]

    def test_resume_requires_paused(self):
        job = _processing_job()

        with pytest.raises(InvalidStateTransition):
            job.resume()

    def test_complete_stamps_completed_at(self):
        job = _processing_job(total_items=1)
        job.record_item_completed()

        job.complete()

        assert job.status == JobStatus.COMPLETED
        assert job.completed_at is not None
        assert job.is_terminal
        event = job.domain_events[-1]
        assert isinstance(event, JobCompletedEvent)
        assert event.completed_items == 1
        assert event.total_items == 1

    def test_fail_records_error(self):
        job = _processing_job()

        job.fail("boom")

        assert job.status == JobStatus.FAILED
        assert isinstance(job.domain_events[-1], JobFailedEvent)
        assert job.domain_events[-1].error == "boom"

    @pytest.mark.parametrize(
        "status", [JobStatus.DRAFT, JobStatus.PENDING, JobStatus.PAUSED]
    )
    def test_fail_only_from_processing(self, status):
        job = Job(id="job_1", name="x", status=status)

        with pytest.raises(InvalidStateTransition):
            job.fail("boom")

        assert job.status == status
        assert job.completed_at is None
        assert job.domain_events == []

    def test_cancel_from_paused(self):
        job = _processing_job()
        job.pause()

        job.cancel("no longer needed", cancelled_items=7)

        assert job.status == JobStatus.CANCELLED
        event = job.domain_events[-1]
        assert isinstance(event, JobCancelledEvent)
        assert event.cancelled_items == 7

    @pytest.mark.parametrize(
        "terminal", [JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED]
    )
    def test_terminal_states_are_final(self, terminal):
        job = Job(id="job_1", name="x", status=terminal)

        for transition in (job.pause, job.resume, job.complete, job.cancel):
            with pytest.raises(InvalidStateTransition):
                transition()
        with pytest.raises(InvalidStateTransition):
            job.fail("again")

        assert job.status == terminal


class TestJobCounters:
    """Test progress accounting."""

    def test_progress_and_all_items_processed(self):
        job = _processing_job(total_items=4)

        job.record_item_completed()
        job.record_item_failed()

        assert job.completed_items == 2
        assert job.failed_items == 1
        assert job.progress == 0.5
        assert not job.all_items_processed

    def test_progress_of_empty_job_is_zero(self):
        job = Job.create("empty")

        assert job.progress == 0.0

    def test_counter_cannot_exceed_total(self):
        job = _processing_job(total_items=1)
        job.record_item_completed()

        with pytest.raises(BusinessRuleViolation):
            job.record_item_completed()

        assert job.completed_items == 1

    def test_counts_accepted_while_paused(self):
        job = _processing_job(total_items=2)
        job.pause()

        job.record_item_completed()

        assert job.completed_items == 1

    def test_counts_rejected_when_pending(self):
        job = Job.create("batch")
        job.submit(total_items=2)

        with pytest.raises(InvalidStateTransition):
            job.record_item_failed()

    @pytest.mark.parametrize(
        "total, ratio, expected", [(10, 0.3, 3), (7, 0.3, 3), (20, 0.3, 6), (1, 0.3, 1), (0, 0.3, 0)]
    )
    def test_failure_threshold_rounds_up(self, total, ratio, expected):
        job = Job(id="job_1", name="x", total_items=total)

        assert job.failure_threshold(ratio) == expected

    def test_release_failed_items(self):
        job = _processing_job(total_items=5)
        job.record_item_failed()
        job.record_item_failed()
        job.record_item_completed()

        job.release_failed_items(2)

        assert job.failed_items == 0
        assert job.completed_items == 1

    def test_release_more_than_failed_rejected(self):
        job = _processing_job(total_items=5)
        job.record_item_failed()

        with pytest.raises(BusinessRuleViolation):
            job.release_failed_items(2)

    def test_release_rejected_for_terminal_job(self):
        job = Job(id="job_1", name="x", status=JobStatus.COMPLETED)

        with pytest.raises(InvalidStateTransition):
            job.release_failed_items(0)

    def test_to_dict(self):
        job = _processing_job(total_items=4)
        job.record_item_completed()

        data = job.to_dict()

        assert data["status"] == "processing"
        assert data["progress"] == 0.25
        assert data["completed_at"] is None
