"""Tests for ContentItem pipeline progression."""

import pytest

from voicebatch.domain.entities.content_item import (
    ContentItem,
    ItemStatus,
    PipelineStep,
)
from voicebatch.domain.exceptions import (
    BusinessRuleViolation,
    InvalidStateTransition,
    InvalidValueError,
)


@pytest.fixture
def item():
    return ContentItem.create("job_1", position=0, max_retries=2)


class TestContentItem:
    """Test content item state handling."""

    def test_create(self, item):
        assert item.id.startswith("item_")
        assert item.status == ItemStatus.PENDING
        assert item.current_step == PipelineStep.VALIDATION
        assert item.progress_percentage == 0
        assert not item.is_terminal

    def test_requires_job(self):
        with pytest.raises(InvalidValueError):
            ContentItem(id="item_1", job_id="")

    def test_advance_through_pipeline(self, item):
        for status in (
            ItemStatus.VALIDATING,
            ItemStatus.GENERATING_TEXT,
            ItemStatus.CHUNKING,
            ItemStatus.GENERATING_AUDIO,
            ItemStatus.MERGING,
            ItemStatus.UPLOADING,
        ):
            item.advance_to(status)
            assert item.is_processing

        assert item.current_step == PipelineStep.UPLOAD
        assert item.started_at is not None

        item.advance_to(ItemStatus.COMPLETED)

        assert item.is_terminal
        assert item.completed_at is not None
        assert item.progress_percentage == 100

    def test_cannot_skip_stages(self, item):
        with pytest.raises(InvalidStateTransition):
            item.advance_to(ItemStatus.CHUNKING)

        assert item.status == ItemStatus.PENDING

    def test_fail_and_retry(self, item):
        item.advance_to(ItemStatus.VALIDATING)
        item.fail("provider timeout")

        assert item.status == ItemStatus.FAILED
        assert item.last_error == "provider timeout"
        assert item.can_retry

        item.reset_for_retry()

        assert item.status == ItemStatus.PENDING
        assert item.retry_count == 1
        assert item.last_error is None
        assert item.completed_at is None

    def test_retry_limit(self, item):
        for _ in range(2):
            item.fail("boom")
            item.reset_for_retry()
        item.fail("boom")

        assert not item.can_retry
        with pytest.raises(BusinessRuleViolation, match="Max retries"):
            item.reset_for_retry()

    def test_reset_requires_failed(self, item):
        with pytest.raises(InvalidStateTransition):
            item.reset_for_retry()

    def test_cancel_open_item(self, item):
        item.advance_to(ItemStatus.VALIDATING)

        item.cancel()

        assert item.status == ItemStatus.CANCELLED
        assert item.is_terminal

    def test_terminal_item_cannot_be_cancelled(self, item):
        item.fail("boom")

        with pytest.raises(InvalidStateTransition):
            item.cancel()
