"""Content item model."""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from voicebatch.infrastructure.persistence.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from voicebatch.infrastructure.persistence.models.job import JobModel


class ContentItemModel(Base, TimestampMixin):
    """One work item of a job."""

    __tablename__ = "content_items"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    job_id: Mapped[str] = mapped_column(
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning job",
    )

    position: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Order of the item in its job"
    )
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="pending", index=True
    )
    current_step: Mapped[str] = mapped_column(
        String(32), nullable=False, default="validation"
    )

    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_retries: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    started_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)

    job: Mapped["JobModel"] = relationship("JobModel", back_populates="items")

    def __repr__(self) -> str:
        return f"<ContentItemModel(id={self.id!r}, job_id={self.job_id!r}, status={self.status!r})>"
