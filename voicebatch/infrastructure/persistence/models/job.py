"""Job model for batch content production.

This module defines the Job model, the persisted form of the Job
aggregate, and its one-to-many relation to content items.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from voicebatch.infrastructure.persistence.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from voicebatch.infrastructure.persistence.models.content_item import (
        ContentItemModel,
    )


class JobModel(Base, TimestampMixin):
    """Job model.

    Attributes:
        id: Opaque job identifier
        name: Human-readable job name
        status: Current state machine status
        total_items: Number of items in the job
        completed_items: Items processed, successful or not
        failed_items: Items that failed
    """

    __tablename__ = "jobs"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, comment="Opaque job identifier"
    )

    name: Mapped[str] = mapped_column(
        String(255), nullable=False, comment="Human-readable job name"
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="draft",
        index=True,
        comment="Current processing status",
    )

    total_items: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_items: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_items: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    started_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)

    voice_settings: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSON, nullable=True, comment="Opaque voice provider settings"
    )
    prompt_settings: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        JSON, nullable=True, comment="Opaque text provider settings"
    )

    items: Mapped[List["ContentItemModel"]] = relationship(
        "ContentItemModel",
        back_populates="job",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<JobModel(id={self.id!r}, status={self.status!r})>"
