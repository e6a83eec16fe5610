"""Error log model.

Stores the audit trail of pipeline failures and their recovery.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from voicebatch.infrastructure.persistence.models.base import Base, TimestampMixin


class ErrorLogModel(Base, TimestampMixin):
    """Persisted error log."""

    __tablename__ = "error_logs"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    error_type: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True, comment="Lower-cased error tag"
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    context: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="logged", index=True
    )
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    next_retry_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(nullable=True, index=True)
    final_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status_history: Mapped[List[str]] = mapped_column(
        JSON, nullable=False, default=list, comment="Every status the log went through"
    )

    def __repr__(self) -> str:
        return f"<ErrorLogModel(id={self.id!r}, error_type={self.error_type!r}, status={self.status!r})>"
