"""
ImportRun model — one execution of the startup account import.

A row is written when the startup guard decides to import, and updated when
the run finishes. It records which file was loaded, how many records were
written or dropped, and the error if the run failed. Operators read these
through GET /admin/import-runs.

run_id is derived from the start timestamp, so two runs never share one
even if the same file is imported into a fresh database twice.
"""

from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class ImportRunStatus:
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"


class ImportRun(Base):
    __tablename__ = "import_runs"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    run_id: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
    )

    # Path of the file that was imported
    source: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )

    # "started", "completed", or "failed"
    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=ImportRunStatus.STARTED,
    )

    records_written: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # Records dropped by the transform step (not parse failures)
    records_skipped: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    error: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    finished_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
