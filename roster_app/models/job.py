"""
Job bookkeeping for merge and forward-fill runs.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, Enum, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BaseModel, db


class JobStatus(str, enum.Enum):
    """Lifecycle states for a job."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class JobOperation(str, enum.Enum):
    """Operations a job can execute against a sheet."""

    MERGE_PARENTS = "merge-parents"
    POPULATE_MISSING_FIELDS = "populate-missing-fields"


class Job(BaseModel):
    """A single merge or forward-fill execution and its progress."""

    __tablename__ = "jobs"

    id: Mapped[int] = mapped_column(primary_key=True)
    operation: Mapped[JobOperation] = mapped_column(
        Enum(JobOperation, name="job_operation_enum"),
        nullable=False,
        index=True,
    )
    sheet_id: Mapped[int | None] = mapped_column(ForeignKey("sheets.id", ondelete="SET NULL"), nullable=True)
    status: Mapped[JobStatus] = mapped_column(
        Enum(JobStatus, name="job_status_enum"),
        nullable=False,
        default=JobStatus.PENDING,
        index=True,
    )
    progress: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    info: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    params_json: Mapped[dict | None] = mapped_column(
        db.JSON,
        nullable=True,
        comment="Operation parameters, e.g. columnKey for populate-missing-fields",
    )
    result_json: Mapped[dict | None] = mapped_column(db.JSON, nullable=True)
    error_summary: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(db.DateTime(timezone=True))
    finished_at: Mapped[datetime | None] = mapped_column(db.DateTime(timezone=True))

    sheet = relationship("Sheet", back_populates="jobs")

    __table_args__ = (CheckConstraint("progress >= 0 AND progress <= 100", name="ck_jobs_progress_range"),)

    def __repr__(self) -> str:
        return f"<Job {self.id} {self.operation.value} {self.status.value}>"
