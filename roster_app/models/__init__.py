# roster_app/models/__init__.py
"""
Database models package
"""

from .base import BaseModel, db
from .job import Job, JobOperation, JobStatus
from .sheet import Sheet, SheetRecord

__all__ = [
    "db",
    "BaseModel",
    "Sheet",
    "SheetRecord",
    "Job",
    "JobOperation",
    "JobStatus",
]
