"""
SQLAlchemy models backing the record store: sheets and their ordered records.

Records keep their cells as a JSON document so the ordered field layout of an
uploaded spreadsheet survives round-trips unchanged.
"""

from __future__ import annotations

from sqlalchemy import ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BaseModel, db


class Sheet(BaseModel):
    """A named collection of records (one uploaded table)."""

    __tablename__ = "sheets"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(db.String(200), nullable=False)
    slug: Mapped[str] = mapped_column(db.String(100), nullable=False, index=True)

    records = relationship(
        "SheetRecord",
        back_populates="sheet",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SheetRecord.position",
    )
    jobs = relationship("Job", back_populates="sheet", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<Sheet {self.slug} ({self.id})>"


class SheetRecord(BaseModel):
    """A single row of a sheet; ``position`` is the fetch order."""

    __tablename__ = "sheet_records"

    id: Mapped[int] = mapped_column(primary_key=True)
    sheet_id: Mapped[int] = mapped_column(ForeignKey("sheets.id", ondelete="CASCADE"), nullable=False)
    position: Mapped[int] = mapped_column(db.Integer, nullable=False)
    values_json: Mapped[dict] = mapped_column(db.JSON, nullable=False, default=dict)

    sheet = relationship("Sheet", back_populates="records")

    __table_args__ = (
        UniqueConstraint("sheet_id", "position", name="uq_sheet_records_position"),
        Index("idx_sheet_records_sheet_position", "sheet_id", "position"),
    )

    def __repr__(self) -> str:
        return f"<SheetRecord {self.id} sheet={self.sheet_id} pos={self.position}>"
