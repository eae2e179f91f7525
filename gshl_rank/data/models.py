"""ORM model for stored stat records.

Every record kind (PlayerDay, TeamWeek, Matchup, ...) shares one table. A
row is identified by its record kind plus the natural key built from the
kind's identity fields; the full record lives in a JSON payload, so new
stat fields never need a migration.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Index, String, UniqueConstraint, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for the row-store tables."""


class StatRecord(Base):
    """One stored record.

    Attributes:
        id: Surrogate primary key.
        model: Record kind, e.g. ``PlayerWeek``.
        natural_key: Colon-joined identity fields.
        payload: Record fields. Upserts replace the whole dict, which is
            what marks the row dirty and refreshes ``updated_at``.
        created_at: When the record was first loaded or rolled up.
        updated_at: When a rollup or load last rewrote it.
    """

    __tablename__ = "stat_records"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    model: Mapped[str] = mapped_column(String(32), nullable=False)
    natural_key: Mapped[str] = mapped_column(String(255), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("model", "natural_key", name="uq_stat_records_model_key"),
        Index("ix_stat_records_model", "model"),
    )

    def __repr__(self) -> str:
        return f"<StatRecord({self.model} {self.natural_key})>"
