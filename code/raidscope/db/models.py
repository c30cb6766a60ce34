from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class SavedAnalysis(Base):
    """Full analysis document, stored as its camelCase JSON."""

    __tablename__ = "saved_analyses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))


class AnalysisIndex(Base):
    """Listing row kept in step with saved_analyses so lists skip the payloads."""

    __tablename__ = "analysis_index"
    __table_args__ = (
        Index("ix_analysis_index_zone", "zone"),
        Index("ix_analysis_index_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(
        ForeignKey("saved_analyses.id", ondelete="CASCADE"), primary_key=True,
    )
    name: Mapped[str] = mapped_column(String(200))
    zone: Mapped[str] = mapped_column(String(200))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    report_count: Mapped[int] = mapped_column(Integer, default=0)
    player_count: Mapped[int] = mapped_column(Integer, default=0)
    average_performance: Mapped[float] = mapped_column(Float, default=0.0)
    earliest: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    latest: Mapped[datetime] = mapped_column(DateTime(timezone=True))
