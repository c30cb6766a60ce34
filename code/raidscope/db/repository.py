"""Async store for saved raid analyses.

Two tables move together on every write: the full JSON document and a small
index row used for listing, searching and zone filtering.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from raidscope.db.models import AnalysisIndex, SavedAnalysis
from raidscope.models import (
    AnalysisDateRange,
    AnalysisExport,
    AnalysisMetadata,
    SavedRaidAnalysis,
    StorageStats,
)
from raidscope.utils import ensure_utc

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0.0"

StorageErrorCode = Literal["NOT_FOUND", "STORAGE_FULL", "CORRUPTION", "ACCESS_DENIED"]


class StorageError(Exception):
    """Raised when a store operation fails; ``code`` says how."""

    def __init__(self, message: str, code: StorageErrorCode) -> None:
        super().__init__(message)
        self.code = code


def _index_row(doc: SavedRaidAnalysis) -> AnalysisIndex:
    meta = doc.metadata
    return AnalysisIndex(
        id=doc.id,
        name=doc.name,
        zone=meta.zone,
        created_at=doc.created_at,
        updated_at=doc.updated_at,
        report_count=meta.report_count,
        player_count=meta.player_count,
        average_performance=meta.raid_info.average_performance,
        earliest=meta.date_range.earliest,
        latest=meta.date_range.latest,
    )


def _to_metadata(row: AnalysisIndex) -> AnalysisMetadata:
    # SQLite drops tzinfo on the way back out
    return AnalysisMetadata(
        id=row.id,
        name=row.name,
        created_at=ensure_utc(row.created_at),
        updated_at=ensure_utc(row.updated_at),
        zone=row.zone,
        report_count=row.report_count,
        player_count=row.player_count,
        average_performance=row.average_performance,
        date_range=AnalysisDateRange(
            earliest=ensure_utc(row.earliest), latest=ensure_utc(row.latest),
        ),
    )


def _to_document(row: SavedAnalysis) -> SavedRaidAnalysis:
    try:
        return SavedRaidAnalysis.model_validate(row.payload)
    except ValidationError as exc:
        raise StorageError(f"Analysis {row.id} is corrupted: {exc}", "CORRUPTION") from exc


def _dump(doc: SavedRaidAnalysis) -> dict[str, Any]:
    return doc.model_dump(mode="json", by_alias=True)


class AnalysisStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def save(self, analysis: SavedRaidAnalysis) -> str:
        """Store a new analysis under a fresh id and return the id."""
        now = datetime.now(UTC)
        doc = analysis.model_copy(update={
            "id": str(uuid.uuid4()),
            "created_at": now,
            "updated_at": now,
        })
        try:
            async with self._session_factory() as session, session.begin():
                session.add(SavedAnalysis(
                    id=doc.id, payload=_dump(doc), created_at=now, updated_at=now,
                ))
                await session.flush()
                session.add(_index_row(doc))
        except SQLAlchemyError as exc:
            raise StorageError("Failed to save analysis", "STORAGE_FULL") from exc
        logger.info("Saved analysis %s (%s)", doc.id, doc.name)
        return doc.id

    async def load(self, analysis_id: str) -> SavedRaidAnalysis | None:
        try:
            async with self._session_factory() as session:
                row = await session.get(SavedAnalysis, analysis_id)
        except SQLAlchemyError as exc:
            raise StorageError("Failed to load analysis", "ACCESS_DENIED") from exc
        return _to_document(row) if row else None

    async def update(self, analysis_id: str, **changes: Any) -> None:
        """Merge field changes into a stored analysis; id and created_at are kept."""
        existing = await self.load(analysis_id)
        if existing is None:
            raise StorageError("Analysis not found", "NOT_FOUND")

        changes.pop("id", None)
        changes.pop("created_at", None)
        now = datetime.now(UTC)
        doc = SavedRaidAnalysis.model_validate({
            **existing.model_dump(),
            **changes,
            "updated_at": now,
        })
        try:
            async with self._session_factory() as session, session.begin():
                row = await session.get(SavedAnalysis, analysis_id)
                row.payload = _dump(doc)
                row.updated_at = now
                await session.merge(_index_row(doc))
        except SQLAlchemyError as exc:
            raise StorageError("Failed to update analysis", "ACCESS_DENIED") from exc

    async def delete(self, analysis_id: str) -> None:
        try:
            async with self._session_factory() as session, session.begin():
                await session.execute(
                    delete(AnalysisIndex).where(AnalysisIndex.id == analysis_id)
                )
                await session.execute(
                    delete(SavedAnalysis).where(SavedAnalysis.id == analysis_id)
                )
        except SQLAlchemyError as exc:
            raise StorageError("Failed to delete analysis", "ACCESS_DENIED") from exc

    async def _list_where(self, *criteria) -> list[AnalysisMetadata]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(AnalysisIndex)
                    .where(*criteria)
                    .order_by(AnalysisIndex.created_at.desc())
                )
                rows = list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise StorageError("Failed to list analyses", "ACCESS_DENIED") from exc
        return [_to_metadata(r) for r in rows]

    async def list(self) -> list[AnalysisMetadata]:
        """Listing rows, newest first."""
        return await self._list_where()

    async def search(self, query: str) -> list[AnalysisMetadata]:
        """Case-insensitive substring match on name or zone."""
        needle = query.lower()
        return [
            a for a in await self.list()
            if needle in a.name.lower() or needle in a.zone.lower()
        ]

    async def get_by_zone(self, zone: str) -> list[AnalysisMetadata]:
        return await self._list_where(AnalysisIndex.zone == zone)

    async def load_all(self) -> list[SavedRaidAnalysis]:
        """Every stored document, oldest first."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(SavedAnalysis).order_by(SavedAnalysis.created_at)
                )
                rows = list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise StorageError("Failed to export analyses", "ACCESS_DENIED") from exc
        return [_to_document(r) for r in rows]

    async def export_all(self) -> AnalysisExport:
        analyses = await self.load_all()
        return AnalysisExport(
            version=EXPORT_VERSION,
            exported_at=datetime.now(UTC),
            analyses=analyses,
            total_count=len(analyses),
        )

    async def export_json(self) -> str:
        exported = await self.export_all()
        return exported.model_dump_json(by_alias=True, indent=2)

    async def import_(self, data: AnalysisExport) -> int:
        """Save each exported analysis under a new id; returns how many stuck.

        One failing entry is logged and skipped, the rest still import.
        """
        imported = 0
        for analysis in data.analyses:
            fresh = analysis.model_copy(update={
                "id": None, "created_at": None, "updated_at": None,
            })
            try:
                await self.save(fresh)
            except StorageError:
                logger.warning("Failed to import analysis %s", analysis.name, exc_info=True)
                continue
            imported += 1
        return imported

    async def import_json(self, text: str) -> int:
        try:
            data = AnalysisExport.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise StorageError("Invalid import file format", "CORRUPTION") from exc
        return await self.import_(data)

    async def clear(self) -> None:
        try:
            async with self._session_factory() as session, session.begin():
                await session.execute(delete(AnalysisIndex))
                await session.execute(delete(SavedAnalysis))
        except SQLAlchemyError as exc:
            raise StorageError("Failed to clear storage", "ACCESS_DENIED") from exc

    async def stats(self) -> StorageStats:
        """Counts and a size estimate extrapolated from the newest document."""
        analyses = await self.list()
        if not analyses:
            return StorageStats()

        sample = await self.load(analyses[0].id)
        sample_size = len(json.dumps(_dump(sample))) if sample else 0
        total_mb = sample_size * len(analyses) / (1024 * 1024)
        created = sorted(a.created_at for a in analyses)
        return StorageStats(
            total_analyses=len(analyses),
            total_size_mb=round(total_mb, 2),
            oldest_analysis=created[0],
            newest_analysis=created[-1],
        )
