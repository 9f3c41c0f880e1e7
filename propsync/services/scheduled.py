"""Scheduled sync over the known Dubai areas, one chunk of areas at a time."""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from propsync.infrastructure.http.client import PropertyFilters
from propsync.infrastructure.observability.logging import get_logger, log_exception
from propsync.services.areas import AREA_CHUNKS, Area
from propsync.services.sync import SyncOrchestrator
from propsync.services.sync.pacing import Sleeper

logger = get_logger(__name__)

CHUNK_GAP_SECONDS = 2.0


@dataclass
class ChunkResult:
    chunk: int
    areas: list[str]
    synced: int = 0
    run_id: int | None = None
    error: str | None = None


@dataclass
class ScheduledSyncResult:
    status: str
    total_properties_synced: int
    duration_seconds: float
    chunks: list[ChunkResult] = field(default_factory=list)

    @property
    def chunks_processed(self) -> int:
        return sum(1 for chunk in self.chunks if chunk.error is None)

    def to_response(self) -> dict[str, Any]:
        has_errors = any(chunk.error for chunk in self.chunks)
        return {
            "success": self.total_properties_synced > 0 or not has_errors,
            "message": f"Scheduled sync {self.status}",
            "status": self.status,
            "totalPropertiesSynced": self.total_properties_synced,
            "durationSeconds": round(self.duration_seconds),
            "chunksProcessed": self.chunks_processed,
            "totalChunks": len(self.chunks),
            "chunkResults": [
                {
                    "chunk": chunk.chunk,
                    "synced": chunk.synced,
                    **({"runId": chunk.run_id} if chunk.run_id is not None else {}),
                    **({"error": chunk.error} if chunk.error else {}),
                }
                for chunk in self.chunks
            ],
        }


def aggregate_status(chunks: Sequence[ChunkResult], total_synced: int) -> str:
    if not any(chunk.error for chunk in chunks):
        return "completed"
    return "completed_with_errors" if total_synced > 0 else "failed"


def run_scheduled_sync(
    orchestrator: SyncOrchestrator,
    chunks: Sequence[Sequence[Area]] = AREA_CHUNKS,
    *,
    chunk_index: int | None = None,
    purpose: str = "for-sale",
    limit: int = 25,
    sleep: Sleeper = time.sleep,
    gap_seconds: float = CHUNK_GAP_SECONDS,
) -> ScheduledSyncResult:
    """Sync each chunk of areas sequentially.

    A failing chunk is recorded and the next chunk still runs. With
    ``chunk_index`` only that chunk is processed.
    """
    selected: list[tuple[int, Sequence[Area]]]
    if chunk_index is not None:
        if not 0 <= chunk_index < len(chunks):
            raise IndexError(f"chunk_index must be between 0 and {len(chunks) - 1}")
        selected = [(chunk_index, chunks[chunk_index])]
    else:
        selected = list(enumerate(chunks))

    started = time.perf_counter()
    results: list[ChunkResult] = []
    total_synced = 0

    for position, (index, areas) in enumerate(selected):
        chunk = ChunkResult(chunk=index + 1, areas=[area.name for area in areas])
        logger.info(
            f"Processing chunk {index + 1}/{len(chunks)}: {', '.join(chunk.areas)}"
        )
        filters = PropertyFilters(
            locations_ids=[area.id for area in areas], purpose=purpose, limit=limit
        )
        try:
            outcome = orchestrator.sync_properties(filters)
        except Exception as exc:
            chunk.error = str(exc) or exc.__class__.__name__
            log_exception(logger, f"Chunk {index + 1} failed", exc)
        else:
            chunk.synced = outcome.stats.properties_synced
            chunk.run_id = outcome.run_id
            total_synced += chunk.synced
            logger.info(f"Chunk {index + 1} complete: {chunk.synced} properties")
        results.append(chunk)

        if position < len(selected) - 1 and gap_seconds > 0:
            sleep(gap_seconds)

    status = aggregate_status(results, total_synced)
    duration = time.perf_counter() - started
    logger.info(
        f"Scheduled sync {status}: {total_synced} properties in {duration:.0f}s "
        f"({sum(1 for r in results if r.error is None)}/{len(results)} chunks)"
    )
    return ScheduledSyncResult(
        status=status,
        total_properties_synced=total_synced,
        duration_seconds=duration,
        chunks=results,
    )


__all__ = [
    "CHUNK_GAP_SECONDS",
    "ChunkResult",
    "ScheduledSyncResult",
    "aggregate_status",
    "run_scheduled_sync",
]
