"""FastAPI routes for the simulation log inspection API.

Log files are addressed by name relative to the configured log directory;
a name that resolves outside it is rejected. When no name is given the
newest log in the directory is inspected.

Routes:
    GET  /inspect/entities/{entity_id}  reconstruct one entity's history
    GET  /inspect/narratives            narrative timelines, chronicle, story beats
    GET  /inspect/operations            faction operations with likely phase actors
    GET  /inspect/summary               whole-log statistics and day snapshots
    POST /inspect/snapshots/validate    validate a world snapshot document
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from simlog_inspector.api.schemas import (
    EntityHistoryResponse,
    LogSummaryResponse,
    NarrativesResponse,
    OperationsResponse,
    SnapshotValidateRequest,
    ValidationResponse,
)
from simlog_inspector.core.services import InspectionService
from simlog_inspector.errors import (
    InspectorError,
    LogPathError,
    SnapshotDecodeError,
    SourceUnreadableError,
    TickOrderError,
)
from simlog_inspector.observability import get_logger
from simlog_inspector.settings import Settings
from simlog_inspector.stream.source import find_latest_log, resolve_log_path

logger = get_logger(__name__)

router = APIRouter(prefix="/inspect", tags=["Simulation Log Inspection"])

_STATUS_BY_ERROR: dict[type[InspectorError], int] = {
    LogPathError: status.HTTP_400_BAD_REQUEST,
    SourceUnreadableError: status.HTTP_404_NOT_FOUND,
    SnapshotDecodeError: 422,
    TickOrderError: 422,
}


# ---------------------------------------------------------------------------
# Dependency factories
# ---------------------------------------------------------------------------


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings, read once from the environment."""
    return Settings()


def get_inspection_service(
    settings: Annotated[Settings, Depends(get_settings)],
) -> InspectionService:
    """Construct an InspectionService bound to the current settings.

    Args:
        settings: Application settings.

    Returns:
        A fresh InspectionService.
    """
    return InspectionService(settings)


LogFileQuery = Annotated[
    str | None,
    Query(description="Log file name relative to the log directory; newest log if omitted"),
]


def _resolve_log(settings: Settings, log_file: str | None) -> Path:
    if log_file:
        return resolve_log_path(settings.log_dir, log_file)
    latest = find_latest_log(settings.log_dir, settings.log_glob)
    if latest is None:
        raise SourceUnreadableError(str(settings.log_dir), "no event logs found")
    return latest


async def inspector_error_handler(request: Request, exc: InspectorError) -> JSONResponse:
    """Map InspectorError subclasses to HTTP error responses.

    Args:
        request: The failing request.
        exc: The raised error.

    Returns:
        JSON body with ``detail`` and the error's structured ``context``.
    """
    status_code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
    logger.warning(
        "Inspection request failed",
        path=request.url.path,
        error=type(exc).__name__,
        status_code=status_code,
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "context": {k: str(v) for k, v in exc.context.items()}},
    )


# ---------------------------------------------------------------------------
# Route handlers
# ---------------------------------------------------------------------------


@router.get(
    "/entities/{entity_id}",
    response_model=EntityHistoryResponse,
    status_code=status.HTTP_200_OK,
    summary="Reconstruct the history of one entity",
)
async def get_entity_history(
    entity_id: str,
    service: Annotated[InspectionService, Depends(get_inspection_service)],
    log_file: LogFileQuery = None,
    limit: Annotated[
        int | None,
        Query(ge=0, description="Most recent items per section; settings default if omitted"),
    ] = None,
) -> EntityHistoryResponse:
    """Reconstruct memories, goals, plans, relationships and actions of an entity.

    An entity that never appears in the log yields empty sections, not 404.

    Args:
        entity_id: The entity to reconstruct.
        service: Injected inspection service.
        log_file: Log file to read.
        limit: Per-section tail length.

    Returns:
        EntityHistoryResponse with section totals and recent items.
    """
    path = _resolve_log(service.settings, log_file)
    history = await run_in_threadpool(service.entity_history, path, entity_id, limit)
    return EntityHistoryResponse.from_history(history)


@router.get(
    "/narratives",
    response_model=NarrativesResponse,
    status_code=status.HTTP_200_OK,
    summary="Reconstruct narrative timelines",
)
async def get_narratives(
    service: Annotated[InspectionService, Depends(get_inspection_service)],
    log_file: LogFileQuery = None,
    narrative_id: Annotated[
        str | None, Query(description="Only return this narrative's timeline")
    ] = None,
) -> NarrativesResponse:
    """Reconstruct narratives with recent chronicle entries and story beats.

    Args:
        service: Injected inspection service.
        log_file: Log file to read.
        narrative_id: Optional narrative filter.

    Returns:
        NarrativesResponse with the selected timelines and global tails.
    """
    path = _resolve_log(service.settings, log_file)
    report = await run_in_threadpool(service.narratives, path)
    return NarrativesResponse.from_report(report, narrative_id)


@router.get(
    "/operations",
    response_model=OperationsResponse,
    status_code=status.HTTP_200_OK,
    summary="Reconstruct faction operations",
)
async def get_operations(
    service: Annotated[InspectionService, Depends(get_inspection_service)],
    log_file: LogFileQuery = None,
    faction_id: Annotated[
        str | None, Query(description="Only consider records of this faction")
    ] = None,
) -> OperationsResponse:
    """Reconstruct operation lifecycles, likely phase actors and faction decisions.

    Args:
        service: Injected inspection service.
        log_file: Log file to read.
        faction_id: Optional faction filter, applied before reconstruction.

    Returns:
        OperationsResponse with every operation and the recent decisions.
    """
    path = _resolve_log(service.settings, log_file)
    report = await run_in_threadpool(service.operations, path, faction_id)
    return OperationsResponse.from_report(report)


@router.get(
    "/summary",
    response_model=LogSummaryResponse,
    status_code=status.HTTP_200_OK,
    summary="Summarise a whole event log",
)
async def get_log_summary(
    service: Annotated[InspectionService, Depends(get_inspection_service)],
    log_file: LogFileQuery = None,
    sample_days: Annotated[
        list[int] | None,
        Query(description="Days to sample; settings default if omitted"),
    ] = None,
    show_sites: Annotated[
        list[str] | None, Query(description="Only show these settlements in day snapshots")
    ] = None,
) -> LogSummaryResponse:
    """Count event kinds, incidents, encounters and attempts across a log.

    Also reports the first day each settlement hit a crisis milestone and
    compact snapshots of the sampled days and of the last day.

    Args:
        service: Injected inspection service.
        log_file: Log file to read.
        sample_days: Days whose end-of-day summary is included.
        show_sites: Settlement filter for the day snapshots.

    Returns:
        LogSummaryResponse for the whole log.
    """
    path = _resolve_log(service.settings, log_file)
    summary = await run_in_threadpool(service.summary, path, sample_days, show_sites)
    return LogSummaryResponse.from_summary(summary)


@router.post(
    "/snapshots/validate",
    response_model=ValidationResponse,
    status_code=status.HTTP_200_OK,
    summary="Validate a world snapshot",
)
async def validate_snapshot(
    body: SnapshotValidateRequest,
    service: Annotated[InspectionService, Depends(get_inspection_service)],
) -> ValidationResponse:
    """Run every structural rule against a snapshot document.

    Findings never cause an error status; ``valid`` is False when any
    error-severity finding was produced.

    Args:
        body: Request wrapping the snapshot document.
        service: Injected inspection service.

    Returns:
        ValidationResponse with errors, warnings and counts.
    """
    report = service.validate_snapshot(body.document)
    return ValidationResponse.from_report(report)
