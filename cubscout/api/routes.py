"""Route handlers for the cub-scout REST API.

Every handler reads the current snapshot through ``app.state.index_provider``
so a background refresh can swap the index without touching the routes.
"""

from __future__ import annotations

from collections import Counter
from typing import Annotated

from fastapi import APIRouter, Query, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from cubscout.api.schemas import (
    ChainResponse,
    ErrorResponse,
    FindingModel,
    HealthResponse,
    MapEntryModel,
    MapResponse,
    MapSummaryModel,
    ScanResponse,
)
from cubscout.chain import DEFAULT_MAX_HOPS, resolve_ref
from cubscout.models.findings import Severity
from cubscout.models.ownership import OwnerType
from cubscout.observability.logging import get_logger
from cubscout.ownership import build_map, summarize
from cubscout.scanner import Scanner, default_checks
from cubscout.snapshot.index import SnapshotIndex

_log = get_logger("api.routes")

# Path placeholder for the namespace of cluster-scoped objects.
CLUSTER_SCOPE = "_"

router = APIRouter()
metrics_router = APIRouter()


def _not_ready() -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content=ErrorResponse(error="SNAPSHOT_NOT_READY", detail="No snapshot has been collected yet.").model_dump(),
    )


def _current_index(request: Request) -> SnapshotIndex | None:
    provider = request.app.state.index_provider
    return provider() if provider is not None else None


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse | JSONResponse:
    from cubscout import __version__

    index = _current_index(request)
    if index is None:
        return JSONResponse(
            status_code=503,
            content=HealthResponse(status="not_ready", version=__version__).model_dump(),
        )
    return HealthResponse(
        status="ok",
        version=__version__,
        cluster=index.cluster,
        objects=len(index),
        generated_at=index.generated_at.isoformat().replace("+00:00", "Z"),
        collected_kinds=sorted(index.collected_kinds),
    )


@router.get("/objects", response_model=MapResponse)
async def objects(
    request: Request,
    owner: Annotated[OwnerType | None, Query()] = None,
    kind: Annotated[list[str] | None, Query()] = None,
    namespace: Annotated[str | None, Query()] = None,
) -> MapResponse | JSONResponse:
    index = _current_index(request)
    if index is None:
        return _not_ready()
    subjects = (obj for obj in index if namespace is None or obj.namespace == namespace)
    entries = build_map(subjects, owner=owner, kinds=kind)
    return MapResponse(
        summary=MapSummaryModel.from_stats(summarize(entries)),
        entries=[MapEntryModel.from_entry(entry) for entry in entries],
    )


@router.get("/trace/{kind}/{namespace}/{name}", response_model=ChainResponse)
async def trace(request: Request, kind: str, namespace: str, name: str) -> ChainResponse | JSONResponse:
    index = _current_index(request)
    if index is None:
        return _not_ready()
    ns = "" if namespace == CLUSTER_SCOPE else namespace
    config = request.app.state.config
    max_hops = config.chain.max_hops if config is not None else DEFAULT_MAX_HOPS
    chain = resolve_ref(index, kind, ns, name, max_hops=max_hops)
    if chain is None:
        where = f" in namespace {ns}" if ns else ""
        return JSONResponse(
            status_code=404,
            content=ErrorResponse(error="NOT_FOUND", detail=f"{kind}/{name} not found{where}").model_dump(),
        )
    _log.debug("trace_served", kind=kind, namespace=ns, name=name, terminus=chain.terminus.value)
    return ChainResponse.from_chain(chain)


@router.get("/scan", response_model=ScanResponse)
async def scan(
    request: Request,
    severity: Annotated[Severity | None, Query()] = None,
    check: Annotated[list[str] | None, Query()] = None,
) -> ScanResponse | JSONResponse:
    index = _current_index(request)
    if index is None:
        return _not_ready()
    config = request.app.state.config
    disabled: tuple[str, ...] = config.scanner.disabled_checks if config is not None else ()
    min_severity = severity or (Severity(config.scanner.min_severity) if config is not None else Severity.INFO)
    checks = default_checks()
    if check:
        checks = [c for c in checks if c.check_id in check]
    findings = Scanner(checks, disabled=disabled).scan(index, min_severity=min_severity)
    counts = Counter(f.severity.value for f in findings)
    return ScanResponse(
        total=len(findings),
        by_severity={s.value: counts.get(s.value, 0) for s in Severity},
        findings=[FindingModel.from_finding(f) for f in findings],
    )


@metrics_router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
