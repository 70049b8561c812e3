"""
Import Endpoints

Report uploads. Sales imports are two-phase: the upload opens a session,
heuristic SKU matches are approved or rejected, then the session is
committed (or cancelled).
"""

from dataclasses import asdict
from datetime import date
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from salesrecon.domain.models import CamelModel
from salesrecon.ingestion import ReadResult, ReportKind, RowReader
from salesrecon.service import ImportSession, MappingMode, ReconciliationService
from ..dependencies import get_service

router = APIRouter()


class CandidateResponse(CamelModel):
    import_sku: str
    proposed_sku: str
    rule: str
    row_count: int
    revenue: float
    decision: str


class ReadSummary(CamelModel):
    total_rows: int
    rows: int
    skipped: int
    skip_reasons: Dict[str, int]
    column_map: Dict[str, str]


class SessionResponse(CamelModel):
    id: str
    status: str
    candidates: List[CandidateResponse]
    resolution_counts: Dict[str, int]
    rows: int
    read: Optional[ReadSummary] = None


class DecisionRequest(CamelModel):
    import_sku: str
    approve: bool


def _read_summary(result: ReadResult) -> ReadSummary:
    return ReadSummary(
        total_rows=result.total_rows,
        rows=len(result.rows),
        skipped=result.skipped,
        skip_reasons=result.skip_reasons,
        column_map=result.column_map,
    )


def _session_response(session: ImportSession, read: Optional[ReadSummary] = None) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        status=session.status.value,
        candidates=[
            CandidateResponse(
                import_sku=c.import_sku,
                proposed_sku=c.proposed_sku,
                rule=c.rule.value,
                row_count=c.row_count,
                revenue=round(c.revenue, 2),
                decision=c.decision.value,
            )
            for c in session.candidates
        ],
        resolution_counts=session.resolution_counts(),
        rows=len(session.rows),
        read=read,
    )


async def _read_upload(kind: ReportKind, file: UploadFile) -> ReadResult:
    content = await file.read()
    return RowReader(kind).read_bytes(content, file.filename or "upload.csv")


@router.post("/sales", response_model=SessionResponse)
async def upload_sales(
    file: UploadFile = File(...),
    service: ReconciliationService = Depends(get_service),
) -> SessionResponse:
    """Read a sales report and open an import session."""
    result = await _read_upload(ReportKind.SALES, file)
    session = service.begin_sales_import(result.rows)
    return _session_response(session, _read_summary(result))


@router.get("/sales/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str, service: ReconciliationService = Depends(get_service)) -> SessionResponse:
    return _session_response(service.get_session(session_id))


@router.post("/sales/{session_id}/decisions", response_model=SessionResponse)
async def decide(
    session_id: str,
    decision: DecisionRequest,
    service: ReconciliationService = Depends(get_service),
) -> SessionResponse:
    service.decide(session_id, decision.import_sku, decision.approve)
    return _session_response(service.get_session(session_id))


@router.post("/sales/{session_id}/commit")
async def commit(session_id: str, service: ReconciliationService = Depends(get_service)) -> Dict[str, Any]:
    """Aggregate and merge a reviewed session; 409 while candidates are pending."""
    return asdict(service.commit_import(session_id))


@router.delete("/sales/{session_id}", response_model=SessionResponse)
async def cancel(session_id: str, service: ReconciliationService = Depends(get_service)) -> SessionResponse:
    return _session_response(service.cancel_import(session_id))


@router.post("/refunds")
async def upload_refunds(
    file: UploadFile = File(...),
    service: ReconciliationService = Depends(get_service),
) -> Dict[str, Any]:
    result = await _read_upload(ReportKind.REFUNDS, file)
    report = service.import_refunds(result.rows)
    return {"read": _read_summary(result).to_json(), **asdict(report)}


@router.post("/shipments")
async def upload_shipments(
    file: UploadFile = File(...),
    as_of: Optional[date] = Query(None, description="Date lead times are measured from (default today)"),
    service: ReconciliationService = Depends(get_service),
) -> Dict[str, Any]:
    result = await _read_upload(ReportKind.SHIPMENTS, file)
    report = service.import_shipments(result.rows, as_of=as_of)
    return {"read": _read_summary(result).to_json(), **asdict(report)}


@router.post("/catalog")
async def upload_catalog(
    file: UploadFile = File(...),
    service: ReconciliationService = Depends(get_service),
) -> Dict[str, Any]:
    result = await _read_upload(ReportKind.CATALOG, file)
    report = service.import_catalog(result.rows)
    return {"read": _read_summary(result).to_json(), **asdict(report)}


@router.post("/mappings")
async def upload_mappings(
    file: UploadFile = File(...),
    platform: str = Query(..., min_length=1, description="Platform the aliases belong to"),
    mode: MappingMode = Query(MappingMode.MERGE, description="merge keeps stored aliases, replace clears them"),
    service: ReconciliationService = Depends(get_service),
) -> Dict[str, Any]:
    """Bulk-link platform SKUs to master SKUs."""
    result = await _read_upload(ReportKind.MAPPING, file)
    report = service.import_mappings(result.rows, platform, mode=mode.value)
    return {"read": _read_summary(result).to_json(), **asdict(report)}
