from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.responses import JSONResponse

from .engine import ReportEngine
from .errors import EmptyInput, NotFound, ParseFailure, ReportError, StoreFailure, UnsupportedFormat
from .log import get_logger
from .models import (
    CategoryPeriod,
    ColumnAnalysis,
    DeleteResponse,
    HealthResponse,
    ReportView,
    UploadResponse,
    UserStats,
)
from .store import InMemoryReportStore

logger = get_logger(__name__)

app = FastAPI(
    title="csv-reports",
    description="CSV report ingestion and column analysis",
    version="0.1.0",
)

_engine = ReportEngine(InMemoryReportStore())


def get_engine() -> ReportEngine:
    return _engine


_STATUS_BY_ERROR = (
    (EmptyInput, 400),
    (UnsupportedFormat, 422),
    (ParseFailure, 422),
    (NotFound, 404),  # Forbidden included, same body
    (StoreFailure, 503),
)


@app.exception_handler(ReportError)
async def report_error_handler(request: Request, exc: ReportError):
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            break
    else:
        status_code = 500

    if isinstance(exc, NotFound):
        detail = "Report not found"
    else:
        detail = str(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": detail})


@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}


@app.post("/reports", response_model=UploadResponse)
async def upload_report(
    file: UploadFile = File(...),
    owner_id: str = Form(...),
    category: Optional[str] = Form(None),
    period: Optional[str] = Form(None),
    is_public: bool = Form(False),
    engine: ReportEngine = Depends(get_engine),
):
    raw = await file.read()
    report = engine.ingest(
        raw,
        file_name=file.filename or "",
        owner_id=owner_id,
        category=category,
        period=period,
        is_public=is_public,
    )
    return UploadResponse(
        report_id=report.id,
        file_name=report.original_file_name,
        row_count=report.row_count or 0,
        column_count=len(report.headers),
    )


@app.get("/reports/{report_id}", response_model=ReportView)
def get_report(
    report_id: str,
    requester_id: Optional[str] = Query(None),
    engine: ReportEngine = Depends(get_engine),
):
    return ReportView.from_report(engine.get(report_id, requester_id))


@app.delete("/reports/{report_id}", response_model=DeleteResponse)
def delete_report(
    report_id: str,
    requester_id: Optional[str] = Query(None),
    engine: ReportEngine = Depends(get_engine),
):
    engine.delete(report_id, requester_id)
    return DeleteResponse()


@app.get("/users/{owner_id}/reports", response_model=List[ReportView])
def list_reports(owner_id: str, engine: ReportEngine = Depends(get_engine)):
    return [ReportView.from_report(r) for r in engine.list_for_user(owner_id)]


@app.get("/users/{owner_id}/stats", response_model=UserStats)
def user_stats(owner_id: str, engine: ReportEngine = Depends(get_engine)):
    return engine.user_stats(owner_id)


@app.get("/users/{owner_id}/categories", response_model=Dict[str, List[CategoryPeriod]])
def user_categories(owner_id: str, engine: ReportEngine = Depends(get_engine)):
    return engine.categories_with_periods(owner_id)


@app.get("/users/{owner_id}/analysis", response_model=ColumnAnalysis)
def column_analysis(
    owner_id: str,
    column: str = Query(...),
    engine: ReportEngine = Depends(get_engine),
):
    return engine.column_analysis(owner_id, column)
