from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Union

from pydantic import BaseModel, Field


class CellKind(str, Enum):
    INTEGER = "integer"
    FLOAT = "float"
    TEXT = "text"
    NULL = "null"


class Cell(NamedTuple):
    """One typed field value. ``kind`` always says which member ``value`` holds."""

    kind: CellKind
    value: Union[int, float, str, None] = None

    @property
    def is_null(self) -> bool:
        return self.kind is CellKind.NULL

    def as_text(self) -> Optional[str]:
        if self.kind is CellKind.NULL:
            return None
        if self.kind is CellKind.TEXT:
            return self.value
        return str(self.value)


NULL_CELL = Cell(CellKind.NULL)


class ReportStatus(str, Enum):
    PROCESSING = "PROCESSING"
    UPLOADED = "UPLOADED"
    ERROR = "ERROR"

    @property
    def is_terminal(self) -> bool:
        return self is not ReportStatus.PROCESSING


class ReportMetadata(BaseModel):
    total_columns: int
    total_rows: int
    sample_rows: int
    is_sample: bool
    upload_timestamp: int  # epoch milliseconds
    encoding: Optional[str] = None
    detected_encoding: Optional[str] = None
    delimiter: Optional[str] = None


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Report(BaseModel):
    id: str = Field(default_factory=_new_id)
    owner_id: str
    stored_file_name: str = Field(default_factory=lambda: str(uuid.uuid4()))
    original_file_name: str
    file_size_bytes: int = 0
    category: Optional[str] = None
    period: Optional[str] = None
    delimiter: Optional[str] = None
    encoding: Optional[str] = None
    headers: List[str] = Field(default_factory=list)
    sample_rows: Optional[List[Dict[str, Cell]]] = None
    row_count: Optional[int] = None
    metadata: Optional[ReportMetadata] = None
    uploaded_at: datetime = Field(default_factory=_utcnow)
    status: ReportStatus = ReportStatus.PROCESSING
    is_public: bool = False

    def transition_to(self, status: ReportStatus) -> None:
        if self.status.is_terminal:
            raise ValueError(f"report {self.id} is already {self.status.value}")
        self.status = status

    @property
    def is_analyzable(self) -> bool:
        return self.status is ReportStatus.UPLOADED

    def plain_rows(self) -> Optional[List[Dict[str, Union[int, float, str, None]]]]:
        if self.sample_rows is None:
            return None
        return [{name: cell.value for name, cell in row.items()} for row in self.sample_rows]


# --- aggregation payloads ---

class UserStats(BaseModel):
    total_categories: int = 0
    total_reports: int = 0
    public_reports: int = 0
    private_reports: int = 0
    reports_by_category: Dict[str, int] = Field(default_factory=dict)
    total_rows: int = 0
    available_columns: List[str] = Field(default_factory=list)


class ColumnAnalysis(BaseModel):
    column_name: str
    value_counts: Dict[str, int] = Field(default_factory=dict)
    total_values: int = 0
    unique_values: int = 0
    total_unique_values: int = 0
    is_limited: bool = False


class CategoryPeriod(BaseModel):
    period: Optional[str] = None
    report_id: str
    file_name: str
    row_count: Optional[int] = None
    uploaded_at: datetime


# --- HTTP envelopes ---

class ReportView(BaseModel):
    id: str
    owner_id: str
    original_file_name: str
    file_size_bytes: int
    category: Optional[str] = None
    period: Optional[str] = None
    delimiter: Optional[str] = None
    encoding: Optional[str] = None
    headers: List[str] = Field(default_factory=list)
    rows: Optional[List[Dict[str, Union[int, float, str, None]]]] = None
    row_count: Optional[int] = None
    metadata: Optional[ReportMetadata] = None
    uploaded_at: datetime
    status: ReportStatus
    is_public: bool

    @classmethod
    def from_report(cls, report: Report) -> "ReportView":
        return cls(
            id=report.id,
            owner_id=report.owner_id,
            original_file_name=report.original_file_name,
            file_size_bytes=report.file_size_bytes,
            category=report.category,
            period=report.period,
            delimiter=report.delimiter,
            encoding=report.encoding,
            headers=list(report.headers),
            rows=report.plain_rows(),
            row_count=report.row_count,
            metadata=report.metadata,
            uploaded_at=report.uploaded_at,
            status=report.status,
            is_public=report.is_public,
        )


class UploadResponse(BaseModel):
    report_id: str
    file_name: str
    row_count: int
    column_count: int


class DeleteResponse(BaseModel):
    deleted: bool = True


class HealthResponse(BaseModel):
    ok: bool = True
