from __future__ import annotations

import time
from typing import Dict, List, Optional

from . import analysis
from .errors import EmptyInput, Forbidden, NotFound, ReportError, UnsupportedFormat
from .log import get_logger, timing_decorator
from .models import (
    CategoryPeriod,
    ColumnAnalysis,
    Report,
    ReportMetadata,
    ReportStatus,
    UserStats,
)
from .parsing import (
    decode_bytes,
    detect_encoding_hint,
    first_line,
    parse_rows,
    sanitize_label,
    sniff_delimiter,
)
from .rules import ACCEPTED_EXTENSIONS, SAMPLE_CAP
from .store import ReportStore
from .visibility import can_read

logger = get_logger(__name__)


class ReportEngine:
    """Single entry point for ingesting reports and querying them."""

    def __init__(self, store: ReportStore, sample_cap: int = SAMPLE_CAP):
        self.store = store
        self.sample_cap = sample_cap

    @timing_decorator
    def ingest(
        self,
        raw: bytes,
        file_name: str,
        owner_id: str,
        category: Optional[str] = None,
        period: Optional[str] = None,
        is_public: bool = False,
    ) -> Report:
        """
        Parse an upload end to end and store the resulting report.

        Raises EmptyInput, UnsupportedFormat, ParseFailure or StoreFailure.
        Failures that happen after the report was assembled carry it on
        ``exc.report`` with status ERROR; such a report is never stored.
        """
        logger.info("Ingesting %s for owner %s (category=%r, period=%r)",
                    file_name, owner_id, category, period)

        if not raw:
            raise EmptyInput("uploaded file is empty")
        if not (file_name or "").lower().endswith(ACCEPTED_EXTENSIONS):
            raise UnsupportedFormat(f"only {', '.join(ACCEPTED_EXTENSIONS)} files are supported")

        report = Report(
            owner_id=owner_id,
            original_file_name=file_name,
            file_size_bytes=len(raw),
            category=sanitize_label(category),
            period=sanitize_label(period),
            is_public=is_public,
        )

        try:
            text, encoding = decode_bytes(raw)
            delimiter = sniff_delimiter(first_line(text))
            report.encoding = encoding
            report.delimiter = delimiter
            logger.info("Encoding %s, delimiter %r", encoding, delimiter)

            table = parse_rows(text, delimiter, sample_cap=self.sample_cap)

            report.headers = table.headers
            report.sample_rows = table.sample_rows
            report.row_count = table.row_count
            report.metadata = ReportMetadata(
                total_columns=len(table.headers),
                total_rows=table.row_count,
                sample_rows=len(table.sample_rows),
                is_sample=table.row_count > len(table.sample_rows),
                upload_timestamp=int(time.time() * 1000),
                encoding=encoding,
                detected_encoding=detect_encoding_hint(raw),
                delimiter=delimiter,
            )

            # Only the stored copy becomes UPLOADED, so a failed write can still mark ERROR
            uploaded = report.model_copy()
            uploaded.transition_to(ReportStatus.UPLOADED)
            stored = self.store.create(uploaded)
        except ReportError as exc:
            logger.error("Failed to ingest %s: %s", file_name, exc)
            report.transition_to(ReportStatus.ERROR)
            exc.report = report
            raise

        logger.info("Stored report %s: %d rows, %d columns, %d sampled",
                    stored.id, table.row_count, len(table.headers), len(table.sample_rows))
        return stored

    def get(self, report_id: str, requester_id: Optional[str] = None) -> Report:
        report = self.store.find_by_id(report_id)
        if report is None:
            raise NotFound(f"report {report_id} not found")
        if not can_read(report, requester_id):
            raise Forbidden(f"report {report_id} not found")
        return report

    def list_for_user(self, owner_id: str) -> List[Report]:
        """Public reports plus the user's own, newest first."""
        reports = self.store.find_public_or_owned(owner_id)
        return sorted(reports, key=lambda r: r.uploaded_at, reverse=True)

    def delete(self, report_id: str, requester_id: Optional[str]) -> None:
        """Owner-only removal. Non-owners get Forbidden, even for public reports."""
        report = self.store.find_by_id(report_id)
        if report is None:
            raise NotFound(f"report {report_id} not found")
        if requester_id is None or requester_id != report.owner_id:
            raise Forbidden(f"report {report_id} not found")
        if not self.store.delete(report_id):
            raise NotFound(f"report {report_id} not found")
        logger.info("Deleted report %s", report_id)

    def user_stats(self, owner_id: str) -> UserStats:
        return analysis.user_stats(self.store.find_by_owner(owner_id))

    def categories_with_periods(self, owner_id: str) -> Dict[str, List[CategoryPeriod]]:
        return analysis.categories_with_periods(self.store.find_public_or_owned(owner_id))

    @timing_decorator
    def column_analysis(self, owner_id: str, column_name: str) -> ColumnAnalysis:
        return analysis.column_analysis(self.store.find_by_owner(owner_id), column_name)
