"""
Read-only aggregations over a sequence of reports.

Every function takes the reports to consider and returns a fresh value; no
state survives between calls and the reports are never modified. Reports that
did not finish ingesting (status other than UPLOADED) are ignored.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from .models import CategoryPeriod, ColumnAnalysis, Report, UserStats
from .rules import ANALYSIS_MAX_VALUES, ANALYSIS_TOP_K, UNCATEGORIZED_LABEL


def _analyzable(reports: Iterable[Report]) -> List[Report]:
    return [report for report in reports if report.is_analyzable]


def _category_label(category: Optional[str]) -> str:
    return category if category is not None else UNCATEGORIZED_LABEL


def user_stats(reports: Iterable[Report]) -> UserStats:
    """Counts over one user's reports."""
    reports = _analyzable(reports)

    categories = {r.category for r in reports if r.category is not None}
    public = sum(1 for r in reports if r.is_public)

    by_category: Dict[str, int] = {}
    for report in reports:
        label = _category_label(report.category)
        by_category[label] = by_category.get(label, 0) + 1

    # dict keeps first-seen order
    columns: Dict[str, None] = {}
    for report in reports:
        for name in report.headers:
            columns.setdefault(name, None)

    return UserStats(
        total_categories=len(categories),
        total_reports=len(reports),
        public_reports=public,
        private_reports=len(reports) - public,
        reports_by_category=by_category,
        total_rows=sum(r.row_count or 0 for r in reports),
        available_columns=list(columns),
    )


def column_analysis(
    reports: Iterable[Report],
    column_name: str,
    max_values: int = ANALYSIS_MAX_VALUES,
    top_k: int = ANALYSIS_TOP_K,
) -> ColumnAnalysis:
    """
    Value frequencies for one column across reports.

    At most ``max_values`` non-null values are counted per call, across all
    reports together. ``total_values`` adds a report's full row count when it
    is known and the sampled values counted from it otherwise.
    """
    counts: Dict[str, int] = {}
    processed = 0
    total_values = 0

    for report in _analyzable(reports):
        if processed >= max_values:
            break
        if report.sample_rows is None or column_name not in report.headers:
            continue

        processed_here = 0
        for row in report.sample_rows:
            if processed >= max_values:
                break
            cell = row.get(column_name)
            if cell is None or cell.is_null:
                continue
            text = cell.as_text()
            counts[text] = counts.get(text, 0) + 1
            processed += 1
            processed_here += 1

        if report.row_count is not None:
            total_values += report.row_count
        else:
            total_values += processed_here

    # sorted() is stable, so equal counts keep first-seen order
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    top = dict(ranked[:top_k])

    return ColumnAnalysis(
        column_name=column_name,
        value_counts=top,
        total_values=total_values,
        unique_values=len(top),
        total_unique_values=len(counts),
        is_limited=len(counts) > top_k,
    )


def categories_with_periods(reports: Iterable[Report]) -> Dict[str, List[CategoryPeriod]]:
    """Group reports by category label, one entry per report id."""
    grouped: Dict[str, List[CategoryPeriod]] = {}
    seen: Dict[str, set] = {}

    for report in _analyzable(reports):
        label = _category_label(report.category)
        entries = grouped.setdefault(label, [])
        ids = seen.setdefault(label, set())
        if report.id in ids:
            continue
        ids.add(report.id)
        entries.append(CategoryPeriod(
            period=report.period,
            report_id=report.id,
            file_name=report.original_file_name,
            row_count=report.row_count,
            uploaded_at=report.uploaded_at,
        ))

    return grouped
