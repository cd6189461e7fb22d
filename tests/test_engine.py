from datetime import datetime, timedelta, timezone

import pytest

from csvreports.engine import ReportEngine
from csvreports.errors import (
    EmptyInput,
    Forbidden,
    NotFound,
    ParseFailure,
    StoreFailure,
    UnsupportedFormat,
)
from csvreports.models import Cell, CellKind, Report, ReportStatus
from csvreports.store import InMemoryReportStore


@pytest.fixture
def store():
    return InMemoryReportStore()


@pytest.fixture
def engine(store):
    return ReportEngine(store)


class FailingStore(InMemoryReportStore):
    def create(self, report):
        raise StoreFailure("backend unavailable")


def test_ingest_end_to_end(engine, store):
    report = engine.ingest(b"name,age\nAna,30\nLuis,25\nJo,\n", "people.csv", "ana",
                           category="Ventas", period="2024-Q1")

    assert report.status is ReportStatus.UPLOADED
    assert report.headers == ["name", "age"]
    assert report.row_count == 3
    assert report.sample_rows[0]["age"] == Cell(CellKind.INTEGER, 30)
    assert report.sample_rows[2]["age"].is_null
    assert report.delimiter == ","
    assert report.encoding == "utf-8"
    assert report.file_size_bytes == 28
    assert report.metadata.total_columns == 2
    assert report.metadata.total_rows == 3
    assert report.metadata.sample_rows == 3
    assert report.metadata.is_sample is False
    assert report.metadata.upload_timestamp > 0
    assert store.find_by_id(report.id) is report


def test_ingest_samples_large_files():
    engine = ReportEngine(InMemoryReportStore(), sample_cap=10)
    raw = ("n\n" + "".join(f"{i}\n" for i in range(25))).encode()
    report = engine.ingest(raw, "big.csv", "ana")

    assert report.row_count == 25
    assert len(report.sample_rows) == 10
    assert report.metadata.is_sample is True


def test_ingest_sanitizes_labels(engine):
    report = engine.ingest(b"a\n1\n", "a.csv", "ana", category="\u200b Robos\x07 ", period="   ")
    assert report.category == "Robos"
    assert report.period is None


def test_ingest_accepts_uppercase_extension(engine):
    assert engine.ingest(b"a\n1\n", "DATA.CSV", "ana").status is ReportStatus.UPLOADED


def test_empty_input(engine, store):
    with pytest.raises(EmptyInput):
        engine.ingest(b"", "a.csv", "ana")
    assert len(store) == 0


def test_unsupported_extension(engine, store):
    with pytest.raises(UnsupportedFormat):
        engine.ingest(b"a,b\n1,2\n", "a.txt", "ana")
    assert len(store) == 0


def test_parse_failure_marks_report_error_and_stores_nothing(engine, store):
    with pytest.raises(ParseFailure) as info:
        engine.ingest(b'a,b\n1,"2"x\n', "bad.csv", "ana")

    failed = info.value.report
    assert failed is not None
    assert failed.status is ReportStatus.ERROR
    assert failed.sample_rows is None
    assert len(store) == 0


def test_store_failure_marks_report_error():
    engine = ReportEngine(FailingStore())
    with pytest.raises(StoreFailure) as info:
        engine.ingest(b"a,b\n1,2\n", "a.csv", "ana")

    failed = info.value.report
    assert failed is not None
    assert failed.status is ReportStatus.ERROR
    assert failed.row_count == 1
    assert len(engine.store) == 0


def test_headerless_content_is_unsupported(engine):
    with pytest.raises(UnsupportedFormat) as info:
        engine.ingest(b"\r\n\r\n", "blank.csv", "ana")
    assert info.value.report.status is ReportStatus.ERROR


def test_status_is_terminal():
    report = Report(owner_id="ana", original_file_name="a.csv")
    report.transition_to(ReportStatus.UPLOADED)
    with pytest.raises(ValueError):
        report.transition_to(ReportStatus.ERROR)


# --- visibility ---

def test_private_report_visibility(engine):
    report = engine.ingest(b"a\n1\n", "a.csv", "ana", is_public=False)

    assert engine.get(report.id, "ana") is report
    with pytest.raises(Forbidden):
        engine.get(report.id, "luis")
    with pytest.raises(NotFound):
        engine.get(report.id, None)


def test_public_report_readable_by_anyone(engine):
    report = engine.ingest(b"a\n1\n", "a.csv", "ana", is_public=True)
    assert engine.get(report.id, "luis") is report
    assert engine.get(report.id, None) is report


def test_unknown_id(engine):
    with pytest.raises(NotFound):
        engine.get("missing", "ana")


def test_list_for_user_is_public_or_owned_newest_first(engine, store):
    t0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
    old = store.create(Report(owner_id="ana", original_file_name="old.csv", uploaded_at=t0))
    new = store.create(Report(owner_id="ana", original_file_name="new.csv",
                              uploaded_at=t0 + timedelta(days=1)))
    shared = store.create(Report(owner_id="luis", original_file_name="shared.csv", is_public=True,
                                 uploaded_at=t0 + timedelta(hours=1)))
    store.create(Report(owner_id="luis", original_file_name="hidden.csv", uploaded_at=t0))

    assert [r.id for r in engine.list_for_user("ana")] == [new.id, shared.id, old.id]


# --- delete ---

def test_delete_then_get_is_not_found(engine):
    report = engine.ingest(b"a\n1\n", "a.csv", "ana", is_public=True)
    engine.delete(report.id, "ana")

    for requester in ("ana", "luis", None):
        with pytest.raises(NotFound):
            engine.get(report.id, requester)


def test_delete_requires_owner(engine, store):
    report = engine.ingest(b"a\n1\n", "a.csv", "ana", is_public=True)

    with pytest.raises(Forbidden):
        engine.delete(report.id, "luis")
    with pytest.raises(Forbidden):
        engine.delete(report.id, None)
    assert store.find_by_id(report.id) is report


def test_delete_unknown(engine):
    with pytest.raises(NotFound):
        engine.delete("missing", "ana")


# --- aggregations through the engine ---

def test_user_stats_only_counts_own_reports(engine):
    engine.ingest(b"tipo\nrobo\n", "a.csv", "ana", category="Seguridad", is_public=True)
    engine.ingest(b"x\n1\n2\n", "b.csv", "luis", category="Otros", is_public=True)

    stats = engine.user_stats("ana")
    assert stats.total_reports == 1
    assert stats.total_rows == 1
    assert stats.reports_by_category == {"Seguridad": 1}


def test_categories_include_public_reports_of_others(engine):
    engine.ingest(b"a\n1\n", "a.csv", "ana", category="Seguridad", period="enero")
    engine.ingest(b"a\n1\n", "b.csv", "luis", category="Seguridad", period="febrero", is_public=True)
    engine.ingest(b"a\n1\n", "c.csv", "luis", category="Privado")

    grouped = engine.categories_with_periods("ana")
    assert list(grouped) == ["Seguridad"]
    assert [p.period for p in grouped["Seguridad"]] == ["enero", "febrero"]


def test_column_analysis_with_25_distinct_values(engine):
    raw = ("code\n" + "".join(f"c{i}\n" for i in range(25))).encode()
    engine.ingest(raw, "codes.csv", "ana")

    result = engine.column_analysis("ana", "code")
    assert len(result.value_counts) == 20
    assert result.is_limited is True
    assert result.total_unique_values == 25
    assert result.total_values == 25
