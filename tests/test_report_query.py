from datetime import datetime, timezone

import pytest

from core.errors import QueryError, ValidationError
from utils.report_query import ReportQuery, month_range, record_from_document


class _Snap:
    def __init__(self, id, data):
        self.id = id
        self._data = data

    def to_dict(self):
        return self._data


class _Query:
    def __init__(self, docs, filters):
        self.docs = docs
        self.filters = filters

    def where(self, filter=None):
        self.filters.append(filter)
        return self

    def stream(self):
        return iter(self.docs)


class _Db:
    def __init__(self, docs):
        self.docs = docs
        self.filters = []
        self.collections = []

    def collection(self, name):
        self.collections.append(name)
        return _Query(self.docs, self.filters)


class TestMonthRange:
    def test_regular_month(self):
        start, end = month_range(5, 2024, "UTC")
        assert start == datetime(2024, 5, 1, tzinfo=timezone.utc)
        assert end == datetime(2024, 6, 1, tzinfo=timezone.utc)

    def test_december_rolls_over(self):
        start, end = month_range(12, 2023, "UTC")
        assert (end.year, end.month, end.day) == (2024, 1, 1)

    def test_local_zone_offset(self):
        start, _ = month_range(3, 2024, "Asia/Jakarta")
        assert start.utcoffset().total_seconds() == 7 * 3600

    def test_unknown_zone_falls_back_to_utc(self):
        start, _ = month_range(3, 2024, "Mars/Olympus")
        assert start.utcoffset().total_seconds() == 0


class TestRecordFromDocument:
    def test_full_document(self):
        ts = datetime(2024, 5, 2, 3, 0, tzinfo=timezone.utc)
        rec = record_from_document("abc", {
            "namaPemohon": "Siti",
            "namaDriver": "Budi",
            "instansiPerujuk": "RSUD",
            "alamatPemohon": "RT 01",
            "tanggalPengerjaan": ts,
            "fotoDokumentasi": ["https://h/1.jpg", "  ", 42, "pelayanan_desa/x"],
        })
        assert rec.id == "abc"
        assert rec.applicant_name == "Siti"
        assert rec.work_timestamp == ts
        assert rec.photo_refs == ["https://h/1.jpg", "pelayanan_desa/x"]

    def test_missing_fields_use_placeholders(self):
        rec = record_from_document("x", None)
        assert rec.applicant_name == "-"
        assert rec.driver_name == "-"
        assert rec.work_timestamp is None
        assert rec.photo_refs == []

    def test_non_list_photos_and_string_dates(self):
        rec = record_from_document("x", {"fotoDokumentasi": "https://h/1.jpg", "tanggalPengerjaan": "2024-05-02T03:00:00Z"})
        assert rec.photo_refs == []
        assert rec.work_timestamp == datetime(2024, 5, 2, 3, 0, tzinfo=timezone.utc)

    def test_epoch_millis(self):
        rec = record_from_document("x", {"tanggalPengerjaan": 1714618800000})
        assert rec.work_timestamp == datetime(2024, 5, 2, 3, 0, tzinfo=timezone.utc)


class TestReportQuery:
    def test_fetch_month_filters_range(self):
        db = _Db([_Snap("a", {"namaPemohon": "Ani"}), _Snap("b", {"namaPemohon": "Budi"})])
        query = ReportQuery(lambda: db, "laporan_driver", "UTC")
        records = query.fetch_month(5, 2024)
        assert [r.applicant_name for r in records] == ["Ani", "Budi"]
        assert db.collections == ["laporan_driver"]
        assert len(db.filters) == 2

    def test_period_past_last_representable_month(self):
        with pytest.raises(ValidationError):
            ReportQuery(lambda: _Db([]), "laporan_driver", "UTC").fetch_month(12, 9999)

    def test_store_failure_becomes_query_error(self):
        def broken():
            raise RuntimeError("DefaultCredentialsError")

        with pytest.raises(QueryError):
            ReportQuery(broken, "laporan_driver").fetch_month(5, 2024)
