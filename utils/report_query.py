from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.config import logger
from core.errors import QueryError, ValidationError
from models.laporan import PLACEHOLDER, ReportRecord

# Firestore field names of a driver report document
F_APPLICANT = "namaPemohon"
F_DRIVER = "namaDriver"
F_AGENCY = "instansiPerujuk"
F_ADDRESS = "alamatPemohon"
F_WORK_DATE = "tanggalPengerjaan"
F_PHOTOS = "fotoDokumentasi"


def zone_for(name: str):
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"unknown timezone {name!r}, using UTC")
        return timezone.utc


def month_range(month: int, year: int, tz_name: str = "UTC") -> Tuple[datetime, datetime]:
    """[first day of month 00:00, first day of next month 00:00) in the given zone."""
    tz = zone_for(tz_name)
    start = datetime(year, month, 1, tzinfo=tz)
    end = datetime(year + 1, 1, 1, tzinfo=tz) if month == 12 else datetime(year, month + 1, 1, tzinfo=tz)
    return start, end


def _text(value: Any) -> str:
    if value is None:
        return PLACEHOLDER
    s = str(value).strip()
    return s or PLACEHOLDER


def _timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if isinstance(value, (int, float)):
        # epoch milliseconds, as the mobile app writes them
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    return None


def record_from_document(doc_id: str, data: Optional[dict]) -> ReportRecord:
    data = data or {}
    photos = data.get(F_PHOTOS)
    if not isinstance(photos, (list, tuple)):
        photos = []
    return ReportRecord(
        id=str(doc_id),
        applicant_name=_text(data.get(F_APPLICANT)),
        driver_name=_text(data.get(F_DRIVER)),
        referring_agency=_text(data.get(F_AGENCY)),
        applicant_address=_text(data.get(F_ADDRESS)),
        work_timestamp=_timestamp(data.get(F_WORK_DATE)),
        photo_refs=[p.strip() for p in photos if isinstance(p, str) and p.strip()],
    )


class ReportQuery:
    """Reads driver reports for one month from Firestore. Blocking; call it from a threadpool."""

    def __init__(self, client_factory: Callable[[], Any], collection: str, tz_name: str = "UTC"):
        self.client_factory = client_factory
        self.collection = collection
        self.tz_name = tz_name

    def fetch_month(self, month: int, year: int) -> List[ReportRecord]:
        try:
            start, end = month_range(month, year, self.tz_name)
        except ValueError as ex:
            raise ValidationError(f"Periode {month}/{year} di luar jangkauan tanggal.") from ex
        try:
            from firebase_admin import firestore as fb_fs

            db = self.client_factory()
            q = (
                db.collection(self.collection)
                .where(filter=fb_fs.FieldFilter(F_WORK_DATE, ">=", start))
                .where(filter=fb_fs.FieldFilter(F_WORK_DATE, "<", end))
            )
            records = [record_from_document(snap.id, snap.to_dict()) for snap in q.stream()]
        except Exception as ex:
            logger.error(f"report query failed for {month:02d}/{year}: {ex}")
            raise QueryError(f"gagal membaca laporan: {ex}") from ex
        logger.info(f"report query {month:02d}/{year}: {len(records)} laporan")
        return records
