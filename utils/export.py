"""
Monthly driver-report export.

Reports are processed one after another. Within a report, photos run through a
small semaphore-bounded pool, but every result lands in the slot of its source
position, so archive entries always come out as foto_1, foto_2, ... in the
order the report lists them. A failing photo becomes a `_error.txt` entry and
never stops the export.
"""
import asyncio
import re
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Sequence

import httpx
from PIL import Image
from starlette.concurrency import run_in_threadpool

from core.config import logger, ExportSettings
from core.errors import AnnotationError, EmptyResultError, FetchError, ValidationError
from models.laporan import PLACEHOLDER, ArchiveEntry, PhotoOutcome, ReportRecord
from utils.archive import ArchiveStreamer
from utils.cloudinary import asset_from_url, cloud_name_from_url, delivery_url, is_remote_url, watermark_transformation
from utils.fetcher import RemoteFetcher, make_client
from utils.report_query import ReportQuery, zone_for
from utils.watermark import annotate, load_logo

FOLDER_MAX_LEN = 50
_NON_ALNUM = re.compile(r"[^a-z0-9]")


@dataclass(frozen=True)
class ExportRequest:
    month: int
    year: int

    @property
    def filename(self) -> str:
        return f"Laporan_{self.month}_{self.year}.zip"


def parse_export_request(bulan: Optional[str], tahun: Optional[str]) -> ExportRequest:
    if bulan is None or tahun is None or not str(bulan).strip() or not str(tahun).strip():
        raise ValidationError("Parameter bulan dan tahun wajib diisi.")
    try:
        month = int(str(bulan).strip())
        year = int(str(tahun).strip())
    except ValueError:
        raise ValidationError("Parameter bulan dan tahun harus berupa angka.") from None
    if not 1 <= month <= 12:
        raise ValidationError("Parameter bulan harus antara 1 dan 12.")
    if not 1970 <= year <= 9999:
        raise ValidationError("Parameter tahun tidak valid.")
    return ExportRequest(month=month, year=year)


async def query_reports(query: ReportQuery, req: ExportRequest) -> List[ReportRecord]:
    """Run the blocking Firestore query off the loop; no reports is EmptyResultError."""
    reports = await run_in_threadpool(query.fetch_month, req.month, req.year)
    if not reports:
        raise EmptyResultError(f"Tidak ada laporan untuk bulan {req.month}/{req.year}.")
    return reports


def sanitize_folder_name(name: str, max_len: int = FOLDER_MAX_LEN) -> str:
    cleaned = _NON_ALNUM.sub("_", (name or "").lower())[:max_len]
    return cleaned if cleaned.strip("_") else "laporan"


def allocate_folder(report: ReportRecord, used: set) -> str:
    """Folder for a report; a repeated applicant name gets the report id appended."""
    base = sanitize_folder_name(report.applicant_name)
    folder = base
    if folder in used:
        folder = f"{base}_{_NON_ALNUM.sub('_', str(report.id).lower())}"
        n = 2
        while folder in used:
            folder = f"{base}_{n}"
            n += 1
    used.add(folder)
    return folder


def format_work_date(ts: Optional[datetime], tz_name: str) -> str:
    if ts is None:
        return PLACEHOLDER
    if ts.tzinfo is not None:
        ts = ts.astimezone(zone_for(tz_name))
    return ts.strftime("%d/%m/%Y %H:%M")


def build_caption_lines(report: ReportRecord, tz_name: str = "UTC") -> List[str]:
    return [
        f"Pemohon: {report.applicant_name}",
        f"Driver: {report.driver_name}",
        f"Instansi Perujuk: {report.referring_agency}",
        f"Alamat: {report.applicant_address}",
        f"Tanggal: {format_work_date(report.work_timestamp, tz_name)}",
    ]


def photo_title(index: int, total: int) -> str:
    return f"FOTO {index}/{total}"


def error_text(outcome: PhotoOutcome) -> bytes:
    return (
        f"Gagal memproses foto {outcome.index}.\n"
        f"Sumber: {outcome.ref}\n"
        f"Kesalahan: {outcome.error}\n"
    ).encode("utf-8")


def render_entries(folder: str, outcomes: Sequence[PhotoOutcome]) -> List[ArchiveEntry]:
    """One archive entry per outcome, in index order: the photo, or a text placeholder."""
    entries: List[ArchiveEntry] = []
    for outcome in sorted(outcomes, key=lambda o: o.index):
        if outcome.ok:
            entries.append(ArchiveEntry(f"{folder}/foto_{outcome.index}.jpg", outcome.content))
        else:
            entries.append(ArchiveEntry(f"{folder}/foto_{outcome.index}_error.txt", error_text(outcome)))
    return entries


# ---------- photo strategies ----------

class PhotoStrategy:
    name = "base"

    def applies(self, ref: str) -> bool:
        return True

    async def render(self, fetcher: RemoteFetcher, ref: str, title: str, lines: List[str],
                     logo: Optional[Image.Image]) -> bytes:
        raise NotImplementedError


class RemoteTransformStrategy(PhotoStrategy):
    """Ask Cloudinary for an already-watermarked variant of the photo."""

    name = "remote"

    def __init__(self, settings: ExportSettings):
        self.settings = settings

    def _locate(self, ref: str):
        if is_remote_url(ref):
            asset = asset_from_url(ref)
            if asset is None or asset[0] != "image":
                return None, None
            return cloud_name_from_url(ref), asset[1]
        return self.settings.cloud_name, ref.strip()

    def applies(self, ref: str) -> bool:
        cloud, public_id = self._locate(ref)
        return bool(self.settings.remote_transform and cloud and public_id)

    async def render(self, fetcher, ref, title, lines, logo):
        cloud, public_id = self._locate(ref)
        transformation = watermark_transformation(
            title, lines, self.settings.logo_public_id, quality=self.settings.jpeg_quality
        )
        url = delivery_url(cloud, public_id, transformation, base=self.settings.delivery_base)
        return await fetcher.fetch(ref, url=url)


class LocalAnnotateStrategy(PhotoStrategy):
    """Fetch the original and burn the caption band locally with Pillow."""

    name = "local"

    def __init__(self, settings: ExportSettings):
        self.settings = settings

    async def render(self, fetcher, ref, title, lines, logo):
        data = await fetcher.fetch(ref)
        try:
            return await run_in_threadpool(annotate, data, lines, logo, title, self.settings.jpeg_quality)
        except AnnotationError as ex:
            logger.warning(f"annotation failed for {ref}, keeping original bytes: {ex}")
            return data


# ---------- orchestrator ----------

class MonthlyExporter:
    def __init__(
        self,
        settings: ExportSettings,
        strategies: Optional[List[PhotoStrategy]] = None,
        client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
    ):
        self.settings = settings
        self.strategies = strategies or [RemoteTransformStrategy(settings), LocalAnnotateStrategy(settings)]
        self.client_factory = client_factory or (lambda: make_client(settings.fetch_timeout))

    async def load_logo(self, fetcher: RemoteFetcher) -> Optional[Image.Image]:
        if not self.settings.logo_url:
            return None
        try:
            data = await fetcher.fetch(self.settings.logo_url)
        except FetchError as ex:
            logger.warning(f"logo unavailable, exporting without it: {ex}")
            return None
        return await run_in_threadpool(load_logo, data)

    async def process_photo(self, fetcher: RemoteFetcher, ref: str, index: int, total: int,
                            lines: List[str], logo: Optional[Image.Image]) -> PhotoOutcome:
        title = photo_title(index, total)
        last_error: Optional[BaseException] = None
        for strategy in self.strategies:
            if not strategy.applies(ref):
                continue
            try:
                content = await strategy.render(fetcher, ref, title, lines, logo)
                return PhotoOutcome.success(index, ref, content)
            except Exception as ex:
                last_error = ex
                logger.warning(f"[{strategy.name}] foto {index}/{total} gagal ({ref}): {ex}")
        if last_error is None:
            return PhotoOutcome.failure(index, ref, "tidak ada strategi yang dapat memproses referensi ini")
        return PhotoOutcome.failure(index, ref, str(last_error) or last_error.__class__.__name__)

    async def process_report(self, fetcher: RemoteFetcher, report: ReportRecord,
                             logo: Optional[Image.Image]) -> List[PhotoOutcome]:
        refs = list(report.photo_refs)
        total = len(refs)
        lines = build_caption_lines(report, self.settings.timezone)
        slots: List[Optional[PhotoOutcome]] = [None] * total
        sem = asyncio.Semaphore(max(1, self.settings.concurrency))

        async def _run(i: int, ref: str):
            async with sem:
                slots[i] = await self.process_photo(fetcher, ref, i + 1, total, lines, logo)

        await asyncio.gather(*(_run(i, ref) for i, ref in enumerate(refs)))
        return [s for s in slots if s is not None]

    async def stream(
        self,
        reports: Sequence[ReportRecord],
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> AsyncIterator[bytes]:
        """Yield the ZIP archive chunk by chunk as each report is processed."""
        archive = ArchiveStreamer(compresslevel=9)
        archive.open()
        used_folders: set = set()
        ok = failed = 0
        logger.info(f"export started: {len(reports)} laporan")
        try:
            async with self.client_factory() as client:
                fetcher = RemoteFetcher(client, self.settings.cloud_name, self.settings.delivery_base)
                logo = await self.load_logo(fetcher)
                for report in reports:
                    if is_disconnected is not None and await _safe_disconnected(is_disconnected):
                        logger.warning("client disconnected, stopping export")
                        archive.abandon()
                        return
                    if not report.photo_refs:
                        continue
                    folder = allocate_folder(report, used_folders)
                    outcomes = await self.process_report(fetcher, report, logo)
                    for entry in render_entries(folder, outcomes):
                        chunk = await archive.append(entry.path, entry.content)
                        if chunk:
                            yield chunk
                    ok += sum(1 for o in outcomes if o.ok)
                    failed += sum(1 for o in outcomes if not o.ok)
            tail = await archive.finalize()
            if tail:
                yield tail
            logger.info(f"export finished: {ok} foto, {failed} gagal")
        except (asyncio.CancelledError, GeneratorExit):
            logger.warning("export stream aborted before completion")
            archive.abandon()
            raise
        except Exception as ex:
            # headers are already sent; the client gets a truncated archive
            archive.abandon()
            logger.error(f"export stream failed mid-flight ({ex.__class__.__name__}): {ex}")
            return


async def _safe_disconnected(check: Callable[[], Awaitable[bool]]) -> bool:
    try:
        return bool(await check())
    except Exception as ex:
        logger.debug(f"disconnect check failed: {ex}")
        return False
