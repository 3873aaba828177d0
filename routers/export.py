from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, StreamingResponse

from core.config import logger, export_settings
from core.errors import DesaError
from core.firebase import get_fs_client
from utils.export import MonthlyExporter, parse_export_request, query_reports
from utils.report_query import ReportQuery

router = APIRouter(tags=["export"])


def get_report_query() -> ReportQuery:
    return ReportQuery(get_fs_client, export_settings.collection, export_settings.timezone)


def get_exporter() -> MonthlyExporter:
    return MonthlyExporter(export_settings)


@router.get("/export-laporan-bulanan")
async def export_laporan_bulanan(
    request: Request,
    bulan: Optional[str] = None,
    tahun: Optional[str] = None,
    query: ReportQuery = Depends(get_report_query),
    exporter: MonthlyExporter = Depends(get_exporter),
):
    """Stream a ZIP of every driver report (watermarked photos) for one month."""
    try:
        req = parse_export_request(bulan, tahun)
        reports = await query_reports(query, req)
    except DesaError as ex:
        if ex.status_code >= 500:
            logger.error(f"export {bulan}/{tahun} failed before streaming: {ex}")
            return PlainTextResponse("Gagal membuat laporan bulanan.", status_code=ex.status_code)
        return PlainTextResponse(str(ex), status_code=ex.status_code)

    headers = {"Content-Disposition": f'attachment; filename="{req.filename}"'}
    return StreamingResponse(
        exporter.stream(reports, is_disconnected=request.is_disconnected),
        media_type="application/zip",
        headers=headers,
    )
