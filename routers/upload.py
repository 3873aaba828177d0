import os

from fastapi import APIRouter, File, UploadFile
from fastapi.responses import JSONResponse

from core.config import logger
from core.errors import MediaStoreError
from utils.storage import upload_bytes

router = APIRouter(tags=["berkas"])

MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_MB", "20")) * 1024 * 1024


@router.post("/upload-berkas")
async def upload_berkas(file: UploadFile | None = File(None)):
    """Upload one citizen file to the media store and hand back its public URL."""
    if file is None:
        return JSONResponse({"error": "Tidak ada berkas yang diunggah."}, status_code=400)
    raw = await file.read()
    await file.close()
    if not raw:
        return JSONResponse({"error": "Tidak ada berkas yang diunggah."}, status_code=400)
    if len(raw) > MAX_UPLOAD_BYTES:
        return JSONResponse({"error": "Berkas terlalu besar."}, status_code=413)

    try:
        result = await upload_bytes(raw, filename=os.path.basename(file.filename or "berkas"))
    except MediaStoreError as ex:
        logger.error(f"upload-berkas failed: {ex}")
        return JSONResponse({"error": "Gagal mengunggah berkas."}, status_code=500)

    return {"url": result["secure_url"], "public_id": result.get("public_id")}
