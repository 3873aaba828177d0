import io
from typing import Optional

import cloudinary
import cloudinary.uploader
from starlette.concurrency import run_in_threadpool

from core.config import logger, CLOUDINARY_UPLOAD_FOLDER
from core.errors import MediaStoreError

UPLOAD_TIMEOUT_SEC = 60


def _configured() -> bool:
    cfg = cloudinary.config()
    return bool(cfg.cloud_name and cfg.api_key and cfg.api_secret)


async def upload_bytes(data: bytes, filename: str = "berkas", folder: Optional[str] = None) -> dict:
    """Upload raw bytes to Cloudinary (resource_type=auto). Returns the upload result."""
    if not _configured():
        raise MediaStoreError("Cloudinary is not configured")
    try:
        result = await run_in_threadpool(
            cloudinary.uploader.upload,
            io.BytesIO(data),
            filename=filename,
            folder=folder or CLOUDINARY_UPLOAD_FOLDER,
            resource_type="auto",
            timeout=UPLOAD_TIMEOUT_SEC,
        )
    except Exception as ex:
        logger.error(f"cloudinary upload failed for {filename}: {ex}")
        raise MediaStoreError(f"upload failed: {ex}") from ex
    if not (result or {}).get("secure_url"):
        raise MediaStoreError("upload response missing secure_url")
    return result


async def destroy(public_id: str, resource_type: str = "image") -> str:
    """Delete an asset by public id. Returns Cloudinary's result string ("ok" or "not found")."""
    if not _configured():
        raise MediaStoreError("Cloudinary is not configured")
    try:
        result = await run_in_threadpool(
            cloudinary.uploader.destroy,
            public_id,
            resource_type=resource_type,
            invalidate=True,
            timeout=UPLOAD_TIMEOUT_SEC,
        )
    except Exception as ex:
        logger.error(f"cloudinary destroy failed for {public_id}: {ex}")
        raise MediaStoreError(f"destroy failed: {ex}") from ex
    return str((result or {}).get("result") or "")
