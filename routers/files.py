from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core.config import logger
from core.errors import MediaStoreError
from utils.cloudinary import RESOURCE_TYPES, asset_from_url, is_remote_url
from utils.storage import destroy

router = APIRouter(tags=["berkas"])


class DeletePayload(BaseModel):
    public_id: Optional[str] = None
    url: Optional[str] = None
    resource_type: Optional[str] = None


@router.post("/hapus-berkas")
async def hapus_berkas(payload: Optional[DeletePayload] = None):
    """Delete a stored file, addressed by Cloudinary public id or by its delivery URL."""
    payload = payload or DeletePayload()
    public_id = (payload.public_id or "").strip()
    url = (payload.url or "").strip()
    resource_type = (payload.resource_type or "").strip().lower()
    if not public_id and url:
        asset = asset_from_url(url)
        if asset is None:
            return JSONResponse({"error": "URL bukan berkas Cloudinary."}, status_code=400)
        url_type, public_id = asset
        resource_type = resource_type or url_type
    if not public_id or is_remote_url(public_id):
        return JSONResponse({"error": "public_id atau url wajib diisi."}, status_code=400)

    resource_type = resource_type or "image"
    if resource_type not in RESOURCE_TYPES:
        return JSONResponse({"error": "resource_type tidak valid."}, status_code=400)

    try:
        result = await destroy(public_id, resource_type=resource_type)
    except MediaStoreError as ex:
        logger.error(f"hapus-berkas failed for {public_id}: {ex}")
        return JSONResponse({"error": "Gagal menghapus berkas."}, status_code=500)

    if result != "ok":
        logger.info(f"hapus-berkas {resource_type}/{public_id}: {result}")
    return {"success": True, "result": result}
