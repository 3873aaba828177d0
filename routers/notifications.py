from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from core.config import logger
from core.errors import NotificationError
from core.firebase import send_push

router = APIRouter(tags=["notifikasi"])


class NotifPayload(BaseModel):
    token: Optional[str] = None
    title: Optional[str] = None
    body: Optional[str] = None


@router.post("/send-notif")
async def send_notif(payload: Optional[NotifPayload] = None):
    payload = payload or NotifPayload()
    token = (payload.token or "").strip()
    title = (payload.title or "").strip()
    body = (payload.body or "").strip()
    if not token or not title or not body:
        return JSONResponse({"error": "token, title, and body are required."}, status_code=400)

    try:
        message_id = await run_in_threadpool(send_push, token, title, body)
    except NotificationError as ex:
        logger.error(f"send-notif failed for token {token[:12]}...: {ex}")
        return JSONResponse({"error": "Failed to send notification."}, status_code=500)

    return {"success": True, "message": "Notification sent.", "id": message_id}
