from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from core.config import logger, USERS_COLLECTION
from core.firebase import get_fs_client

router = APIRouter(tags=["users"])


class UserCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None


def get_db():
    try:
        return get_fs_client()
    except Exception as ex:
        logger.warning(f"Firestore client unavailable: {ex}")
        return None


def _list_users(db) -> List[Dict[str, Any]]:
    return [{"id": snap.id, **(snap.to_dict() or {})} for snap in db.collection(USERS_COLLECTION).stream()]


def _add_user(db, name: str, email: str) -> str:
    _, ref = db.collection(USERS_COLLECTION).add({"name": name, "email": email})
    return ref.id


@router.get("/users")
async def list_users(db=Depends(get_db)):
    if db is None:
        return JSONResponse({"error": "firestore unavailable"}, status_code=503)
    try:
        return await run_in_threadpool(_list_users, db)
    except Exception as ex:
        logger.error(f"list users failed: {ex}")
        return PlainTextResponse(f"Error: {ex}", status_code=500)


@router.post("/users")
async def create_user(payload: Optional[UserCreate] = None, db=Depends(get_db)):
    payload = payload or UserCreate()
    name = (payload.name or "").strip()
    email = (payload.email or "").strip()
    if not name or not email:
        return JSONResponse({"error": "name & email wajib diisi"}, status_code=400)
    if db is None:
        return JSONResponse({"error": "firestore unavailable"}, status_code=503)
    try:
        user_id = await run_in_threadpool(_add_user, db, name, email)
    except Exception as ex:
        logger.error(f"create user failed: {ex}")
        return PlainTextResponse(f"Error: {ex}", status_code=500)
    return {"success": True, "id": user_id}
