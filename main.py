from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import os

from core.config import logger, STATUS_LISTENER_ENABLED  # type: ignore

# Routers
from routers import export, upload, notifications, files, users  # type: ignore

app = FastAPI(title="Desa Pelayanan API")

# ---- CORS setup ----
# The mobile app calls us directly, so origins default to "*"
_origins_env = os.getenv("ALLOWED_ORIGINS") or os.getenv("CORS_ORIGINS") or "*"
ALLOWED_ORIGINS = [o.strip() for o in _origins_env.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials="*" not in ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition"],
)


# --- Security headers ---
@app.middleware("http")
async def add_security_headers(request, call_next):
    response = await call_next(request)
    try:
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        response.headers.setdefault("X-Frame-Options", "DENY")
    except Exception as ex:
        logger.debug(f"security headers skipped: {ex}")
    return response


app.include_router(export.router)
app.include_router(upload.router)
app.include_router(notifications.router)
app.include_router(files.router)
app.include_router(users.router)


@app.get("/healthz")
async def healthz():
    return {"status": "ok"}


_status_watch = None


@app.on_event("startup")
async def _start_status_listener():
    global _status_watch
    if not STATUS_LISTENER_ENABLED:
        return
    try:
        from core.firebase import get_fs_client, send_push
        from utils.status_listener import start_status_listener
        _status_watch = start_status_listener(get_fs_client(), send_push)
    except Exception as ex:
        logger.warning(f"status listener not started: {ex}")


@app.on_event("shutdown")
async def _stop_status_listener():
    if _status_watch is not None:
        try:
            _status_watch.unsubscribe()
        except Exception as ex:
            logger.warning(f"status listener unsubscribe failed: {ex}")
