import os
import logging
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv
import cloudinary

# Load .env from project root
try:
    load_dotenv(dotenv_path=os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".env")))
except Exception:
    try:
        load_dotenv()
    except Exception:
        pass


def _clean(value: Optional[str]) -> str:
    return (value or "").strip().strip('"').strip("'").strip('`')


def _flag(name: str, default: str = "0") -> bool:
    return (os.getenv(name, default) or "").strip().lower() in ("1", "true", "yes", "on")


# Cloudinary (media store)
CLOUDINARY_CLOUD_NAME = _clean(os.getenv("CLOUDINARY_CLOUD_NAME"))
CLOUDINARY_API_KEY = _clean(os.getenv("CLOUDINARY_API_KEY"))
CLOUDINARY_API_SECRET = _clean(os.getenv("CLOUDINARY_API_SECRET"))
CLOUDINARY_UPLOAD_FOLDER = _clean(os.getenv("CLOUDINARY_UPLOAD_FOLDER")) or "pelayanan_desa"
CLOUDINARY_DELIVERY_BASE = (os.getenv("CLOUDINARY_DELIVERY_BASE", "https://res.cloudinary.com") or "").rstrip("/")

# CLOUDINARY_URL, when set, is picked up by the SDK itself
if CLOUDINARY_CLOUD_NAME:
    cloudinary.config(
        cloud_name=CLOUDINARY_CLOUD_NAME,
        api_key=CLOUDINARY_API_KEY or None,
        api_secret=CLOUDINARY_API_SECRET or None,
        secure=True,
    )

# Firebase (Firestore + Cloud Messaging)
FIREBASE_PROJECT_ID = _clean(os.getenv("FIREBASE_PROJECT_ID"))
FIREBASE_SERVICE_ACCOUNT_JSON = os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON", "")
FIREBASE_SERVICE_ACCOUNT_JSON_PATH = _clean(os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON_PATH"))

# Monthly export
EXPORT_COLLECTION = _clean(os.getenv("EXPORT_COLLECTION")) or "laporan_driver"
EXPORT_TIMEZONE = _clean(os.getenv("EXPORT_TIMEZONE")) or "Asia/Jakarta"
EXPORT_LOGO_URL = _clean(os.getenv("EXPORT_LOGO_URL"))
EXPORT_LOGO_PUBLIC_ID = _clean(os.getenv("EXPORT_LOGO_PUBLIC_ID"))
EXPORT_FETCH_TIMEOUT_SEC = float(os.getenv("EXPORT_FETCH_TIMEOUT_SEC", "30") or "30")
EXPORT_CONCURRENCY = max(1, int(os.getenv("EXPORT_CONCURRENCY", "3") or "3"))
EXPORT_REMOTE_TRANSFORM = _flag("EXPORT_REMOTE_TRANSFORM")
EXPORT_JPEG_QUALITY = int(os.getenv("EXPORT_JPEG_QUALITY", "90") or "90")

# Firestore listener for letter-service status changes
STATUS_LISTENER_ENABLED = _flag("STATUS_LISTENER_ENABLED")
STATUS_COLLECTION = _clean(os.getenv("STATUS_COLLECTION")) or "pelayanan_surat"
USERS_COLLECTION = _clean(os.getenv("USERS_COLLECTION")) or "users"

# Logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")
logger = logging.getLogger("desa")


@dataclass(frozen=True)
class ExportSettings:
    """Everything the monthly exporter needs, resolved once at startup."""

    collection: str = "laporan_driver"
    timezone: str = "Asia/Jakarta"
    cloud_name: str = ""
    delivery_base: str = "https://res.cloudinary.com"
    logo_url: str = ""
    logo_public_id: str = ""
    fetch_timeout: float = 30.0
    concurrency: int = 3
    remote_transform: bool = False
    jpeg_quality: int = 90

    @classmethod
    def from_env(cls) -> "ExportSettings":
        return cls(
            collection=EXPORT_COLLECTION,
            timezone=EXPORT_TIMEZONE,
            cloud_name=CLOUDINARY_CLOUD_NAME,
            delivery_base=CLOUDINARY_DELIVERY_BASE,
            logo_url=EXPORT_LOGO_URL,
            logo_public_id=EXPORT_LOGO_PUBLIC_ID,
            fetch_timeout=EXPORT_FETCH_TIMEOUT_SEC,
            concurrency=EXPORT_CONCURRENCY,
            remote_transform=EXPORT_REMOTE_TRANSFORM,
            jpeg_quality=EXPORT_JPEG_QUALITY,
        )


export_settings = ExportSettings.from_env()
