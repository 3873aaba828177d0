import os
import json

from core.config import (
    logger,
    FIREBASE_PROJECT_ID,
    FIREBASE_SERVICE_ACCOUNT_JSON,
    FIREBASE_SERVICE_ACCOUNT_JSON_PATH,
)

import firebase_admin
from firebase_admin import credentials as fb_credentials
from firebase_admin import firestore as fb_fs
from firebase_admin import messaging as fb_messaging

from core.errors import NotificationError

_fs_client = None


def _ensure_app():
    """Initialize the default Firebase app once, from inline JSON, a key file or ADC."""
    if getattr(firebase_admin, "_apps", None):
        return firebase_admin.get_app()
    options = {"projectId": FIREBASE_PROJECT_ID} if FIREBASE_PROJECT_ID else None
    if FIREBASE_SERVICE_ACCOUNT_JSON:
        cred = fb_credentials.Certificate(json.loads(FIREBASE_SERVICE_ACCOUNT_JSON))
        app = firebase_admin.initialize_app(cred, options)
    elif FIREBASE_SERVICE_ACCOUNT_JSON_PATH and os.path.isfile(FIREBASE_SERVICE_ACCOUNT_JSON_PATH):
        if not os.getenv("GOOGLE_APPLICATION_CREDENTIALS"):
            os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = FIREBASE_SERVICE_ACCOUNT_JSON_PATH
        cred = fb_credentials.Certificate(FIREBASE_SERVICE_ACCOUNT_JSON_PATH)
        app = firebase_admin.initialize_app(cred, options)
    else:
        app = firebase_admin.initialize_app(options=options)
    logger.info("Firebase Admin initialized")
    return app


def get_fs_client():
    global _fs_client
    if _fs_client is None:
        _ensure_app()
        _fs_client = fb_fs.client()
    return _fs_client


def send_push(token: str, title: str, body: str) -> str:
    """Send one FCM notification to a device token; returns the provider message id."""
    try:
        _ensure_app()
        message = fb_messaging.Message(
            notification=fb_messaging.Notification(title=title, body=body),
            token=token,
        )
        return fb_messaging.send(message)
    except Exception as ex:
        raise NotificationError(str(ex)) from ex
