"""
Watches letter-service submissions and notifies the submitter when their
status changes.
"""
from typing import Callable, Optional

from core.config import logger, STATUS_COLLECTION, USERS_COLLECTION
from core.errors import NotificationError

NOTIF_TITLE = "Status Pengajuan Surat"


def status_body(jenis: Optional[str], status: Optional[str]) -> str:
    return f'Surat "{jenis or "-"}" Anda, Sekarang Berstatus {status or "-"}'


def handle_modified(db, doc_id: str, data: Optional[dict],
                    sender: Callable[[str, str, str], str]) -> bool:
    """Send the status notification for one modified document. Returns True when sent."""
    data = data or {}
    uid = data.get("uid")
    logger.info(f"Dokumen {doc_id} diupdate, status: {data.get('status')}")
    if not uid:
        logger.info(f"UID kosong pada {doc_id}, notifikasi dilewati.")
        return False

    user_snap = db.collection(USERS_COLLECTION).document(uid).get()
    if not getattr(user_snap, "exists", False):
        logger.info(f"User {uid} tidak ditemukan di Firestore.")
        return False
    token = (user_snap.to_dict() or {}).get("fcmToken")
    if not token:
        logger.info(f"User {uid} tidak punya fcmToken.")
        return False

    try:
        sender(token, NOTIF_TITLE, status_body(data.get("jenisPelayanan"), data.get("status")))
    except NotificationError as ex:
        logger.error(f"Gagal kirim notifikasi ke user {uid}: {ex}")
        return False
    logger.info(f"Notifikasi terkirim ke user {uid}")
    return True


def make_snapshot_callback(db, sender: Callable[[str, str, str], str]):
    def _on_snapshot(col_snapshot, changes, read_time):
        for change in changes:
            if getattr(change.type, "name", "") != "MODIFIED":
                continue
            doc = change.document
            try:
                handle_modified(db, doc.id, doc.to_dict(), sender)
            except Exception as ex:
                # the watch thread must survive a single bad document
                logger.error(f"status listener failed on {doc.id}: {ex}")
    return _on_snapshot


def start_status_listener(db, sender: Callable[[str, str, str], str]):
    """Attach the listener; returns the Firestore watch so it can be unsubscribed."""
    watch = db.collection(STATUS_COLLECTION).on_snapshot(make_snapshot_callback(db, sender))
    logger.info(f"Listener Firestore berjalan pada koleksi {STATUS_COLLECTION}")
    return watch
