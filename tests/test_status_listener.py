from types import SimpleNamespace

from core.errors import NotificationError
from utils.status_listener import NOTIF_TITLE, handle_modified, make_snapshot_callback, status_body


class _UserSnap:
    def __init__(self, data):
        self.exists = data is not None
        self._data = data

    def to_dict(self):
        return self._data


class _Db:
    def __init__(self, users):
        self.users = users

    def collection(self, name):
        return self

    def document(self, uid):
        return SimpleNamespace(get=lambda: _UserSnap(self.users.get(uid)))


class _Doc:
    def __init__(self, id, data):
        self.id = id
        self._data = data

    def to_dict(self):
        return self._data


def _change(kind, doc):
    return SimpleNamespace(type=SimpleNamespace(name=kind), document=doc)


class TestHandleModified:
    def test_sends_to_user_token(self):
        sent = []
        db = _Db({"u1": {"fcmToken": "tok"}})
        ok = handle_modified(db, "s1", {"uid": "u1", "status": "Selesai", "jenisPelayanan": "SKTM"},
                             lambda *a: sent.append(a))
        assert ok
        assert sent == [("tok", NOTIF_TITLE, 'Surat "SKTM" Anda, Sekarang Berstatus Selesai')]

    def test_skips_without_uid(self):
        assert not handle_modified(_Db({}), "s1", {"status": "Diproses"}, lambda *a: None)

    def test_skips_unknown_user_or_missing_token(self):
        db = _Db({"u2": {"nama": "Ani"}})
        assert not handle_modified(db, "s1", {"uid": "u1"}, lambda *a: None)
        assert not handle_modified(db, "s1", {"uid": "u2"}, lambda *a: None)

    def test_send_failure_is_reported(self):
        def failing(*args):
            raise NotificationError("unregistered")

        assert not handle_modified(_Db({"u1": {"fcmToken": "tok"}}), "s1", {"uid": "u1"}, failing)

    def test_body_placeholders(self):
        assert status_body(None, None) == 'Surat "-" Anda, Sekarang Berstatus -'


class TestSnapshotCallback:
    def test_only_modified_changes_notify(self):
        sent = []
        db = _Db({"u1": {"fcmToken": "tok"}})
        callback = make_snapshot_callback(db, lambda *a: sent.append(a))
        callback(None, [
            _change("ADDED", _Doc("a", {"uid": "u1", "status": "Baru"})),
            _change("MODIFIED", _Doc("b", {"uid": "u1", "status": "Selesai"})),
            _change("REMOVED", _Doc("c", {"uid": "u1"})),
        ], None)
        assert len(sent) == 1

    def test_bad_document_does_not_stop_batch(self):
        sent = []

        class Broken(_Doc):
            def to_dict(self):
                raise RuntimeError("decode")

        callback = make_snapshot_callback(_Db({"u1": {"fcmToken": "tok"}}), lambda *a: sent.append(a))
        callback(None, [
            _change("MODIFIED", Broken("x", None)),
            _change("MODIFIED", _Doc("y", {"uid": "u1", "status": "Selesai"})),
        ], None)
        assert len(sent) == 1
