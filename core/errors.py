"""
Error taxonomy for the desa backend.

Only ValidationError, QueryError and EmptyResultError ever become HTTP status
codes on the export route. Per-photo errors are turned into archive content by
the exporter, and SinkError is only logged because the response is already in
flight when it happens.
"""
from typing import Optional


class DesaError(Exception):
    status_code = 500


class ValidationError(DesaError):
    status_code = 400


class QueryError(DesaError):
    status_code = 500


class EmptyResultError(DesaError):
    status_code = 404


class FetchError(DesaError):
    def __init__(self, ref: str, cause: Optional[BaseException | str] = None):
        self.ref = ref
        self.cause = cause
        super().__init__(f"gagal mengambil {ref}: {cause}" if cause else f"gagal mengambil {ref}")


class AnnotationError(DesaError):
    pass


class SinkError(DesaError):
    pass


class MediaStoreError(DesaError):
    pass


class NotificationError(DesaError):
    pass
