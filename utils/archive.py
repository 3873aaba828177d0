"""
Incremental ZIP writer for streamed downloads.

zipfile writes to an object without tell()/seek() by switching to data
descriptors, so every appended entry can be handed to the HTTP response as soon
as it is compressed instead of buffering the whole archive.
"""
import zipfile
from typing import Optional

from starlette.concurrency import run_in_threadpool

from core.config import logger
from core.errors import SinkError


class _ChunkSink:
    """Write-only, non-seekable buffer that zipfile writes into and we drain."""

    def __init__(self):
        self._chunks: list[bytes] = []
        self.closed = False

    def write(self, data) -> int:
        if self.closed:
            raise SinkError("archive sink already closed")
        b = bytes(data)
        if b:
            self._chunks.append(b)
        return len(b)

    def flush(self) -> None:
        pass

    def drain(self) -> bytes:
        out = b"".join(self._chunks)
        self._chunks.clear()
        return out


class ArchiveStreamer:
    """Scoped ZIP stream. append()/finalize() return the bytes ready to send."""

    def __init__(self, compresslevel: int = 9):
        self.compresslevel = compresslevel
        self._sink: Optional[_ChunkSink] = None
        self._zf: Optional[zipfile.ZipFile] = None
        self.entries: list[str] = []

    @property
    def is_open(self) -> bool:
        return self._zf is not None

    def open(self) -> "ArchiveStreamer":
        if self._zf is not None:
            raise SinkError("archive already open")
        self._sink = _ChunkSink()
        self._zf = zipfile.ZipFile(
            self._sink, mode="w", compression=zipfile.ZIP_DEFLATED, compresslevel=self.compresslevel
        )
        return self

    def _write(self, path: str, content: bytes) -> bytes:
        if self._zf is None or self._sink is None:
            raise SinkError("archive is not open")
        self._zf.writestr(path, content)
        self.entries.append(path)
        return self._sink.drain()

    async def append(self, path: str, content: bytes) -> bytes:
        # deflate runs in a worker thread so the event loop keeps serving
        return await run_in_threadpool(self._write, path, content)

    def _close(self) -> bytes:
        if self._zf is None or self._sink is None:
            raise SinkError("archive is not open")
        self._zf.close()
        tail = self._sink.drain()
        self._sink.closed = True
        self._zf = None
        return tail

    async def finalize(self) -> bytes:
        return await run_in_threadpool(self._close)

    def abandon(self) -> None:
        """Drop the archive; whatever the close produces is discarded."""
        zf, self._zf = self._zf, None
        if zf is not None:
            try:
                zf.close()
            except Exception as ex:
                logger.debug(f"archive close during abandon failed: {ex}")
        if self._sink is not None:
            self._sink.drain()
            self._sink.closed = True

    async def __aenter__(self) -> "ArchiveStreamer":
        return self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.abandon()
