"""Byte-stream sniffing for gzip and BCF content.

Every header decode in htsprobe goes through :func:`sniff`: the outer layer detects a gzip
signature and transparently inflates it, then the same lookahead window is made available on
the inflated bytes so BCF magic (itself gzip/BGZF wrapped) can be tested without losing data.
"""

from __future__ import annotations

import gzip
import io
from typing import BinaryIO, Optional

from htsprobe.constants import GZIP_MAGIC, SNIFF_WINDOW
from htsprobe.errors import HtsIOError
from htsprobe.logging_utils import get_logger

logger = get_logger(__name__)


class PeekableStream(io.RawIOBase):
    """
    Binary reader that can look ahead a bounded number of bytes without consuming them.

    ``peek`` loops on the wrapped stream until the requested window is filled or the stream
    ends, so short reads from network transports or decompressors do not hide magic bytes.
    Closing the stream closes the wrapped stream and, when given, its parent.
    """

    def __init__(
        self,
        stream: BinaryIO,
        *,
        window: int = SNIFF_WINDOW,
        parent: Optional[io.IOBase] = None,
    ) -> None:
        super().__init__()
        self._stream = stream
        self._window = window
        self._parent = parent
        self._lookahead = b""

    @property
    def window(self) -> int:
        return self._window

    def readable(self) -> bool:
        return True

    def peek(self, size: Optional[int] = None) -> bytes:
        """Return up to ``size`` upcoming bytes (default: the sniff window) without consuming."""
        size = self._window if size is None else size
        while len(self._lookahead) < size:
            chunk = self._stream.read(size - len(self._lookahead))
            if not chunk:
                break
            self._lookahead += chunk
        return self._lookahead[:size]

    def readinto(self, buffer) -> int:
        view = memoryview(buffer).cast("B")
        wanted = len(view)
        if wanted == 0:
            return 0
        if self._lookahead:
            n = min(wanted, len(self._lookahead))
            view[:n] = self._lookahead[:n]
            self._lookahead = self._lookahead[n:]
            return n
        chunk = self._stream.read(wanted)
        if not chunk:
            return 0
        n = len(chunk)
        view[:n] = chunk
        return n

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._stream.close()
        finally:
            try:
                if self._parent is not None:
                    self._parent.close()
            finally:
                super().close()


def is_gzip(stream: PeekableStream) -> bool:
    """True when the next bytes of ``stream`` are a gzip signature."""
    return stream.peek(len(GZIP_MAGIC)) == GZIP_MAGIC


def sniff(raw: BinaryIO) -> PeekableStream:
    """
    Wrap ``raw`` so its first bytes can be inspected, inflating gzip content on the fly.

    The returned stream owns ``raw``: closing it releases every layer. If sniffing itself
    fails, ``raw`` is closed before the error propagates.
    """
    outer = PeekableStream(raw)
    try:
        if not is_gzip(outer):
            return outer
        logger.debug("gzip signature detected; inflating before BCF/text sniff")
        inflated = gzip.GzipFile(fileobj=outer, mode="rb")
        return PeekableStream(inflated, parent=outer)
    except BaseException:
        outer.close()
        raise


def read_fully(stream: BinaryIO, size: int, *, source: Optional[str] = None) -> bytes:
    """Read exactly ``size`` bytes, looping over short reads."""
    chunks = []
    remaining = size
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            raise HtsIOError(
                f"Premature end of stream: expected {size} bytes, got {size - remaining}",
                source=source,
                operation="read",
            )
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)
