"""Error kinds raised by htsprobe.

Every error carries the source it was raised for and the operation that was attempted so
callers can branch on the exception type instead of parsing messages.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional


class HtsProbeError(Exception):
    """Base class for all htsprobe errors."""

    def __init__(
        self,
        message: str,
        *,
        source: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.source = source
        self.operation = operation


class FormatError(HtsProbeError, ValueError):
    """Suffix or magic bytes do not match the requested operation."""


class DictionaryError(HtsProbeError, ValueError):
    """No strategy produced a non-empty sequence dictionary."""


class HtsIOError(HtsProbeError, OSError):
    """Stream unreachable, premature end of stream, or missing index."""


class ConfigError(HtsProbeError, ValueError):
    """Malformed build catalog entry."""


class InputError(HtsProbeError, TypeError):
    """Input object cannot be turned into a source handle."""


@contextmanager
def codec_errors(source: Optional[str], operation: str) -> Iterator[None]:
    """Re-raise ``ValueError``/``OSError`` from the HTS codec as FormatError/HtsIOError."""
    try:
        yield
    except HtsProbeError:
        raise
    except ValueError as exc:
        raise FormatError(
            f"Cannot read {source}: {exc}", source=source, operation=operation
        ) from exc
    except OSError as exc:
        raise HtsIOError(
            f"Cannot read {source}: {exc}", source=source, operation=operation
        ) from exc
