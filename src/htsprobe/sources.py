"""Uniform handles over local and remote genomic files."""

from __future__ import annotations

import io
import os
import posixpath
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Callable, Iterable, Optional, TextIO, Union
from urllib.parse import ParseResult, SplitResult, urljoin, urlparse, urlunparse
from urllib.request import url2pathname, urlopen

from htsprobe.constants import (
    BAM_SUFFIX,
    BGZIP_SUFFIXES,
    CRAM_SUFFIX,
    DICT_SUFFIX,
    FAI_SUFFIX,
    FASTA_SUFFIXES,
    INTERVAL_LIST_SUFFIXES,
    SAM_SUFFIX,
    VCF_SUFFIXES,
)
from htsprobe.errors import HtsIOError, InputError
from htsprobe.logging_utils import get_logger
from htsprobe.sniff import PeekableStream, sniff

logger = get_logger(__name__)

_URL_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")
_URLOPEN_SCHEMES = frozenset({"http", "https", "ftp"})


class SourceHandle(ABC):
    """A local or remote genomic file. Immutable; every open returns a fresh stream."""

    remote: bool

    @property
    @abstractmethod
    def path(self) -> str:
        """Canonical path or URL string."""

    @property
    @abstractmethod
    def filename(self) -> str:
        """Last path component."""

    @abstractmethod
    def resolve_sibling(self, filename: str) -> "SourceHandle":
        """Handle for ``filename`` in the same directory (or URL collection)."""

    @abstractmethod
    def open_stream(self) -> BinaryIO:
        """Open the raw bytes of the resource."""

    @abstractmethod
    def exists(self) -> bool:
        """Cheap existence check; remote handles report True and let the open fail."""

    @property
    def is_remote(self) -> bool:
        return self.remote

    @property
    def is_local(self) -> bool:
        return not self.remote

    @property
    def basename(self) -> str:
        name = self.filename
        i = name.rfind(".")
        return "" if i == -1 else name[:i]

    def has_suffix(self, suffix: Union[str, Iterable[str]]) -> bool:
        """Case-sensitive suffix test on the filename only."""
        if isinstance(suffix, str):
            return self.filename.endswith(suffix)
        return any(self.filename.endswith(s) for s in suffix)

    def open_sniffed(self) -> PeekableStream:
        """Open the resource with gzip inflated and a lookahead window available."""
        return sniff(self.open_stream())

    def open_text(self, encoding: str = "utf-8") -> TextIO:
        """Text reader over :meth:`open_sniffed`."""
        return io.TextIOWrapper(io.BufferedReader(self.open_sniffed()), encoding=encoding)

    def __str__(self) -> str:
        return self.path


@dataclass(frozen=True)
class LocalSource(SourceHandle):
    location: Path
    remote = False

    @property
    def path(self) -> str:
        return str(self.location)

    @property
    def filename(self) -> str:
        return self.location.name

    def resolve_sibling(self, filename: str) -> "LocalSource":
        return LocalSource(self.location.parent / filename)

    def open_stream(self) -> BinaryIO:
        return open(self.location, "rb")

    def exists(self) -> bool:
        return self.location.exists()


@dataclass(frozen=True)
class RemoteSource(SourceHandle):
    url: str
    remote = True

    @property
    def path(self) -> str:
        return self.url

    @property
    def scheme(self) -> str:
        return urlparse(self.url).scheme.lower()

    @property
    def filename(self) -> str:
        return posixpath.basename(urlparse(self.url).path)

    def resolve_sibling(self, filename: str) -> "RemoteSource":
        parsed = urlparse(self.url)
        # urljoin only resolves schemes it knows, so resolve the path part on its own
        sibling = urlparse(urljoin(parsed.path, filename))
        if sibling.scheme:
            return RemoteSource(filename)
        return RemoteSource(
            urlunparse(
                parsed._replace(path=sibling.path, query=sibling.query, fragment=sibling.fragment)
            )
        )

    def open_stream(self) -> BinaryIO:
        if self.scheme not in _URLOPEN_SCHEMES:
            raise HtsIOError(
                f"No stream transport for scheme '{self.scheme}'",
                source=self.url,
                operation="open",
            )
        logger.debug("Opening remote stream %s", self.url)
        return urlopen(self.url)

    def exists(self) -> bool:
        return True


def looks_like_url(text: str) -> bool:
    return bool(_URL_PATTERN.match(text))


def _from_url(url: str) -> SourceHandle:
    parsed = urlparse(url)
    if parsed.scheme.lower() == "file":
        return LocalSource(Path(url2pathname(parsed.path)))
    return RemoteSource(url)


def to_source(obj: Any) -> Optional[SourceHandle]:
    """
    Convert a path, URL, URL value, or named file object into a :class:`SourceHandle`.

    Returns ``None`` for unsupported inputs; callers decide whether that is an error.
    """
    if obj is None:
        return None
    if isinstance(obj, SourceHandle):
        return obj
    if isinstance(obj, (ParseResult, SplitResult)):
        return _from_url(obj.geturl())
    if isinstance(obj, str):
        return _from_url(obj) if looks_like_url(obj) else LocalSource(Path(obj))
    if isinstance(obj, os.PathLike):
        return LocalSource(Path(obj))
    if isinstance(obj, io.IOBase):
        name = getattr(obj, "name", None)
        if isinstance(name, (str, os.PathLike)):
            return to_source(name)
        return None
    return None


def find_source(
    obj: Any,
    accept: Optional[Callable[[SourceHandle], bool]] = None,
) -> SourceHandle:
    """Like :func:`to_source` but raises :class:`InputError` instead of returning ``None``."""
    if obj is None:
        raise InputError("source cannot be None", operation="find_source")
    source = to_source(obj)
    if source is None:
        raise InputError(
            f"Cannot convert {obj!r} ({type(obj).__name__}) to an HTS source",
            operation="find_source",
        )
    if accept is not None and not accept(source):
        raise InputError(
            f"HTS file {source} was found but has no valid suffixes",
            source=source.path,
            operation="find_source",
        )
    return source


# Format predicates ---------------------------------------------------------------------------
def is_fasta(source: SourceHandle) -> bool:
    return source.has_suffix(FASTA_SUFFIXES)


def is_vcf(source: SourceHandle) -> bool:
    return source.has_suffix(VCF_SUFFIXES)


def is_bam(source: SourceHandle) -> bool:
    return source.has_suffix(BAM_SUFFIX)


def is_cram(source: SourceHandle) -> bool:
    return source.has_suffix(CRAM_SUFFIX)


def is_sam(source: SourceHandle) -> bool:
    return source.has_suffix(SAM_SUFFIX)


def is_alignment(source: SourceHandle) -> bool:
    return is_bam(source) or is_cram(source) or is_sam(source)


def is_fai(source: SourceHandle) -> bool:
    return source.has_suffix(FAI_SUFFIX)


def is_dict(source: SourceHandle) -> bool:
    return source.has_suffix(DICT_SUFFIX)


def is_interval_list(source: SourceHandle) -> bool:
    return source.has_suffix(INTERVAL_LIST_SUFFIXES)


def is_bgzip_generic(source: SourceHandle) -> bool:
    return source.has_suffix(BGZIP_SUFFIXES)
