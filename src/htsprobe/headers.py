"""Header-only decoding for VCF/BCF and SAM/BAM/CRAM sources."""

from __future__ import annotations

import io
import struct
from dataclasses import dataclass, field
from functools import cached_property
from typing import TYPE_CHECKING, Any, BinaryIO, Dict, Iterable, List, Optional, Tuple

from htsprobe.constants import (
    BAM_MAGIC,
    BCF_MAGIC,
    VCF_FILEFORMAT_PREFIX,
    VCF_FIXED_COLUMNS,
    VCF_HEADER_TERMINATOR,
)
from htsprobe.errors import FormatError, codec_errors
from htsprobe.logging_utils import get_logger
from htsprobe.optional_imports import require
from htsprobe.sniff import PeekableStream, read_fully, sniff
from htsprobe.sources import SourceHandle, is_alignment, is_bam, is_cram, is_interval_list, is_vcf

logger = get_logger(__name__)

if TYPE_CHECKING:
    import pysam as pysam_types

try:
    import pysam
except Exception:
    pysam = None  # type: ignore


def _require_pysam() -> "pysam_types":
    """Return the pysam module or raise if unavailable."""
    if pysam is not None:
        return pysam
    return require("pysam", purpose="HTS header decoding")


@dataclass(frozen=True)
class VcfHeader:
    """
    Decoded VCF/BCF header.

    ``meta_lines`` holds every ``##`` line in source order and ``samples`` the genotype
    columns of the ``#CHROM`` line. ``bcf_version`` is ``(major, minor)`` for BCF input and
    ``None`` for text VCF. The pysam ``VariantHeader`` is built on first access.
    """

    meta_lines: Tuple[str, ...]
    samples: Tuple[str, ...]
    bcf_version: Optional[Tuple[int, int]] = None
    source: Optional[str] = field(default=None, compare=False)

    @property
    def fileformat(self) -> str:
        return self.meta_lines[0].split("=", 1)[1]

    @cached_property
    def variant_header(self) -> "pysam_types.VariantHeader":
        pysam_mod = _require_pysam()
        header = pysam_mod.VariantHeader()
        for line in self.meta_lines:
            # VariantHeader() already carries its own fileformat line
            if line.startswith("##fileformat="):
                continue
            try:
                header.add_line(line)
            except ValueError as exc:
                raise FormatError(
                    f"Invalid VCF header line: {line}",
                    source=self.source,
                    operation="vcf_header",
                ) from exc
        for sample in self.samples:
            header.add_sample(sample)
        return header

    def to_text(self) -> str:
        columns = ["#CHROM", "POS", "ID", "REF", "ALT", "QUAL", "FILTER", "INFO"]
        if self.samples:
            columns += ["FORMAT", *self.samples]
        return "\n".join([*self.meta_lines, "\t".join(columns)]) + "\n"


def _parse_vcf_header_lines(
    lines: Iterable[str], *, source: Optional[str]
) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    meta: List[str] = []
    for lineno, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        if lineno == 1 and not line.startswith(VCF_FILEFORMAT_PREFIX):
            raise FormatError(
                "Neither BCF magic nor a '##fileformat=VCF' line found",
                source=source,
                operation="vcf_header",
            )
        if line.startswith("##"):
            meta.append(line)
            continue
        if line.startswith(VCF_HEADER_TERMINATOR):
            columns = line.split("\t")
            return tuple(meta), tuple(columns[VCF_FIXED_COLUMNS:])
        raise FormatError(
            f"Line {lineno}: unexpected content before the {VCF_HEADER_TERMINATOR} line",
            source=source,
            operation="vcf_header",
        )
    raise FormatError(
        f"VCF header has no {VCF_HEADER_TERMINATOR} line",
        source=source,
        operation="vcf_header",
    )


def _iter_text_lines(stream: BinaryIO) -> Iterable[str]:
    for raw in stream:
        yield raw.decode("utf-8")


def _as_peekable(stream: BinaryIO) -> PeekableStream:
    if isinstance(stream, PeekableStream):
        return stream
    return sniff(stream)


def decode_vcf_header(stream: BinaryIO, *, source: Optional[str] = None) -> VcfHeader:
    """
    Decode a VCF or BCF header from a sniffed stream; the body is left unread.

    The stream is consumed past the header and should be discarded afterwards.
    """
    stream = _as_peekable(stream)
    if stream.peek(len(BCF_MAGIC)) != BCF_MAGIC:
        buffered = io.BufferedReader(stream)
        try:
            meta, samples = _parse_vcf_header_lines(_iter_text_lines(buffered), source=source)
        finally:
            buffered.detach()
        return VcfHeader(meta, samples, None, source)

    read_fully(stream, len(BCF_MAGIC), source=source)
    major, minor = read_fully(stream, 2, source=source)
    (length,) = struct.unpack("<i", read_fully(stream, 4, source=source))
    if length <= 0:
        raise FormatError(
            f"BCF header has invalid length: {length}",
            source=source,
            operation="bcf_header",
        )
    block = read_fully(stream, length, source=source)
    logger.debug("BCF %d.%d header block of %d bytes from %s", major, minor, length, source)
    text = block.rstrip(b"\x00").decode("utf-8")
    meta, samples = _parse_vcf_header_lines(text.splitlines(), source=source)
    return VcfHeader(meta, samples, (major, minor), source)


def extract_vcf_header(source: SourceHandle) -> VcfHeader:
    if not is_vcf(source):
        raise FormatError(
            f"Not a valid extension for VCF: {source}",
            source=source.path,
            operation="vcf_header",
        )
    with source.open_sniffed() as stream:
        return decode_vcf_header(stream, source=source.path)


# SAM / BAM / CRAM -----------------------------------------------------------------------------
def _read_sam_text(stream: BinaryIO) -> str:
    buffered = io.BufferedReader(stream)
    lines = []
    try:
        for raw in buffered:
            if not raw.startswith(b"@"):
                break
            lines.append(raw.decode("utf-8"))
    finally:
        buffered.detach()
    return "".join(lines)


def _alignment_header(text: str, source: Optional[str]) -> "pysam_types.AlignmentHeader":
    pysam_mod = _require_pysam()
    try:
        return pysam_mod.AlignmentHeader.from_text(text)
    except ValueError as exc:
        raise FormatError(
            f"Malformed SAM header: {exc}", source=source, operation="sam_header"
        ) from exc


def decode_sam_header(
    stream: BinaryIO, *, source: Optional[str] = None
) -> "pysam_types.AlignmentHeader":
    """
    Decode a SAM text header (or interval list header) from a sniffed stream.

    Binary BAM input is rejected; BAM and CRAM headers are read through
    ``pysam.AlignmentFile`` by :func:`extract_sam_header`.
    """
    stream = _as_peekable(stream)
    if stream.peek(len(BAM_MAGIC)) == BAM_MAGIC:
        raise FormatError(
            "Binary BAM header found where SAM text was expected",
            source=source,
            operation="sam_header",
        )
    return _alignment_header(_read_sam_text(stream), source)


def _alignment_file_header(source: SourceHandle) -> "pysam_types.AlignmentHeader":
    pysam_mod = _require_pysam()
    if is_cram(source):
        mode = "rc"
    elif is_bam(source):
        mode = "rb"
    else:
        mode = "r"
    with codec_errors(source.path, "sam_header"), pysam_mod.AlignmentFile(
        source.path, mode, check_sq=False, ignore_truncation=True
    ) as alignments:
        return pysam_mod.AlignmentHeader.from_dict(alignments.header.to_dict())


def extract_sam_header(source: SourceHandle) -> "pysam_types.AlignmentHeader":
    """SAM header of an alignment file or an interval list."""
    if is_interval_list(source):
        with source.open_sniffed() as stream:
            return decode_sam_header(stream, source=source.path)
    if not is_alignment(source):
        raise FormatError(
            f"Not a valid extension for BAM/CRAM/SAM: {source}",
            source=source.path,
            operation="sam_header",
        )
    return _alignment_file_header(source)


def extract_read_groups(source: SourceHandle) -> List[Dict[str, Any]]:
    header = extract_sam_header(source)
    return list(header.to_dict().get("RG", []) or [])
