"""Mapped-contig extraction from tabix, CSI and BAM/CRAM indexes."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

from htsprobe.constants import CSI_SUFFIX
from htsprobe.errors import HtsIOError, codec_errors
from htsprobe.logging_utils import get_logger
from htsprobe.optional_imports import require
from htsprobe.sources import (
    SourceHandle,
    find_source,
    is_alignment,
    is_bam,
    is_bgzip_generic,
    is_cram,
    is_vcf,
)

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
    return require("pysam", purpose="index inspection")


def _contigs_from_tabix(source: SourceHandle) -> Optional[List[str]]:
    """Contig names of the tabix index, or ``None`` when no tabix index can be opened."""
    pysam_mod = _require_pysam()
    try:
        with pysam_mod.TabixFile(source.path) as tabix:
            return list(tabix.contigs)
    except (OSError, ValueError) as exc:
        logger.debug("No tabix index for %s: %s", source, exc)
        return None


def _has_any_variant(variants, contig: str) -> bool:
    try:
        return next(variants.fetch(contig), None) is not None
    except ValueError:
        return False


def _contigs_from_csi(source: SourceHandle, index: SourceHandle) -> List[str]:
    pysam_mod = _require_pysam()
    with codec_errors(source.path, "mapped_contigs"):
        if is_vcf(source):
            with pysam_mod.VariantFile(source.path, index_filename=index.path) as variants:
                # a BCF index lists every header contig, including empty ones
                return [name for name in variants.index if _has_any_variant(variants, name)]
        with pysam_mod.TabixFile(source.path, index=index.path) as tabix:
            return list(tabix.contigs)


def _has_any_alignment(alignments, contig: str) -> bool:
    # CRAM indexes carry no per-reference counts: probe for a first record instead
    return next(alignments.fetch(contig, 0), None) is not None


def _contigs_from_alignment_index(source: SourceHandle) -> List[str]:
    pysam_mod = _require_pysam()
    cram = is_cram(source)
    mode = "rc" if cram else "rb"
    with codec_errors(source.path, "mapped_contigs"), pysam_mod.AlignmentFile(
        source.path, mode, check_sq=False
    ) as alignments:
        if not alignments.has_index():
            raise HtsIOError(
                f"BAM/CRAM file {source} is not indexed",
                source=source.path,
                operation="mapped_contigs",
            )
        references = list(alignments.references)
        if cram:
            return [name for name in references if _has_any_alignment(alignments, name)]
        mapped = {stat.contig: stat.mapped for stat in alignments.get_index_statistics()}
        return [name for name in references if mapped.get(name, 0) > 0]


def extract_mapped_contigs(source) -> List[str]:
    """
    Contigs with at least one record, read from the best available index.

    1. ``.gz``/``.bgz`` files: the tabix index contig list.
    2. Local files with a ``<file>.csi`` sibling: the CSI index contig list.
    3. BAM: contigs whose index metadata reports aligned records.
       CRAM: contigs for which a positional query returns a record.
       Both are emitted in dictionary order.

    Raises:
        HtsIOError: when no applicable index exists.
    """
    source = find_source(source)
    if is_bgzip_generic(source):
        contigs = _contigs_from_tabix(source)
        if contigs is not None:
            return contigs
    if source.is_local and not is_alignment(source):
        index = source.resolve_sibling(source.filename + CSI_SUFFIX)
        if index.exists():
            logger.debug("Reading contigs of %s from %s", source, index)
            return _contigs_from_csi(source, index)
    if is_bam(source) or is_cram(source):
        return _contigs_from_alignment_index(source)
    raise HtsIOError(
        f"Cannot extract contigs from {source}",
        source=source.path,
        operation="mapped_contigs",
    )
