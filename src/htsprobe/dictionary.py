"""Sequence dictionary resolution across VCF, BCF, SAM, BAM, CRAM, FASTA and index files."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from htsprobe.constants import DICT_SUFFIX, FAI_SUFFIX
from htsprobe.errors import DictionaryError, FormatError
from htsprobe.headers import (
    VcfHeader,
    decode_sam_header,
    extract_sam_header,
    extract_vcf_header,
)
from htsprobe.logging_utils import get_logger
from htsprobe.optional_imports import require
from htsprobe.seqdict import SequenceDictionary, SequenceRecord
from htsprobe.sources import (
    SourceHandle,
    find_source,
    is_alignment,
    is_dict,
    is_fai,
    is_fasta,
    is_interval_list,
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
    return require("pysam", purpose="direct dictionary extraction")


def dictionary_from_vcf_header(header: VcfHeader) -> SequenceDictionary:
    """Dictionary built from the ``##contig`` lines of a VCF header."""
    records = []
    for contig in header.variant_header.contigs.values():
        record = contig.header_record
        length = record.get("length") if record is not None else None
        if length is None:
            raise DictionaryError(
                f"##contig line for {contig.name} has no length",
                source=header.source,
                operation="dictionary",
            )
        records.append(SequenceRecord(contig.name, int(length), record.get("md5")))
    return SequenceDictionary(records)


def dictionary_from_sam_header(header, *, source: Optional[str] = None) -> SequenceDictionary:
    return SequenceDictionary.from_sam_header_dict(header.to_dict(), source=source)


def dictionary_from_fai(source: SourceHandle) -> SequenceDictionary:
    if not is_fai(source):
        raise FormatError(
            f"Not a valid extension for a FASTA index file: {source}",
            source=source.path,
            operation="fai",
        )
    with source.open_text() as handle:
        return SequenceDictionary.from_fai_lines(handle, source=source.path)


def dictionary_from_dict_file(source: SourceHandle) -> SequenceDictionary:
    """Decode a Picard-style ``.dict`` file (SAM header text)."""
    with source.open_sniffed() as stream:
        header = decode_sam_header(stream, source=source.path)
    return dictionary_from_sam_header(header, source=source.path)


def _dictionary_for_fasta(source: SourceHandle) -> SequenceDictionary:
    # .dict carries MD5s, .fai does not
    dict_source = source.resolve_sibling(source.basename + DICT_SUFFIX)
    try:
        return dictionary_from_dict_file(dict_source)
    except (OSError, FormatError) as exc:
        logger.debug("No usable %s (%s); falling back to FASTA index", dict_source, exc)
    return dictionary_from_fai(source.resolve_sibling(source.filename + FAI_SUFFIX))


def _dictionary_from_vcf(source: SourceHandle) -> SequenceDictionary:
    header = extract_vcf_header(source)
    dictionary = dictionary_from_vcf_header(header)
    if not dictionary:
        raise DictionaryError(
            f"There is no dictionary (lines starting with '##contig') in header of VCF file {source}",
            source=source.path,
            operation="dictionary",
        )
    return dictionary


def _dictionary_from_local(source: SourceHandle) -> SequenceDictionary:
    """Direct extraction for local files, dispatching on suffix and then on content."""
    if is_fasta(source):
        return _dictionary_for_fasta(source)
    if is_dict(source):
        return dictionary_from_dict_file(source)
    if is_alignment(source) or is_interval_list(source):
        return dictionary_from_sam_header(extract_sam_header(source), source=source.path)

    pysam_mod = _require_pysam()
    try:
        with pysam_mod.AlignmentFile(source.path, check_sq=False, ignore_truncation=True) as af:
            return dictionary_from_sam_header(af.header, source=source.path)
    except (OSError, ValueError) as exc:
        raise DictionaryError(
            f"Cannot extract dictionary from {source}: {exc}",
            source=source.path,
            operation="dictionary",
        ) from exc


def _resolve(source: SourceHandle) -> Optional[SequenceDictionary]:
    if is_vcf(source):
        logger.debug("Resolving dictionary for %s from VCF header", source)
        return _dictionary_from_vcf(source)
    if source.is_local and not is_fai(source):
        logger.debug("Resolving dictionary for %s by direct extraction", source)
        return _dictionary_from_local(source)
    if is_fai(source):
        return dictionary_from_fai(source)
    if is_fasta(source):
        logger.debug("Resolving dictionary for %s from sibling .dict/.fai", source)
        return _dictionary_for_fasta(source)
    if is_dict(source):
        return dictionary_from_dict_file(source)
    if is_alignment(source) or is_interval_list(source):
        return dictionary_from_sam_header(extract_sam_header(source), source=source.path)
    return None


def resolve_dictionary(source) -> SequenceDictionary:
    """
    Resolve the sequence dictionary of ``source`` (path, URL or :class:`SourceHandle`).

    Strategy order:

    1. VCF/BCF (local or remote): ``##contig`` lines of the header.
    2. Local, not a FASTA index: direct extraction (FASTA via sibling ``.dict`` then ``.fai``;
       ``.dict``, SAM/BAM/CRAM and interval lists via their SAM header; anything else via
       htslib content detection).
    3. FASTA index: ``name<TAB>length`` lines.
    4. Remote FASTA: sibling ``.dict`` first, sibling ``.fai`` second.
    5. Remote ``.dict``, SAM/BAM/CRAM or interval list: SAM header.

    Raises:
        DictionaryError: if no strategy applies or the dictionary is empty.
    """
    source = find_source(source)
    dictionary = _resolve(source)
    if dictionary is None:
        raise DictionaryError(
            f"Cannot extract dictionary from {source}",
            source=source.path,
            operation="dictionary",
        )
    if not dictionary:
        raise DictionaryError(
            f"Empty dictionary in {source}",
            source=source.path,
            operation="dictionary",
        )
    return dictionary
