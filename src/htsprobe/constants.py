from __future__ import annotations

from types import MappingProxyType
from typing import Any, Final, FrozenSet, Mapping


## Helpers ##
def _deep_freeze(obj: Any) -> Any:
    """Recursively freeze common containers. Use for constant exports."""
    if isinstance(obj, dict):
        return MappingProxyType({k: _deep_freeze(v) for k, v in obj.items()})
    if isinstance(obj, (list, tuple)):
        return tuple(_deep_freeze(v) for v in obj)
    if isinstance(obj, set):
        return frozenset(_deep_freeze(v) for v in obj)
    return obj


## Suffixes ##
FASTA_SUFFIXES: Final[FrozenSet[str]] = _deep_freeze(
    {".fasta", ".fasta.gz", ".fa", ".fa.gz", ".fna", ".fna.gz", ".txt", ".txt.gz"}
)
VCF_SUFFIXES: Final[FrozenSet[str]] = _deep_freeze({".vcf", ".vcf.gz", ".bcf", ".vcf.bgz"})
BAM_SUFFIX: Final[str] = ".bam"
CRAM_SUFFIX: Final[str] = ".cram"
SAM_SUFFIX: Final[str] = ".sam"
FAI_SUFFIX: Final[str] = ".fai"
DICT_SUFFIX: Final[str] = ".dict"
CSI_SUFFIX: Final[str] = ".csi"
INTERVAL_LIST_SUFFIXES: Final[FrozenSet[str]] = _deep_freeze(
    {".interval_list", ".interval_list.gz"}
)
BGZIP_SUFFIXES: Final[FrozenSet[str]] = _deep_freeze({".gz", ".bgz"})

## Magic bytes ##
GZIP_MAGIC: Final[bytes] = b"\x1f\x8b"
BCF_MAGIC: Final[bytes] = b"BCF"
# magic + major + minor + int32 header length
BCF_PRELUDE_SIZE: Final[int] = len(BCF_MAGIC) + 2 + 4
BAM_MAGIC: Final[bytes] = b"BAM\x01"
SNIFF_WINDOW: Final[int] = max(BCF_PRELUDE_SIZE, len(GZIP_MAGIC))

## VCF / SAM header keys ##
VCF_FILEFORMAT_PREFIX: Final[str] = "##fileformat=VCF"
VCF_HEADER_TERMINATOR: Final[str] = "#CHROM"
VCF_FIXED_COLUMNS: Final[int] = 9
READ_GROUP_SAMPLE_TAG: Final[str] = "SM"

## Build catalog ##
BUILDS_RESOURCE: Final[str] = "builds.yaml"
BUILDS_ENV_VAR: Final[str] = "HTSPROBE_BUILDS"
UNKNOWN_FIELD: Final[str] = "."

_private_mito_aliases = {"m": "mt"}
MITO_ALIASES: Final[Mapping[str, str]] = _deep_freeze(_private_mito_aliases)
