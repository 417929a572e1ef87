"""htsprobe"""

from importlib.metadata import PackageNotFoundError, version

from .builds import (
    Build,
    BuildCatalog,
    ContigLengthMatch,
    ContigMd5Match,
    decode_builds,
    default_catalog,
    load_catalog,
    match_build,
)
from .contigs import extract_mapped_contigs
from .dictionary import resolve_dictionary
from .errors import (
    ConfigError,
    DictionaryError,
    FormatError,
    HtsIOError,
    HtsProbeError,
    InputError,
)
from .headers import (
    VcfHeader,
    decode_sam_header,
    decode_vcf_header,
    extract_sam_header,
    extract_vcf_header,
)
from .samples import extract_samples
from .seqdict import SequenceDictionary, SequenceRecord
from .sources import LocalSource, RemoteSource, SourceHandle, find_source, to_source

package_name = "htsprobe"
try:
    __version__ = version(package_name)
except PackageNotFoundError:  # pragma: no cover - source checkout
    __version__ = "0+unknown"

__all__ = [
    "Build",
    "BuildCatalog",
    "ConfigError",
    "ContigLengthMatch",
    "ContigMd5Match",
    "DictionaryError",
    "FormatError",
    "HtsIOError",
    "HtsProbeError",
    "InputError",
    "LocalSource",
    "RemoteSource",
    "SequenceDictionary",
    "SequenceRecord",
    "SourceHandle",
    "VcfHeader",
    "decode_builds",
    "decode_sam_header",
    "decode_vcf_header",
    "default_catalog",
    "extract_mapped_contigs",
    "extract_samples",
    "extract_sam_header",
    "extract_vcf_header",
    "find_source",
    "load_catalog",
    "match_build",
    "resolve_dictionary",
    "to_source",
]
