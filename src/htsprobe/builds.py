"""Reference genome build identification from a sequence dictionary.

A build is a conjunction of contig predicates. A dictionary matches a build when every
predicate is satisfied by at least one of its records; extra contigs are ignored. Catalog order
is priority order: the first matching build wins.
"""

from __future__ import annotations

import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence, Tuple, Union

import yaml

from htsprobe.constants import BUILDS_ENV_VAR, MITO_ALIASES, UNKNOWN_FIELD
from htsprobe.errors import ConfigError
from htsprobe.logging_utils import get_logger
from htsprobe.seqdict import SequenceDictionary

logger = get_logger(__name__)


def normalize_contig_name(name: str) -> str:
    """Lowercase, strip a leading ``chr`` and map ``m`` to ``mt``."""
    name = name.lower()
    if name.startswith("chr"):
        name = name[3:]
    return MITO_ALIASES.get(name, name)


class ContigPredicate(ABC):
    @abstractmethod
    def test(self, dictionary: SequenceDictionary, resolve_chromosome: bool) -> bool:
        ...


@dataclass(frozen=True)
class ContigLengthMatch(ContigPredicate):
    name: str
    length: int

    def test(self, dictionary: SequenceDictionary, resolve_chromosome: bool) -> bool:
        if not resolve_chromosome:
            record = dictionary.get(self.name)
            return record is not None and record.length == self.length
        wanted = normalize_contig_name(self.name)
        return any(
            record.length == self.length and normalize_contig_name(record.name) == wanted
            for record in dictionary
        )


@dataclass(frozen=True)
class ContigMd5Match(ContigPredicate):
    md5: str

    def test(self, dictionary: SequenceDictionary, resolve_chromosome: bool) -> bool:
        return any(record.md5 == self.md5 for record in dictionary)


@dataclass(frozen=True)
class Build:
    id: str
    predicates: Tuple[ContigPredicate, ...]
    organism: str = UNKNOWN_FIELD
    version: str = UNKNOWN_FIELD

    @property
    def name(self) -> str:
        return self.id

    def matches(self, dictionary: SequenceDictionary, resolve_chromosome: bool) -> bool:
        return all(p.test(dictionary, resolve_chromosome) for p in self.predicates)


class BuildCatalog(Sequence[Build]):
    """Immutable, ordered collection of builds."""

    def __init__(self, builds: Iterable[Build] = ()) -> None:
        self._builds: Tuple[Build, ...] = tuple(builds)

    def __getitem__(self, index):
        return self._builds[index]

    def __len__(self) -> int:
        return len(self._builds)

    def __iter__(self) -> Iterator[Build]:
        return iter(self._builds)

    def __repr__(self) -> str:
        return f"BuildCatalog({[b.id for b in self._builds]!r})"

    def match(self, dictionary: SequenceDictionary, resolve_chromosome: bool) -> Optional[Build]:
        for build in self._builds:
            if build.matches(dictionary, resolve_chromosome):
                return build
        return None

    @classmethod
    def from_records(cls, records: Any, *, origin: Optional[str] = None) -> "BuildCatalog":
        """Parse the declarative catalog representation (a list of build mappings)."""
        if not isinstance(records, list):
            raise ConfigError(
                f"Expected builds as a list but got {type(records).__name__}",
                source=origin,
                operation="load_catalog",
            )
        return cls(_parse_build(entry, i, origin) for i, entry in enumerate(records))


def _config_error(message: str, origin: Optional[str]) -> ConfigError:
    return ConfigError(message, source=origin, operation="load_catalog")


def _parse_contig(entry: Any, where: str, origin: Optional[str]) -> ContigPredicate:
    if not isinstance(entry, Mapping):
        raise _config_error(f"{where} expected a mapping but got {type(entry).__name__}", origin)
    if "md5" in entry:
        md5 = entry["md5"]
        if not isinstance(md5, str) or not md5:
            raise _config_error(f"{where}.md5 is not a non-empty string: {md5!r}", origin)
        return ContigMd5Match(md5)
    if "name" not in entry:
        raise _config_error(f"{where}.name is undefined", origin)
    if "length" not in entry:
        raise _config_error(f"{where}.length is undefined", origin)
    length = entry["length"]
    if isinstance(length, bool) or not isinstance(length, int):
        raise _config_error(f"{where}.length is not an integer: {length!r}", origin)
    return ContigLengthMatch(str(entry["name"]), length)


def _parse_build(entry: Any, i: int, origin: Optional[str]) -> Build:
    where = f"builds[{i}]"
    if not isinstance(entry, Mapping):
        raise _config_error(f"{where} expected a mapping but got {type(entry).__name__}", origin)
    build_id = entry.get("id", entry.get("name"))
    if not isinstance(build_id, str) or not build_id:
        raise _config_error(f"{where}.id is undefined or not a string", origin)
    # legacy config shape uses 'chromosomes'
    key = "contigs" if "contigs" in entry else "chromosomes"
    contigs = entry.get(key)
    if not isinstance(contigs, list):
        raise _config_error(f"{where}.contigs is undefined or not a list", origin)
    if not contigs:
        raise _config_error(f"{where}.contigs is empty", origin)
    predicates = tuple(
        _parse_contig(contig, f"{where}.{key}[{j}]", origin) for j, contig in enumerate(contigs)
    )
    return Build(
        id=build_id,
        predicates=predicates,
        organism=str(entry.get("organism", UNKNOWN_FIELD)),
        version=str(entry.get("version", UNKNOWN_FIELD)),
    )


def load_catalog(path: Union[str, Path]) -> BuildCatalog:
    """Load a YAML build catalog. Raises :class:`ConfigError` on malformed content."""
    path = Path(path)
    with open(path, "r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise _config_error(f"Invalid YAML in {path}: {exc}", str(path)) from exc
    if isinstance(data, Mapping) and "builds" in data:
        data = data["builds"]
    return BuildCatalog.from_records(data if data is not None else [], origin=str(path))


class _DefaultCatalog:
    """Process-wide catalog, loaded once on first use."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._catalog: Optional[BuildCatalog] = None

    def get(self) -> BuildCatalog:
        catalog = self._catalog
        if catalog is not None:
            return catalog
        with self._lock:
            if self._catalog is None:
                self._catalog = self._load()
            return self._catalog

    def reset(self) -> None:
        with self._lock:
            self._catalog = None

    @staticmethod
    def _load() -> BuildCatalog:
        from htsprobe.data import get_builds_path

        path = os.environ.get(BUILDS_ENV_VAR) or get_builds_path()
        try:
            catalog = load_catalog(path)
        except (OSError, ConfigError) as exc:
            logger.warning("Could not load build catalog %s (%s); no known builds", path, exc)
            return BuildCatalog()
        logger.debug("Loaded %d builds from %s", len(catalog), path)
        return catalog


_DEFAULT = _DefaultCatalog()


def default_catalog() -> BuildCatalog:
    return _DEFAULT.get()


def decode_builds(obj: Any) -> BuildCatalog:
    """``None`` -> default catalog, ``[]`` -> empty catalog, list -> parsed catalog."""
    if obj is None:
        return default_catalog()
    return BuildCatalog.from_records(obj, origin="config")


def match_build(
    dictionary: SequenceDictionary,
    resolve_chromosome: bool,
    catalog: Optional[BuildCatalog] = None,
) -> Optional[Build]:
    """First build of ``catalog`` (default: the packaged catalog) matching ``dictionary``."""
    catalog = default_catalog() if catalog is None else catalog
    return catalog.match(dictionary, resolve_chromosome)
