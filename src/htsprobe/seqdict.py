"""Sequence dictionary value types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, overload

from htsprobe.errors import DictionaryError, FormatError


@dataclass(frozen=True)
class SequenceRecord:
    name: str
    length: int
    md5: Optional[str] = None

    def to_sam_line(self) -> str:
        fields = ["@SQ", f"SN:{self.name}", f"LN:{self.length}"]
        if self.md5:
            fields.append(f"M5:{self.md5}")
        return "\t".join(fields)


class SequenceDictionary(Sequence[SequenceRecord]):
    """
    Ordered, name-unique list of :class:`SequenceRecord`.

    Order is the source order and defines contig ordering for downstream consumers.
    """

    __slots__ = ("_records", "_by_name")

    def __init__(self, records: Iterable[SequenceRecord]) -> None:
        self._records: Tuple[SequenceRecord, ...] = tuple(records)
        self._by_name: Dict[str, SequenceRecord] = {}
        for record in self._records:
            if record.name in self._by_name:
                raise DictionaryError(f"Duplicate contig name in dictionary: {record.name}")
            if record.length < 0:
                raise DictionaryError(
                    f"Negative length for contig {record.name}: {record.length}"
                )
            self._by_name[record.name] = record

    @overload
    def __getitem__(self, index: int) -> SequenceRecord: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[SequenceRecord]: ...

    def __getitem__(self, index):
        return self._records[index]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[SequenceRecord]:
        return iter(self._records)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SequenceDictionary):
            return NotImplemented
        return self._records == other._records

    def __hash__(self) -> int:
        return hash(self._records)

    def __repr__(self) -> str:
        return f"SequenceDictionary({len(self)} contigs)"

    def get(self, name: str) -> Optional[SequenceRecord]:
        return self._by_name.get(name)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, str):
            return item in self._by_name
        return item in self._records

    @property
    def names(self) -> List[str]:
        return [r.name for r in self._records]

    @property
    def lengths(self) -> List[int]:
        return [r.length for r in self._records]

    def to_sam_header_lines(self) -> List[str]:
        return [r.to_sam_line() for r in self._records]

    @classmethod
    def from_sam_header_dict(
        cls, header: Mapping[str, Any], *, source: Optional[str] = None
    ) -> "SequenceDictionary":
        """Build from a ``pysam.AlignmentHeader.to_dict()`` style mapping (``SQ`` entries)."""
        records = []
        for entry in header.get("SQ", []) or []:
            try:
                name = entry["SN"]
                length = int(entry["LN"])
            except (KeyError, TypeError, ValueError) as exc:
                raise FormatError(
                    f"Malformed @SQ line {dict(entry)!r}",
                    source=source,
                    operation="dictionary",
                ) from exc
            records.append(SequenceRecord(name, length, entry.get("M5")))
        return cls(records)

    @classmethod
    def from_fai_lines(
        cls, lines: Iterable[str], *, source: Optional[str] = None
    ) -> "SequenceDictionary":
        """Parse ``name<TAB>length<TAB>...`` lines; extra columns are ignored."""
        records = []
        for lineno, raw in enumerate(lines, start=1):
            line = raw.rstrip("\r\n")
            if not line:
                continue
            fields = line.split("\t")
            if len(fields) < 2:
                raise FormatError(
                    f"Line {lineno}: expected at least 2 tab-separated columns",
                    source=source,
                    operation="fai",
                )
            try:
                length = int(fields[1])
            except ValueError as exc:
                raise FormatError(
                    f"Line {lineno}: non-numeric length {fields[1]!r} for {fields[0]}",
                    source=source,
                    operation="fai",
                ) from exc
            records.append(SequenceRecord(fields[0], length))
        return cls(records)
