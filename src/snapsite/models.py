from __future__ import annotations

from collections.abc import Iterator, MutableMapping
from typing import Dict, List, Optional, Union

from .paths import guess_content_type, is_valid_logical_path

MetadataValue = Union[
    str,
    int,
    float,
    bool,
    None,
    List["MetadataValue"],
    Dict[str, "MetadataValue"],
]
Metadata = Dict[str, MetadataValue]


def _coerce_content(value: object) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    raise TypeError(f"File content must be bytes-like or str, got {type(value).__name__}")


class FileRecord:
    """One file flowing through the pipeline.

    ``content`` and ``metadata`` belong to the stages. ``source_mode`` and
    ``modified`` are captured from the source tree when the file is read and
    cannot be reassigned afterwards; records a stage creates itself leave
    them as ``None`` and are written with the default file mode.
    """

    __slots__ = ("_content", "metadata", "_source_mode", "_modified")

    def __init__(
        self,
        content: bytes | bytearray | memoryview | str = b"",
        metadata: Optional[Metadata] = None,
        *,
        source_mode: Optional[int] = None,
        modified: Optional[float] = None,
    ) -> None:
        self._content = _coerce_content(content)
        self.metadata = metadata
        self._source_mode = source_mode
        self._modified = modified

    @property
    def content(self) -> bytes:
        return self._content

    @content.setter
    def content(self, value: bytes | bytearray | memoryview | str) -> None:
        self._content = _coerce_content(value)

    @property
    def source_mode(self) -> Optional[int]:
        return self._source_mode

    @property
    def modified(self) -> Optional[float]:
        return self._modified

    @property
    def text(self) -> str:
        return self._content.decode("utf-8")

    def content_type(self, logical_path: str) -> str:
        return guess_content_type(logical_path)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FileRecord):
            return NotImplemented
        return (
            self._content == other._content
            and self.metadata == other.metadata
            and self._source_mode == other._source_mode
            and self._modified == other._modified
        )

    def __repr__(self) -> str:
        mode = oct(self._source_mode) if self._source_mode is not None else None
        return f"FileRecord(size={len(self._content)}, metadata={self.metadata!r}, source_mode={mode})"


class FileCollection(MutableMapping[str, FileRecord]):
    """Mapping of logical path to ``FileRecord`` shared by every stage of a build.

    Keys are checked on insertion so stages that add files cannot break the
    logical path rules the writer relies on.
    """

    def __init__(self, records: Optional[Dict[str, FileRecord]] = None) -> None:
        self._records: Dict[str, FileRecord] = {}
        if records:
            for logical_path, record in records.items():
                self[logical_path] = record

    def __getitem__(self, logical_path: str) -> FileRecord:
        return self._records[logical_path]

    def __setitem__(self, logical_path: str, record: FileRecord) -> None:
        if not is_valid_logical_path(logical_path):
            raise ValueError(f"Invalid logical path {logical_path!r}: must be relative and stay inside the root")
        if not isinstance(record, FileRecord):
            raise TypeError(f"Collection values must be FileRecord, got {type(record).__name__}")
        self._records[logical_path] = record

    def __delitem__(self, logical_path: str) -> None:
        del self._records[logical_path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"FileCollection({len(self._records)} files)"

    def paths(self) -> list[str]:
        return sorted(self._records)
