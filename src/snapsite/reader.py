"""Source tree ingestion.

This module walks the source root, skips directories and ignored entries,
and turns every remaining file into a ``FileRecord`` keyed by its logical
path. Any failure aborts the whole read: a build never continues with a
partially read source tree.
"""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Container, Iterable, Iterator
from typing import Optional, Set

from .errors import ConfigurationError, DuplicatePathError, FileReadError, FilesystemWalkError
from .filesystem import FileSystem, LocalFileSystem, WalkEntry
from .frontmatter import split_frontmatter
from .logging_utils import render_fields_block
from .models import FileCollection, FileRecord
from .paths import normalize_logical_path

LOGGER = logging.getLogger(__name__)


class IgnoreSet(Container[str]):
    """Set of absolute source paths the reader must skip.

    Paths are normalized on the way in and on lookup so ``/site/./a.txt``
    and ``/site/a.txt`` are the same entry.
    """

    def __init__(self, paths: Iterable[str] = ()) -> None:
        self._paths: Set[str] = set()
        self.add_all(paths)

    def add(self, path: str) -> None:
        self._paths.add(posixpath.normpath(str(path)))

    def add_all(self, paths: Iterable[str]) -> None:
        for path in paths:
            self.add(path)

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, str):
            return False
        return posixpath.normpath(path) in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._paths))


class SourceReader:
    def __init__(self, filesystem: Optional[FileSystem] = None, *, strict_paths: bool = False) -> None:
        self.filesystem = filesystem or LocalFileSystem()
        self.strict_paths = strict_paths

    def read(self, source: Optional[str], ignore: Container[str] = frozenset()) -> FileCollection:
        """Read every non-ignored file under ``source`` into a new collection.

        Raises:
            ConfigurationError: ``source`` is not set
            FilesystemWalkError: traversal failed at some entry
            FileReadError: a file could not be loaded
            MalformedFrontmatterError, MetadataParseError: a metadata block is invalid
            DuplicatePathError: two files share a logical path in strict mode
        """
        if not source:
            raise ConfigurationError("No source set for the pipeline")

        source = str(source)
        files = FileCollection()
        origins: dict[str, str] = {}

        entries = self.filesystem.walk(source)
        while True:
            try:
                entry = next(entries)
            except StopIteration:
                break
            except OSError as exc:
                failed_at = exc.filename or source
                raise FilesystemWalkError(f"Filesystem walk error at {failed_at}", path=str(failed_at)) from exc

            if entry.is_dir:
                continue
            if entry.path in ignore:
                LOGGER.debug(
                    render_fields_block(
                        "Skipping Source File",
                        {"Source": entry.path, "Reason": "ignored"},
                    )
                )
                continue

            logical_path = normalize_logical_path(entry.path, source)
            if not logical_path:
                # the source root itself is a regular file
                logical_path = posixpath.basename(posixpath.normpath(entry.path))

            previous = origins.get(logical_path)
            if previous is not None:
                if self.strict_paths:
                    raise DuplicatePathError(
                        f"{entry.path} and {previous} both map to logical path {logical_path}",
                        path=entry.path,
                    )
                LOGGER.warning(
                    render_fields_block(
                        "Duplicate Logical Path",
                        {"Logical Path": logical_path, "Replaced": previous, "Kept": entry.path},
                    )
                )

            files[logical_path] = self.read_file(entry)
            origins[logical_path] = entry.path
            LOGGER.debug("Read %s from %s", logical_path, entry.path)

        LOGGER.info(
            render_fields_block(
                "Source Read",
                {"Source": source, "Files": len(files)},
            )
        )
        return files

    def read_file(self, entry: WalkEntry) -> FileRecord:
        try:
            data = self.filesystem.read_bytes(entry.path)
        except OSError as exc:
            raise FileReadError(f"Could not read file {entry.path}", path=entry.path) from exc

        content, metadata = split_frontmatter(data, path=entry.path)
        return FileRecord(content, metadata, source_mode=entry.mode, modified=entry.modified)
