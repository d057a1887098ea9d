"""Destination tree materialization.

Writing is not transactional. A clean removes the destination before any
file is written, and a failure part way through leaves the files written so
far on disk.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Optional

from .errors import CleanFailureError, ConfigurationError, DestinationNotFoundError, WriteFailureError
from .filesystem import DEFAULT_DIR_MODE, FileSystem, LocalFileSystem
from .logging_utils import render_fields_block
from .models import FileCollection, FileRecord
from .paths import join_destination

LOGGER = logging.getLogger(__name__)

# user: read & write, group: read, other: read
DEFAULT_FILE_MODE = 0o644


class DestinationWriter:
    def __init__(self, filesystem: Optional[FileSystem] = None) -> None:
        self.filesystem = filesystem or LocalFileSystem()

    def clean(self, destination: str) -> None:
        """Empty ``destination`` while keeping the directory and its mode.

        Raises:
            DestinationNotFoundError: the destination does not exist
            CleanFailureError: it could not be removed or recreated
        """
        try:
            info = self.filesystem.stat(destination)
        except FileNotFoundError as exc:
            raise DestinationNotFoundError(
                f"Could not clean output directory {destination}: it does not exist",
                path=destination,
            ) from exc
        except OSError as exc:
            raise CleanFailureError(f"Could not inspect output directory {destination}", path=destination) from exc

        try:
            self.filesystem.remove_tree(destination)
            self.filesystem.make_dirs(destination, info.mode)
            self.filesystem.set_mode(destination, info.mode)
        except OSError as exc:
            raise CleanFailureError(
                f"Could not clean output directory {destination} before write",
                path=destination,
            ) from exc

        LOGGER.debug(
            render_fields_block(
                "Destination Cleaned",
                {"Destination": destination, "Mode": oct(info.mode)},
            )
        )

    def write_file(self, destination: str, logical_path: str, record: FileRecord) -> str:
        mode = record.source_mode if record.source_mode is not None else DEFAULT_FILE_MODE

        try:
            final_path = join_destination(destination, logical_path)
        except ValueError as exc:
            raise WriteFailureError(f"Refusing to write {logical_path}: {exc}", path=logical_path) from exc

        parent = posixpath.dirname(final_path)
        if parent:
            try:
                self.filesystem.make_dirs(parent, DEFAULT_DIR_MODE)
            except OSError as exc:
                raise WriteFailureError(
                    f"Could not create required directories for {final_path}",
                    path=logical_path,
                ) from exc

        try:
            self.filesystem.write_bytes(final_path, record.content, mode)
        except OSError as exc:
            raise WriteFailureError(f"Could not write file {final_path}", path=logical_path) from exc

        LOGGER.debug("Wrote %s (%s)", final_path, oct(mode))
        return final_path

    def write(self, files: FileCollection, destination: Optional[str], *, clean: bool = False) -> list[str]:
        """Write every record of ``files`` below ``destination``.

        Returns the logical paths written, in the order they were written.

        Raises:
            ConfigurationError: ``destination`` is not set
            DestinationNotFoundError, CleanFailureError: cleaning failed
            WriteFailureError: an entry could not be written
        """
        if not destination:
            raise ConfigurationError("No destination set for the pipeline")
        destination = str(destination)

        if clean:
            self.clean(destination)

        written: list[str] = []
        for logical_path in files.paths():
            self.write_file(destination, logical_path, files[logical_path])
            written.append(logical_path)

        LOGGER.info(
            render_fields_block(
                "Destination Written",
                {"Destination": destination, "Files": len(written), "Cleaned": clean},
            )
        )
        return written
