"""Build orchestration: read the source tree, run the stages, write the result."""

from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Optional, TypeVar, Union

from .errors import BuildError, BuildInProgressError, SnapsiteError
from .filesystem import FileSystem, LocalFileSystem
from .logging_utils import render_fields_block
from .models import FileCollection
from .reader import IgnoreSet, SourceReader
from .stages import Stage, StageFunc, StageRunner
from .writer import DestinationWriter

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

PathArg = Union[str, "os.PathLike[str]", None]

READ_PHASE = "read"
RUN_PHASE = "run"
WRITE_PHASE = "write"

PHASE_MESSAGES = {
    READ_PHASE: "failed at read step",
    RUN_PHASE: "failed during plugin run",
    WRITE_PHASE: "failed writing files",
}


@dataclass
class BuildReport:
    source: str
    destination: str
    files_read: int = 0
    files_written: int = 0
    stages_run: list[str] = field(default_factory=list)
    cleaned: bool = False
    elapsed: float = 0.0


def _path_text(value: PathArg) -> Optional[str]:
    if value is None:
        return None
    text = os.fspath(value)
    return text or None


class Pipeline:
    """A static site build: source root, destination root and ordered stages.

    A ``Pipeline`` runs one build at a time. Builds on separate instances
    are independent; calling ``build`` again while one is in flight on the
    same instance raises ``BuildInProgressError``.
    """

    def __init__(
        self,
        source: PathArg = None,
        destination: PathArg = None,
        *,
        clean: bool = False,
        ignore: Iterable[str] = (),
        filesystem: Optional[FileSystem] = None,
        strict_paths: bool = False,
    ) -> None:
        self.source = _path_text(source)
        self.destination = _path_text(destination)
        self.clean = clean
        self.ignored = IgnoreSet(ignore)
        self.filesystem = filesystem or LocalFileSystem()
        self.reader = SourceReader(self.filesystem, strict_paths=strict_paths)
        self.writer = DestinationWriter(self.filesystem)
        self.runner = StageRunner()
        self.stages: list[Stage] = []
        self.files = FileCollection()
        self._lock = threading.Lock()

    def use(self, name: str, func: StageFunc) -> Stage:
        """Append a stage; stages run in the order they were added."""
        stage = Stage(name, func)
        self.stages.append(stage)
        LOGGER.debug("Registered stage %s (%d total)", stage.name, len(self.stages))
        return stage

    def stage(self, name: str) -> Callable[[StageFunc], StageFunc]:
        """Decorator form of ``use``."""

        def register(func: StageFunc) -> StageFunc:
            self.use(name, func)
            return func

        return register

    def ignore(self, path: str) -> None:
        self.ignored.add(os.fspath(path))

    def ignore_all(self, *paths: str) -> None:
        for path in paths:
            self.ignore(path)

    def read(self) -> FileCollection:
        self.files = FileCollection()
        self.files = self.reader.read(self.source, self.ignored)
        return self.files

    def run(self) -> list[str]:
        return self.runner.run(self.files, self.stages)

    def write(self) -> list[str]:
        return self.writer.write(self.files, self.destination, clean=self.clean)

    def _phase(self, phase: str, action: Callable[[], T]) -> T:
        try:
            return action()
        except SnapsiteError as exc:
            LOGGER.error(
                render_fields_block(
                    "Build Failed",
                    {"Phase": phase, "Error": exc},
                )
            )
            raise BuildError(f"{PHASE_MESSAGES[phase]}: {exc}", phase=phase) from exc

    def build(self) -> BuildReport:
        """Read, run stages, and write, stopping at the first error.

        Raises:
            BuildError: wrapping the error of the phase that failed
            BuildInProgressError: another build is running on this pipeline
        """
        if not self._lock.acquire(blocking=False):
            raise BuildInProgressError("A build is already running on this pipeline")
        try:
            started = time.perf_counter()
            report = BuildReport(source=self.source or "", destination=self.destination or "", cleaned=self.clean)

            files = self._phase(READ_PHASE, self.read)
            report.files_read = len(files)
            report.stages_run = self._phase(RUN_PHASE, self.run)
            written = self._phase(WRITE_PHASE, self.write)
            report.files_written = len(written)

            report.elapsed = time.perf_counter() - started
            LOGGER.info(
                render_fields_block(
                    "Build Complete",
                    {
                        "Source": report.source,
                        "Destination": report.destination,
                        "Files Read": report.files_read,
                        "Stages": report.stages_run or "(none)",
                        "Files Written": report.files_written,
                        "Elapsed": f"{report.elapsed:.2f}s",
                    },
                )
            )
            return report
        finally:
            self._lock.release()
