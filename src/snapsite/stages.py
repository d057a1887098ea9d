"""Stage contract and ordered stage execution.

A stage is any callable taking the build's ``FileCollection``. It may edit
``content`` and ``metadata`` of any record, add records, or remove them. It
reports failure by raising; the return value is ignored. A stage must not
keep a reference to the collection once it returns: the next stage and the
writer own it from then on.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from .errors import StageFailureError
from .logging_utils import render_fields_block
from .models import FileCollection

LOGGER = logging.getLogger(__name__)

StageFunc = Callable[[FileCollection], object]


@dataclass(frozen=True)
class Stage:
    name: str
    func: StageFunc

    def __post_init__(self) -> None:
        if not isinstance(self.name, str):
            raise TypeError(f"Stage name must be a string (type={type(self.name).__name__})")
        name = self.name.strip()
        if not name:
            raise ValueError("Stage name cannot be empty")
        object.__setattr__(self, "name", name)
        if not callable(self.func):
            raise TypeError(f"Stage {name} func must be callable (type={type(self.func).__name__})")

    def __call__(self, files: FileCollection) -> None:
        self.func(files)


class StageRunner:
    def run(self, files: FileCollection, stages: Iterable[Stage]) -> list[str]:
        """Run ``stages`` in order against ``files``.

        Returns the names of the stages that ran. The first stage to raise
        stops the run; stages after it never see the collection.

        Raises:
            StageFailureError: naming the failing stage, chained to its error
        """
        completed: list[str] = []
        for stage in stages:
            LOGGER.info("Running stage %s", stage.name)
            started = time.perf_counter()
            try:
                stage(files)
            except Exception as exc:
                LOGGER.error(
                    render_fields_block(
                        "Stage Failed",
                        {
                            "Stage": stage.name,
                            "Completed": completed or "(none)",
                            "Error": exc,
                        },
                    )
                )
                raise StageFailureError(f"Stage {stage.name} failed: {exc}", stage=stage.name) from exc
            LOGGER.info("Stage %s finished in %.3fs", stage.name, time.perf_counter() - started)
            completed.append(stage.name)
        return completed
