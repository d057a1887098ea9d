"""Error types raised while reading, transforming and writing a site.

Every error is fatal to the build that raised it. Errors crossing a
component boundary are re-raised with context (the failing path, stage or
phase) and chained to their cause with ``raise ... from``.
"""

from __future__ import annotations

from typing import Optional


class SnapsiteError(RuntimeError):
    """Base class for every error raised by snapsite."""


class ConfigurationError(SnapsiteError):
    """Raised when a required setting such as the source root is missing."""


class DestinationNotFoundError(ConfigurationError):
    """Raised when a clean build targets a destination that does not exist."""

    def __init__(self, message: str, path: str) -> None:
        super().__init__(message)
        self.path = path


class PathError(SnapsiteError):
    """An error tied to a single filesystem or logical path."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class FilesystemWalkError(PathError):
    """Raised when traversal of the source tree fails at some entry."""


class FileReadError(PathError):
    """Raised when a source file cannot be loaded."""


class FrontmatterError(PathError):
    """Base class for problems with a file's leading metadata block."""


class MalformedFrontmatterError(FrontmatterError):
    """Raised when an opening ``---`` line has no matching closing line."""


class MetadataParseError(FrontmatterError):
    """Raised when the metadata block is not a valid YAML mapping."""


class DuplicatePathError(PathError):
    """Raised in strict mode when two source files share a logical path."""


class WriteFailureError(PathError):
    """Raised when a directory or file under the destination cannot be written."""


class CleanFailureError(PathError):
    """Raised when the destination tree cannot be removed or recreated."""


class TemplateRenderError(PathError):
    """Raised by the render stage when a template cannot be formatted."""


class StageFailureError(SnapsiteError):
    """Raised when a registered stage raises."""

    def __init__(self, message: str, stage: str) -> None:
        super().__init__(message)
        self.stage = stage


class BuildError(SnapsiteError):
    """Outermost error of a failed build, naming the phase that failed."""

    def __init__(self, message: str, phase: str) -> None:
        super().__init__(message)
        self.phase = phase


class BuildInProgressError(SnapsiteError):
    """Raised when ``build()`` is re-entered on a pipeline that is already building."""


def iter_error_chain(exc: BaseException):
    """Yield ``exc`` followed by each of its causes, outermost first."""
    seen: set[int] = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or (None if current.__suppress_context__ else current.__context__)


def format_error_chain(exc: BaseException) -> str:
    """Render an error and its causes as one line per link of the chain."""
    lines = []
    for depth, link in enumerate(iter_error_chain(exc)):
        message = str(link) or type(link).__name__
        prefix = "" if depth == 0 else "  " * (depth - 1) + "caused by: "
        lines.append(f"{prefix}{message}")
    return "\n".join(lines)
