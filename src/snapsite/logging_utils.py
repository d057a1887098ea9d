from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from textwrap import wrap
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

DEFAULT_WRAP_WIDTH = 110
DEFAULT_LABEL_WIDTH = 22
DEFAULT_INDENT = "    "

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s\n%(message)s\n"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

FieldMapping = Union[Mapping[str, object], Sequence[tuple[str, object]]]


def _stringify(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple, set, frozenset)):
        return ", ".join(_stringify(item) for item in value)
    return str(value)


def _wrap_text(text: str, width: int) -> list[str]:
    lines: list[str] = []
    for raw_line in text.splitlines() or [""]:
        lines.extend(wrap(raw_line, width=width) or [""])
    return lines


class LogBlockBuilder:
    """Builds a titled block of aligned ``label: value`` lines for log output."""

    def __init__(
        self,
        title: str,
        *,
        wrap_width: int = DEFAULT_WRAP_WIDTH,
        label_width: int = DEFAULT_LABEL_WIDTH,
        indent: str = DEFAULT_INDENT,
        pad_top: bool = True,
    ) -> None:
        self.wrap_width = wrap_width
        self.label_width = label_width
        self.indent = indent
        self.lines: list[str] = [""] if pad_top else []
        self.lines.extend([title, "-" * len(title)])

    def add_fields(self, fields: Optional[FieldMapping]) -> None:
        items = list(fields.items()) if isinstance(fields, Mapping) else list(fields or [])
        if not items:
            return

        label_width = max(min(max(len(str(key)) for key, _ in items), self.label_width), 8)
        value_width = max(self.wrap_width - len(self.indent) - label_width - 4, 32)

        for key, value in items:
            first, *rest = _wrap_text(_stringify(value), value_width)
            self.lines.append(f"{self.indent}{str(key):<{label_width}}: {first}")
            self.lines.extend(f"{self.indent}{'':<{label_width}}  {line}" for line in rest)

    def render(self) -> str:
        return "\n".join(self.lines).rstrip()


def render_fields_block(title: str, fields: FieldMapping, *, pad_top: bool = True) -> str:
    builder = LogBlockBuilder(title, pad_top=pad_top)
    builder.add_fields(fields)
    return builder.render()


def _coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def configure_logging(
    level: Union[int, str] = logging.INFO,
    *,
    console_level: Union[int, str, None] = None,
    log_file: Optional[Path] = None,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Attach a Rich console handler (and optionally a file handler) to the ``snapsite`` logger.

    Calling it again replaces the handlers installed by a previous call.
    """
    logger = logging.getLogger("snapsite")
    base_level = _coerce_level(level)
    console_base = _coerce_level(console_level) if console_level is not None else base_level
    for handler in list(logger.handlers):
        if getattr(handler, "_snapsite_handler", False):
            logger.removeHandler(handler)
            handler.close()

    rich_handler = RichHandler(console=console, show_path=False, markup=False, rich_tracebacks=True)
    rich_handler.setLevel(console_base)
    rich_handler._snapsite_handler = True  # type: ignore[attr-defined]
    logger.addHandler(rich_handler)

    handler_levels = [rich_handler.level]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
        file_handler.setLevel(base_level)
        file_handler._snapsite_handler = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)
        handler_levels.append(file_handler.level)

    logger.setLevel(min(handler_levels))
    logger.propagate = False
    return logger
