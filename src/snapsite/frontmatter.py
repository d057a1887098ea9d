"""Leading YAML metadata blocks ("frontmatter") in source files.

A file carries metadata when its very first line is ``---``. Everything up
to the next line consisting of exactly ``---`` is parsed as a YAML mapping
and removed from the content:

    ---
    title: Home
    template: true
    ---
    <h1>{title}</h1>
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Optional, Set, Tuple, cast

import yaml

from .errors import MalformedFrontmatterError, MetadataParseError
from .models import Metadata, MetadataValue

DELIMITER = b"---"
OPENING = DELIMITER + b"\n"
CLOSING = b"\n" + DELIMITER + b"\n"


def coerce_metadata(value: Any, _active: Optional[Set[int]] = None) -> MetadataValue:
    """Convert a value produced by ``yaml.safe_load`` into a ``MetadataValue``.

    Dates become ISO-8601 strings and non-string mapping keys are converted
    with ``str``. Anything else outside the supported types raises
    ``TypeError``, as does a list or mapping that contains itself (YAML
    anchors can build one).
    """
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (dt.datetime, dt.date)):
        return value.isoformat()
    if not isinstance(value, (list, tuple, dict)):
        raise TypeError(f"unsupported metadata value of type {type(value).__name__}")

    active = set() if _active is None else _active
    marker = id(value)
    if marker in active:
        raise TypeError("recursive metadata value")
    active.add(marker)
    try:
        if isinstance(value, dict):
            return {str(key): coerce_metadata(item, active) for key, item in value.items()}
        return [coerce_metadata(item, active) for item in value]
    finally:
        active.discard(marker)


def parse_metadata_block(block: bytes, *, path: Optional[str] = None) -> Metadata:
    label = path or "<bytes>"
    try:
        text = block.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MetadataParseError(f"Metadata block in {label} is not valid UTF-8", path=path) from exc

    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise MetadataParseError(f"Could not parse metadata YAML in {label}", path=path) from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise MetadataParseError(
            f"Metadata block in {label} must be a mapping, got {type(loaded).__name__}",
            path=path,
        )

    try:
        coerced = coerce_metadata(loaded)
    except TypeError as exc:
        raise MetadataParseError(f"Unsupported metadata in {label}: {exc}", path=path) from exc
    return cast(Metadata, coerced)


def split_frontmatter(data: bytes, *, path: Optional[str] = None) -> Tuple[bytes, Optional[Metadata]]:
    """Split raw file bytes into ``(content, metadata)``.

    Files that do not start with the delimiter line are returned unchanged
    with ``None`` metadata.

    Raises:
        MalformedFrontmatterError: the closing delimiter line is missing
        MetadataParseError: the block is not a YAML mapping
    """
    if not data.startswith(OPENING):
        return data, None

    # The opening line's newline may double as the closing line's leading one.
    end = data.find(CLOSING, len(DELIMITER))
    if end < 0:
        raise MalformedFrontmatterError(
            f"Incorrect format for {path or 'file'}: frontmatter must start the file and be "
            "surrounded by lines containing only ---",
            path=path,
        )

    block = data[len(OPENING):end] if end >= len(OPENING) else b""
    content = data[end + len(CLOSING):]
    return content, parse_metadata_block(block, path=path)
