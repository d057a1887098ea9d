"""Conversion between filesystem paths and logical paths.

A logical path is the key a file is stored under in a ``FileCollection``:
forward-slash separated, relative to the source (and destination) root and
never starting with a separator.
"""

from __future__ import annotations

import mimetypes
import os
import posixpath
from typing import Union

PathLike = Union[str, "os.PathLike[str]"]

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _as_posix(value: PathLike | None) -> str:
    if value is None:
        return ""
    text = os.fspath(value)
    if os.sep != "/":
        text = text.replace(os.sep, "/")
    return text


def _clean(value: str) -> str:
    if not value:
        return ""
    cleaned = posixpath.normpath(value)
    # normpath keeps a POSIX-special leading "//"
    if cleaned.startswith("//"):
        cleaned = "/" + cleaned.lstrip("/")
    return cleaned


def normalize_logical_path(path: PathLike, root: PathLike | None) -> str:
    """Return the logical path of ``path`` relative to ``root``.

    The path is cleaned lexically, the root prefix is removed when the path
    lies under it, and exactly one leading separator is stripped.

    >>> normalize_logical_path("/a/b/c/d", "/a/b/c")
    'd'
    >>> normalize_logical_path("/d", "/")
    'd'
    >>> normalize_logical_path("a/b//d", "a")
    'b/d'
    """
    cleaned = _clean(_as_posix(path))
    root_text = _clean(_as_posix(root))

    internal = cleaned
    if root_text and root_text not in ("/", "."):
        if cleaned == root_text:
            internal = ""
        elif cleaned.startswith(root_text.rstrip("/") + "/"):
            internal = cleaned[len(root_text.rstrip("/")):]

    if internal.startswith("/"):
        internal = internal[1:]

    internal = _clean(internal)
    if internal == ".":
        return ""
    return internal


def is_valid_logical_path(logical_path: str) -> bool:
    """Check that a collection key is relative and stays inside its root."""
    if not isinstance(logical_path, str) or not logical_path:
        return False
    if logical_path.startswith("/"):
        return False
    return ".." not in logical_path.split("/")


def join_destination(root: PathLike, logical_path: str) -> str:
    """Join a destination root and a logical path.

    Raises:
        ValueError: if the joined path would land outside ``root``
    """
    base = _clean(_as_posix(root)) or "."
    joined = _clean(posixpath.join(base, logical_path.lstrip("/")))
    if base == ".":
        escapes = joined in (".", "..") or joined.startswith("../")
    else:
        prefix = base if base.endswith("/") else base + "/"
        escapes = joined == base or not joined.startswith(prefix)
    if escapes:
        raise ValueError(f"destination {joined} escapes destination root {base}")
    return joined


def guess_content_type(logical_path: str) -> str:
    content_type, _ = mimetypes.guess_type(logical_path, strict=False)
    return content_type or DEFAULT_CONTENT_TYPE
