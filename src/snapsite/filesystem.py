"""Filesystem access used by the reader and writer.

Both sides of the pipeline talk to disk only through a ``FileSystem`` object
handed to them at construction time. ``LocalFileSystem`` is the real thing;
``MemoryFileSystem`` keeps a tree in a dict so builds can be exercised
without touching disk.
"""

from __future__ import annotations

import errno
import os
import posixpath
import shutil
import stat
import time
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Dict, Optional, Protocol, Set

DEFAULT_DIR_MODE = 0o755


@dataclass(frozen=True, slots=True)
class FileStat:
    mode: int
    is_dir: bool
    modified: Optional[float] = None


@dataclass(frozen=True, slots=True)
class WalkEntry:
    path: str
    is_dir: bool
    mode: int
    modified: Optional[float] = None


class FileSystem(Protocol):
    def walk(self, root: str) -> Iterator[WalkEntry]:
        """Yield ``root`` and everything below it; raise ``OSError`` on traversal failure."""
        ...

    def read_bytes(self, path: str) -> bytes:
        ...

    def write_bytes(self, path: str, data: bytes, mode: int) -> None:
        ...

    def make_dirs(self, path: str, mode: int = DEFAULT_DIR_MODE) -> None:
        ...

    def remove_tree(self, path: str) -> None:
        ...

    def stat(self, path: str) -> FileStat:
        ...

    def set_mode(self, path: str, mode: int) -> None:
        ...


def _raise(exc: OSError) -> None:
    raise exc


def _check_link_cycle(root: str, parent: str, link: str, target: os.stat_result) -> None:
    """Raise ``ELOOP`` when ``link`` resolves to the directory it sits in or one above it."""
    key = (target.st_dev, target.st_ino)
    top = os.path.normpath(root)
    current = os.path.normpath(parent)
    while True:
        info = os.stat(current)
        if (info.st_dev, info.st_ino) == key:
            raise OSError(errno.ELOOP, os.strerror(errno.ELOOP), link)
        parent_dir = os.path.dirname(current)
        if current == top or parent_dir == current:
            return
        current = parent_dir


class LocalFileSystem:
    """``FileSystem`` backed by the operating system."""

    def walk(self, root: str) -> Iterator[WalkEntry]:
        """Yield ``root`` and everything below it in lexical order.

        Symbolic links to directories are followed. A link that points back
        at one of its own ancestors raises ``OSError`` (``ELOOP``).
        """
        info = os.stat(root)
        yield WalkEntry(root, stat.S_ISDIR(info.st_mode), stat.S_IMODE(info.st_mode), info.st_mtime)
        if not stat.S_ISDIR(info.st_mode):
            return

        for dirpath, dirnames, filenames in os.walk(root, onerror=_raise, followlinks=True):
            dirnames.sort()
            children = sorted(dirnames + filenames)
            for name in children:
                path = os.path.join(dirpath, name)
                info = os.stat(path)
                if stat.S_ISDIR(info.st_mode) and os.path.islink(path):
                    _check_link_cycle(root, dirpath, path, info)
                yield WalkEntry(path, stat.S_ISDIR(info.st_mode), stat.S_IMODE(info.st_mode), info.st_mtime)

    def read_bytes(self, path: str) -> bytes:
        with open(path, "rb") as handle:
            return handle.read()

    def write_bytes(self, path: str, data: bytes, mode: int) -> None:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        # the umask applies on create and an existing file keeps its old mode
        os.chmod(path, mode)

    def make_dirs(self, path: str, mode: int = DEFAULT_DIR_MODE) -> None:
        os.makedirs(path, mode=mode, exist_ok=True)

    def remove_tree(self, path: str) -> None:
        shutil.rmtree(path)

    def stat(self, path: str) -> FileStat:
        info = os.stat(path)
        return FileStat(stat.S_IMODE(info.st_mode), stat.S_ISDIR(info.st_mode), info.st_mtime)

    def set_mode(self, path: str, mode: int) -> None:
        os.chmod(path, mode)


def _not_found(path: str) -> FileNotFoundError:
    return FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path)


class MemoryFileSystem:
    """``FileSystem`` holding its tree in memory.

    Paths are POSIX style and normalized on every call. Parent directories of
    files added through ``add_file`` are created implicitly.
    """

    def __init__(self) -> None:
        self.files: Dict[str, bytes] = {}
        self.modes: Dict[str, int] = {}
        self.modified: Dict[str, float] = {}
        self.dirs: Set[str] = set()

    @staticmethod
    def _norm(path: str) -> str:
        return posixpath.normpath(path)

    def _ensure_parents(self, path: str) -> None:
        parent = posixpath.dirname(path)
        while parent and parent not in self.dirs:
            self.dirs.add(parent)
            self.modes.setdefault(parent, DEFAULT_DIR_MODE)
            if parent in ("/", "."):
                break
            parent = posixpath.dirname(parent)

    def add_file(self, path: str, data: bytes | str, mode: int = 0o644, *, modified: Optional[float] = None) -> None:
        path = self._norm(path)
        self._ensure_parents(path)
        self.files[path] = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        self.modes[path] = mode
        self.modified[path] = time.time() if modified is None else modified

    def exists(self, path: str) -> bool:
        path = self._norm(path)
        return path in self.files or path in self.dirs

    def walk(self, root: str) -> Iterator[WalkEntry]:
        root = self._norm(root)
        info = self.stat(root)
        yield WalkEntry(root, info.is_dir, info.mode, info.modified)
        if not info.is_dir:
            return

        prefix = root.rstrip("/") + "/"
        below = sorted(path for path in self.files.keys() | self.dirs if path.startswith(prefix))
        for path in below:
            yield WalkEntry(path, path in self.dirs, self.modes.get(path, DEFAULT_DIR_MODE), self.modified.get(path))

    def read_bytes(self, path: str) -> bytes:
        path = self._norm(path)
        if path in self.dirs:
            raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), path)
        if path not in self.files:
            raise _not_found(path)
        return self.files[path]

    def write_bytes(self, path: str, data: bytes, mode: int) -> None:
        path = self._norm(path)
        parent = posixpath.dirname(path)
        if parent and parent not in self.dirs:
            raise _not_found(parent)
        if path in self.dirs:
            raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), path)
        self.files[path] = bytes(data)
        self.modes[path] = mode
        self.modified[path] = time.time()

    def make_dirs(self, path: str, mode: int = DEFAULT_DIR_MODE) -> None:
        path = self._norm(path)
        if path in self.files:
            raise FileExistsError(errno.EEXIST, os.strerror(errno.EEXIST), path)
        ancestor = posixpath.dirname(path)
        while ancestor and ancestor != posixpath.dirname(ancestor):
            if ancestor in self.files:
                raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), ancestor)
            ancestor = posixpath.dirname(ancestor)
        self._ensure_parents(path)
        if path not in self.dirs:
            self.dirs.add(path)
            self.modes[path] = mode

    def remove_tree(self, path: str) -> None:
        path = self._norm(path)
        if path not in self.dirs:
            raise _not_found(path)
        prefix = path.rstrip("/") + "/"
        for name in [name for name in self.files if name.startswith(prefix)]:
            del self.files[name]
            self.modes.pop(name, None)
            self.modified.pop(name, None)
        for name in [name for name in self.dirs if name == path or name.startswith(prefix)]:
            self.dirs.discard(name)
            self.modes.pop(name, None)

    def stat(self, path: str) -> FileStat:
        path = self._norm(path)
        if path in self.dirs:
            return FileStat(self.modes.get(path, DEFAULT_DIR_MODE), True, self.modified.get(path))
        if path in self.files:
            return FileStat(self.modes[path], False, self.modified.get(path))
        raise _not_found(path)

    def set_mode(self, path: str, mode: int) -> None:
        path = self._norm(path)
        if path not in self.files and path not in self.dirs:
            raise _not_found(path)
        self.modes[path] = mode
