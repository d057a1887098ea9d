from __future__ import annotations

from snapsite.errors import (
    BuildError,
    FileReadError,
    PathError,
    SnapsiteError,
    StageFailureError,
    format_error_chain,
    iter_error_chain,
)


def _chained() -> BuildError:
    try:
        try:
            try:
                raise PermissionError("permission denied")
            except PermissionError as exc:
                raise FileReadError("Could not read file /site/a.txt", path="/site/a.txt") from exc
        except FileReadError as exc:
            raise BuildError(f"failed at read step: {exc}", phase="read") from exc
    except BuildError as exc:
        return exc
    raise AssertionError("unreachable")


def test_hierarchy() -> None:
    assert issubclass(FileReadError, PathError)
    assert issubclass(PathError, SnapsiteError)
    assert issubclass(StageFailureError, SnapsiteError)
    assert issubclass(SnapsiteError, RuntimeError)


def test_iter_error_chain_outermost_first() -> None:
    chain = list(iter_error_chain(_chained()))
    assert [type(link) for link in chain] == [BuildError, FileReadError, PermissionError]


def test_format_error_chain() -> None:
    assert format_error_chain(_chained()).splitlines() == [
        "failed at read step: Could not read file /site/a.txt",
        "caused by: Could not read file /site/a.txt",
        "  caused by: permission denied",
    ]


def test_format_error_without_message_uses_type_name() -> None:
    assert format_error_chain(KeyError()) == "KeyError"
