from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional, cast

from .filesystem import FileSystem
from .pipeline import Pipeline
from .render import BUILTIN_STAGES
from .utils import env_bool, env_path, load_yaml_file

ENV_SOURCE = "SNAPSITE_SOURCE"
ENV_DESTINATION = "SNAPSITE_DESTINATION"
ENV_CLEAN = "SNAPSITE_CLEAN"

_KNOWN_KEYS = frozenset({"source", "destination", "clean", "strict_paths", "ignore", "stages"})


@dataclass
class SiteConfig:
    source: Optional[Path] = None
    destination: Optional[Path] = None
    clean: bool = False
    strict_paths: bool = False
    ignore: list[Path] = field(default_factory=list)
    stages: list[str] = field(default_factory=list)

    def build_pipeline(self, *, filesystem: Optional[FileSystem] = None) -> Pipeline:
        pipeline = Pipeline(
            self.source,
            self.destination,
            clean=self.clean,
            ignore=[str(path) for path in self.ignore],
            filesystem=filesystem,
            strict_paths=self.strict_paths,
        )
        for name in self.stages:
            pipeline.use(name, BUILTIN_STAGES[name])
        return pipeline


def _resolve_path(value: Any, field_name: str, base_dir: Path) -> Optional[Path]:
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"'{field_name}' must be a non-empty string when provided")
    path = Path(value.strip()).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path.resolve()


def _parse_bool(value: Any, field_name: str) -> bool:
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"'{field_name}' must be true or false")
    return value


def _parse_string_list(value: Any, field_name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"'{field_name}' must be provided as a list of strings")
    for index, item in enumerate(value):
        if not isinstance(item, str) or not item.strip():
            raise ValueError(f"'{field_name}[{index}]' must be a non-empty string")
    return [item.strip() for item in value]


def _build_site_config(data: dict[str, Any], base_dir: Path) -> SiteConfig:
    unknown = sorted(str(key) for key in data if key not in _KNOWN_KEYS)
    if unknown:
        raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

    stages = _parse_string_list(data.get("stages"), "stages")
    for index, name in enumerate(stages):
        if name not in BUILTIN_STAGES:
            available = ", ".join(sorted(BUILTIN_STAGES))
            raise ValueError(f"'stages[{index}]' names unknown stage '{name}' (available: {available})")

    ignore: list[Path] = []
    for index, entry in enumerate(_parse_string_list(data.get("ignore"), "ignore")):
        ignore.append(cast(Path, _resolve_path(entry, f"ignore[{index}]", base_dir)))

    return SiteConfig(
        source=_resolve_path(data.get("source"), "source", base_dir),
        destination=_resolve_path(data.get("destination"), "destination", base_dir),
        clean=_parse_bool(data.get("clean"), "clean"),
        strict_paths=_parse_bool(data.get("strict_paths"), "strict_paths"),
        ignore=ignore,
        stages=stages,
    )


def apply_env_overrides(config: SiteConfig) -> SiteConfig:
    """Return a copy of ``config`` with ``SNAPSITE_*`` environment overrides applied."""
    overrides: dict[str, Any] = {}
    source = env_path(ENV_SOURCE)
    if source is not None:
        overrides["source"] = source.resolve()
    destination = env_path(ENV_DESTINATION)
    if destination is not None:
        overrides["destination"] = destination.resolve()
    clean = env_bool(ENV_CLEAN)
    if clean is not None:
        overrides["clean"] = clean
    return replace(config, **overrides) if overrides else config


def load_config(path: Path) -> SiteConfig:
    """Load a site configuration; relative paths resolve against the file's directory."""
    data = load_yaml_file(path)
    return apply_env_overrides(_build_site_config(data, path.resolve().parent))
