from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from jsonschema import Draft7Validator

from .render import BUILTIN_STAGES


@dataclass(slots=True)
class ValidationIssue:
    """Represents a single validation problem."""

    severity: str
    path: str
    message: str
    code: str


@dataclass(slots=True)
class ValidationReport:
    """Aggregates validation warnings and errors."""

    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


_PATH_VALUE: Dict[str, Any] = {"type": ["string", "null"], "pattern": r"\S"}

CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "source": _PATH_VALUE,
        "destination": _PATH_VALUE,
        "clean": {"type": ["boolean", "null"]},
        "strict_paths": {"type": ["boolean", "null"]},
        "ignore": {
            "type": ["array", "null"],
            "items": {"type": "string", "pattern": r"\S"},
        },
        "stages": {
            "type": ["array", "null"],
            "items": {"type": "string", "enum": sorted(BUILTIN_STAGES)},
        },
    },
    "additionalProperties": False,
}


def _format_jsonschema_path(path: Sequence[Any]) -> str:
    if not path:
        return "<root>"
    tokens: List[str] = []
    for part in path:
        if isinstance(part, int):
            if tokens:
                tokens[-1] = f"{tokens[-1]}[{part}]"
            else:
                tokens.append(f"[{part}]")
        else:
            tokens.append(str(part))
    return ".".join(tokens) if tokens else "<root>"


def validate_config_data(data: Dict[str, Any]) -> ValidationReport:
    """Validate site configuration data against ``CONFIG_SCHEMA`` and semantic rules.

    Every schema violation is reported, not just the first. Settings that
    are legal but leave a build unable to run without command-line flags
    (no source, no destination) are reported as warnings.
    """
    report = ValidationReport()
    validator = Draft7Validator(CONFIG_SCHEMA)

    errors = sorted(validator.iter_errors(data), key=lambda exc: _format_jsonschema_path(exc.absolute_path))
    for error in errors:
        report.errors.append(
            ValidationIssue(
                severity="error",
                path=_format_jsonschema_path(error.absolute_path),
                message=error.message,
                code="schema",
            )
        )

    _validate_semantics(data, report)
    return report


def _validate_semantics(data: Dict[str, Any], report: ValidationReport) -> None:
    if not isinstance(data, dict):
        return
    for key, flag in (("source", "--source"), ("destination", "--destination")):
        if data.get(key) is None:
            report.warnings.append(
                ValidationIssue(
                    severity="warning",
                    path=key,
                    message=f"'{key}' is not set; pass {flag} when building",
                    code="unset-path",
                )
            )

    stages = data.get("stages")
    if isinstance(stages, list):
        seen: Dict[str, int] = {}
        for index, name in enumerate(stages):
            if not isinstance(name, str):
                continue
            if name in seen:
                report.warnings.append(
                    ValidationIssue(
                        severity="warning",
                        path=f"stages[{index}]",
                        message=f"Stage '{name}' also listed at index {seen[name]}; it will run twice",
                        code="duplicate-stage",
                    )
                )
            else:
                seen[name] = index


def group_validation_issues(issues: List[ValidationIssue]) -> Dict[str, List[ValidationIssue]]:
    """Group issues by their top-level configuration key (``stages[1]`` -> ``stages``)."""
    grouped: Dict[str, List[ValidationIssue]] = {}
    for issue in issues:
        root_section = issue.path.split(".", 1)[0].split("[", 1)[0] or "<root>"
        grouped.setdefault(root_section, []).append(issue)
    return grouped


__all__ = [
    "CONFIG_SCHEMA",
    "ValidationIssue",
    "ValidationReport",
    "group_validation_issues",
    "validate_config_data",
]
