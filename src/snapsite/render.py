"""Template rendering stage.

Files whose metadata sets ``template: true`` have their content formatted
with ``str.format_map`` against that metadata. Placeholders without a
matching key are left as written, so ``{unknown}`` survives rendering.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from .errors import TemplateRenderError
from .models import FileCollection
from .stages import StageFunc

LOGGER = logging.getLogger(__name__)

TEMPLATE_FLAG = "template"


class TemplateDict(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def render_template(template: str, context: Dict[str, Any]) -> str:
    return template.format_map(TemplateDict(context))


def render_templates(files: FileCollection) -> None:
    """Render every file flagged as a template, in logical path order."""
    rendered = 0
    for logical_path in files.paths():
        record = files[logical_path]
        metadata = record.metadata or {}
        if metadata.get(TEMPLATE_FLAG) is not True:
            continue

        context: Dict[str, Any] = {"path": logical_path}
        context.update(metadata)
        try:
            record.content = render_template(record.text, context)
        except UnicodeDecodeError as exc:
            raise TemplateRenderError(f"Template {logical_path} is not valid UTF-8", path=logical_path) from exc
        except (ValueError, AttributeError, IndexError, KeyError, TypeError) as exc:
            raise TemplateRenderError(f"Could not render template in {logical_path}: {exc}", path=logical_path) from exc
        rendered += 1

    LOGGER.debug("Rendered %d template(s)", rendered)


BUILTIN_STAGES: Dict[str, StageFunc] = {
    "render": render_templates,
}
