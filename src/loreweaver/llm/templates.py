"""
Prompt template loading and rendering.

Templates live as `<name>.tmpl` files and use `{{.key}}` placeholders.
Files are cached and re-read when their modification time changes.
"""

import logging
import re
from pathlib import Path
from typing import Any, Mapping

from ..errors import TemplateNotFoundError


logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{\{\.(\w+)\}\}")


def render_template(template: str, context: Mapping[str, Any]) -> str:
    """
    Substitute `{{.key}}` placeholders with stringified context values.

    Missing keys and None values become an empty string.
    """
    def substitute(match: re.Match) -> str:
        value = context.get(match.group(1))
        if value is None:
            return ""
        if isinstance(value, bool):
            return str(value).lower()
        return str(value)

    return PLACEHOLDER.sub(substitute, template)


class TemplateLoader:
    """Hot-reloadable loader for `.tmpl` prompt files."""

    def __init__(self, templates_dir: Path | str):
        self.templates_dir = Path(templates_dir)
        self._cache: dict[str, str] = {}
        self._cache_times: dict[str, float] = {}

    def load(self, name: str) -> str:
        """Load a template, using cache if the file is unchanged."""
        path = self.templates_dir / f"{name}.tmpl"

        try:
            mtime = path.stat().st_mtime
        except OSError as e:
            logger.error(f"Failed to load template {name} from {self.templates_dir}")
            raise TemplateNotFoundError(name) from e

        if name in self._cache and self._cache_times.get(name) == mtime:
            return self._cache[name]

        content = path.read_text(encoding="utf-8")
        self._cache[name] = content
        self._cache_times[name] = mtime
        return content

    def render(self, name: str, context: Mapping[str, Any]) -> str:
        return render_template(self.load(name), context)

    def available(self) -> list[str]:
        """Names of all templates on disk."""
        if not self.templates_dir.is_dir():
            return []
        return sorted(p.stem for p in self.templates_dir.glob("*.tmpl"))
