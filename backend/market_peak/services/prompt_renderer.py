"""Versioned prompt template loading and rendering."""

import logging
from pathlib import Path
from typing import Any

from peak_core.errors import TemplateError
from peak_core.template import fill_template

logger = logging.getLogger(__name__)

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"

DEFAULT_PROMPT_NAME = "market-peak-analysis"
DEFAULT_PROMPT_VERSION = "v1"


def missing_marker(field: str) -> str:
    return f"[missing: {field}]"


class PromptRenderer:
    """Fills ``<name>-<version>.md`` templates with payload data.

    In strict mode a placeholder without a payload value raises
    TemplateError; otherwise it is replaced with a visible marker and a
    warning is logged.
    """

    def __init__(self, prompts_dir: Path | str = PROMPTS_DIR, strict: bool = False):
        self.prompts_dir = Path(prompts_dir)
        self.strict = strict
        self._cache: dict[str, str] = {}

    def load_template(
        self,
        name: str = DEFAULT_PROMPT_NAME,
        version: str = DEFAULT_PROMPT_VERSION,
    ) -> str:
        """Load a template, cached per name and version."""
        cache_key = f"{name}-{version}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        path = self.prompts_dir / f"{cache_key}.md"
        try:
            template = path.read_text(encoding="utf-8")
        except OSError as e:
            raise TemplateError(f"Cannot load prompt template {path.name}: {e}") from e

        self._cache[cache_key] = template
        logger.info(f"Loaded prompt {path.name}")
        return template

    def render(
        self,
        name: str,
        version: str,
        payload: dict[str, Any],
    ) -> str:
        """Render a template with the payload's template data."""
        template = self.load_template(name, version)
        missing: list[str] = []

        def _on_missing(field: str) -> str:
            if self.strict:
                raise TemplateError(f"Template {name}-{version} has no value for {{{{{field}}}}}")
            missing.append(field)
            return missing_marker(field)

        rendered = fill_template(template, payload, on_missing=_on_missing)
        if missing:
            logger.warning(
                f"Template {name}-{version} placeholders without data: {', '.join(missing)}"
            )
        return rendered
