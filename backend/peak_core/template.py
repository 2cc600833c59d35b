"""Literal ``{{field}}`` placeholder substitution."""

from __future__ import annotations

import re
from typing import Any, Callable

import orjson

PLACEHOLDER = re.compile(r"\{\{([A-Za-z0-9_]+)\}\}")


def format_value(value: Any) -> str:
    """Stringify scalars; serialize structured values as indented JSON."""
    if isinstance(value, (dict, list, tuple)):
        return orjson.dumps(value, option=orjson.OPT_INDENT_2).decode()
    return str(value)


def placeholders(template: str) -> list[str]:
    """List placeholder names in order of first appearance."""
    seen: dict[str, None] = {}
    for match in PLACEHOLDER.finditer(template):
        seen.setdefault(match.group(1), None)
    return list(seen)


def fill_template(
    template: str,
    data: dict[str, Any],
    on_missing: Callable[[str], str] | None = None,
) -> str:
    """Fill every placeholder whose key appears in ``data``.

    Args:
        template: Template text with ``{{field}}`` placeholders
        data: Placeholder values
        on_missing: Called with the name of each unmatched placeholder;
            its return value is substituted. Unmatched placeholders are
            left verbatim when not given.
    """

    def _replace(match: re.Match) -> str:
        key = match.group(1)
        if key in data:
            return format_value(data[key])
        if on_missing is None:
            return match.group(0)
        return on_missing(key)

    return PLACEHOLDER.sub(_replace, template)
