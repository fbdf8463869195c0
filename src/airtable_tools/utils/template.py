"""Substitution of ``{{json.field}}`` placeholders with values from the current item."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

_PLACEHOLDER = re.compile(r"\{\{json\.(\w+)\}\}")


def resolve_value(value: Any, context: Mapping[str, Any] | None = None) -> Any:
    """
    Replace every ``{{json.<key>}}`` in a string with ``context[<key>]``.

    Missing, None and empty values become "". Non-string values and strings
    without placeholders are returned unchanged. Only flat keys are supported.
    """
    if not isinstance(value, str) or "{{" not in value:
        return value

    context = context or {}

    def _substitute(match: re.Match) -> str:
        found = context.get(match.group(1))
        if found is None or found == "":
            return ""
        return str(found)

    return _PLACEHOLDER.sub(_substitute, value)
