from __future__ import annotations

import json
import re
from typing import Any, Mapping

from featurerunner.core.error_types import StoreKeyUndefinedError

# `{key}` or `{namespace:key}`; JSON braces such as `{ "a": 1 }` never match.
PLACEHOLDER_RE = re.compile(r"\{([\w:]+)\}")


def merged(world: Mapping[str, Any], store: Mapping[str, Any]) -> dict[str, Any]:
    """Read-only lookup view; store keys shadow world keys."""
    return {**world, **store}


def _render(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


def interpolate(text: str, data: Mapping[str, Any]) -> str:
    """Replace every `{key}` in `text` with its value.

    Strings go in as they are; anything else is rendered as JSON, so `True`
    becomes `true` and `None` becomes `null`.

    Raises StoreKeyUndefinedError listing each unresolved key (in order of
    first appearance) together with the data that was available.
    """
    missing: list[str] = []

    def _sub(m: re.Match[str]) -> str:
        key = m.group(1)
        if key in data:
            return _render(data[key])
        if key not in missing:
            missing.append(key)
        return m.group(0)

    out = PLACEHOLDER_RE.sub(_sub, text)
    if missing:
        raise StoreKeyUndefinedError(missing, dict(data))
    return out
