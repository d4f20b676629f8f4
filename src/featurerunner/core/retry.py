from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Iterable, Iterator

_RETRY_TAG_RE = re.compile(r"^@Retry=(?P<settings>.*)$")

# tag key -> field name
_TAG_KEYS = {
    "initialDelay": "initial_delay",
    "maxDelay": "max_delay",
    "failAfter": "fail_after",
}


@dataclass(frozen=True)
class RetryConfiguration:
    """Backoff for one scenario. Delays are in milliseconds; `fail_after` counts attempts."""

    initial_delay: int = 1000
    max_delay: int = 16000
    fail_after: int = 5

    def delay(self, attempt: int) -> int:
        """Wait before 1-based `attempt` (>= 2): initial * 2^(attempt-2), capped at max."""
        if attempt < 2:
            return 0
        return min(self.initial_delay * 2 ** (attempt - 2), self.max_delay)

    def delays(self) -> Iterator[int]:
        for attempt in range(2, self.fail_after + 1):
            yield self.delay(attempt)

    def to_dict(self) -> dict[str, int]:
        return {"initialDelay": self.initial_delay, "maxDelay": self.max_delay, "failAfter": self.fail_after}


# Worst case roughly 1 + 2 + 4 + 8 seconds of waiting across five attempts.
DEFAULT_RETRY_CONFIGURATION = RetryConfiguration()


def parse_retry_tag(tag: str, defaults: RetryConfiguration = DEFAULT_RETRY_CONFIGURATION) -> RetryConfiguration:
    """Parse `@Retry=failAfter:N[,maxDelay:M][,initialDelay:I]` over `defaults`.

    Unknown keys are ignored. A value that is not an integer raises ValueError.
    """
    m = _RETRY_TAG_RE.match(tag)
    if not m:
        raise ValueError(f"Not a retry tag: {tag!r}")
    overrides: dict[str, int] = {}
    for part in m.group("settings").split(","):
        key, _, value = part.partition(":")
        field_name = _TAG_KEYS.get(key.strip())
        if field_name is None:
            continue
        try:
            overrides[field_name] = int(value.strip())
        except ValueError as exc:
            raise ValueError(f"Invalid value for {key.strip()} in {tag!r}") from exc
    config = replace(defaults, **overrides)
    if config.fail_after < 1:
        raise ValueError(f"failAfter must be at least 1 in {tag!r}")
    return config


def retry_configuration(
    tags: Iterable[str],
    defaults: RetryConfiguration = DEFAULT_RETRY_CONFIGURATION,
) -> RetryConfiguration:
    for tag in tags:
        if _RETRY_TAG_RE.match(tag):
            return parse_retry_tag(tag, defaults)
    return defaults
