from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Protocol, Sequence

from featurerunner.core.features import InterpolatedStep

if TYPE_CHECKING:
    from featurerunner.core.runner import FeatureRunner, FlightRecorder

# Called with (runner, flight_recorder); may return an awaitable.
BoundHandler = Callable[["FeatureRunner", "FlightRecorder"], Any]

PositionalHandler = Callable[[Sequence[str | None], InterpolatedStep, "FeatureRunner", "FlightRecorder"], Any]
GroupHandler = Callable[[dict[str, str | None], InterpolatedStep, "FeatureRunner", "FlightRecorder"], Any]


class StepMatcher(Protocol):
    def match(self, step: InterpolatedStep) -> BoundHandler | None:
        """Return a handler bound to this step's arguments, or None when the step is not ours."""
        ...


def _compile(pattern: str | re.Pattern[str]) -> re.Pattern[str]:
    return pattern if isinstance(pattern, re.Pattern) else re.compile(pattern)


@dataclass(frozen=True)
class RegexMatcher:
    """Matches on the interpolated text and passes positional captures."""

    pattern: re.Pattern[str]
    handler: PositionalHandler

    def match(self, step: InterpolatedStep) -> BoundHandler | None:
        m = self.pattern.search(step.interpolated_text)
        if not m:
            return None
        args = list(m.groups())
        return lambda runner, recorder: self.handler(args, step, runner, recorder)


@dataclass(frozen=True)
class RegexGroupMatcher:
    """Matches on the interpolated text and passes named capture groups."""

    pattern: re.Pattern[str]
    handler: GroupHandler

    def __post_init__(self) -> None:
        if not self.pattern.groupindex:
            raise ValueError(f"Pattern has no named groups: {self.pattern.pattern!r}")

    def match(self, step: InterpolatedStep) -> BoundHandler | None:
        m = self.pattern.search(step.interpolated_text)
        if not m:
            return None
        groups = m.groupdict()
        return lambda runner, recorder: self.handler(groups, step, runner, recorder)


def regex_matcher(pattern: str | re.Pattern[str]) -> Callable[[PositionalHandler], RegexMatcher]:
    """Decorator form: `@regex_matcher(r'^the endpoint is "([^"]+)"$')`."""
    rx = _compile(pattern)

    def wrap(handler: PositionalHandler) -> RegexMatcher:
        return RegexMatcher(rx, handler)

    return wrap


def regex_group_matcher(pattern: str | re.Pattern[str]) -> Callable[[GroupHandler], RegexGroupMatcher]:
    rx = _compile(pattern)

    def wrap(handler: GroupHandler) -> RegexGroupMatcher:
        return RegexGroupMatcher(rx, handler)

    return wrap


def first_match(matchers: Sequence[StepMatcher], step: InterpolatedStep) -> BoundHandler | None:
    """Registration order is precedence."""
    for matcher in matchers:
        bound = matcher.match(step)
        if bound is not None:
            return bound
    return None
