from __future__ import annotations

import json
import re
from typing import Any, Awaitable, Callable, Protocol

import typer

from featurerunner.core import clock
from featurerunner.core.error_types import StepRunnerNotDefinedError
from featurerunner.core.results import FeatureResult, RunResult, ScenarioResult, StepResult


class Reporter(Protocol):
    """Receives live progress events and the final result. Methods may be sync or async."""

    def report(self, result: RunResult) -> Awaitable[None] | None: ...

    def progress(self, event_type: str, info: str | None = None) -> Awaitable[None] | None: ...


class CollectingReporter:
    """Keeps every event in memory; handy for embedding and tests."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str | None]] = []
        self.results: list[RunResult] = []

    def report(self, result: RunResult) -> None:
        self.results.append(result)

    def progress(self, event_type: str, info: str | None = None) -> None:
        self.events.append((event_type, info))


Echo = Callable[..., Any]

_WS_RE = re.compile(r"\n\s*")


class ConsoleReporter:
    def __init__(
        self,
        *,
        print_results: bool = False,
        print_progress: bool = False,
        print_summary: bool = False,
        progress_timestamps: bool = False,
        echo: Echo = typer.echo,
    ) -> None:
        self.print_results = print_results
        self.print_progress = print_progress
        self.print_summary = print_summary
        self.progress_timestamps = progress_timestamps
        self._echo = echo
        self._last_progress: int | None = None

    def _line(self, *parts: str, err: bool = False) -> None:
        self._echo(" ".join(p for p in parts if p), err=err)

    # ---- Reporter ----
    def progress(self, event_type: str, info: str | None = None) -> None:
        if not self.print_progress:
            return
        parts = [" "]
        if self.progress_timestamps:
            parts.append(typer.style(f"[{clock.now_utc().isoformat()}]", dim=True))
        parts.append(typer.style("i", fg=typer.colors.MAGENTA))
        parts.append(typer.style(event_type, fg=typer.colors.CYAN))
        if info:
            parts.append(typer.style(info, dim=True))
        now = clock.monotonic_ms()
        if self._last_progress is not None:
            parts.append(typer.style(f"+{now - self._last_progress}ms", fg=typer.colors.BLUE))
        self._last_progress = now
        self._line(*parts)

    def report(self, result: RunResult) -> None:
        for feature_result in result.feature_results:
            self._feature(feature_result)
            for scenario_result in feature_result.scenario_results:
                self._scenario(scenario_result)
                for step_result in scenario_result.step_results:
                    self._step(step_result)
        if self.print_summary:
            self._summary(result)
        self._run(result)

    # ---- rendering ----
    def _feature(self, result: FeatureResult) -> None:
        self._line("")
        parts: list[str] = []
        if result.feature.skip:
            parts.append(typer.style(result.feature.name, fg=typer.colors.YELLOW, dim=True, strikethrough=True))
            parts.append(typer.style("(skipped)", fg=typer.colors.MAGENTA))
        else:
            self._line(typer.style("Feature:", dim=True), typer.style(result.feature.name, fg=typer.colors.YELLOW, bold=True))
            parts.append(typer.style("PASS", fg=typer.colors.GREEN) if result.success else typer.style("FAIL", fg=typer.colors.RED, bold=True))
            if result.run_time is not None:
                parts.append(typer.style(f"{result.run_time}ms", fg=typer.colors.BLUE))
        if result.feature.tags:
            parts.append(typer.style(" ".join(result.feature.tags), fg=typer.colors.BRIGHT_BLUE))
        self._line(*parts)

    def _scenario(self, result: ScenarioResult) -> None:
        parts = [typer.style(f"{'Background' if result.scenario.is_background else 'Scenario'}:", dim=True)]
        if result.skipped:
            parts.append(typer.style("(skipped)", fg=typer.colors.MAGENTA))
            if result.scenario.name:
                parts.append(typer.style(result.scenario.name, dim=True))
        else:
            if result.scenario.name:
                parts.append(typer.style(result.scenario.name, fg=typer.colors.YELLOW))
            if result.run_time is not None:
                parts.append(typer.style(f"{result.run_time}ms", fg=typer.colors.BLUE))
            if result.tries > 1:
                parts.append(typer.style(f"{result.tries}x", fg=typer.colors.RED))
        self._line("")
        self._line(" ", *parts)

    def _step(self, result: StepResult) -> None:
        text = result.step.interpolated_text
        if result.skipped:
            self._line("   ~", typer.style(text, dim=True), typer.style("(skipped)", fg=typer.colors.MAGENTA))
        elif result.success:
            parts = ["   ", typer.style("ok", fg=typer.colors.GREEN), typer.style(text, fg=typer.colors.YELLOW)]
            if result.run_time is not None:
                parts.append(typer.style(f"{result.run_time}ms", fg=typer.colors.BLUE))
            self._line(*parts)
        else:
            self._line("   ", typer.style("x", fg=typer.colors.RED, bold=True), typer.style(text, fg=typer.colors.RED, bold=True))

        if result.step.interpolated_argument:
            argument = _WS_RE.sub(" ", result.step.interpolated_argument).lstrip()
            self._line(typer.style("     >", fg=typer.colors.YELLOW, dim=True), typer.style(argument, fg=typer.colors.YELLOW, dim=True))
        if self.print_results and result.result is not None:
            values = result.result if isinstance(result.result, list) else [result.result]
            for value in values:
                self._line(typer.style("     <", fg=typer.colors.CYAN), typer.style(json.dumps(value, default=str), fg=typer.colors.CYAN))
        if result.error is not None:
            self._error(result.error)

    def _error(self, error: BaseException) -> None:
        # the whole failure detail goes to stderr together
        if isinstance(error, StepRunnerNotDefinedError) and error.step.interpolated_text != error.step.text:
            self._line(typer.style("     >", dim=True), typer.style(error.step.interpolated_text, dim=True), err=True)
        self._line("   ", typer.style("!", fg=typer.colors.RED, bold=True), typer.style(str(error), fg=typer.colors.YELLOW), err=True)
        if hasattr(error, "expected") or hasattr(error, "actual"):
            self._line(typer.style("     Expected:", fg=typer.colors.GREEN), json.dumps(getattr(error, "expected", None), default=str), err=True)
            self._line(typer.style("     Actual:  ", fg=typer.colors.RED, bold=True), json.dumps(getattr(error, "actual", None), default=str), err=True)

    def _summary(self, result: RunResult) -> None:
        for feature_result in result.feature_results:
            if feature_result.success:
                continue
            self._feature(feature_result)
            for scenario_result in feature_result.scenario_results:
                if not scenario_result.success:
                    self._scenario(scenario_result)

        counts = result.summary()
        self._line("")
        for label, key in (("Feature Summary: ", "features"), ("Scenario Summary:", "scenarios")):
            c = counts[key]
            self._line(
                typer.style(label, dim=True),
                typer.style(str(c["failed"]), fg=typer.colors.RED if c["failed"] else typer.colors.GREEN),
                typer.style("failed,", dim=True),
                typer.style(str(c["skipped"]), fg=typer.colors.YELLOW if c["skipped"] else None, dim=not c["skipped"]),
                typer.style("skipped,", dim=True),
                typer.style(str(c["passed"]), fg=typer.colors.RED if c["failed"] else typer.colors.GREEN),
                typer.style("passed,", dim=True),
                typer.style(f"{c['total']} total", dim=True),
            )

    def _run(self, result: RunResult) -> None:
        self._line("")
        verdict = (
            typer.style("ALL PASS", fg=typer.colors.GREEN)
            if result.success
            else typer.style("FAIL", fg=typer.colors.RED, bold=True)
        )
        parts = [" ", verdict]
        if result.run_time is not None:
            parts.append(typer.style(f"{result.run_time}ms", fg=typer.colors.BLUE))
        self._line(*parts)
        self._line("")
