from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Iterable, Mapping, Sequence

from featurerunner.core import clock, ids
from featurerunner.core.error_types import StepRunnerNotDefinedError
from featurerunner.core.features import DataTable, InterpolatedStep, Scenario, SkippableFeature, Step
from featurerunner.core.interpolate import interpolate, merged
from featurerunner.core.loader import AFTER_RE, from_directory
from featurerunner.core.matchers import StepMatcher, first_match
from featurerunner.core.reporter import ConsoleReporter, Reporter
from featurerunner.core.results import FeatureResult, RunResult, ScenarioResult, StepResult
from featurerunner.core.retry import DEFAULT_RETRY_CONFIGURATION, RetryConfiguration, retry_configuration

logger = logging.getLogger(__name__)

Cleaner = Callable[["FeatureRunner"], Any]
Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class FlightRecorder:
    """State shared between the steps of one feature run, then discarded."""

    flags: dict[str, bool] = field(default_factory=dict)
    settings: dict[str, Any] = field(default_factory=dict)


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class FeatureRunner:
    """Runs a directory of features against registered step runners.

    Execution is strictly sequential: one feature, one scenario, one step at a
    time, because steps share `store` and talk to stateful external systems.
    """

    def __init__(
        self,
        world: Mapping[str, Any],
        *,
        directory: str | Path | None = None,
        reporters: Sequence[Reporter] | None = None,
        store: dict[str, Any] | None = None,
        retry_defaults: RetryConfiguration = DEFAULT_RETRY_CONFIGURATION,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.world: Mapping[str, Any] = MappingProxyType(dict(world))
        self.store: dict[str, Any] = store if store is not None else {}
        self.directory = directory
        self.reporters: list[Reporter] = list(reporters) if reporters is not None else [ConsoleReporter()]
        self.retry_defaults = retry_defaults
        self.step_runners: list[StepMatcher] = []
        self.cleaners: list[Cleaner] = []
        self._sleep = sleep

    def add_step_runners(self, runners: Iterable[StepMatcher]) -> FeatureRunner:
        self.step_runners.extend(runners)
        return self

    def cleanup(self, fn: Cleaner) -> None:
        self.cleaners.append(fn)

    def data(self) -> dict[str, Any]:
        """World and store merged for interpolation; store wins."""
        return merged(self.world, self.store)

    async def progress(self, event_type: str, info: Any = None) -> None:
        text = None if info is None else str(info)
        logger.debug("%s %s", event_type, text or "")
        for reporter in self.reporters:
            try:
                await _resolve(reporter.progress(event_type, text))
            except Exception:
                logger.exception("reporter %r failed on %r progress", reporter, event_type)

    # ---- run ----
    async def run(self, features: Sequence[SkippableFeature] | None = None) -> RunResult:
        """Run every feature in order, then report and clean up.

        Load errors propagate; step and reporter errors never do.
        """
        if features is None:
            if self.directory is None:
                raise ValueError("FeatureRunner needs a directory or a feature list")
            features = from_directory(self.directory)

        start = clock.monotonic_ms()
        feature_results: list[FeatureResult] = []
        for feature in features:
            feature_results.append(await self.run_feature(feature, feature_results))

        result = RunResult(
            run_id=ids.run_id(),
            success=all(r.success for r in feature_results),
            feature_results=tuple(feature_results),
            run_time=clock.elapsed_ms(start),
            store=dict(self.store),
        )
        logger.info("run %s finished: success=%s", result.run_id, result.success)

        # a broken reporter never keeps the cleaners from running
        for reporter in self.reporters:
            try:
                await _resolve(reporter.report(result))
            except Exception:
                logger.exception("reporter %r failed", reporter)

        for cleaner in self.cleaners:
            try:
                outcome = await _resolve(cleaner(self))
            except Exception as exc:
                logger.exception("cleaner %r failed", cleaner)
                await self.progress("cleaner error", exc)
                continue
            await self.progress("cleaner", outcome)
        return result

    async def run_feature(
        self,
        feature: SkippableFeature,
        previous: Sequence[FeatureResult] = (),
    ) -> FeatureResult:
        await self.progress("feature", feature.name)
        if feature.skip:
            return FeatureResult(feature=feature, success=True)

        scenarios = feature.scenarios()
        dep_names = {dep.name for dep in feature.depends_on}
        failed_deps = [r.feature.name for r in previous if r.feature.name in dep_names and not r.success]
        if failed_deps:
            logger.warning("skipping %s: dependencies failed: %s", feature.name, ", ".join(failed_deps))
            await self.progress("skip", f"{feature.name} (failed dependencies: {', '.join(failed_deps)})")
            return FeatureResult(
                feature=feature,
                success=False,
                scenario_results=tuple(_skipped(s) for s in scenarios),
            )

        start = clock.monotonic_ms()
        recorder = FlightRecorder()
        scenario_results: list[ScenarioResult] = []
        for scenario in scenarios:
            if scenario_results and not scenario_results[-1].success:
                scenario_results.append(_skipped(scenario))
                continue
            scenario_results.append(await self.retry_scenario(scenario, recorder))

        return FeatureResult(
            feature=feature,
            success=all(r.success for r in scenario_results),
            scenario_results=tuple(scenario_results),
            run_time=clock.elapsed_ms(start),
        )

    async def retry_scenario(self, scenario: Scenario, recorder: FlightRecorder | None = None) -> ScenarioResult:
        """Run a scenario, retrying the whole scenario with exponential backoff.

        Attempt 1 runs immediately. Attempt k waits `config.delay(k)` first.
        Stops on the first success or after `fail_after` attempts, returning
        the last result with `tries` set to the attempt that produced it.
        """
        recorder = recorder if recorder is not None else FlightRecorder()
        config = retry_configuration(scenario.tags, self.retry_defaults)
        attempt = 1
        while True:
            result = await self.run_scenario(scenario, recorder)
            result = replace(result, tries=attempt, retry_configuration=config)
            if result.success or attempt >= config.fail_after:
                return result
            attempt += 1
            delay = config.delay(attempt)
            logger.info("retrying %r (attempt %d/%d) in %dms", scenario.name, attempt, config.fail_after, delay)
            await self.progress("retry", scenario.name)
            await self._sleep(delay / 1000)

    async def run_scenario(self, scenario: Scenario, recorder: FlightRecorder | None = None) -> ScenarioResult:
        """One attempt: steps in order, remaining steps skipped after the first failure."""
        recorder = recorder if recorder is not None else FlightRecorder()
        await self.progress("scenario", scenario.name)
        start = clock.monotonic_ms()
        step_results: list[StepResult] = []
        aborted = False
        for step in scenario.steps:
            if aborted:
                step_results.append(StepResult(step=InterpolatedStep.raw(step), success=False, skipped=True))
                continue
            result = await self.run_step(step, recorder)
            step_results.append(result)
            if not result.success:
                aborted = True

        return ScenarioResult(
            scenario=scenario,
            success=all(r.success for r in step_results),
            step_results=tuple(step_results),
            tries=1,
            run_time=clock.elapsed_ms(start),
        )

    async def run_step(self, step: Step, recorder: FlightRecorder | None = None) -> StepResult:
        """Interpolate, dispatch to the first matching step runner, and record the outcome."""
        recorder = recorder if recorder is not None else FlightRecorder()
        await self.progress("step", step.text)

        if AFTER_RE.match(step.text):
            return StepResult(step=InterpolatedStep.raw(step), success=True)

        interpolated = InterpolatedStep.raw(step)
        start = clock.monotonic_ms()
        try:
            interpolated = self.interpolate_step(step)
            bound = first_match(self.step_runners, interpolated)
            if bound is None:
                raise StepRunnerNotDefinedError(interpolated)
            value = await _resolve(bound(self, recorder))
        except Exception as exc:
            logger.debug("step %r failed", step.text, exc_info=True)
            await self.progress("step error", exc)
            return StepResult(step=interpolated, success=False, run_time=clock.elapsed_ms(start), error=exc)

        return StepResult(step=interpolated, success=True, run_time=clock.elapsed_ms(start), result=value)

    def interpolate_step(self, step: Step) -> InterpolatedStep:
        # rebuilt on every attempt; the store may have changed since the last one
        data = self.data()
        table = None
        if isinstance(step.argument, DataTable):
            table = tuple(tuple(interpolate(cell, data) for cell in row) for row in step.argument.rows)
        doc = step.doc_string
        return InterpolatedStep(
            step=step,
            interpolated_text=interpolate(step.text, data),
            interpolated_argument=interpolate(doc, data) if doc is not None else None,
            interpolated_table=table,
        )


def _skipped(scenario: Scenario) -> ScenarioResult:
    return ScenarioResult(scenario=scenario, success=False, skipped=True, tries=0)
