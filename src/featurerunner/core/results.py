from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from featurerunner.core.error_types import FeatureRunnerError
from featurerunner.core.features import InterpolatedStep, Scenario, SkippableFeature
from featurerunner.core.retry import RetryConfiguration


def error_to_dict(error: BaseException) -> dict[str, Any]:
    out: dict[str, Any] = {"type": type(error).__name__, "message": str(error)}
    if isinstance(error, FeatureRunnerError):
        out["kind"] = error.kind.value
        out["details"] = error.details()
    # assertion helpers (pytest, chai-style libraries) often carry these
    for attr in ("expected", "actual"):
        if hasattr(error, attr):
            out[attr] = getattr(error, attr)
    return out


@dataclass(frozen=True)
class StepResult:
    step: InterpolatedStep
    success: bool
    skipped: bool = False
    run_time: int | None = None
    result: Any = None
    error: BaseException | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "text": self.step.text,
            "interpolated_text": self.step.interpolated_text,
            "success": self.success,
            "skipped": self.skipped,
            "run_time": self.run_time,
        }
        if self.step.interpolated_argument is not None:
            out["interpolated_argument"] = self.step.interpolated_argument
        if self.result is not None:
            out["result"] = self.result
        if self.error is not None:
            out["error"] = error_to_dict(self.error)
        return out


@dataclass(frozen=True)
class ScenarioResult:
    scenario: Scenario
    success: bool
    step_results: tuple[StepResult, ...] = ()
    skipped: bool = False
    tries: int = 0
    retry_configuration: RetryConfiguration | None = None
    run_time: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.scenario.name,
            "type": self.scenario.kind,
            "success": self.success,
            "skipped": self.skipped,
            "tries": self.tries,
            "retry_configuration": self.retry_configuration.to_dict() if self.retry_configuration else None,
            "run_time": self.run_time,
            "steps": [r.to_dict() for r in self.step_results],
        }


@dataclass(frozen=True)
class FeatureResult:
    feature: SkippableFeature
    success: bool
    scenario_results: tuple[ScenarioResult, ...] = ()
    run_time: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.feature.name,
            "tags": list(self.feature.tags),
            "skip": self.feature.skip,
            "depends_on": [f.name for f in self.feature.depends_on],
            "success": self.success,
            "run_time": self.run_time,
            "scenarios": [r.to_dict() for r in self.scenario_results],
        }


@dataclass(frozen=True)
class RunResult:
    run_id: str
    success: bool
    feature_results: tuple[FeatureResult, ...]
    run_time: int | None = None
    store: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "success": self.success,
            "run_time": self.run_time,
            "features": [r.to_dict() for r in self.feature_results],
            "store": self.store,
        }

    def summary(self) -> dict[str, dict[str, int]]:
        features = len(self.feature_results)
        skipped_features = sum(1 for r in self.feature_results if r.feature.skip)
        failed_features = sum(1 for r in self.feature_results if not r.success)
        scenario_results = [s for r in self.feature_results for s in r.scenario_results]
        skipped_scenarios = sum(1 for s in scenario_results if s.skipped)
        # skipped scenarios also carry success=False; count them once
        failed_scenarios = sum(1 for s in scenario_results if not s.success and not s.skipped)
        return {
            "features": {
                "total": features,
                "failed": failed_features,
                "skipped": skipped_features,
                "passed": features - skipped_features - failed_features,
            },
            "scenarios": {
                "total": len(scenario_results),
                "failed": failed_scenarios,
                "skipped": skipped_scenarios,
                "passed": len(scenario_results) - skipped_scenarios - failed_scenarios,
            },
        }
