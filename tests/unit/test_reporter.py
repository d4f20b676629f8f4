from __future__ import annotations

import asyncio

import click

from featurerunner.core.loader import parse_features
from featurerunner.core.matchers import regex_matcher
from featurerunner.core.reporter import ConsoleReporter
from featurerunner.core.runner import FeatureRunner


class Capture:
    def __init__(self) -> None:
        self.lines: list[str] = []
        self.err_lines: list[str] = []

    def __call__(self, message: str = "", err: bool = False) -> None:
        self.lines.append(click.unstyle(message))
        if err:
            self.err_lines.append(click.unstyle(message))

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


async def _no_sleep(seconds: float) -> None:
    return None


def _run(reporter: ConsoleReporter, source: str):
    @regex_matcher(r"^(pass|fail)$")
    def handler(args, step, runner, recorder):
        if args[0] == "fail":
            raise AssertionError("boom")
        return {"ok": True}

    runner = FeatureRunner({}, reporters=[reporter], sleep=_no_sleep).add_step_runners([handler])
    return asyncio.run(runner.run(parse_features([("a.feature", source)])))


def test_reports_steps_and_verdict():
    echo = Capture()
    _run(ConsoleReporter(print_results=True, echo=echo), "Feature: F\n  Scenario: s\n    Given pass\n")
    assert "Feature: F" in echo.text
    assert "Scenario: s" in echo.text
    assert '{"ok": true}' in echo.text
    assert "ALL PASS" in echo.text


def test_reports_failures_with_summary():
    echo = Capture()
    _run(
        ConsoleReporter(print_summary=True, echo=echo),
        "Feature: F\n  @Retry=failAfter:2\n  Scenario: s\n    Given fail\n    And pass\n",
    )
    assert "boom" in echo.text
    assert "(skipped)" in echo.text
    assert "2x" in echo.text
    assert "Scenario Summary: 1 failed, 0 skipped, 0 passed, 1 total" in echo.text
    assert echo.lines[-2].strip().startswith("FAIL")


def test_progress_is_silent_unless_enabled():
    echo = Capture()
    reporter = ConsoleReporter(echo=echo)
    reporter.progress("step", "x")
    assert echo.lines == []

    reporter = ConsoleReporter(print_progress=True, echo=echo)
    reporter.progress("step", "x")
    assert "step x" in echo.text


class Mismatch(AssertionError):
    def __init__(self) -> None:
        super().__init__("values differ")
        self.expected = "a"
        self.actual = "b"


def test_failure_detail_stays_on_one_stream():
    echo = Capture()

    @regex_matcher(r"^compare$")
    def compare(args, step, runner, recorder):
        raise Mismatch()

    reporter = ConsoleReporter(echo=echo)
    runner = FeatureRunner({}, reporters=[reporter], sleep=_no_sleep).add_step_runners([compare])
    source = "Feature: F\n  @Retry=failAfter:1\n  Scenario: s\n    Given compare\n"
    asyncio.run(runner.run(parse_features([("a.feature", source)])))

    detail = [line.strip() for line in echo.err_lines]
    assert detail == ["! values differ", 'Expected: "a"', 'Actual:   "b"']
