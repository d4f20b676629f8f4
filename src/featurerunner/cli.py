from __future__ import annotations

import asyncio
from typing import List, Optional

import typer

from featurerunner.core import config as config_core
from featurerunner.core import envelope, loader, logs, plugins
from featurerunner.core.error_types import ErrorKind, FeatureRunnerError
from featurerunner.core.jsonio import dumps
from featurerunner.core.reporter import ConsoleReporter
from featurerunner.core.runner import FeatureRunner

VERSION = "0.1.0"

app = typer.Typer(add_completion=False, help="featurerunner - run Gherkin features against a live system")


def _emit(out: dict) -> None:
    typer.echo(dumps(out))
    if out.get("ok") is True:
        raise typer.Exit(code=0)
    raise typer.Exit(code=1)


def _fail(out: dict, json_output: bool) -> None:
    if json_output:
        _emit(out)
    error = out["error"]
    typer.echo(f"{error['type']}: {error['message']}", err=True)
    raise typer.Exit(code=1)


def _load_error(command: str, exc: FeatureRunnerError) -> dict:
    return envelope.err(command=command, error_type=exc.kind.value, message=str(exc), details=exc.details())


def _invalid(command: str, exc: Exception, **details: object) -> dict:
    return envelope.err(
        command=command,
        error_type=ErrorKind.INVALID_ARGUMENT.value,
        message=str(exc),
        details=dict(details),
    )


# ---- Sub-apps (public CLI contract) ----
features_app = typer.Typer(add_completion=False)
app.add_typer(features_app, name="features")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG|INFO|WARNING|ERROR"),
):
    try:
        logs.setup_logging(log_level)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--log-level") from exc


# ---- Global commands ----
@app.command()
def version(json_output: bool = typer.Option(False, "--json", help="Output JSON envelope")):
    if json_output:
        _emit(envelope.ok(command="version", data={"version": VERSION}))
    typer.echo(f"featurerunner {VERSION}")


@app.command()
def run(
    directory: str = typer.Argument(..., help="Directory holding *.feature files"),
    world_path: Optional[str] = typer.Option(None, "--world", help="TOML or JSON file with world values"),
    steps: List[str] = typer.Option([], "--steps", help="module:attr or file.py:attr yielding step runners"),
    print_results: bool = typer.Option(False, "--print-results", "-r", help="Print step results"),
    print_progress: bool = typer.Option(False, "--progress", "-p", help="Print progress"),
    print_summary: bool = typer.Option(False, "--summary", "-s", help="Print a summary of failures"),
    json_output: bool = typer.Option(True, "--json/--no-json"),
):
    """Run every feature in DIRECTORY; exit non-zero unless all pass."""
    try:
        world = config_core.load_world(world_path)
        retry_defaults = config_core.retry_defaults()
        step_runners = [runner for ref in steps for runner in plugins.load_step_runners(ref)]
    except (OSError, ValueError) as exc:
        _fail(_invalid("run", exc, directory=directory, world=world_path, steps=steps), json_output)

    try:
        features = loader.from_directory(directory)
    except FeatureRunnerError as exc:
        _fail(_load_error("run", exc), json_output)

    reporters = []
    if not json_output:
        reporters.append(
            ConsoleReporter(
                print_results=config_core.reporter_flag("print_results", print_results),
                print_progress=config_core.reporter_flag("print_progress", print_progress),
                print_summary=config_core.reporter_flag("print_summary", print_summary),
                progress_timestamps=config_core.reporter_flag("progress_timestamps", False),
            )
        )
    runner = FeatureRunner(world, directory=directory, reporters=reporters, retry_defaults=retry_defaults)
    runner.add_step_runners(step_runners)
    result = asyncio.run(runner.run(features))

    if not json_output:
        raise typer.Exit(code=0 if result.success else 1)

    data = result.to_dict()
    data["summary"] = result.summary()
    if result.success:
        _emit(envelope.ok(command="run", data=data))
    _emit(
        envelope.err(
            command="run",
            error_type=ErrorKind.RUN_FAILED.value,
            message="one or more features failed",
            details=data,
        )
    )


# -------------- features --------------
@features_app.command("list")
def features_list(
    directory: str = typer.Argument(..., help="Directory holding *.feature files"),
    json_output: bool = typer.Option(True, "--json"),
):
    """Show the run order, skip flags and dependencies without executing anything."""
    try:
        features = loader.from_directory(directory)
    except FeatureRunnerError as exc:
        _emit(_load_error("features.list", exc))

    out = envelope.ok(
        command="features.list",
        data={
            "features": [
                {
                    "name": f.name,
                    "uri": f.uri,
                    "tags": list(f.tags),
                    "skip": f.skip,
                    "depends_on": [dep.name for dep in f.depends_on],
                    "scenarios": [s.name for s in f.scenarios() if not s.is_background],
                }
                for f in features
            ]
        },
    )
    _emit(out)


if __name__ == "__main__":
    app()
