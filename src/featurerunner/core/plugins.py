from __future__ import annotations

import importlib
import importlib.util
from pathlib import Path
from types import ModuleType

from featurerunner.core.matchers import StepMatcher


def _load_module(target: str) -> ModuleType:
    if target.endswith(".py"):
        path = Path(target).expanduser().resolve()
        if not path.exists():
            raise ValueError(f"Step runner file not found: {path}")
        spec = importlib.util.spec_from_file_location(path.stem, path)
        if spec is None or spec.loader is None:
            raise ValueError(f"Cannot import step runner file: {path}")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module
    try:
        return importlib.import_module(target)
    except ImportError as exc:
        raise ValueError(f"Cannot import step runner module {target!r}: {exc}") from exc


def load_step_runners(ref: str) -> list[StepMatcher]:
    """Resolve `module:attr` or `path/to/file.py:attr` into a list of matchers.

    The attribute is either the list itself or a zero-argument callable that
    returns it.
    """
    target, sep, attr = ref.rpartition(":")
    if not sep or not target or not attr:
        raise ValueError(f"Expected module:attribute, got {ref!r}")
    module = _load_module(target)
    try:
        value = getattr(module, attr)
    except AttributeError as exc:
        raise ValueError(f"{target} has no attribute {attr!r}") from exc
    if callable(value) and not hasattr(value, "match"):
        value = value()
    runners = list(value)
    for runner in runners:
        if not hasattr(runner, "match"):
            raise ValueError(f"{ref} yielded a non-matcher: {runner!r}")
    return runners
