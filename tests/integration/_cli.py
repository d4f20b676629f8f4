from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]
FEATURES = REPO_ROOT / "tests" / "fixtures" / "features"
STEPS = REPO_ROOT / "tests" / "fixtures" / "steps.py"


def run_cli_raw(*args: str, env: dict[str, str] | None = None) -> subprocess.CompletedProcess[str]:
    env = dict(env if env is not None else os.environ)
    # The step fixture module imports featurerunner; make the source tree importable without an install
    env["PYTHONPATH"] = os.pathsep.join([str(REPO_ROOT / "src"), str(REPO_ROOT), env.get("PYTHONPATH", "")])
    return subprocess.run([sys.executable, "-m", "featurerunner.cli", *args], env=env, capture_output=True, text=True)


def run_cli(*args: str, env: dict[str, str] | None = None) -> tuple[int, dict]:
    p = run_cli_raw(*args, env=env)
    try:
        out = json.loads(p.stdout)
    except json.JSONDecodeError as e:  # pragma: no cover
        raise AssertionError(f"CLI did not return JSON. Output:\n{p.stdout}\nSTDERR:\n{p.stderr}") from e
    return p.returncode, out
