from __future__ import annotations

from enum import Enum
from typing import Any, Final, Sequence


class ErrorKind(str, Enum):
    NO_FEATURES = "NO_FEATURES"
    PARSE_ERROR = "PARSE_ERROR"
    UNKNOWN_DEPENDENCY = "UNKNOWN_DEPENDENCY"
    CYCLIC_DEPENDENCY = "CYCLIC_DEPENDENCY"
    STEP_RUNNER_NOT_DEFINED = "STEP_RUNNER_NOT_DEFINED"
    STORE_KEY_UNDEFINED = "STORE_KEY_UNDEFINED"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    RUN_FAILED = "RUN_FAILED"


# Callers branch on the kind, never on the message text.
KNOWN_ERROR_TYPES: Final[set[str]] = {kind.value for kind in ErrorKind}

# Load-time errors abort the whole run before any feature executes.
LOAD_ERROR_KINDS: Final[frozenset[ErrorKind]] = frozenset(
    {
        ErrorKind.NO_FEATURES,
        ErrorKind.PARSE_ERROR,
        ErrorKind.UNKNOWN_DEPENDENCY,
        ErrorKind.CYCLIC_DEPENDENCY,
    }
)


def assert_known_error_type(error_type: str) -> None:
    if error_type not in KNOWN_ERROR_TYPES:
        raise ValueError(f"Unknown error type: {error_type!r}. Add it to featurerunner.core.error_types.ErrorKind.")


class FeatureRunnerError(Exception):
    kind: ErrorKind

    def details(self) -> dict[str, Any]:
        return {}


class NoFeaturesFoundError(FeatureRunnerError):
    kind = ErrorKind.NO_FEATURES

    def __init__(self, directory: str) -> None:
        super().__init__(f"No features found in directory {directory}")
        self.directory = directory

    def details(self) -> dict[str, Any]:
        return {"directory": self.directory}


class FeatureParseError(FeatureRunnerError):
    kind = ErrorKind.PARSE_ERROR

    def __init__(self, uri: str, reason: str) -> None:
        super().__init__(f"Failed to parse {uri}: {reason}")
        self.uri = uri
        self.reason = reason

    def details(self) -> dict[str, Any]:
        return {"uri": self.uri, "reason": self.reason}


class UnknownDependencyError(FeatureRunnerError):
    kind = ErrorKind.UNKNOWN_DEPENDENCY

    def __init__(self, feature: str, dependency: str) -> None:
        super().__init__(f"The feature {dependency} you want to run after does not exist!")
        self.feature = feature
        self.dependency = dependency

    def details(self) -> dict[str, Any]:
        return {"feature": self.feature, "dependency": self.dependency}


class CyclicDependencyError(FeatureRunnerError):
    kind = ErrorKind.CYCLIC_DEPENDENCY

    def __init__(self, cycle: Sequence[str]) -> None:
        super().__init__(f"Cyclic feature dependency: {' -> '.join(cycle)}")
        self.cycle = list(cycle)

    def details(self) -> dict[str, Any]:
        return {"cycle": self.cycle}


class StepRunnerNotDefinedError(FeatureRunnerError):
    kind = ErrorKind.STEP_RUNNER_NOT_DEFINED

    def __init__(self, step: Any) -> None:
        super().__init__("No runner defined for this step!")
        self.step = step

    def details(self) -> dict[str, Any]:
        return {"text": self.step.text, "interpolated_text": self.step.interpolated_text}


class StoreKeyUndefinedError(FeatureRunnerError):
    kind = ErrorKind.STORE_KEY_UNDEFINED

    def __init__(self, keys: Sequence[str], data: dict[str, Any]) -> None:
        quoted = ", ".join(f'"{key}"' for key in keys)
        super().__init__(f"{quoted} not defined in the store!")
        self.keys = list(keys)
        self.data = dict(data)

    def details(self) -> dict[str, Any]:
        return {"keys": self.keys, "available": sorted(self.data)}
