from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

from featurerunner.core.error_types import (
    CyclicDependencyError,
    FeatureParseError,
    NoFeaturesFoundError,
    UnknownDependencyError,
)
from featurerunner.core.features import Feature, SkippableFeature, parse_feature
from featurerunner.core.retry import retry_configuration

logger = logging.getLogger(__name__)

# Marker step declaring a load-time dependency; a no-op when executed.
AFTER_RE = re.compile(r'^I am run after the "([^"]+)" feature$')

TAG_SKIP = "@Skip"
TAG_ONLY = "@Only"
TAG_LAST = "@Last"


def dependency_names(feature: Feature) -> list[str]:
    """Feature names declared via `I am run after the "..." feature` in the Background."""
    background = feature.background
    if background is None:
        return []
    names: list[str] = []
    for step in background.steps:
        m = AFTER_RE.match(step.text)
        if m:
            names.append(m.group(1))
    return names


def toposort(nodes: list[str], edges: list[tuple[str, str]]) -> list[str]:
    """Kahn's algorithm over `(before, after)` edges.

    Ties keep the order of `nodes`. Raises CyclicDependencyError naming one
    cycle when the graph is not a DAG.
    """
    position = {name: i for i, name in enumerate(nodes)}
    indegree = {name: 0 for name in nodes}
    successors: dict[str, list[str]] = {name: [] for name in nodes}
    for before, after in edges:
        successors[before].append(after)
        indegree[after] += 1

    ready = [name for name in nodes if indegree[name] == 0]
    ordered: list[str] = []
    while ready:
        ready.sort(key=position.__getitem__)
        name = ready.pop(0)
        ordered.append(name)
        for nxt in successors[name]:
            indegree[nxt] -= 1
            if indegree[nxt] == 0:
                ready.append(nxt)

    if len(ordered) != len(nodes):
        remaining = [name for name in nodes if indegree[name] > 0]
        raise CyclicDependencyError(_find_cycle(remaining, edges))
    return ordered


def _find_cycle(remaining: list[str], edges: list[tuple[str, str]]) -> list[str]:
    # Every unsorted node still has an unsorted predecessor, so walking
    # predecessors never dead-ends and must revisit a node.
    predecessors: dict[str, list[str]] = {name: [] for name in remaining}
    for before, after in edges:
        if before in predecessors and after in predecessors:
            predecessors[after].append(before)

    path: list[str] = []
    seen: dict[str, int] = {}
    node = remaining[0]
    while node not in seen:
        seen[node] = len(path)
        path.append(node)
        node = predecessors[node][0]
    cycle = path[seen[node]:]
    cycle.reverse()
    return cycle + [cycle[0]]


def _check_retry_tags(feature: Feature) -> None:
    for scenario in feature.scenarios():
        try:
            retry_configuration(scenario.tags)
        except ValueError as exc:
            raise FeatureParseError(feature.uri or "<memory>", str(exc)) from exc


def parse_features(sources: Iterable[tuple[str, str]]) -> list[SkippableFeature]:
    """Turn `(uri, text)` pairs into features in run order with skip and dependencies computed."""
    parsed: list[Feature] = []
    for uri, text in sources:
        feature = parse_feature(text, uri=uri)
        if feature is None:
            logger.debug("no feature in %s", uri)
            continue
        _check_retry_tags(feature)
        parsed.append(feature)

    names = [f.name for f in parsed]
    for name in set(names):
        if names.count(name) > 1:
            dupes = [f.uri or "<memory>" for f in parsed if f.name == name]
            raise FeatureParseError(", ".join(dupes), f"duplicate feature name {name!r}")

    # sorted() is stable, so non-@Last features keep their relative order
    by_last = sorted(parsed, key=lambda f: f.has_tag(TAG_LAST))
    by_name = {f.name: f for f in by_last}

    edges: list[tuple[str, str]] = []
    for feature in by_last:
        for dep in dependency_names(feature):
            if dep not in by_name:
                raise UnknownDependencyError(feature.name, dep)
            edges.append((dep, feature.name))

    order = toposort([f.name for f in by_last], edges)

    only = {f.name for f in parsed if f.has_tag(TAG_ONLY)}
    result: list[SkippableFeature] = []
    for name in order:
        feature = by_name[name]
        dep_names = {before for before, after in edges if after == name}
        depends_on = tuple(by_name[n] for n in order if n in dep_names)
        skip = feature.has_tag(TAG_SKIP) or bool(only and name not in only)
        result.append(
            SkippableFeature(
                name=feature.name,
                children=feature.children,
                tags=feature.tags,
                uri=feature.uri,
                skip=skip,
                depends_on=depends_on,
            )
        )
    logger.debug("feature order: %s", [f.name for f in result])
    return result


def from_directory(directory: str | Path) -> list[SkippableFeature]:
    root = Path(directory).expanduser().resolve()
    files = sorted(root.glob("*.feature")) if root.is_dir() else []
    features = parse_features((str(p), p.read_text(encoding="utf-8")) for p in files)
    if not features:
        raise NoFeaturesFoundError(str(root))
    return features
