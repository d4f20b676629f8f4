from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Any, Iterator

from gherkin.errors import ParserError
from gherkin.parser import Parser

from featurerunner.core.error_types import FeatureParseError

BACKGROUND = "Background"
SCENARIO = "Scenario"
SCENARIO_OUTLINE = "ScenarioOutline"

_OUTLINE_PLACEHOLDER_RE = re.compile(r"<([^<>]+)>")


@dataclass(frozen=True)
class DocString:
    content: str
    media_type: str | None = None


@dataclass(frozen=True)
class DataTable:
    rows: tuple[tuple[str, ...], ...]


@dataclass(frozen=True)
class Step:
    text: str
    keyword: str = "Given "
    argument: DocString | DataTable | None = None

    @property
    def doc_string(self) -> str | None:
        return self.argument.content if isinstance(self.argument, DocString) else None


@dataclass(frozen=True)
class Examples:
    header: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]
    name: str = ""
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class Scenario:
    kind: str
    name: str
    steps: tuple[Step, ...]
    keyword: str = "Scenario"
    tags: tuple[str, ...] = ()
    examples: tuple[Examples, ...] = ()

    @property
    def is_background(self) -> bool:
        return self.kind == BACKGROUND

    @property
    def is_outline(self) -> bool:
        return self.kind == SCENARIO_OUTLINE

    def expand(self) -> Iterator[Scenario]:
        """Yield the concrete scenarios this child stands for.

        Backgrounds and plain scenarios yield themselves. An outline yields one
        scenario per example row, in table order, with every `<column>` token
        replaced by the row's cell value.
        """
        if not self.is_outline:
            yield self
            return
        for examples in self.examples:
            tags = _union(self.tags, examples.tags)
            for row in examples.rows:
                values = dict(zip(examples.header, row))
                yield Scenario(
                    kind=SCENARIO,
                    name=substitute_outline(self.name, values),
                    steps=tuple(_substitute_step(step, values) for step in self.steps),
                    keyword=self.keyword,
                    tags=tags,
                )


@dataclass(frozen=True)
class Feature:
    name: str
    children: tuple[Scenario, ...]
    tags: tuple[str, ...] = ()
    uri: str | None = None

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    @property
    def background(self) -> Scenario | None:
        return next((child for child in self.children if child.is_background), None)

    def scenarios(self) -> list[Scenario]:
        """Children in document order with outlines expanded."""
        out: list[Scenario] = []
        for child in self.children:
            out.extend(child.expand())
        return out


@dataclass(frozen=True)
class SkippableFeature(Feature):
    skip: bool = False
    depends_on: tuple[Feature, ...] = field(default=(), compare=False, repr=False)


def substitute_outline(text: str, values: dict[str, str]) -> str:
    return _OUTLINE_PLACEHOLDER_RE.sub(lambda m: values.get(m.group(1), m.group(0)), text)


def _substitute_step(step: Step, values: dict[str, str]) -> Step:
    argument = step.argument
    if isinstance(argument, DocString):
        argument = replace(argument, content=substitute_outline(argument.content, values))
    elif isinstance(argument, DataTable):
        argument = DataTable(
            rows=tuple(tuple(substitute_outline(cell, values) for cell in row) for row in argument.rows)
        )
    return replace(step, text=substitute_outline(step.text, values), argument=argument)


def _union(first: tuple[str, ...], second: tuple[str, ...]) -> tuple[str, ...]:
    return first + tuple(tag for tag in second if tag not in first)


# ---- gherkin AST conversion ----
def _tags(node: dict[str, Any]) -> tuple[str, ...]:
    return tuple(tag["name"] for tag in node.get("tags") or [])


def _cells(row: dict[str, Any]) -> tuple[str, ...]:
    return tuple(cell["value"] for cell in row.get("cells") or [])


def _step(node: dict[str, Any]) -> Step:
    argument: DocString | DataTable | None = None
    if node.get("docString") is not None:
        doc = node["docString"]
        argument = DocString(content=doc["content"], media_type=doc.get("mediaType"))
    elif node.get("dataTable") is not None:
        argument = DataTable(rows=tuple(_cells(row) for row in node["dataTable"]["rows"]))
    return Step(text=node["text"], keyword=node.get("keyword", ""), argument=argument)


def _examples(node: dict[str, Any]) -> Examples:
    header = node.get("tableHeader")
    return Examples(
        header=_cells(header) if header else (),
        rows=tuple(_cells(row) for row in node.get("tableBody") or []),
        name=node.get("name", ""),
        tags=_tags(node),
    )


def _background(node: dict[str, Any]) -> Scenario:
    return Scenario(
        kind=BACKGROUND,
        name=node.get("name", ""),
        steps=tuple(_step(s) for s in node.get("steps") or []),
        keyword=node.get("keyword", "Background"),
    )


def _scenario(node: dict[str, Any]) -> Scenario:
    examples = tuple(_examples(e) for e in node.get("examples") or [])
    return Scenario(
        kind=SCENARIO_OUTLINE if examples else SCENARIO,
        name=node.get("name", ""),
        steps=tuple(_step(s) for s in node.get("steps") or []),
        keyword=node.get("keyword", "Scenario"),
        tags=_tags(node),
        examples=examples,
    )


def _children(nodes: list[dict[str, Any]]) -> list[Scenario]:
    children: list[Scenario] = []
    for node in nodes:
        if "background" in node:
            children.append(_background(node["background"]))
        elif "scenario" in node:
            children.append(_scenario(node["scenario"]))
        elif "rule" in node:
            children.extend(_children(node["rule"].get("children") or []))
    return children


def parse_feature(text: str, *, uri: str = "<memory>") -> Feature | None:
    """Parse one Gherkin document. Returns None when it holds no feature."""
    try:
        document = Parser().parse(text)
    except ParserError as exc:
        raise FeatureParseError(uri, str(exc)) from exc
    node = document.get("feature")
    if not node:
        return None
    return Feature(
        name=node["name"],
        children=tuple(_children(node.get("children") or [])),
        tags=_tags(node),
        uri=uri,
    )


@dataclass(frozen=True)
class InterpolatedStep:
    """A step with store placeholders resolved for one execution attempt."""

    step: Step
    interpolated_text: str
    interpolated_argument: str | None = None
    interpolated_table: tuple[tuple[str, ...], ...] | None = None

    @property
    def text(self) -> str:
        return self.step.text

    @property
    def argument(self) -> DocString | DataTable | None:
        return self.step.argument

    @classmethod
    def raw(cls, step: Step) -> InterpolatedStep:
        table = step.argument.rows if isinstance(step.argument, DataTable) else None
        return cls(
            step=step,
            interpolated_text=step.text,
            interpolated_argument=step.doc_string,
            interpolated_table=table,
        )
