from pathlib import Path

from featurerunner.core.features import BACKGROUND, SCENARIO, DataTable, DocString, parse_feature

OUTLINE = (Path(__file__).resolve().parents[1] / "fixtures" / "features" / "outline" / "outline.feature").read_text(
    encoding="utf-8"
)


def test_parses_children_in_document_order():
    feature = parse_feature(
        "@Smoke\nFeature: F\n  Background:\n    Given bg\n  Scenario: one\n    Given a\n  Scenario: two\n    Given b\n"
    )
    assert feature is not None
    assert feature.tags == ("@Smoke",)
    assert [c.kind for c in feature.children] == [BACKGROUND, SCENARIO, SCENARIO]
    assert [c.name for c in feature.children[1:]] == ["one", "two"]
    assert feature.background is feature.children[0]


def test_empty_document_has_no_feature():
    assert parse_feature("# just a comment\n") is None


def test_step_arguments():
    feature = parse_feature(
        'Feature: F\n  Scenario: s\n    Given a doc\n      """\n      {"a": 1}\n      """\n'
        "    And a table\n      | k | v |\n      | 1 | 2 |\n"
    )
    assert feature is not None
    doc, table = feature.children[0].steps
    assert doc.argument == DocString(content='{"a": 1}')
    assert doc.doc_string == '{"a": 1}'
    assert table.argument == DataTable(rows=(("k", "v"), ("1", "2")))


def test_rules_are_flattened():
    feature = parse_feature(
        "Feature: F\n  Rule: r\n    Scenario: inside\n      Given x\n  Rule: r2\n    Scenario: also\n      Given y\n"
    )
    assert feature is not None
    assert [c.name for c in feature.children] == ["inside", "also"]


def test_outline_expands_one_scenario_per_row():
    feature = parse_feature(OUTLINE)
    assert feature is not None
    scenarios = feature.scenarios()
    assert [s.name for s in scenarios] == ["Greet Alice", "Greet Bob"]
    assert [s.steps[0].text for s in scenarios] == ['I greet "Alice"', 'I greet "Bob"']
    assert scenarios[1].steps[1].text == 'the greeting is stored as "Hello Bob"'
    assert scenarios[1].steps[1].doc_string == '{"greeting": "Hello Bob", "who": "Bob"}'
    assert all(s.kind == SCENARIO for s in scenarios)


def test_outline_tags_include_examples_tags():
    feature = parse_feature(
        "Feature: F\n  @Outer\n  Scenario Outline: o <x>\n    Given <x>\n"
        "    @Retry=failAfter:2\n    Examples:\n      | x |\n      | 1 |\n"
    )
    assert feature is not None
    (scenario,) = feature.scenarios()
    assert scenario.tags == ("@Outer", "@Retry=failAfter:2")
    assert scenario.steps[0].text == "1"


def test_unknown_outline_columns_are_left_alone():
    feature = parse_feature(
        "Feature: F\n  Scenario Outline: o\n    Given <x> and <y>\n    Examples:\n      | x |\n      | 1 |\n"
    )
    assert feature is not None
    assert feature.scenarios()[0].steps[0].text == "1 and <y>"
