import pytest

from featurerunner.core.error_types import ErrorKind, StoreKeyUndefinedError
from featurerunner.core.interpolate import interpolate, merged


@pytest.mark.parametrize(
    ("template", "expected"),
    [
        ("{foo}", "bar"),
        ('{\n  "principal": "{foo:bar}"\n}', '{\n  "principal": "baz"\n}'),
        ("{foo} and {foo}", "bar and bar"),
        ("no placeholders", "no placeholders"),
    ],
)
def test_replaces_placeholders(template, expected):
    assert interpolate(template, {"foo": "bar", "foo:bar": "baz"}) == expected


def test_namespaced_keys():
    data = {"cognito:alice:AccessKeyId": "AKIA"}
    assert interpolate("key={cognito:alice:AccessKeyId}", data) == "key=AKIA"


def test_non_string_values_are_rendered():
    assert interpolate("{n} items", {"n": 3}) == "3 items"


@pytest.mark.parametrize(
    ("value", "expected"),
    [(True, "true"), (None, "null"), (1.5, "1.5"), ({"a": [1, 2]}, '{"a": [1, 2]}'), ("plain", "plain")],
)
def test_values_render_as_json_unless_strings(value, expected):
    assert interpolate("{v}", {"v": value}) == expected


@pytest.mark.parametrize(
    "template",
    ["{foo}", '{\n  "principal": "{cognito:IdentityI}"\n}', '{\n  "principal": "{foo}"\n}'],
)
def test_unresolved_placeholders_raise(template):
    with pytest.raises(StoreKeyUndefinedError):
        interpolate(template, {})


def test_error_lists_every_missing_key_and_the_data():
    with pytest.raises(StoreKeyUndefinedError) as info:
        interpolate("{a} {b} {a} {present}", {"present": 1})
    assert info.value.keys == ["a", "b"]
    assert info.value.data == {"present": 1}
    assert info.value.kind is ErrorKind.STORE_KEY_UNDEFINED
    assert info.value.details() == {"keys": ["a", "b"], "available": ["present"]}


def test_store_shadows_world():
    data = merged({"endpoint": "world", "stage": "dev"}, {"endpoint": "store"})
    assert interpolate("{endpoint}/{stage}", data) == "store/dev"
