from tests.integration._cli import FEATURES, run_cli


def test_lists_features_in_run_order():
    code, out = run_cli("features", "list", str(FEATURES / "required-order"))
    assert code == 0
    features = out["data"]["features"]
    assert [f["name"] for f in features] == ["First", "Second", "Last"]
    assert features[1]["depends_on"] == ["First"]
    assert features[2]["tags"] == ["@Last"]


def test_only_marks_the_rest_skipped():
    code, out = run_cli("features", "list", str(FEATURES / "only"))
    assert code == 0
    skip = {f["name"]: f["skip"] for f in out["data"]["features"]}
    assert skip == {"Not this one": True, "Only": False, "Skipped": True}


def test_cycle_is_an_error_envelope():
    code, out = run_cli("features", "list", str(FEATURES / "cyclic"))
    assert code == 1
    assert out["ok"] is False
    assert out["error"]["type"] == "CYCLIC_DEPENDENCY"
    assert set(out["error"]["details"]["cycle"]) == {"Alpha", "Beta"}


def test_empty_directory_is_an_error_envelope():
    code, out = run_cli("features", "list", str(FEATURES / "empty"))
    assert code == 1
    assert out["error"]["type"] == "NO_FEATURES"
