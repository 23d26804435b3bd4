from __future__ import annotations

import json

from deckbridge.core.validate.schema_validate import load_schema, main, schema_path, validate_instance


def test_named_schemas_resolve():
    assert schema_path("ir").name == "ir.schema.json"
    assert load_schema("config")["type"] == "object"


def test_error_paths():
    errors = validate_instance(load_schema("ir"), {"deck": {"title": 1}, "slides": [{"id": ""}, 2]})
    assert errors == [
        "$['deck']['title']: 1 is not of type 'string'",
        "$['slides'][1]: 2 is not of type 'object'",
    ]


def test_main(tmp_path, capsys):
    good = tmp_path / "good.json"
    good.write_text(json.dumps({"slides": []}), encoding="utf-8")
    assert main(["--schema", "ir", "--instance", str(good)]) == 0
    assert capsys.readouterr().out.startswith("[OK]")

    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"deck": {}}), encoding="utf-8")
    assert main(["--schema", "ir", "--instance", str(bad)]) == 2
    out = capsys.readouterr().out
    assert out.startswith("[NG]")
    assert "- $: 'slides' is a required property" in out

    assert main(["--schema", "ir", "--instance", str(tmp_path / "none.json")]) == 2
    assert capsys.readouterr().out.startswith("[ERR] instance not found")
