from __future__ import annotations

import json

import pytest

from deckbridge.apps.cli.main import main
from deckbridge.core.canvas.pptx_host import load_document
from deckbridge.core.sync.update import find_named_text


def _run(*argv: str) -> int:
    with pytest.raises(SystemExit) as exit_info:
        main(list(argv))
    return exit_info.value.code


@pytest.fixture
def ir_file(tmp_path, make_slide):
    path = tmp_path / "deck.json"
    slides = [
        make_slide("a", "bullets", headline="Agenda", bullets=["One", "Two"]),
        make_slide("b", "section", headline="Part two"),
        make_slide("c", "quote", quote="Ship it", attribution="Eng Lead"),
    ]
    path.write_text(json.dumps({"deck": {"title": "CLI"}, "slides": slides}), encoding="utf-8")
    return path


@pytest.fixture
def applied(tmp_path, ir_file):
    doc = tmp_path / "deck.pptx"
    assert _run("apply", "--doc", str(doc), "--ir", str(ir_file)) == 0
    return doc


def test_validate(tmp_path, ir_file, capsys):
    assert _run("validate", "--ir", str(ir_file)) == 0
    assert "[OK] 3 slides" in capsys.readouterr().out

    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"slides": [{"id": "a", "archetype": "bullets", "content": {"headline": "H"}}]}), encoding="utf-8")
    assert _run("validate", "--ir", str(bad)) == 2
    assert "[NG] a.bullets: Missing required field: bullets" in capsys.readouterr().out

    assert _run("validate", "--ir", str(tmp_path / "missing.json")) == 2


def test_validate_strict_fails_on_warnings(tmp_path):
    path = tmp_path / "long.json"
    slide = {"id": "a", "archetype": "section", "content": {"headline": "one two three four five six"}}
    path.write_text(json.dumps({"slides": [slide]}), encoding="utf-8")
    assert _run("validate", "--ir", str(path)) == 0
    assert _run("validate", "--ir", str(path), "--strict") == 2


def test_apply_creates_then_updates(tmp_path, ir_file, applied, capsys):
    storage = tmp_path / "deck.deckbridge.json"
    assert storage.exists()
    assert len(load_document(applied).slide_nodes()) == 3

    result = tmp_path / "result.json"
    assert _run("apply", "--doc", str(applied), "--ir", str(ir_file), "--json", str(result)) == 0
    data = json.loads(result.read_text(encoding="utf-8"))
    assert (data["created"], data["updated"]) == (0, 3)
    assert len(load_document(applied).slide_nodes()) == 3
    assert "[OK] saved:" in capsys.readouterr().out


def test_apply_rejects_malformed_ir(tmp_path, capsys):
    ir = tmp_path / "bad.json"
    ir.write_text("{", encoding="utf-8")
    assert _run("apply", "--doc", str(tmp_path / "deck.pptx"), "--ir", str(ir)) == 2
    assert not (tmp_path / "deck.pptx").exists()
    assert "[NG] IR is not valid JSON" in capsys.readouterr().out


def test_export(tmp_path, applied):
    out = tmp_path / "pulled.json"
    assert _run("export", "--doc", str(applied), "--out", str(out)) == 0
    data = json.loads(out.read_text(encoding="utf-8"))
    assert [(s["id"], s["archetype"]) for s in data["slides"]] == [("a", "bullets"), ("b", "section"), ("c", "quote")]
    assert data["slides"][0]["content"] == {"headline": "Agenda", "bullets": ["One", "Two"]}


def test_export_needs_a_document(tmp_path):
    assert _run("export", "--doc", str(tmp_path / "nope.pptx")) == 2


def test_patch(tmp_path, applied):
    root = load_document(applied).slide_nodes()[0]
    headline = find_named_text(root, "headline")
    changes = tmp_path / "changes.json"
    changes.write_text(json.dumps({"changes": [{"target": headline.id, "text": "Plan"}]}), encoding="utf-8")

    assert _run("patch", "--doc", str(applied), "--changes", str(changes)) == 0
    assert find_named_text(load_document(applied).slide_nodes()[0], "headline").characters == "Plan"

    changes.write_text(json.dumps([{"target": "9999", "text": "x"}]), encoding="utf-8")
    assert _run("patch", "--doc", str(applied), "--changes", str(changes)) == 2

    changes.write_text(json.dumps([{"target": headline.id, "action": "move"}]), encoding="utf-8")
    assert _run("patch", "--doc", str(applied), "--changes", str(changes)) == 2


def test_reorder_and_delete(tmp_path, applied):
    a, b, c = (n.id for n in load_document(applied).slide_nodes())

    assert _run("reorder", "--doc", str(applied), c) == 0
    assert [n.id for n in load_document(applied).slide_nodes()] == [c, a, b]
    assert _run("reorder", "--doc", str(applied), "9999") == 2

    assert _run("delete", "--doc", str(applied), b) == 0
    assert [n.id for n in load_document(applied).slide_nodes()] == [c, a]
    mapping = json.loads((tmp_path / "deck.deckbridge.json").read_text(encoding="utf-8"))
    (entries,) = mapping.values()
    assert sorted(entries) == ["a", "c"]

    assert _run("delete", "--doc", str(applied), "9999") == 2


def test_config_errors_are_reported(tmp_path, ir_file, capsys):
    cfg = tmp_path / "sync.json"
    cfg.write_text(json.dumps({"colour": "blue"}), encoding="utf-8")
    assert _run("apply", "--doc", str(tmp_path / "deck.pptx"), "--ir", str(ir_file), "--config", str(cfg)) == 2
    assert "configuration does not conform" in capsys.readouterr().out


def test_paths(tmp_path, capsys):
    assert _run("paths", "--doc", str(tmp_path / "deck.pptx")) == 0
    out = capsys.readouterr().out
    assert "ir.schema.json" in out
    assert "deck.deckbridge.json" in out
