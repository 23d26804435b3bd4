from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from deckbridge.core.canvas.nodes import Document
from deckbridge.core.canvas.pptx_host import load_document, save_document
from deckbridge.core.canvas.storage import ClientStorage
from deckbridge.core.classify.export import export_deck
from deckbridge.core.config import SyncConfig, load_config
from deckbridge.core.errors import DeckBridgeError
from deckbridge.core.ir import parse_ir, validate_deck
from deckbridge.core.sync.apply import APPLY_MODES, apply_ir
from deckbridge.core.sync.slides import delete_slides, reorder_slides
from deckbridge.core.sync.update import PatchChange, apply_patches
from deckbridge.core.validate.schema_validate import schema_dir


def _load_json(path: Path) -> object:
    return json.loads(path.read_text(encoding="utf-8"))


def _print_notice(message: str, error: bool = False) -> None:
    print(f"[NG] {message}" if error else f"[OK] {message}")


def _print_details(details: list[str], limit: int = 30) -> None:
    for m in details[:limit]:
        print(f"  - {m}")
    if len(details) > limit:
        print(f"  ... ({len(details)} errors)")


def _config(args: argparse.Namespace) -> SyncConfig:
    return load_config(getattr(args, "config", None))


def _storage_path(args: argparse.Namespace, cfg: SyncConfig) -> Path:
    if getattr(args, "storage", None):
        return Path(args.storage).resolve()
    if cfg.storage_path:
        return Path(cfg.storage_path).resolve()
    doc = Path(args.doc).resolve()
    return doc.with_name(f"{doc.stem}.deckbridge.json")


def _open_document(args: argparse.Namespace, cfg: SyncConfig, create: bool = False) -> Document | None:
    doc_path = Path(args.doc).resolve()
    editor_type = getattr(args, "editor_type", None)
    if doc_path.exists():
        return load_document(doc_path, editor_type=editor_type, available_fonts=cfg.fonts.available)
    if create:
        return Document(editor_type or "slides", available_fonts=cfg.fonts.available)
    print(f"[NG] document not found: {doc_path}")
    return None


def _save(document: Document, args: argparse.Namespace) -> Path:
    out = Path(getattr(args, "out", None) or args.doc).resolve()
    for w in save_document(document, out):
        print(f"[WARN] {w}")
    print(f"[OK] saved: {out}")
    return out


def _write_json(data: Any, out: str | None) -> None:
    text = json.dumps(data, ensure_ascii=False, indent=2)
    if not out:
        print(text)
        return
    p = Path(out).resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text + "\n", encoding="utf-8")
    print(f"[OK] wrote: {p}")


def cmd_paths(args: argparse.Namespace) -> int:
    sd = schema_dir()
    print(f"schemas: {sd}")
    for p in sorted(sd.glob("*.schema.json")):
        print(f"  - {p.name}")
    if getattr(args, "doc", None):
        cfg = _config(args)
        print(f"storage: {_storage_path(args, cfg)}")
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    ir_path = Path(args.ir).resolve()
    if not ir_path.exists():
        print(f"[NG] IR not found: {ir_path}")
        return 2

    try:
        doc = parse_ir(ir_path.read_text(encoding="utf-8"))
    except DeckBridgeError as e:
        print(f"[NG] {e}")
        _print_details(getattr(e, "details", []))
        return 2

    warnings = validate_deck(doc)
    errors = [w for w in warnings if w.severity == "error"]
    for w in warnings:
        tag = "[NG]" if w.severity == "error" else "[WARN]"
        print(f"{tag} {w.slide_id}.{w.field}: {w.message}")
    if errors or (args.strict and warnings):
        return 2
    print(f"[OK] {len(doc.slides)} slides")
    return 0


def cmd_apply(args: argparse.Namespace) -> int:
    ir_path = Path(args.ir).resolve()
    if not ir_path.exists():
        print(f"[NG] IR not found: {ir_path}")
        return 2

    try:
        cfg = _config(args)
        document = _open_document(args, cfg, create=True)
        if document is None:
            return 2
        storage = ClientStorage(_storage_path(args, cfg))
        result = apply_ir(
            document,
            ir_path.read_text(encoding="utf-8"),
            storage,
            cfg,
            mode=args.mode,
            start_index=args.start_index,
            notify=_print_notice,
        )
    except DeckBridgeError as e:
        print(f"[NG] {e}")
        _print_details(getattr(e, "details", []))
        return 2

    _save(document, args)
    if args.json:
        _write_json(result.to_dict(), args.json)
    return 2 if result.failed else 0


def cmd_export(args: argparse.Namespace) -> int:
    try:
        cfg = _config(args)
        document = _open_document(args, cfg)
        if document is None:
            return 2
        storage = ClientStorage(_storage_path(args, cfg))
        deck = export_deck(document, storage, cfg, notify=_print_notice)
    except DeckBridgeError as e:
        print(f"[NG] {e}")
        return 2

    _write_json(deck.to_dict(), args.out)
    return 0


def _read_changes(path: Path) -> list[PatchChange]:
    data = _load_json(path)
    if isinstance(data, dict):
        data = data.get("changes")
    if not isinstance(data, list):
        raise TypeError(f"expected a list of changes (or {{\"changes\": [...]}}) at {path}")
    return [PatchChange.from_dict(c) for c in data]


def cmd_patch(args: argparse.Namespace) -> int:
    changes_path = Path(args.changes).resolve()
    if not changes_path.exists():
        print(f"[NG] changes not found: {changes_path}")
        return 2

    try:
        cfg = _config(args)
        changes = _read_changes(changes_path)
        document = _open_document(args, cfg)
        if document is None:
            return 2
        result = apply_patches(document, changes, cfg.fonts.fallbacks, notify=_print_notice)
    except (DeckBridgeError, TypeError, json.JSONDecodeError) as e:
        print(f"[NG] {e}")
        return 2

    _save(document, args)
    if args.json:
        _write_json(result.to_dict(), args.json)
    return 2 if result.failed else 0


def cmd_delete(args: argparse.Namespace) -> int:
    try:
        cfg = _config(args)
        document = _open_document(args, cfg)
        if document is None:
            return 2
        storage = ClientStorage(_storage_path(args, cfg))
        result = delete_slides(document, args.ids, storage, cfg.mapping_key, notify=_print_notice)
    except DeckBridgeError as e:
        print(f"[NG] {e}")
        return 2

    _save(document, args)
    return 2 if result.failed else 0


def cmd_reorder(args: argparse.Namespace) -> int:
    try:
        cfg = _config(args)
        document = _open_document(args, cfg)
        if document is None:
            return 2
        result = reorder_slides(document, args.ids, notify=_print_notice)
    except DeckBridgeError as e:
        print(f"[NG] {e}")
        return 2

    if not result.success:
        return 2
    _save(document, args)
    return 0


def _add_doc_args(p: argparse.ArgumentParser, out: bool = True) -> None:
    p.add_argument("--doc", required=True, help="presentation (.pptx)")
    p.add_argument("--storage", help="client storage json (default: <doc>.deckbridge.json)")
    p.add_argument("--config", help="config json (see config.schema.json)")
    p.add_argument("--editor-type", choices=("slides", "design"), help="surface to open the document as")
    if out:
        p.add_argument("--out", help="output .pptx path (default: overwrite --doc)")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="deckbridge")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_paths = sub.add_parser("paths", help="show schema and storage paths")
    p_paths.add_argument("--doc", help="presentation whose storage path to show")
    p_paths.add_argument("--storage")
    p_paths.add_argument("--config")
    p_paths.set_defaults(func=cmd_paths)

    p_val = sub.add_parser("validate", help="check an IR file (envelope + content rules)")
    p_val.add_argument("--ir", required=True, help="IR json path")
    p_val.add_argument("--strict", action="store_true", help="treat warnings as failures")
    p_val.set_defaults(func=cmd_validate)

    p_apply = sub.add_parser("apply", help="apply an IR file to a presentation")
    _add_doc_args(p_apply)
    p_apply.add_argument("--ir", required=True, help="IR json path")
    p_apply.add_argument("--mode", choices=APPLY_MODES, default="append")
    p_apply.add_argument("--start-index", type=int, help="insert created slides from this position (slides surface)")
    p_apply.add_argument("--json", help="write the apply result as json to this path")
    p_apply.set_defaults(func=cmd_apply)

    p_exp = sub.add_parser("export", help="read the presentation back into IR")
    _add_doc_args(p_exp, out=False)
    p_exp.add_argument("--out", help="output IR json path (default: stdout)")
    p_exp.set_defaults(func=cmd_export)

    p_patch = sub.add_parser("patch", help="apply targeted text changes by node id")
    _add_doc_args(p_patch)
    p_patch.add_argument("--changes", required=True, help='json list of {"target", "text", "action", "position"}')
    p_patch.add_argument("--json", help="write the patch result as json to this path")
    p_patch.set_defaults(func=cmd_patch)

    p_del = sub.add_parser("delete", help="delete slides by node id")
    _add_doc_args(p_del)
    p_del.add_argument("ids", nargs="+", help="slide node ids")
    p_del.set_defaults(func=cmd_delete)

    p_ord = sub.add_parser("reorder", help="move slides, in the given order, to the front")
    _add_doc_args(p_ord)
    p_ord.add_argument("ids", nargs="+", help="slide node ids")
    p_ord.set_defaults(func=cmd_reorder)

    args = parser.parse_args(argv)
    raise SystemExit(args.func(args))


if __name__ == "__main__":
    main()
