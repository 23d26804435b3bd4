from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator


def schema_dir() -> Path:
    # .../src/deckbridge/core/validate/schema_validate.py -> .../src/deckbridge/core/schemas
    return Path(__file__).resolve().parents[1] / "schemas"


def schema_path(name: str) -> Path:
    return schema_dir() / f"{name}.schema.json"


def load_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def load_schema(name: str) -> dict:
    return load_json(schema_path(name))


def format_error_path(path: Any) -> str:
    out = "$"
    for p in path:
        out += f"[{p!r}]" if isinstance(p, str) else f"[{p}]"
    return out


def validate_instance(schema: dict, instance: Any) -> list[str]:
    """Validate an in-memory instance.

    Returns "<jsonpath>: <message>" strings, empty when the instance conforms.
    """
    v = Draft202012Validator(schema)
    errors = sorted(v.iter_errors(instance), key=lambda e: list(e.path))
    return [f"{format_error_path(e.path)}: {e.message}" for e in errors]


def validate_json_against_schema(schema_file: Path, instance_file: Path) -> list[str]:
    if not schema_file.exists():
        return [f"[ERR] schema not found: {schema_file}"]
    if not instance_file.exists():
        return [f"[ERR] instance not found: {instance_file}"]
    try:
        inst = load_json(instance_file)
    except json.JSONDecodeError as e:
        return [f"[ERR] instance is not valid JSON: {instance_file} ({e})"]
    return [f"- {m}" for m in validate_instance(load_json(schema_file), inst)]


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(prog="schema_validate")
    ap.add_argument("--schema", required=True, help="schema name (ir, config) or path to *.schema.json")
    ap.add_argument("--instance", required=True, help="path to json to validate")
    args = ap.parse_args(argv)

    schema_file = Path(args.schema)
    if not schema_file.suffix:
        schema_file = schema_path(args.schema)
    instance_file = Path(args.instance)

    errors = validate_json_against_schema(schema_file, instance_file)
    if not errors:
        print(f"[OK] {instance_file} conforms to {schema_file}")
        return 0
    if errors[0].startswith("[ERR]"):
        print(errors[0])
        return 2
    print(f"[NG] {instance_file} does NOT conform to {schema_file}")
    for err in errors:
        print(err)
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
