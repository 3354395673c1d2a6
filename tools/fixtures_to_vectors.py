#!/usr/bin/env python3
"""Convert spec fixtures into client-consumable vectors.

Every call case gains its wire hex, numeric error code and post-state
digest, and is written as a YAML suite that the conformance harness can
replay. Vector groups (`test_vectors`) are mirrored as-is.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional

import yaml

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT / "tools"))

from escrow_spec.encoding import encode_call  # noqa: E402
from escrow_spec.errors import EngineError, ErrorCode  # noqa: E402
from escrow_spec.state_digest import compute_state_digest  # noqa: E402
from fixtures_io import call_from_json  # noqa: E402

MAPPING = {
    "calls": "execution/calls",
    "blocks": "execution/blocks",
    "models": "state/models",
    "accounts.json": "accounts",
}


def write_vectors(path: Path, data: dict[str, Any]) -> None:
    # Keep case order; u128 values stay plain integers.
    path.write_text(yaml.safe_dump(data, sort_keys=False, width=4096, allow_unicode=True))


def map_dest(rel: Path) -> Path:
    if not rel.parts:
        return Path("unmapped")
    mapped = MAPPING.get(rel.parts[0])
    if not mapped:
        return Path("unmapped") / rel
    return Path(mapped) / Path(*rel.parts[1:])


def map_error_code(name: Optional[str]) -> int:
    if not name:
        return int(ErrorCode.SUCCESS)
    try:
        return int(ErrorCode[name])
    except KeyError:
        return int(ErrorCode.UNKNOWN)


def _wire_hex(call: dict[str, Any]) -> str:
    if call.get("wire_hex"):
        return call["wire_hex"]
    try:
        return encode_call(call_from_json(call)).hex()
    except EngineError:
        return ""


def _call_vector(case: dict[str, Any]) -> dict[str, Any]:
    expected = case.get("expected", {})
    post_state = expected.get("post_state")
    wire_hex = _wire_hex(case["call"])
    vec: dict[str, Any] = {
        "name": case.get("name", ""),
        "description": case.get("description", ""),
        "pre_state": case.get("pre_state"),
    }
    if not wire_hex or case.get("runnable") is False:
        vec["runnable"] = False
    vec.update({
        "input": {"kind": "call", "wire_hex": wire_hex, "call": case["call"]},
        "expected": {
            "success": bool(expected.get("ok", False)),
            "error_code": map_error_code(expected.get("error")),
            "value": expected.get("value"),
            "state_digest": compute_state_digest(post_state) if post_state else "",
            "post_state": post_state,
        },
    })
    return vec


def _block_vector(case: dict[str, Any]) -> dict[str, Any]:
    expected = case.get("expected", {})
    post_state = expected.get("post_state")
    return {
        "name": case.get("name", ""),
        "description": case.get("description", ""),
        "pre_state": case.get("pre_state"),
        "input": {
            "kind": "block",
            "wire_hex": [_wire_hex(c) for c in case["calls"]],
            "calls": case["calls"],
        },
        "expected": {
            "receipts": [
                {"success": r["ok"], "error_code": map_error_code(r.get("error"))}
                for r in expected.get("receipts", [])
            ],
            "state_digest": compute_state_digest(post_state) if post_state else "",
            "post_state": post_state,
        },
    }


def convert_file(path: Path) -> dict[str, Any]:
    data = json.loads(path.read_text())
    if isinstance(data, dict) and isinstance(data.get("test_vectors"), list):
        return data

    vectors_out = []
    for case in data.get("cases", []):
        if "call" in case:
            vectors_out.append(_call_vector(case))
        elif "calls" in case:
            vectors_out.append(_block_vector(case))
    return {"test_vectors": vectors_out}


def main() -> None:
    parser = argparse.ArgumentParser(description="Convert fixtures to vectors")
    parser.add_argument("--fixtures", default=str(ROOT / "fixtures"))
    parser.add_argument("--vectors", default=str(ROOT / "vectors"))
    args = parser.parse_args()

    fixtures = Path(args.fixtures).resolve()
    vectors = Path(args.vectors).resolve()
    if not fixtures.exists():
        raise SystemExit(f"fixtures dir not found: {fixtures}")
    vectors.mkdir(parents=True, exist_ok=True)

    count = 0
    for path in sorted(fixtures.rglob("*.json")):
        rel = path.relative_to(fixtures)
        dest = (vectors / map_dest(rel)).with_suffix(".yaml")
        dest.parent.mkdir(parents=True, exist_ok=True)
        write_vectors(dest, convert_file(path))
        count += 1

    print(f"Written {count} vector files into {vectors}")


if __name__ == "__main__":
    main()
