"""Consume fixtures and validate against the Python specs."""

from __future__ import annotations

import json
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT / "tools"))

from escrow_spec.encoding import decode_call, encode_call  # noqa: E402
from escrow_spec.state_transition import apply_call, mine_block  # noqa: E402
from fixtures_io import (  # noqa: E402
    call_from_json,
    result_to_json,
    state_from_json,
    state_to_json,
)


def _check_call_case(case: dict) -> list[str]:
    pre_state = state_from_json(case["pre_state"])
    call = call_from_json(case["call"])

    wire_hex = case["call"].get("wire_hex")
    if wire_hex and encode_call(call).hex() != wire_hex:
        return [f"{case['name']}: wire_mismatch"]
    if wire_hex and decode_call(bytes.fromhex(wire_hex)) != call:
        return [f"{case['name']}: decode_mismatch"]

    post_state, result = apply_call(pre_state, call)
    expected = case["expected"]
    actual = result_to_json(result)
    if actual["ok"] != expected["ok"]:
        return [f"{case['name']}: ok_mismatch"]
    if actual["error"] != expected["error"]:
        return [f"{case['name']}: error_mismatch"]
    if state_to_json(post_state) != expected["post_state"]:
        return [f"{case['name']}: post_state_mismatch"]
    return []


def _check_block_case(case: dict) -> list[str]:
    pre_state = state_from_json(case["pre_state"])
    calls = [call_from_json(c) for c in case["calls"]]
    post_state, receipts = mine_block(pre_state, calls)

    expected = case["expected"]
    actual = [result_to_json(r) for r in receipts]
    if [(r["ok"], r["error"]) for r in actual] != [
        (r["ok"], r["error"]) for r in expected["receipts"]
    ]:
        return [f"{case['name']}: receipts_mismatch"]
    if state_to_json(post_state) != expected["post_state"]:
        return [f"{case['name']}: post_state_mismatch"]
    return []


def check_file(path: Path) -> list[str]:
    failures: list[str] = []
    data = json.loads(path.read_text())
    for case in data.get("cases", []):
        if "call" in case:
            failures.extend(_check_call_case(case))
        elif "calls" in case:
            failures.extend(_check_block_case(case))
    return failures


def main() -> None:
    fixtures = ROOT / "fixtures"
    if not fixtures.exists():
        raise SystemExit(f"fixtures dir not found: {fixtures} (run tools/fill.py first)")

    failures: list[str] = []
    count = 0
    for path in sorted(fixtures.rglob("*.json")):
        failures.extend(check_file(path))
        count += 1

    if failures:
        for f in failures:
            print("FAIL", f)
        raise SystemExit(1)

    print(f"All fixtures passed ({count} files)")


if __name__ == "__main__":
    main()
