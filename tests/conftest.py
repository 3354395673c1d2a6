"""Pytest hooks to generate fixtures (EEST-style)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import pytest

from escrow_spec.encoding import encode_call
from escrow_spec.errors import EngineError
from escrow_spec.state_transition import CallResult, apply_call, mine_block
from escrow_spec.types import ContractCall, ContractState
from tools.fixtures_io import call_to_json, result_to_json, state_to_json

_CALL_CASES: dict[str, list[dict[str, Any]]] = {}
_VECTOR_CASES: dict[str, list[dict[str, Any]]] = {}


def _try_wire_hex(call: ContractCall) -> str:
    """Encode a call to wire hex, or return "" for calls that cannot be encoded."""
    try:
        return encode_call(call).hex()
    except EngineError:
        return ""


def _call_json(call: ContractCall) -> dict[str, Any]:
    out = call_to_json(call)
    out["wire_hex"] = _try_wire_hex(call)
    return out


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--output",
        action="store",
        default=None,
        help="Output directory for generated fixtures",
    )


@pytest.fixture
def call_test_group() -> Callable[
    [str, str, ContractState, ContractCall], tuple[ContractState, CallResult]
]:
    """Apply a call, collect it as a fixture case and hand back the outcome."""

    def _call_test_group(
        rel_path: str, name: str, pre_state: ContractState, call: ContractCall
    ) -> tuple[ContractState, CallResult]:
        pre_json = state_to_json(pre_state)
        post_state, result = apply_call(pre_state, call)
        _CALL_CASES.setdefault(rel_path, []).append(
            {
                "name": name,
                "pre_state": pre_json,
                "call": _call_json(call),
                "expected": {
                    **result_to_json(result),
                    "post_state": state_to_json(post_state),
                },
            }
        )
        return post_state, result

    return _call_test_group


@pytest.fixture
def block_test_group() -> Callable[
    [str, str, ContractState, list[ContractCall]], tuple[ContractState, list[CallResult]]
]:
    """Mine a block of calls and collect it as a fixture case."""

    def _block_test_group(
        rel_path: str, name: str, pre_state: ContractState, calls: list[ContractCall]
    ) -> tuple[ContractState, list[CallResult]]:
        pre_json = state_to_json(pre_state)
        post_state, receipts = mine_block(pre_state, calls)
        _CALL_CASES.setdefault(rel_path, []).append(
            {
                "name": name,
                "pre_state": pre_json,
                "calls": [_call_json(c) for c in calls],
                "expected": {
                    "receipts": [result_to_json(r) for r in receipts],
                    "post_state": state_to_json(post_state),
                },
            }
        )
        return post_state, receipts

    return _block_test_group


@pytest.fixture
def vector_test_group() -> Callable[[str, dict[str, Any]], None]:
    """Collect pre-built test_vectors under a specific fixture path."""

    def _vector_test_group(rel_path: str, vector: dict[str, Any]) -> None:
        _VECTOR_CASES.setdefault(rel_path, []).append(vector)

    return _vector_test_group


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    output_dir = session.config.getoption("--output")
    if not output_dir:
        return

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    for rel_path, cases in _CALL_CASES.items():
        if not cases:
            continue
        target = out / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps({"cases": cases}, indent=2))

    for rel_path, vectors in _VECTOR_CASES.items():
        if not vectors:
            continue
        target = out / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps({"test_vectors": vectors}, indent=2))
