"""Dispute arbitration.

A dispute freezes an active entry and can be settled (refund to the
initiator, or release to the counterparty) only while the resolution
window is open. Expiry is evaluated against the current height on every
read; nothing runs in the background, so an unresolved dispute simply
stays frozen once the window closes.
"""

from __future__ import annotations

from copy import deepcopy
from typing import Any

from .. import custody
from ..auth import require_caller, require_resolver
from ..config import MAX_REASON_LEN
from ..encoding import unpack_args
from ..errors import ErrorCode, EngineError
from ..ledger import current_height
from ..types import ContractCall, ContractState, DisputeDetails, Entry, EntryStatus, Function
from .entries import load_entry


def window_closes_at(state: ContractState, entry: Entry) -> int:
    if entry.dispute is None:
        raise EngineError(ErrorCode.INVALID_STATE, f"entry {entry.id} has no dispute")
    return entry.dispute.initiated_at + state.settings.resolution_window


def dispute_open(state: ContractState, entry: Entry) -> bool:
    if entry.status != EntryStatus.DISPUTED or entry.dispute is None:
        return False
    return current_height(state) < window_closes_at(state, entry)


def is_dispute_active(state: ContractState, entry_id: int) -> bool:
    entry = state.entries.get(entry_id)
    if entry is None:
        return False
    return dispute_open(state, entry)


def verify(state: ContractState, call: ContractCall) -> None:
    args = unpack_args(call)
    fn = call.function
    if fn == Function.INITIATE_DISPUTE:
        _verify_initiate(state, call, *args)
    elif fn in (Function.RESOLVE_DISPUTE_REFUND, Function.RESOLVE_DISPUTE_RELEASE):
        _verify_resolve(state, call, *args)
    else:
        raise EngineError(ErrorCode.UNKNOWN_FUNCTION, f"unsupported dispute function: {fn}")


def apply(state: ContractState, call: ContractCall) -> tuple[ContractState, Any]:
    args = unpack_args(call)
    fn = call.function
    if fn == Function.INITIATE_DISPUTE:
        return _apply_initiate(state, call, *args)
    if fn == Function.RESOLVE_DISPUTE_REFUND:
        return _apply_resolve(state, call, *args, refund=True)
    if fn == Function.RESOLVE_DISPUTE_RELEASE:
        return _apply_resolve(state, call, *args, refund=False)
    raise EngineError(ErrorCode.UNKNOWN_FUNCTION, f"unsupported dispute function: {fn}")


# --- initiate-dispute ---

def _verify_initiate(state: ContractState, call: ContractCall, entry_id: int, reason: str) -> None:
    if not reason or len(reason) > MAX_REASON_LEN:
        raise EngineError(ErrorCode.INVALID_PAYLOAD, "invalid dispute reason")

    entry = load_entry(state, entry_id)
    require_caller(call, entry.initiator, "sender")
    if entry.status != EntryStatus.ACTIVE:
        raise EngineError(ErrorCode.INVALID_STATE, f"entry {entry_id} is {entry.status.name}")
    if entry.dispute is not None:
        raise EngineError(ErrorCode.INVALID_STATE, f"entry {entry_id} already disputed")


def _apply_initiate(
    state: ContractState, call: ContractCall, entry_id: int, reason: str
) -> tuple[ContractState, bool]:
    ns = deepcopy(state)
    entry = load_entry(ns, entry_id)
    entry.status = EntryStatus.DISPUTED
    entry.dispute = DisputeDetails(reason=reason, initiated_at=current_height(ns))
    return ns, True


# --- resolve-dispute-refund / resolve-dispute-release ---

def _verify_resolve(state: ContractState, call: ContractCall, entry_id: int) -> None:
    entry = load_entry(state, entry_id)
    require_resolver(state.settings, call, entry)
    if entry.status != EntryStatus.DISPUTED:
        raise EngineError(ErrorCode.INVALID_STATE, f"entry {entry_id} is not disputed")
    if not dispute_open(state, entry):
        raise EngineError(ErrorCode.DISPUTE_WINDOW_EXPIRED, f"dispute window for entry {entry_id} has closed")


def _apply_resolve(
    state: ContractState, call: ContractCall, entry_id: int, *, refund: bool
) -> tuple[ContractState, bool]:
    ns = deepcopy(state)
    entry = load_entry(ns, entry_id)
    if refund:
        custody.refund(ns, entry)
    else:
        custody.release(ns, entry)
    return ns, True
