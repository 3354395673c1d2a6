"""Entry ledger: create and confirm escrow transactions."""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Optional

from .. import custody
from ..auth import require_caller, require_distinct
from ..config import MAX_DESCRIPTION_LEN
from ..encoding import unpack_args
from ..errors import ErrorCode, EngineError
from ..ledger import balance, current_height
from ..types import ContractCall, ContractState, Entry, EntryStatus, Function


def load_entry(state: ContractState, entry_id: int) -> Entry:
    entry = state.entries.get(entry_id)
    if entry is None:
        raise EngineError(ErrorCode.NOT_FOUND, f"entry {entry_id} not found")
    return entry


def get_entry(state: ContractState, entry_id: int) -> Optional[Entry]:
    return state.entries.get(entry_id)


def allocate_entry_id(state: ContractState) -> int:
    entry_id = state.next_entry_id
    state.next_entry_id += 1
    return entry_id


def verify(state: ContractState, call: ContractCall) -> None:
    args = unpack_args(call)
    fn = call.function
    if fn == Function.CREATE_TRANSACTION:
        _verify_create(state, call, *args)
    elif fn == Function.CONFIRM_TRANSACTION:
        _verify_confirm(state, call, *args)
    else:
        raise EngineError(ErrorCode.UNKNOWN_FUNCTION, f"unsupported entry function: {fn}")


def apply(state: ContractState, call: ContractCall) -> tuple[ContractState, Any]:
    args = unpack_args(call)
    fn = call.function
    if fn == Function.CREATE_TRANSACTION:
        return _apply_create(state, call, *args)
    if fn == Function.CONFIRM_TRANSACTION:
        return _apply_confirm(state, call, *args)
    raise EngineError(ErrorCode.UNKNOWN_FUNCTION, f"unsupported entry function: {fn}")


# --- create-transaction ---

def _verify_create(
    state: ContractState, call: ContractCall, recipient: bytes, amount: int, description: str
) -> None:
    if len(description) > MAX_DESCRIPTION_LEN:
        raise EngineError(ErrorCode.INVALID_PAYLOAD, "description too long")
    if amount <= 0:
        raise EngineError(ErrorCode.INVALID_AMOUNT, "amount must be > 0")
    require_distinct(call.caller, recipient, "recipient")
    if balance(state, call.caller) < amount:
        raise EngineError(ErrorCode.INSUFFICIENT_FUNDS, "insufficient balance")


def _apply_create(
    state: ContractState, call: ContractCall, recipient: bytes, amount: int, description: str
) -> tuple[ContractState, int]:
    ns = deepcopy(state)
    entry = Entry(
        id=ns.next_entry_id,
        initiator=call.caller,
        counterparty=recipient,
        amount=amount,
        description=description,
        created_at=current_height(ns),
        status=EntryStatus.ACTIVE,
    )
    custody.lock(ns, entry)
    ns.entries[allocate_entry_id(ns)] = entry
    return ns, entry.id


# --- confirm-transaction ---

def _verify_confirm(state: ContractState, call: ContractCall, entry_id: int) -> None:
    entry = load_entry(state, entry_id)
    require_caller(call, entry.counterparty, "recipient")
    if entry.status != EntryStatus.ACTIVE:
        raise EngineError(ErrorCode.INVALID_STATE, f"entry {entry_id} is {entry.status.name}")


def _apply_confirm(state: ContractState, call: ContractCall, entry_id: int) -> tuple[ContractState, bool]:
    ns = deepcopy(state)
    entry = load_entry(ns, entry_id)
    custody.release(ns, entry)
    return ns, True
