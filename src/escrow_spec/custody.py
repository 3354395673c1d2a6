"""Escrow transfer engine.

Custody is never tracked separately from the entry: the entry status is the
only record of whether its funds are still held. Each entry moves into
custody once (at creation) and out once (release or refund), and the status
precondition is checked before any transfer so a settled entry can never
pay out again.
"""

from __future__ import annotations

from .errors import ErrorCode, EngineError
from .ledger import CONTRACT_ADDRESS, balance, current_height, transfer
from .types import ContractState, Entry, EntryStatus

HELD_STATUSES = frozenset({EntryStatus.ACTIVE, EntryStatus.DISPUTED})
RELEASABLE_STATUSES = HELD_STATUSES
REFUNDABLE_STATUSES = frozenset({EntryStatus.DISPUTED})


def held_amount(entry: Entry) -> int:
    return entry.amount if entry.status in HELD_STATUSES else 0


def lock(state: ContractState, entry: Entry) -> None:
    """Move a new entry's amount from its initiator into custody."""
    if entry.id in state.entries:
        raise EngineError(ErrorCode.INTERNAL_ERROR, f"entry {entry.id} already funded")
    transfer(state, entry.amount, entry.initiator, CONTRACT_ADDRESS)


def release(state: ContractState, entry: Entry) -> None:
    """Pay the custody out to the counterparty and complete the entry."""
    if entry.status not in RELEASABLE_STATUSES:
        raise EngineError(ErrorCode.INVALID_STATE, f"entry {entry.id} is {entry.status.name}")
    transfer(state, entry.amount, CONTRACT_ADDRESS, entry.counterparty)
    entry.status = EntryStatus.COMPLETED
    entry.confirmed_at = current_height(state)


def refund(state: ContractState, entry: Entry) -> None:
    """Return the custody to the initiator and close the entry."""
    if entry.status not in REFUNDABLE_STATUSES:
        raise EngineError(ErrorCode.INVALID_STATE, f"entry {entry.id} is {entry.status.name}")
    transfer(state, entry.amount, CONTRACT_ADDRESS, entry.initiator)
    entry.status = EntryStatus.REFUNDED


def total_held(state: ContractState) -> int:
    return sum(held_amount(e) for e in state.entries.values())


def check_custody(state: ContractState) -> None:
    """Contract balance must match the sum of amounts held for open entries."""
    held = total_held(state)
    actual = balance(state, CONTRACT_ADDRESS)
    if held != actual:
        raise EngineError(
            ErrorCode.INTERNAL_ERROR,
            f"custody mismatch: entries hold {held}, contract balance is {actual}",
        )
