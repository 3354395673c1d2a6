"""Ledger accessor: native balances, transfers and block height.

The host ledger is an external collaborator; this module models only the
three primitives the contract consumes. Every call is atomic from the
contract's point of view.
"""

from __future__ import annotations

from blake3 import blake3

from .config import U128_MAX
from .errors import ErrorCode, EngineError
from .types import AccountState, ContractState

# The contract's own principal. Escrowed funds are its balance.
CONTRACT_ADDRESS = blake3(b"escrow-spec/contract").digest()


def balance(state: ContractState, principal: bytes) -> int:
    acct = state.accounts.get(principal)
    if acct is None:
        return 0
    return acct.balance


def current_height(state: ContractState) -> int:
    return state.global_state.block_height


def transfer(state: ContractState, amount: int, sender: bytes, recipient: bytes) -> None:
    """Move `amount` native units from `sender` to `recipient` in place."""
    if amount <= 0:
        raise EngineError(ErrorCode.INVALID_AMOUNT, "transfer amount must be > 0")
    if sender == recipient:
        raise EngineError(ErrorCode.SELF_OPERATION, "sender cannot be recipient")

    src = state.accounts.get(sender)
    if src is None or src.balance < amount:
        raise EngineError(ErrorCode.INSUFFICIENT_FUNDS, "insufficient balance")

    dst = state.accounts.get(recipient)
    if dst is None:
        dst = AccountState(address=recipient, balance=0)
        state.accounts[recipient] = dst
    if dst.balance + amount > U128_MAX:
        raise EngineError(ErrorCode.OVERFLOW, "recipient balance overflow")

    src.balance -= amount
    dst.balance += amount


def mint(state: ContractState, principal: bytes, amount: int) -> None:
    """Credit a genesis allocation (fixtures only)."""
    acct = state.accounts.get(principal)
    if acct is None:
        acct = AccountState(address=principal, balance=0)
        state.accounts[principal] = acct
    if acct.balance + amount > U128_MAX:
        raise EngineError(ErrorCode.OVERFLOW, "balance overflow")
    acct.balance += amount
