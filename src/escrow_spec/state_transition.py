"""State transition entrypoints for the escrow engine."""

from __future__ import annotations

import logging
from copy import deepcopy
from dataclasses import replace
from typing import Any, Optional

from .config import PRINCIPAL_SIZE
from .encoding import unpack_args
from .errors import ErrorCode, EngineError
from .ops import disputes as op_disputes
from .ops import entries as op_entries
from .ops import listings as op_listings
from .ops import reputation as op_reputation
from .types import ContractCall, ContractState, Function, Value

logger = logging.getLogger(__name__)

_ENTRY_FUNCTIONS = frozenset({
    Function.CREATE_TRANSACTION,
    Function.CONFIRM_TRANSACTION,
})

_DISPUTE_FUNCTIONS = frozenset({
    Function.INITIATE_DISPUTE,
    Function.RESOLVE_DISPUTE_REFUND,
    Function.RESOLVE_DISPUTE_RELEASE,
})

_LISTING_FUNCTIONS = frozenset({
    Function.CREATE_LISTING,
    Function.UPDATE_LISTING,
    Function.PURCHASE_ITEM,
})

_RATING_FUNCTIONS = frozenset({
    Function.RATE_SELLER,
    Function.RATE_BUYER,
})

READ_ONLY_FUNCTIONS = frozenset({
    Function.GET_TRANSACTION,
    Function.IS_DISPUTE_ACTIVE,
    Function.GET_LISTING,
    Function.GET_USER_REPUTATION,
    Function.GET_SELLER_RATING,
    Function.GET_BUYER_RATING,
    Function.GET_TRANSACTION_RATING,
})


class CallResult:
    """Receipt of a single call: `Ok(value)` or `Err(error)`."""

    def __init__(self, ok: bool, value: Any = None, error: Optional[EngineError] = None):
        self.ok = ok
        self.value = value
        self.error = error

    @classmethod
    def success(cls, value: Any = None) -> "CallResult":
        return cls(True, value, None)

    @classmethod
    def failure(cls, error: EngineError) -> "CallResult":
        return cls(False, None, error)

    def __repr__(self) -> str:
        if self.ok:
            return f"CallResult(ok, {self.value!r})"
        return f"CallResult(err, {self.error})"


def _dispatch_verify(state: ContractState, call: ContractCall) -> None:
    fn = call.function
    if fn in _ENTRY_FUNCTIONS:
        return op_entries.verify(state, call)
    if fn in _DISPUTE_FUNCTIONS:
        return op_disputes.verify(state, call)
    if fn in _LISTING_FUNCTIONS:
        return op_listings.verify(state, call)
    if fn in _RATING_FUNCTIONS:
        return op_reputation.verify(state, call)

    raise EngineError(ErrorCode.UNKNOWN_FUNCTION, f"no public function {fn}")


def _dispatch_apply(state: ContractState, call: ContractCall) -> tuple[ContractState, Any]:
    fn = call.function
    if fn in _ENTRY_FUNCTIONS:
        return op_entries.apply(state, call)
    if fn in _DISPUTE_FUNCTIONS:
        return op_disputes.apply(state, call)
    if fn in _LISTING_FUNCTIONS:
        return op_listings.apply(state, call)
    if fn in _RATING_FUNCTIONS:
        return op_reputation.apply(state, call)

    raise EngineError(ErrorCode.UNKNOWN_FUNCTION, f"no public function {fn}")


def _dispatch_read(state: ContractState, call: ContractCall) -> Any:
    args = unpack_args(call)
    fn = call.function
    if fn == Function.GET_TRANSACTION:
        return op_entries.get_entry(state, *args)
    if fn == Function.IS_DISPUTE_ACTIVE:
        return op_disputes.is_dispute_active(state, *args)
    if fn == Function.GET_LISTING:
        return op_listings.get_listing(state, *args)
    if fn == Function.GET_USER_REPUTATION:
        return op_reputation.get_user_reputation(state, *args)
    if fn == Function.GET_SELLER_RATING:
        return op_reputation.get_seller_rating(state, *args)
    if fn == Function.GET_BUYER_RATING:
        return op_reputation.get_buyer_rating(state, *args)
    if fn == Function.GET_TRANSACTION_RATING:
        return op_reputation.get_transaction_rating(state, *args)

    raise EngineError(ErrorCode.UNKNOWN_FUNCTION, f"no read-only function {fn}")


def _verify_common(state: ContractState, call: ContractCall) -> None:
    if not isinstance(call.caller, bytes) or len(call.caller) != PRINCIPAL_SIZE:
        raise EngineError(ErrorCode.INVALID_FORMAT, f"caller must be {PRINCIPAL_SIZE} bytes")
    if not isinstance(call.function, Function):
        raise EngineError(ErrorCode.UNKNOWN_FUNCTION, f"unknown function: {call.function!r}")


def verify_call(state: ContractState, call: ContractCall) -> CallResult:
    """Precondition check only; never touches state."""
    try:
        _verify_common(state, call)
        if call.function in READ_ONLY_FUNCTIONS:
            unpack_args(call)
        else:
            _dispatch_verify(state, call)
        return CallResult.success()
    except EngineError as exc:
        return CallResult.failure(exc)


def call_read_only(state: ContractState, call: ContractCall) -> CallResult:
    try:
        _verify_common(state, call)
        if call.function not in READ_ONLY_FUNCTIONS:
            raise EngineError(ErrorCode.UNKNOWN_FUNCTION, f"{call.function.value} is not read-only")
        return CallResult.success(_dispatch_read(state, call))
    except EngineError as exc:
        return CallResult.failure(exc)


def read_only(state: ContractState, caller: bytes, function: Function, args: list[Value]) -> CallResult:
    return call_read_only(state, ContractCall(caller=caller, function=function, args=list(args)))


def apply_call(state: ContractState, call: ContractCall) -> tuple[ContractState, CallResult]:
    """Execute a call at the current height.

    All-or-nothing: on any failure the returned state is `state` itself.
    """
    if isinstance(call.function, Function) and call.function in READ_ONLY_FUNCTIONS:
        return state, call_read_only(state, call)

    try:
        _verify_common(state, call)
        _dispatch_verify(state, call)
    except EngineError as exc:
        logger.info("rejected %s: %s", _describe(call), exc)
        return state, CallResult.failure(exc)

    try:
        working, value = _dispatch_apply(state, call)
    except EngineError as exc:
        logger.info("execution of %s failed: %s", _describe(call), exc)
        return state, CallResult.failure(exc)

    logger.debug("committed %s -> %r", _describe(call), value)
    return working, CallResult.success(value)


def mine_block(state: ContractState, calls: list[ContractCall]) -> tuple[ContractState, list[CallResult]]:
    """Execute calls in order at the current height, then advance one block.

    A failed call leaves no effect and gets an error receipt; it does not
    invalidate the other calls in the block.
    """
    working = state
    receipts: list[CallResult] = []
    for call in calls:
        working, result = apply_call(working, call)
        receipts.append(result)

    return advance_height(working, 1), receipts


def advance_height(state: ContractState, blocks: int = 1) -> ContractState:
    if blocks < 0:
        raise ValueError("blocks must be >= 0")
    working = deepcopy(state)
    return replace(
        working,
        global_state=replace(
            working.global_state, block_height=working.global_state.block_height + blocks
        ),
    )


def _describe(call: ContractCall) -> str:
    fn = call.function.value if isinstance(call.function, Function) else repr(call.function)
    caller = call.caller.hex()[:16] if isinstance(call.caller, bytes) else repr(call.caller)
    return f"{fn} by {caller}"
