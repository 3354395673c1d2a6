"""Reputation aggregation: per-entry ratings rolled up per principal."""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Optional

from ..auth import require_caller
from ..config import MAX_COMMENT_LEN, MAX_RATING, MIN_RATING
from ..encoding import unpack_args
from ..errors import ErrorCode, EngineError
from ..types import (
    ContractCall,
    ContractState,
    EntryStatus,
    Function,
    RaterRole,
    Rating,
    ReputationRecord,
)
from .entries import load_entry


def reputation_for(state: ContractState, principal: bytes) -> ReputationRecord:
    """Return the principal's record, creating it on first interaction."""
    rec = state.reputations.get(principal)
    if rec is None:
        rec = ReputationRecord()
        state.reputations[principal] = rec
    return rec


def average_rating(rating_sum: int, rating_count: int) -> int:
    """Floor of sum / count; 0 when nothing has been rated."""
    if rating_count == 0:
        return 0
    return rating_sum // rating_count


def get_user_reputation(state: ContractState, principal: bytes) -> Optional[ReputationRecord]:
    return state.reputations.get(principal)


def get_seller_rating(state: ContractState, principal: bytes) -> int:
    rec = state.reputations.get(principal)
    if rec is None:
        return 0
    return average_rating(rec.seller_rating_sum, rec.seller_rating_count)


def get_buyer_rating(state: ContractState, principal: bytes) -> int:
    rec = state.reputations.get(principal)
    if rec is None:
        return 0
    return average_rating(rec.buyer_rating_sum, rec.buyer_rating_count)


def get_transaction_rating(state: ContractState, entry_id: int, rater: bytes) -> Optional[Rating]:
    # An unknown entry is an error; an existing but unrated entry is None.
    load_entry(state, entry_id)
    return state.ratings.get((entry_id, rater))


def verify(state: ContractState, call: ContractCall) -> None:
    args = unpack_args(call)
    role = _role_for(call)
    _verify_rate(state, call, role, *args)


def apply(state: ContractState, call: ContractCall) -> tuple[ContractState, Any]:
    args = unpack_args(call)
    role = _role_for(call)
    return _apply_rate(state, call, role, *args)


def _role_for(call: ContractCall) -> RaterRole:
    # rate-seller is submitted by the buyer, rate-buyer by the seller.
    if call.function == Function.RATE_SELLER:
        return RaterRole.BUYER
    if call.function == Function.RATE_BUYER:
        return RaterRole.SELLER
    raise EngineError(ErrorCode.UNKNOWN_FUNCTION, f"unsupported rating function: {call.function}")


def _verify_rate(
    state: ContractState,
    call: ContractCall,
    role: RaterRole,
    entry_id: int,
    rating: int,
    comment: Optional[str],
) -> None:
    if rating < MIN_RATING or rating > MAX_RATING:
        raise EngineError(ErrorCode.INVALID_RATING, f"rating must be {MIN_RATING}..{MAX_RATING}")
    if comment is not None and len(comment) > MAX_COMMENT_LEN:
        raise EngineError(ErrorCode.INVALID_PAYLOAD, "comment too long")

    entry = load_entry(state, entry_id)
    if role == RaterRole.BUYER:
        require_caller(call, entry.initiator, "buyer")
    else:
        require_caller(call, entry.counterparty, "seller")
    if entry.status != EntryStatus.COMPLETED:
        raise EngineError(ErrorCode.INVALID_STATE, f"entry {entry_id} is not completed")
    if (entry_id, call.caller) in state.ratings:
        raise EngineError(ErrorCode.ALREADY_RATED, f"entry {entry_id} already rated by caller")


def _apply_rate(
    state: ContractState,
    call: ContractCall,
    role: RaterRole,
    entry_id: int,
    rating: int,
    comment: Optional[str],
) -> tuple[ContractState, bool]:
    ns = deepcopy(state)
    entry = load_entry(ns, entry_id)
    ns.ratings[(entry_id, call.caller)] = Rating(rating=rating, comment=comment, role=role)

    if role == RaterRole.BUYER:
        rec = reputation_for(ns, entry.counterparty)
        rec.seller_rating_sum += rating
        rec.seller_rating_count += 1
    else:
        rec = reputation_for(ns, entry.initiator)
        rec.buyer_rating_sum += rating
        rec.buyer_rating_count += 1
    return ns, True
