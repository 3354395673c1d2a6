"""Marketplace listings and escrow-backed purchases."""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Optional

from .. import custody
from ..auth import require_caller, require_distinct
from ..config import MAX_DESCRIPTION_LEN, MAX_TITLE_LEN, U128_MAX
from ..encoding import unpack_args
from ..errors import ErrorCode, EngineError
from ..ledger import balance, current_height
from ..types import (
    ContractCall,
    ContractState,
    Entry,
    EntryStatus,
    Function,
    Listing,
    ListingStatus,
)
from .entries import allocate_entry_id
from .reputation import reputation_for

_LISTING_STATUS_CODES = frozenset(s.value for s in ListingStatus)


def load_listing(state: ContractState, listing_id: int) -> Listing:
    listing = state.listings.get(listing_id)
    if listing is None:
        raise EngineError(ErrorCode.NOT_FOUND, f"listing {listing_id} not found")
    return listing


def get_listing(state: ContractState, listing_id: int) -> Optional[Listing]:
    return state.listings.get(listing_id)


def verify(state: ContractState, call: ContractCall) -> None:
    args = unpack_args(call)
    fn = call.function
    if fn == Function.CREATE_LISTING:
        _verify_create_listing(state, call, *args)
    elif fn == Function.UPDATE_LISTING:
        _verify_update_listing(state, call, *args)
    elif fn == Function.PURCHASE_ITEM:
        _verify_purchase(state, call, *args)
    else:
        raise EngineError(ErrorCode.UNKNOWN_FUNCTION, f"unsupported listing function: {fn}")


def apply(state: ContractState, call: ContractCall) -> tuple[ContractState, Any]:
    args = unpack_args(call)
    fn = call.function
    if fn == Function.CREATE_LISTING:
        return _apply_create_listing(state, call, *args)
    if fn == Function.UPDATE_LISTING:
        return _apply_update_listing(state, call, *args)
    if fn == Function.PURCHASE_ITEM:
        return _apply_purchase(state, call, *args)
    raise EngineError(ErrorCode.UNKNOWN_FUNCTION, f"unsupported listing function: {fn}")


# --- create-listing ---

def _verify_create_listing(
    state: ContractState, call: ContractCall, title: str, description: str, price: int, quantity: int
) -> None:
    if not title or len(title) > MAX_TITLE_LEN:
        raise EngineError(ErrorCode.INVALID_PAYLOAD, "invalid listing title")
    if len(description) > MAX_DESCRIPTION_LEN:
        raise EngineError(ErrorCode.INVALID_PAYLOAD, "description too long")
    if price <= 0:
        raise EngineError(ErrorCode.INVALID_AMOUNT, "price must be > 0")
    if quantity <= 0:
        raise EngineError(ErrorCode.INVALID_AMOUNT, "quantity must be > 0")


def _apply_create_listing(
    state: ContractState, call: ContractCall, title: str, description: str, price: int, quantity: int
) -> tuple[ContractState, int]:
    ns = deepcopy(state)
    listing_id = ns.next_listing_id
    ns.listings[listing_id] = Listing(
        id=listing_id,
        seller=call.caller,
        title=title,
        description=description,
        price=price,
        quantity=quantity,
        status=ListingStatus.ACTIVE,
        created_at=current_height(ns),
    )
    ns.next_listing_id += 1

    reputation_for(ns, call.caller).total_sales += 1
    return ns, listing_id


# --- update-listing ---

def _verify_update_listing(
    state: ContractState, call: ContractCall, listing_id: int, price: int, quantity: int, status: int
) -> None:
    if status not in _LISTING_STATUS_CODES:
        raise EngineError(ErrorCode.INVALID_PAYLOAD, f"unknown listing status {status}")
    if price <= 0:
        raise EngineError(ErrorCode.INVALID_AMOUNT, "price must be > 0")

    listing = load_listing(state, listing_id)
    require_caller(call, listing.seller, "seller")
    if listing.status == ListingStatus.COMPLETED:
        raise EngineError(ErrorCode.INVALID_STATE, f"listing {listing_id} is closed")


def _apply_update_listing(
    state: ContractState, call: ContractCall, listing_id: int, price: int, quantity: int, status: int
) -> tuple[ContractState, bool]:
    ns = deepcopy(state)
    listing = load_listing(ns, listing_id)
    listing.price = price
    listing.quantity = quantity
    new_status = ListingStatus(status)
    if new_status == ListingStatus.ACTIVE and quantity == 0:
        new_status = ListingStatus.INACTIVE
    listing.status = new_status
    return ns, True


# --- purchase-item ---

def _verify_purchase(state: ContractState, call: ContractCall, listing_id: int, quantity: int) -> None:
    if quantity <= 0:
        raise EngineError(ErrorCode.INVALID_AMOUNT, "quantity must be > 0")

    listing = load_listing(state, listing_id)
    require_distinct(call.caller, listing.seller, "seller")
    if listing.status != ListingStatus.ACTIVE:
        raise EngineError(ErrorCode.INVALID_STATE, f"listing {listing_id} is {listing.status.name}")
    if quantity > listing.quantity:
        raise EngineError(ErrorCode.INVALID_AMOUNT, "quantity exceeds listing stock")

    total = listing.price * quantity
    if total > U128_MAX:
        raise EngineError(ErrorCode.OVERFLOW, "purchase total overflow")
    if balance(state, call.caller) < total:
        raise EngineError(ErrorCode.INSUFFICIENT_FUNDS, "insufficient balance")


def _apply_purchase(
    state: ContractState, call: ContractCall, listing_id: int, quantity: int
) -> tuple[ContractState, int]:
    ns = deepcopy(state)
    listing = load_listing(ns, listing_id)

    entry = Entry(
        id=ns.next_entry_id,
        initiator=call.caller,
        counterparty=listing.seller,
        amount=listing.price * quantity,
        description=listing.title,
        created_at=current_height(ns),
        status=EntryStatus.ACTIVE,
        listing_id=listing_id,
        quantity=quantity,
    )
    custody.lock(ns, entry)
    ns.entries[allocate_entry_id(ns)] = entry

    listing.quantity -= quantity
    if listing.quantity == 0:
        listing.status = ListingStatus.INACTIVE

    reputation_for(ns, call.caller).total_purchases += 1
    return ns, entry.id
