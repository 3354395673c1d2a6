"""Helpers to serialize/deserialize fixtures for the escrow specs."""

from __future__ import annotations

from typing import Any, Optional

from escrow_spec.settings import EngineSettings
from escrow_spec.state_transition import CallResult
from escrow_spec.types import (
    AccountState,
    ContractCall,
    ContractState,
    DisputeDetails,
    Entry,
    EntryStatus,
    Function,
    GlobalState,
    Listing,
    ListingStatus,
    RaterRole,
    Rating,
    ReputationRecord,
    Value,
    ValueType,
)


def _hex_to_bytes(v: str) -> bytes:
    return bytes.fromhex(v)


def _bytes_to_hex(v: bytes) -> str:
    return v.hex()


# --- records ---


def entry_to_json(e: Entry) -> dict[str, Any]:
    return {
        "id": e.id,
        "initiator": _bytes_to_hex(e.initiator),
        "counterparty": _bytes_to_hex(e.counterparty),
        "amount": e.amount,
        "description": e.description,
        "created_at": e.created_at,
        "status": e.status.name,
        "dispute": (
            {"reason": e.dispute.reason, "initiated_at": e.dispute.initiated_at}
            if e.dispute is not None
            else None
        ),
        "listing_id": e.listing_id,
        "quantity": e.quantity,
        "confirmed_at": e.confirmed_at,
    }


def entry_from_json(data: dict[str, Any]) -> Entry:
    dispute = data.get("dispute")
    return Entry(
        id=data["id"],
        initiator=_hex_to_bytes(data["initiator"]),
        counterparty=_hex_to_bytes(data["counterparty"]),
        amount=data["amount"],
        description=data.get("description", ""),
        created_at=data.get("created_at", 0),
        status=EntryStatus[data.get("status", "ACTIVE")],
        dispute=(
            DisputeDetails(reason=dispute["reason"], initiated_at=dispute["initiated_at"])
            if dispute is not None
            else None
        ),
        listing_id=data.get("listing_id"),
        quantity=data.get("quantity", 1),
        confirmed_at=data.get("confirmed_at"),
    )


def listing_to_json(li: Listing) -> dict[str, Any]:
    return {
        "id": li.id,
        "seller": _bytes_to_hex(li.seller),
        "title": li.title,
        "description": li.description,
        "price": li.price,
        "quantity": li.quantity,
        "status": li.status.name,
        "created_at": li.created_at,
    }


def listing_from_json(data: dict[str, Any]) -> Listing:
    return Listing(
        id=data["id"],
        seller=_hex_to_bytes(data["seller"]),
        title=data.get("title", ""),
        description=data.get("description", ""),
        price=data["price"],
        quantity=data["quantity"],
        status=ListingStatus[data.get("status", "ACTIVE")],
        created_at=data.get("created_at", 0),
    )


def reputation_to_json(rec: ReputationRecord) -> dict[str, Any]:
    return {
        "total_sales": rec.total_sales,
        "total_purchases": rec.total_purchases,
        "seller_rating_sum": rec.seller_rating_sum,
        "seller_rating_count": rec.seller_rating_count,
        "buyer_rating_sum": rec.buyer_rating_sum,
        "buyer_rating_count": rec.buyer_rating_count,
    }


def rating_to_json(r: Rating) -> dict[str, Any]:
    return {"rating": r.rating, "comment": r.comment, "role": r.role.value}


# --- state ---


def state_to_json(state: ContractState) -> dict[str, Any]:
    result: dict[str, Any] = {
        "global_state": {"block_height": state.global_state.block_height},
        "counters": {
            "next_entry_id": state.next_entry_id,
            "next_listing_id": state.next_listing_id,
        },
        "settings": state.settings.to_dict(),
        "accounts": [
            {"address": _bytes_to_hex(a.address), "balance": a.balance}
            for a in state.accounts.values()
        ],
    }

    if state.entries:
        result["entries"] = [entry_to_json(e) for e in state.entries.values()]

    if state.listings:
        result["listings"] = [listing_to_json(li) for li in state.listings.values()]

    if state.reputations:
        result["reputations"] = [
            {"address": _bytes_to_hex(addr), **reputation_to_json(rec)}
            for addr, rec in state.reputations.items()
        ]

    if state.ratings:
        result["ratings"] = [
            {"entry_id": entry_id, "rater": _bytes_to_hex(rater), **rating_to_json(r)}
            for (entry_id, rater), r in state.ratings.items()
        ]

    return result


def state_from_json(data: dict[str, Any]) -> ContractState:
    counters = data.get("counters", {})
    state = ContractState(
        global_state=GlobalState(block_height=data.get("global_state", {}).get("block_height", 1)),
        settings=EngineSettings.from_dict(data.get("settings", {})),
        next_entry_id=counters.get("next_entry_id", 1),
        next_listing_id=counters.get("next_listing_id", 1),
    )

    for a in data.get("accounts", []):
        acct = AccountState(address=_hex_to_bytes(a["address"]), balance=a.get("balance", 0))
        state.accounts[acct.address] = acct

    for e in data.get("entries", []):
        entry = entry_from_json(e)
        state.entries[entry.id] = entry

    for li in data.get("listings", []):
        listing = listing_from_json(li)
        state.listings[listing.id] = listing

    for r in data.get("reputations", []):
        state.reputations[_hex_to_bytes(r["address"])] = ReputationRecord(
            total_sales=r.get("total_sales", 0),
            total_purchases=r.get("total_purchases", 0),
            seller_rating_sum=r.get("seller_rating_sum", 0),
            seller_rating_count=r.get("seller_rating_count", 0),
            buyer_rating_sum=r.get("buyer_rating_sum", 0),
            buyer_rating_count=r.get("buyer_rating_count", 0),
        )

    for r in data.get("ratings", []):
        key = (r["entry_id"], _hex_to_bytes(r["rater"]))
        state.ratings[key] = Rating(
            rating=r["rating"],
            comment=r.get("comment"),
            role=RaterRole(r.get("role", RaterRole.BUYER.value)),
        )

    return state


# --- calls ---


def value_to_json(v: Value) -> dict[str, Any]:
    kind = v.type.name.lower()
    if v.type == ValueType.PRINCIPAL:
        return {"type": kind, "value": _bytes_to_hex(v.value)}
    if v.type == ValueType.OPTIONAL:
        return {"type": kind, "value": value_to_json(v.value) if v.value is not None else None}
    return {"type": kind, "value": v.value}


def value_from_json(data: dict[str, Any]) -> Value:
    vt = ValueType[data["type"].upper()]
    raw = data.get("value")
    if vt == ValueType.PRINCIPAL:
        return Value.principal(_hex_to_bytes(raw))
    if vt == ValueType.OPTIONAL:
        return Value.some(value_from_json(raw)) if raw is not None else Value.none()
    return Value(vt, raw)


def call_to_json(call: ContractCall) -> dict[str, Any]:
    return {
        "caller": _bytes_to_hex(call.caller),
        "function": call.function.value,
        "args": [value_to_json(a) for a in call.args],
    }


def call_from_json(data: dict[str, Any]) -> ContractCall:
    return ContractCall(
        caller=_hex_to_bytes(data["caller"]),
        function=Function(data["function"]),
        args=[value_from_json(a) for a in data.get("args", [])],
    )


def _plain(value: Any) -> Any:
    if isinstance(value, Entry):
        return entry_to_json(value)
    if isinstance(value, Listing):
        return listing_to_json(value)
    if isinstance(value, ReputationRecord):
        return reputation_to_json(value)
    if isinstance(value, Rating):
        return rating_to_json(value)
    return value


def result_to_json(result: CallResult) -> dict[str, Any]:
    return {
        "ok": result.ok,
        "value": _plain(result.value),
        "error": result.error.code.name if result.error else None,
    }


def error_name(result: CallResult) -> Optional[str]:
    return result.error.code.name if result.error else None
