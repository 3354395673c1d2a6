"""Canonical state digest implementation (v1)."""
from __future__ import annotations

from typing import Any, Optional

from blake3 import blake3

from .config import RESOLUTION_WINDOW
from .types import EntryStatus, ListingStatus, RaterRole

DIGEST_VERSION = 1


def _hex_to_bytes(value: str | None) -> bytes:
    if value is None:
        return b""
    if not isinstance(value, str):
        raise TypeError("hex value must be string")
    v = value[2:] if value.startswith(("0x", "0X")) else value
    if v == "":
        return b""
    return bytes.fromhex(v)


def _u64_be(value: int) -> bytes:
    if value < 0:
        raise ValueError("u64 must be non-negative")
    return int(value).to_bytes(8, "big", signed=False)


def _u128_be(value: int) -> bytes:
    if value < 0:
        raise ValueError("u128 must be non-negative")
    return int(value).to_bytes(16, "big", signed=False)


def _text(value: Optional[str]) -> bytes:
    raw = (value or "").encode("utf-8")
    return _u64_be(len(raw)) + raw


def _opt_u64(value: Optional[int]) -> bytes:
    if value is None:
        return b"\x00"
    return b"\x01" + _u64_be(value)


def _principal(value: str) -> bytes:
    raw = _hex_to_bytes(value)
    if len(raw) != 32:
        raise ValueError(f"principal must be 32 bytes, got {len(raw)}")
    return raw


def compute_state_digest(post_state: dict[str, Any]) -> str:
    """Compute state digest v1 from an exported state.

    Fields are encoded in canonical order and hashed with BLAKE3-256.
    """
    if not isinstance(post_state, dict):
        raise TypeError("post_state must be a dict")

    buf = bytearray()
    buf += _u64_be(DIGEST_VERSION)

    gs = post_state.get("global_state", {})
    counters = post_state.get("counters", {})
    buf += _u64_be(int(gs.get("block_height", 0)))
    buf += _u64_be(int(counters.get("next_entry_id", 1)))
    buf += _u64_be(int(counters.get("next_listing_id", 1)))

    settings = post_state.get("settings", {})
    buf += _u64_be(int(settings.get("resolution_window", RESOLUTION_WINDOW)))
    buf += _text(settings.get("resolver_policy", "arbiter"))
    arbiter = settings.get("arbiter")
    buf += b"\x00" if arbiter is None else b"\x01" + _principal(arbiter)

    accounts = sorted(
        ((_principal(a["address"]), int(a.get("balance", 0))) for a in post_state.get("accounts", [])),
        key=lambda x: x[0],
    )
    buf += _u64_be(len(accounts))
    for addr, bal in accounts:
        buf += addr
        buf += _u128_be(bal)

    entries = sorted(post_state.get("entries", []), key=lambda e: int(e["id"]))
    buf += _u64_be(len(entries))
    for e in entries:
        buf += _u64_be(int(e["id"]))
        buf += _principal(e["initiator"])
        buf += _principal(e["counterparty"])
        buf += _u128_be(int(e["amount"]))
        buf += _text(e.get("description"))
        buf += _u64_be(int(e.get("created_at", 0)))
        buf += bytes([EntryStatus[e["status"]].value])
        dispute = e.get("dispute")
        if dispute is None:
            buf += b"\x00"
        else:
            buf += b"\x01" + _text(dispute.get("reason")) + _u64_be(int(dispute["initiated_at"]))
        buf += _opt_u64(e.get("listing_id"))
        buf += _u64_be(int(e.get("quantity", 1)))
        buf += _opt_u64(e.get("confirmed_at"))

    listings = sorted(post_state.get("listings", []), key=lambda x: int(x["id"]))
    buf += _u64_be(len(listings))
    for li in listings:
        buf += _u64_be(int(li["id"]))
        buf += _principal(li["seller"])
        buf += _text(li.get("title"))
        buf += _text(li.get("description"))
        buf += _u128_be(int(li["price"]))
        buf += _u64_be(int(li["quantity"]))
        buf += bytes([ListingStatus[li["status"]].value])
        buf += _u64_be(int(li.get("created_at", 0)))

    reputations = sorted(
        ((_principal(r["address"]), r) for r in post_state.get("reputations", [])),
        key=lambda x: x[0],
    )
    buf += _u64_be(len(reputations))
    for addr, r in reputations:
        buf += addr
        for field in (
            "total_sales",
            "total_purchases",
            "seller_rating_sum",
            "seller_rating_count",
            "buyer_rating_sum",
            "buyer_rating_count",
        ):
            buf += _u64_be(int(r.get(field, 0)))

    ratings = sorted(
        ((int(r["entry_id"]), _principal(r["rater"]), r) for r in post_state.get("ratings", [])),
        key=lambda x: (x[0], x[1]),
    )
    buf += _u64_be(len(ratings))
    for entry_id, rater, r in ratings:
        buf += _u64_be(entry_id)
        buf += rater
        buf += bytes([int(r["rating"])])
        comment = r.get("comment")
        buf += b"\x00" if comment is None else b"\x01" + _text(comment)
        buf += RaterRole(r.get("role", RaterRole.BUYER.value)).value.encode("ascii")

    return blake3(buf).hexdigest()
