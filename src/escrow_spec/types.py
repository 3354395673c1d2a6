"""Core types for the escrow engine.

Two contract variants share these records: the plain escrow
(`create-transaction` and friends) and the marketplace, which adds
listings, purchases and reputation on top of the same entry store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, List, Optional

from .config import FIRST_ENTRY_ID, FIRST_LISTING_ID, GENESIS_HEIGHT
from .settings import EngineSettings


class Function(Enum):
    # Escrow
    CREATE_TRANSACTION = "create-transaction"
    CONFIRM_TRANSACTION = "confirm-transaction"
    INITIATE_DISPUTE = "initiate-dispute"
    RESOLVE_DISPUTE_REFUND = "resolve-dispute-refund"
    RESOLVE_DISPUTE_RELEASE = "resolve-dispute-release"
    # Marketplace
    CREATE_LISTING = "create-listing"
    UPDATE_LISTING = "update-listing"
    PURCHASE_ITEM = "purchase-item"
    RATE_SELLER = "rate-seller"
    RATE_BUYER = "rate-buyer"
    # Read-only
    GET_TRANSACTION = "get-transaction"
    IS_DISPUTE_ACTIVE = "is-dispute-active"
    GET_LISTING = "get-listing"
    GET_USER_REPUTATION = "get-user-reputation"
    GET_SELLER_RATING = "get-seller-rating"
    GET_BUYER_RATING = "get-buyer-rating"
    GET_TRANSACTION_RATING = "get-transaction-rating"


class EntryStatus(IntEnum):
    PENDING = 0
    ACTIVE = 1
    COMPLETED = 2
    DISPUTED = 3
    REFUNDED = 4


class ListingStatus(IntEnum):
    INACTIVE = 0
    ACTIVE = 1
    COMPLETED = 2


class RaterRole(Enum):
    BUYER = "buyer"
    SELLER = "seller"


class ValueType(IntEnum):
    UINT = 0x01
    PRINCIPAL = 0x02
    UTF8 = 0x03
    BOOL = 0x04
    OPTIONAL = 0x05


@dataclass(frozen=True)
class Value:
    """A typed positional argument of a contract call."""
    type: ValueType
    value: Any = None

    @classmethod
    def uint(cls, v: int) -> "Value":
        return cls(ValueType.UINT, int(v))

    @classmethod
    def principal(cls, v: bytes) -> "Value":
        return cls(ValueType.PRINCIPAL, bytes(v))

    @classmethod
    def utf8(cls, v: str) -> "Value":
        return cls(ValueType.UTF8, v)

    @classmethod
    def boolean(cls, v: bool) -> "Value":
        return cls(ValueType.BOOL, bool(v))

    @classmethod
    def some(cls, inner: "Value") -> "Value":
        return cls(ValueType.OPTIONAL, inner)

    @classmethod
    def none(cls) -> "Value":
        return cls(ValueType.OPTIONAL, None)


@dataclass
class ContractCall:
    caller: bytes
    function: Function
    args: List[Value] = field(default_factory=list)


@dataclass
class AccountState:
    address: bytes
    balance: int = 0


@dataclass
class GlobalState:
    block_height: int = GENESIS_HEIGHT


@dataclass
class DisputeDetails:
    reason: str
    initiated_at: int


@dataclass
class Entry:
    id: int
    initiator: bytes
    counterparty: bytes
    amount: int
    description: str = ""
    created_at: int = 0
    status: EntryStatus = EntryStatus.ACTIVE
    dispute: Optional[DisputeDetails] = None
    # Marketplace purchases only
    listing_id: Optional[int] = None
    quantity: int = 1
    confirmed_at: Optional[int] = None


@dataclass
class Listing:
    id: int
    seller: bytes
    title: str
    description: str
    price: int
    quantity: int
    status: ListingStatus = ListingStatus.ACTIVE
    created_at: int = 0


@dataclass
class ReputationRecord:
    total_sales: int = 0
    total_purchases: int = 0
    seller_rating_sum: int = 0
    seller_rating_count: int = 0
    buyer_rating_sum: int = 0
    buyer_rating_count: int = 0


@dataclass
class Rating:
    rating: int
    comment: Optional[str] = None
    role: RaterRole = RaterRole.BUYER


@dataclass
class ContractState:
    accounts: dict[bytes, AccountState] = field(default_factory=dict)
    global_state: GlobalState = field(default_factory=GlobalState)
    settings: EngineSettings = field(default_factory=EngineSettings)
    entries: dict[int, Entry] = field(default_factory=dict)
    next_entry_id: int = FIRST_ENTRY_ID
    listings: dict[int, Listing] = field(default_factory=dict)
    next_listing_id: int = FIRST_LISTING_ID
    reputations: dict[bytes, ReputationRecord] = field(default_factory=dict)
    # Keyed by (entry_id, rater)
    ratings: dict[tuple[int, bytes], Rating] = field(default_factory=dict)
