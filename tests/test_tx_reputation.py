"""Rating and reputation fixtures."""

from __future__ import annotations

from escrow_spec.config import MAX_COMMENT_LEN
from escrow_spec.encoding import optional_utf8
from escrow_spec.ops.reputation import average_rating
from escrow_spec.state_transition import read_only
from escrow_spec.test_accounts import ALICE, BOB, CAROL, DAVE
from escrow_spec.types import (
    AccountState,
    ContractCall,
    ContractState,
    Entry,
    EntryStatus,
    Function,
    RaterRole,
    Rating,
    ReputationRecord,
    Value,
)

REL = "calls/reputation.json"


def _completed(entry_id: int, buyer: bytes, seller: bytes) -> Entry:
    return Entry(
        id=entry_id,
        initiator=buyer,
        counterparty=seller,
        amount=100,
        description="Widget",
        created_at=1,
        status=EntryStatus.COMPLETED,
        listing_id=1,
        confirmed_at=2,
    )


def _base_state() -> ContractState:
    state = ContractState()
    state.global_state.block_height = 3
    for who in (ALICE, BOB, CAROL):
        state.accounts[who] = AccountState(address=who, balance=0)
    state.entries[1] = _completed(1, ALICE, BOB)
    state.entries[2] = _completed(2, CAROL, BOB)
    state.next_entry_id = 3
    return state


def _rate(fn: Function, caller: bytes, entry_id: int, rating: int, comment: str | None = None) -> ContractCall:
    return ContractCall(
        caller=caller,
        function=fn,
        args=[Value.uint(entry_id), Value.uint(rating), optional_utf8(comment)],
    )


def _rate_seller(caller: bytes, entry_id: int, rating: int, comment: str | None = None) -> ContractCall:
    return _rate(Function.RATE_SELLER, caller, entry_id, rating, comment)


def _rate_buyer(caller: bytes, entry_id: int, rating: int, comment: str | None = None) -> ContractCall:
    return _rate(Function.RATE_BUYER, caller, entry_id, rating, comment)


def _seller_rating(state: ContractState, who: bytes) -> int:
    return read_only(state, DAVE, Function.GET_SELLER_RATING, [Value.principal(who)]).value


# --- rate-seller specs ---


def test_rate_seller_success(call_test_group) -> None:
    state = _base_state()
    post, result = call_test_group(REL, "rate_seller_success", state, _rate_seller(ALICE, 1, 5, "Great"))
    assert result.ok
    assert post.ratings[(1, ALICE)] == Rating(rating=5, comment="Great", role=RaterRole.BUYER)
    rec = post.reputations[BOB]
    assert (rec.seller_rating_sum, rec.seller_rating_count) == (5, 1)
    assert _seller_rating(post, BOB) == 5


def test_rate_seller_average_floors(call_test_group) -> None:
    state = _base_state()
    state, first = call_test_group(REL, "rate_seller_five", state, _rate_seller(ALICE, 1, 5))
    state, second = call_test_group(REL, "rate_seller_three", state, _rate_seller(CAROL, 2, 3))
    assert first.ok and second.ok
    assert _seller_rating(state, BOB) == 4

    state.reputations[BOB].seller_rating_sum += 1
    assert _seller_rating(state, BOB) == 4


def test_rate_seller_rating_zero(call_test_group) -> None:
    state = _base_state()
    post, result = call_test_group(REL, "rate_seller_rating_zero", state, _rate_seller(ALICE, 1, 0))
    assert result.error.code.name == "INVALID_RATING"
    assert not post.ratings


def test_rate_seller_rating_six(call_test_group) -> None:
    state = _base_state()
    _, result = call_test_group(REL, "rate_seller_rating_six", state, _rate_seller(ALICE, 1, 6))
    assert result.error.code.name == "INVALID_RATING"


def test_rate_seller_twice(call_test_group) -> None:
    state = _base_state()
    state, first = call_test_group(REL, "rate_seller_first", state, _rate_seller(ALICE, 1, 4))
    state, second = call_test_group(REL, "rate_seller_twice", state, _rate_seller(ALICE, 1, 1))
    assert first.ok
    assert second.error.code.name == "ALREADY_RATED"
    assert state.reputations[BOB].seller_rating_count == 1


def test_rate_seller_by_seller(call_test_group) -> None:
    state = _base_state()
    _, result = call_test_group(REL, "rate_seller_by_seller", state, _rate_seller(BOB, 1, 5))
    assert result.error.code.name == "UNAUTHORIZED"


def test_rate_seller_not_completed(call_test_group) -> None:
    state = _base_state()
    state.entries[1].status = EntryStatus.ACTIVE
    _, result = call_test_group(REL, "rate_seller_not_completed", state, _rate_seller(ALICE, 1, 5))
    assert result.error.code.name == "INVALID_STATE"


def test_rate_seller_refunded(call_test_group) -> None:
    state = _base_state()
    state.entries[1].status = EntryStatus.REFUNDED
    _, result = call_test_group(REL, "rate_seller_refunded", state, _rate_seller(ALICE, 1, 1))
    assert result.error.code.name == "INVALID_STATE"


def test_rate_seller_not_found(call_test_group) -> None:
    state = _base_state()
    _, result = call_test_group(REL, "rate_seller_not_found", state, _rate_seller(ALICE, 9, 5))
    assert result.error.code.name == "NOT_FOUND"


def test_rate_seller_comment_too_long(call_test_group) -> None:
    state = _base_state()
    _, result = call_test_group(
        REL, "rate_seller_comment_too_long", state, _rate_seller(ALICE, 1, 5, "c" * (MAX_COMMENT_LEN + 1))
    )
    assert result.error.code.name == "INVALID_PAYLOAD"


def test_rate_seller_comment_not_optional(call_test_group) -> None:
    state = _base_state()
    call = ContractCall(
        caller=ALICE,
        function=Function.RATE_SELLER,
        args=[Value.uint(1), Value.uint(5), Value.utf8("bare")],
    )
    _, result = call_test_group(REL, "rate_seller_comment_not_optional", state, call)
    assert result.error.code.name == "INVALID_PAYLOAD"


# --- rate-buyer specs ---


def test_rate_buyer_success(call_test_group) -> None:
    state = _base_state()
    post, result = call_test_group(REL, "rate_buyer_success", state, _rate_buyer(BOB, 1, 2))
    assert result.ok
    assert post.ratings[(1, BOB)].role == RaterRole.SELLER
    rec = post.reputations[ALICE]
    assert (rec.buyer_rating_sum, rec.buyer_rating_count) == (2, 1)
    assert read_only(post, DAVE, Function.GET_BUYER_RATING, [Value.principal(ALICE)]).value == 2


def test_rate_buyer_by_buyer(call_test_group) -> None:
    state = _base_state()
    _, result = call_test_group(REL, "rate_buyer_by_buyer", state, _rate_buyer(ALICE, 1, 3))
    assert result.error.code.name == "UNAUTHORIZED"


def test_both_parties_rate_same_entry(call_test_group) -> None:
    state = _base_state()
    state, by_buyer = call_test_group(REL, "rate_both_buyer_side", state, _rate_seller(ALICE, 1, 5))
    state, by_seller = call_test_group(REL, "rate_both_seller_side", state, _rate_buyer(BOB, 1, 4))
    assert by_buyer.ok and by_seller.ok
    assert set(state.ratings) == {(1, ALICE), (1, BOB)}


# --- read-only specs ---


def test_average_rating_without_ratings() -> None:
    assert average_rating(0, 0) == 0
    assert average_rating(9, 2) == 4


def test_ratings_for_unknown_principal() -> None:
    state = _base_state()
    assert _seller_rating(state, DAVE) == 0
    res = read_only(state, DAVE, Function.GET_USER_REPUTATION, [Value.principal(DAVE)])
    assert res.ok and res.value is None


def test_get_user_reputation() -> None:
    state = _base_state()
    state.reputations[BOB] = ReputationRecord(total_sales=2, seller_rating_sum=7, seller_rating_count=2)
    res = read_only(state, DAVE, Function.GET_USER_REPUTATION, [Value.principal(BOB)])
    assert res.value == ReputationRecord(total_sales=2, seller_rating_sum=7, seller_rating_count=2)
    assert _seller_rating(state, BOB) == 3


def test_get_transaction_rating() -> None:
    state = _base_state()
    state.ratings[(1, ALICE)] = Rating(rating=4, comment=None, role=RaterRole.BUYER)

    rated = read_only(state, DAVE, Function.GET_TRANSACTION_RATING, [Value.uint(1), Value.principal(ALICE)])
    unrated = read_only(state, DAVE, Function.GET_TRANSACTION_RATING, [Value.uint(2), Value.principal(CAROL)])
    unknown = read_only(state, DAVE, Function.GET_TRANSACTION_RATING, [Value.uint(9), Value.principal(ALICE)])

    assert rated.value.rating == 4
    assert unrated.ok and unrated.value is None
    assert not unknown.ok
    assert unknown.error.code.name == "NOT_FOUND"
