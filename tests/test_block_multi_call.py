"""Block processing fixtures (calls mined together at one height)."""

from __future__ import annotations

from escrow_spec import custody
from escrow_spec.ledger import CONTRACT_ADDRESS, balance, mint
from escrow_spec.settings import EngineSettings, ResolverPolicy
from escrow_spec.state_transition import read_only
from escrow_spec.test_accounts import ALICE, BOB, CAROL, DEPLOYER
from escrow_spec.types import ContractCall, ContractState, EntryStatus, Function, Value

REL = "blocks/multi_call.json"
AMOUNT = 1_000_000


def _genesis(settings: EngineSettings | None = None) -> ContractState:
    state = ContractState(settings=settings or EngineSettings(arbiter=DEPLOYER))
    for who in (DEPLOYER, ALICE, BOB, CAROL):
        mint(state, who, 100_000_000_000_000)
    return state


def _call(caller: bytes, fn: Function, *args: Value) -> ContractCall:
    return ContractCall(caller=caller, function=fn, args=list(args))


def _create(caller: bytes, recipient: bytes, amount: int = AMOUNT) -> ContractCall:
    return _call(
        caller,
        Function.CREATE_TRANSACTION,
        Value.principal(recipient),
        Value.uint(amount),
        Value.utf8("Test transaction"),
    )


def test_block_create_transaction(block_test_group) -> None:
    state = _genesis()
    post, receipts = block_test_group(REL, "block_create_transaction", state, [_create(ALICE, BOB)])
    assert [r.ok for r in receipts] == [True]
    assert receipts[0].value == 1
    assert post.global_state.block_height == 2

    entry = read_only(post, ALICE, Function.GET_TRANSACTION, [Value.uint(1)]).value
    assert entry.amount == AMOUNT
    assert entry.status == EntryStatus.ACTIVE
    assert entry.created_at == 1


def test_block_confirm_transaction(block_test_group) -> None:
    state = _genesis()
    state, _ = block_test_group(REL, "block_confirm_setup", state, [_create(ALICE, BOB)])
    post, receipts = block_test_group(
        REL,
        "block_confirm_transaction",
        state,
        [_call(BOB, Function.CONFIRM_TRANSACTION, Value.uint(1))],
    )
    assert receipts[0].ok and receipts[0].value is True
    assert post.entries[1].status == EntryStatus.COMPLETED
    assert post.entries[1].confirmed_at == 2
    assert post.global_state.block_height == 3
    custody.check_custody(post)


def test_block_initiate_dispute(block_test_group) -> None:
    state = _genesis()
    state, _ = block_test_group(REL, "block_dispute_setup", state, [_create(ALICE, BOB)])
    post, receipts = block_test_group(
        REL,
        "block_initiate_dispute",
        state,
        [_call(ALICE, Function.INITIATE_DISPUTE, Value.uint(1), Value.utf8("Item not received"))],
    )
    assert receipts[0].ok
    assert read_only(post, BOB, Function.IS_DISPUTE_ACTIVE, [Value.uint(1)]).value is True


def test_block_resolve_dispute_refund_by_sender(block_test_group) -> None:
    settings = EngineSettings(resolver_policy=ResolverPolicy.INITIATOR)
    state = _genesis(settings)
    before = balance(state, ALICE)
    post, receipts = block_test_group(
        REL,
        "block_resolve_dispute_refund_by_sender",
        state,
        [
            _create(ALICE, BOB),
            _call(ALICE, Function.INITIATE_DISPUTE, Value.uint(1), Value.utf8("Item not received")),
            _call(ALICE, Function.RESOLVE_DISPUTE_REFUND, Value.uint(1)),
        ],
    )
    assert [r.ok for r in receipts] == [True, True, True]
    assert post.entries[1].status == EntryStatus.REFUNDED
    assert balance(post, ALICE) == before
    assert balance(post, CONTRACT_ADDRESS) == 0
    custody.check_custody(post)


def test_block_failed_call_does_not_abort_block(block_test_group) -> None:
    state = _genesis()
    post, receipts = block_test_group(
        REL,
        "block_failed_call_does_not_abort_block",
        state,
        [
            _create(ALICE, BOB),
            _call(CAROL, Function.CONFIRM_TRANSACTION, Value.uint(1)),
            _create(CAROL, ALICE, 5),
        ],
    )
    assert [r.ok for r in receipts] == [True, False, True]
    assert receipts[1].error.code.name == "UNAUTHORIZED"
    assert [r.value for r in receipts if r.ok] == [1, 2]
    assert post.entries[1].status == EntryStatus.ACTIVE
    custody.check_custody(post)


def test_block_double_spend_rejected(block_test_group) -> None:
    state = _genesis()
    spendable = balance(state, ALICE)
    post, receipts = block_test_group(
        REL,
        "block_double_spend_rejected",
        state,
        [_create(ALICE, BOB, spendable), _create(ALICE, CAROL, 1)],
    )
    assert receipts[0].ok
    assert receipts[1].error.code.name == "INSUFFICIENT_FUNDS"
    assert balance(post, ALICE) == 0
    assert post.next_entry_id == 2


def test_block_empty_advances_height(block_test_group) -> None:
    state = _genesis()
    post, receipts = block_test_group(REL, "block_empty", state, [])
    assert receipts == []
    assert post.global_state.block_height == state.global_state.block_height + 1
