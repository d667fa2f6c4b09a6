"""
test_reference_token.py - Unit tests for ReferenceToken

Tests:
- mint
- transfer: success, self transfer, every revert rule
- transferFrom: allowance consumption, unlimited allowance, revert rules
- approve: overwrite semantics, null spender
- Reverts leave no trace
"""

import pytest

from tokenprops import ReferenceToken, Revert, MAX_UINT256, NULL_ADDRESS


ALICE = 0x10
BOB = 0x20
CAROL = 0x30


class TestMint:

    def test_mint_credits_and_grows_supply(self, token):
        token.mint(ALICE, 100)
        assert token.balance_of(ALICE) == 100
        assert token.total_supply() == 100

    def test_mint_to_null_reverts(self, token):
        with pytest.raises(Revert):
            token.mint(NULL_ADDRESS, 1)
        assert token.total_supply() == 0

    def test_mint_balance_overflow_reverts(self, token):
        token.mint(ALICE, MAX_UINT256)
        with pytest.raises(Revert):
            token.mint(ALICE, 1)
        assert token.total_supply() == MAX_UINT256

    def test_mint_supply_wraps(self, token):
        token.mint(ALICE, 100)
        token.mint(BOB, MAX_UINT256 - 50)
        assert token.total_supply() == 49
        assert not token.state.verify_accounting()['valid']


class TestTransfer:

    def test_transfer_moves_amount(self, funded_token):
        assert funded_token.transfer(ALICE, BOB, 300) is True
        assert funded_token.balance_of(ALICE) == 700
        assert funded_token.balance_of(BOB) == 800
        assert funded_token.total_supply() == 1500

    def test_transfer_whole_balance(self, funded_token):
        funded_token.transfer(ALICE, BOB, 1000)
        assert funded_token.balance_of(ALICE) == 0

    def test_self_transfer_is_noop(self, funded_token):
        assert funded_token.transfer(ALICE, ALICE, 400) is True
        assert funded_token.balance_of(ALICE) == 1000

    def test_zero_transfer(self, funded_token):
        assert funded_token.transfer(ALICE, CAROL, 0) is True
        assert funded_token.balance_of(CAROL) == 0

    def test_insufficient_balance_reverts(self, funded_token):
        with pytest.raises(Revert, match="exceeds balance"):
            funded_token.transfer(BOB, ALICE, 501)
        assert funded_token.balance_of(BOB) == 500

    def test_to_null_reverts(self, funded_token):
        with pytest.raises(Revert, match="to the null address"):
            funded_token.transfer(ALICE, NULL_ADDRESS, 1)

    def test_from_null_reverts(self, funded_token):
        with pytest.raises(Revert, match="from the null address"):
            funded_token.transfer(NULL_ADDRESS, ALICE, 0)

    def test_receiver_overflow_reverts(self, token):
        token.mint(ALICE, 100)
        token.mint(BOB, MAX_UINT256 - 50)
        with pytest.raises(Revert, match="overflows"):
            token.transfer(ALICE, BOB, 60)
        assert token.balance_of(ALICE) == 100
        assert token.balance_of(BOB) == MAX_UINT256 - 50

    def test_self_transfer_at_max_does_not_overflow(self, token):
        token.mint(ALICE, MAX_UINT256)
        assert token.transfer(ALICE, ALICE, MAX_UINT256) is True


class TestTransferFrom:

    def test_consumes_allowance(self, funded_token):
        funded_token.approve(ALICE, BOB, 300)
        assert funded_token.transfer_from(BOB, ALICE, CAROL, 200) is True
        assert funded_token.allowance(ALICE, BOB) == 100
        assert funded_token.balance_of(CAROL) == 200
        assert funded_token.balance_of(ALICE) == 800

    def test_unlimited_allowance_not_consumed(self, funded_token):
        funded_token.approve(ALICE, BOB, MAX_UINT256)
        funded_token.transfer_from(BOB, ALICE, CAROL, 200)
        assert funded_token.allowance(ALICE, BOB) == MAX_UINT256

    def test_insufficient_allowance_reverts(self, token):
        token.mint(ALICE, 200)
        token.approve(ALICE, BOB, 50)
        with pytest.raises(Revert, match="insufficient allowance"):
            token.transfer_from(BOB, ALICE, CAROL, 100)
        assert token.balance_of(ALICE) == 200
        assert token.balance_of(CAROL) == 0
        assert token.allowance(ALICE, BOB) == 50

    def test_insufficient_balance_reverts(self, funded_token):
        funded_token.approve(BOB, ALICE, 10_000)
        with pytest.raises(Revert, match="exceeds balance"):
            funded_token.transfer_from(ALICE, BOB, CAROL, 501)
        assert funded_token.allowance(BOB, ALICE) == 10_000

    def test_null_owner_reverts(self, token):
        token.approve(NULL_ADDRESS, BOB, 10)
        with pytest.raises(Revert):
            token.transfer_from(BOB, NULL_ADDRESS, CAROL, 0)

    def test_to_null_reverts(self, funded_token):
        funded_token.approve(ALICE, BOB, 10)
        with pytest.raises(Revert):
            funded_token.transfer_from(BOB, ALICE, NULL_ADDRESS, 5)
        assert funded_token.allowance(ALICE, BOB) == 10

    def test_self_transfer_from_consumes_allowance_only(self, funded_token):
        funded_token.approve(ALICE, BOB, 10)
        funded_token.transfer_from(BOB, ALICE, ALICE, 4)
        assert funded_token.balance_of(ALICE) == 1000
        assert funded_token.allowance(ALICE, BOB) == 6


class TestApprove:

    def test_approve_sets_allowance(self, token):
        assert token.approve(ALICE, BOB, 75) is True
        assert token.allowance(ALICE, BOB) == 75
        assert token.allowance(BOB, ALICE) == 0

    def test_approve_overwrites(self, token):
        token.approve(ALICE, BOB, 100)
        token.approve(ALICE, BOB, 20)
        assert token.allowance(ALICE, BOB) == 20

    def test_approve_without_balance(self, token):
        assert token.approve(ALICE, BOB, MAX_UINT256) is True

    def test_null_spender_reverts(self, token):
        with pytest.raises(Revert):
            token.approve(ALICE, NULL_ADDRESS, 1)
        assert token.allowance(ALICE, NULL_ADDRESS) == 0

    def test_approve_leaves_balances(self, funded_token):
        funded_token.approve(ALICE, BOB, 5)
        assert funded_token.balance_of(ALICE) == 1000
        assert funded_token.total_supply() == 1500


class TestRevertsLeaveNoTrace:

    def test_failed_calls_keep_snapshot(self, funded_token):
        before = funded_token.state.snapshot()
        for attempt in (
            lambda: funded_token.transfer(ALICE, BOB, 1001),
            lambda: funded_token.transfer(ALICE, NULL_ADDRESS, 1),
            lambda: funded_token.transfer_from(CAROL, ALICE, BOB, 1),
            lambda: funded_token.approve(ALICE, NULL_ADDRESS, 1),
        ):
            with pytest.raises(Revert):
                attempt()
        assert funded_token.state.snapshot() == before

    def test_shared_state_between_tokens(self, state):
        first = ReferenceToken(state)
        second = ReferenceToken(state)
        first.mint(ALICE, 5)
        assert second.balance_of(ALICE) == 5
