"""
test_arithmetic.py - Unit tests for the arithmetic domain and call types

Tests:
- add/sub: wrapping results and overflow flags at the boundaries
- checked_add/checked_sub/checked_sum
- Domain validation of amounts and addresses
- Call: argument validation, rendering, mode switching
- CallOutcome and StateSnapshot helpers
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from tokenprops import (
    MAX_UINT256, MAX_ADDRESS, NULL_ADDRESS,
    Call, CallMode, CallOutcome, Function, StateSnapshot,
    add, sub, checked_add, checked_sub, checked_sum,
    is_amount, is_address, format_address,
    mint_call, transfer_call, transfer_from_call, approve_call, balance_of_call,
)


uint256 = st.integers(min_value=0, max_value=MAX_UINT256)


class TestAdd:

    def test_small_values(self):
        assert add(2, 3) == (5, False)

    def test_max_plus_zero(self):
        assert add(MAX_UINT256, 0) == (MAX_UINT256, False)

    def test_max_plus_one_wraps(self):
        assert add(MAX_UINT256, 1) == (0, True)

    def test_overflow_scenario_values(self):
        """MAX - 50 + 60 wraps to 9 with the flag set."""
        assert add(MAX_UINT256 - 50, 60) == (9, True)

    @given(uint256, uint256)
    @settings(max_examples=200)
    def test_flag_matches_exact_sum(self, a, b):
        value, overflowed = add(a, b)
        assert overflowed == (a + b > MAX_UINT256)
        assert value == (a + b) % (MAX_UINT256 + 1)


class TestSub:

    def test_small_values(self):
        assert sub(5, 3) == (2, False)

    def test_zero_minus_one_wraps(self):
        assert sub(0, 1) == (MAX_UINT256, True)

    def test_equal_values(self):
        assert sub(MAX_UINT256, MAX_UINT256) == (0, False)

    @given(uint256, uint256)
    @settings(max_examples=200)
    def test_flag_matches_ordering(self, a, b):
        value, underflowed = sub(a, b)
        assert underflowed == (b > a)
        if not underflowed:
            assert value == a - b


class TestCheckedArithmetic:

    def test_checked_add_none_on_overflow(self):
        assert checked_add(MAX_UINT256, 1) is None
        assert checked_add(MAX_UINT256 - 1, 1) == MAX_UINT256

    def test_checked_sub_none_on_underflow(self):
        assert checked_sub(1, 2) is None
        assert checked_sub(2, 2) == 0

    def test_checked_sum(self):
        assert checked_sum([1, 2, 3]) == 6
        assert checked_sum([]) == 0
        assert checked_sum([MAX_UINT256, 0]) == MAX_UINT256
        assert checked_sum([MAX_UINT256, 1, 0]) is None


class TestDomainValidation:

    def test_amount_bounds(self):
        assert is_amount(0)
        assert is_amount(MAX_UINT256)
        assert not is_amount(-1)
        assert not is_amount(MAX_UINT256 + 1)

    def test_bool_and_float_are_not_amounts(self):
        assert not is_amount(True)
        assert not is_amount(1.0)

    def test_address_bounds(self):
        assert is_address(NULL_ADDRESS)
        assert is_address(MAX_ADDRESS)
        assert not is_address(MAX_ADDRESS + 1)
        assert not is_address("0x10")

    def test_format_address(self):
        assert format_address(0x10) == "0x" + "0" * 38 + "10"
        assert len(format_address(MAX_ADDRESS)) == 42


class TestCall:

    def test_arg_types_from_signature(self):
        call = transfer_from_call(0x10, 0x20, 0x30, 5)
        assert call.arg_types() == ("address", "address", "uint256")
        assert call.address_args() == (0x20, 0x30)

    def test_read_call_defaults_to_raw(self):
        assert balance_of_call(0x10).mode is CallMode.RAW

    def test_mutating_call_defaults_to_typed(self):
        assert approve_call(0x10, 0x20, 1).mode is CallMode.TYPED

    def test_wrong_arity_rejected(self):
        with pytest.raises(ValueError):
            Call(Function.TRANSFER, 0x10, (0x20,))

    def test_out_of_range_amount_rejected(self):
        with pytest.raises(ValueError):
            transfer_call(0x10, 0x20, MAX_UINT256 + 1)

    def test_out_of_range_address_rejected(self):
        with pytest.raises(ValueError):
            transfer_call(0x10, MAX_ADDRESS + 1, 1)

    def test_negative_caller_rejected(self):
        with pytest.raises(ValueError):
            transfer_call(-1, 0x20, 1)

    def test_with_mode(self):
        call = transfer_call(0x10, 0x20, 1)
        raw_call = call.with_mode(CallMode.RAW)
        assert raw_call.mode is CallMode.RAW
        assert raw_call.args == call.args
        assert call.mode is CallMode.TYPED

    def test_repr_formats_addresses(self):
        text = repr(transfer_call(0x10, 0x20, 7))
        assert "transfer(" in text
        assert format_address(0x20) in text
        assert "7)" in text

    def test_mint_has_no_caller(self):
        assert mint_call(0x10, 5).caller is None

    def test_function_classification(self):
        assert Function.TRANSFER.returns_bool
        assert Function.BALANCE_OF.returns_amount
        assert Function.MINT.mutating
        assert not Function.MINT.returns_bool
        assert not Function.ALLOWANCE.mutating


class TestCallOutcome:

    def test_reverted(self):
        outcome = CallOutcome.reverted_with("nope")
        assert outcome.reverted
        assert not outcome.completed
        assert outcome.reason == "nope"

    def test_completed_false_is_not_reverted(self):
        outcome = CallOutcome.completed_with(False)
        assert outcome.completed_false
        assert not outcome.reverted
        assert not outcome.completed_true

    def test_completed_true(self):
        assert CallOutcome.completed_with(True).completed_true


class TestStateSnapshot:

    def test_changed_balances(self):
        before = StateSnapshot(10, {0x10: 10, 0x20: 0})
        after = StateSnapshot(10, {0x10: 4, 0x20: 6})
        assert before.changed_balances(after) == {0x10: (10, 4), 0x20: (0, 6)}

    def test_unchanged_snapshots(self):
        snap = StateSnapshot(5, {0x10: 5}, {(0x10, 0x20): 3})
        assert snap.changed_balances(snap) == {}
        assert snap.changed_allowances(snap) == {}

    def test_to_dict_drops_zero_allowances(self):
        snap = StateSnapshot(5, {0x10: 5}, {(0x10, 0x10): 0, (0x10, 0x20): 3})
        data = snap.to_dict()
        assert data["total_supply"] == 5
        assert len(data["allowances"]) == 1
