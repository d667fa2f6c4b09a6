"""
test_catalog.py - Unit tests for the property catalog and evaluate()

Tests:
- Catalog shape: IDs, names, operation groups
- Lookup by ID and name
- Property construction checks
- evaluate() on hand-picked assignments: pass, discard, violation
- Witness contents and rendering
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from tokenprops import (
    CATALOG, OPERATIONS, OP_APPROVE, OP_READS, OP_TRANSFER, OP_TRANSFER_FROM,
    Property, ReferenceToken, Discarded, PropertyViolation, Revert, UnknownProperty,
    evaluate, get_property, list_properties,
    MAX_UINT256, NULL_ADDRESS,
    format_address, balance_of_call, total_supply_call,
)

from tests.faulty_tokens import FalseReturningToken, LeakyFalseToken, CrashingToken


ALICE = 0x10
BOB = 0x20
CAROL = 0x30


class TestCatalogShape:

    def test_catalog_size(self):
        assert len(CATALOG) == 37

    def test_ids_are_contiguous(self):
        assert [p.id for p in CATALOG] == [f"ERC20-STDPROP-{n:02d}" for n in range(1, 38)]

    def test_names_unique(self):
        assert len({p.name for p in CATALOG}) == len(CATALOG)

    @pytest.mark.parametrize("operation,count", [
        (OP_READS, 6),
        (OP_TRANSFER, 12),
        (OP_TRANSFER_FROM, 14),
        (OP_APPROVE, 5),
    ])
    def test_group_sizes(self, operation, count):
        assert len(list_properties(operation)) == count

    def test_groups_cover_catalog(self):
        assert sum(len(list_properties(op)) for op in OPERATIONS) == len(CATALOG)

    def test_every_property_described(self):
        for prop in CATALOG:
            assert prop.description
            assert prop.strategy() is not None


class TestLookup:

    def test_by_id(self):
        assert get_property("ERC20-STDPROP-07").name == "transfer_to_null_reverts"

    def test_by_name(self):
        assert get_property("approve_overwrites").id == "ERC20-STDPROP-36"

    def test_property_passthrough(self):
        assert get_property(CATALOG[0]) is CATALOG[0]

    def test_unknown(self):
        with pytest.raises(UnknownProperty):
            get_property("ERC20-STDPROP-99")

    def test_unknown_is_key_error(self):
        with pytest.raises(KeyError):
            get_property("no_such_property")

    def test_unknown_group(self):
        with pytest.raises(ValueError):
            list_properties("burn")


class TestPropertyConstruction:

    def _make(self, **overrides):
        fields = dict(
            id="X-01",
            name="x",
            operation=OP_READS,
            description="",
            call=lambda i: total_supply_call(),
            postcondition=lambda ev: None,
        )
        fields.update(overrides)
        return Property(**fields)

    def test_unknown_operation_rejected(self):
        with pytest.raises(ValueError):
            self._make(operation="mint")

    def test_duplicate_input_names_rejected(self):
        with pytest.raises(ValueError):
            self._make(address_inputs={"a": st.just(1)}, amount_inputs={"a": st.just(1)})

    def test_tracked_includes_null(self):
        prop = self._make(address_inputs={"a": st.just(ALICE)})
        assert prop.tracked({"a": ALICE}) == (NULL_ADDRESS, ALICE)

    def test_call_parties_are_snapshotted(self):
        prop = self._make(
            address_inputs={"a": st.just(ALICE)},
            call=lambda i: balance_of_call(CAROL),
        )
        ev = evaluate(prop, ReferenceToken(), {"a": ALICE})
        assert CAROL in ev.pre.balances
        assert CAROL in ev.post.balances


class TestStrategies:

    @pytest.mark.parametrize("prop", CATALOG, ids=lambda p: p.name)
    @given(data=st.data())
    @settings(max_examples=5)
    def test_assignments_have_every_input(self, prop, data):
        inputs = data.draw(prop.strategy())
        expected = set(prop.address_inputs) | set(prop.amount_inputs) | set(prop.extra_inputs)
        assert set(inputs) == expected
        for name in prop.address_inputs:
            assert 0 <= inputs[name] < 2 ** 160
        for name in prop.amount_inputs:
            assert 0 <= inputs[name] <= MAX_UINT256


class TestEvaluate:

    def test_passing_evaluation(self):
        prop = get_property("transfer_moves_exact_amount")
        inputs = {"sender": ALICE, "receiver": BOB, "sender_balance": 100, "receiver_balance": 5, "amount": 30}
        ev = evaluate(prop, ReferenceToken(), inputs)
        assert ev.pre.balance(ALICE) == 100
        assert ev.post.balance(ALICE) == 70
        assert ev.post.balance(BOB) == 35
        assert ev["amount"] == 30
        assert len(ev.setup) == 2

    def test_precondition_discard(self):
        prop = get_property("transfer_moves_exact_amount")
        inputs = {"sender": ALICE, "receiver": BOB, "sender_balance": 10, "receiver_balance": 0, "amount": 30}
        with pytest.raises(Discarded):
            evaluate(prop, ReferenceToken(), inputs)

    def test_typed_revert_discards(self):
        prop = get_property("transfer_moves_exact_amount")
        inputs = {
            "sender": ALICE, "receiver": BOB,
            "sender_balance": 100, "receiver_balance": MAX_UINT256, "amount": 1,
        }
        with pytest.raises(Discarded):
            evaluate(prop, ReferenceToken(), inputs)

    def test_setup_revert_discards(self):
        prop = get_property("approve_overwrites")
        inputs = {"owner": ALICE, "spender": BOB, "first": 1, "second": 2}
        with pytest.raises(Discarded):
            evaluate(prop, _NoApproveToken(), inputs)

    def test_violation_carries_witness(self):
        prop = get_property("transfer_exceeding_balance_reverts")
        inputs = {"sender": ALICE, "receiver": BOB, "sender_balance": 0, "receiver_balance": 0, "amount": 1}
        with pytest.raises(PropertyViolation) as excinfo:
            evaluate(prop, FalseReturningToken(), inputs)
        witness = excinfo.value.witness
        assert witness.property_id == "ERC20-STDPROP-11"
        assert "returned false" in witness.message
        assert witness.outcome.completed_false
        assert witness.inputs == inputs
        assert witness.pre is not None
        assert witness.post is not None

    def test_false_return_without_effect_is_accepted(self):
        prop = get_property("transfer_false_return_has_no_effect")
        inputs = {"sender": ALICE, "receiver": BOB, "sender_balance": 3, "receiver_balance": 0, "amount": 4}
        ev = evaluate(prop, FalseReturningToken(), inputs)
        assert ev.outcome.completed_false

    def test_false_return_with_effect_is_violation(self):
        prop = get_property("transfer_false_return_has_no_effect")
        inputs = {"sender": ALICE, "receiver": BOB, "sender_balance": 3, "receiver_balance": 0, "amount": 4}
        with pytest.raises(PropertyViolation) as excinfo:
            evaluate(prop, LeakyFalseToken(), inputs)
        assert "balances changed" in excinfo.value.witness.message

    def test_crash_is_violation(self):
        prop = get_property("zero_transfer_is_neutral")
        inputs = {"sender": ALICE, "receiver": BOB, "sender_balance": 1, "receiver_balance": 1}
        with pytest.raises(PropertyViolation) as excinfo:
            evaluate(prop, CrashingToken(), inputs)
        witness = excinfo.value.witness
        assert "ZeroDivisionError" in witness.message
        assert witness.outcome is None
        assert witness.post is None


class TestWitnessRendering:

    def _witness(self):
        prop = get_property("transfer_exceeding_balance_reverts")
        inputs = {"sender": ALICE, "receiver": BOB, "sender_balance": 0, "receiver_balance": 7, "amount": 1}
        with pytest.raises(PropertyViolation) as excinfo:
            evaluate(prop, FalseReturningToken(), inputs)
        return excinfo.value.witness

    def test_to_dict_formats_addresses(self):
        data = self._witness().to_dict()
        assert data["inputs"]["sender"] == format_address(ALICE)
        assert data["inputs"]["amount"] == 1
        assert data["pre"]["balances"][format_address(BOB)] == 7
        assert len(data["setup"]) == 1

    def test_repr_is_box(self):
        text = repr(self._witness())
        assert "Witness: ERC20-STDPROP-11" in text
        assert text.strip().startswith("┌")
        assert text.strip().endswith("┘")


class _NoApproveToken(ReferenceToken):

    def approve(self, owner, spender, amount):
        raise Revert("approvals disabled")
