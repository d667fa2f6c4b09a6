"""
base.py - Property definitions and the evaluation engine

A Property pairs an input generator with a precondition and a postcondition:

    inputs        named address/amount strategies (plus optional extras)
    setup         calls that drive a fresh subject toward the precondition
    precondition  predicate over (inputs, pre-state snapshot)
    call          the call under test, TYPED or RAW
    postcondition assertions over the Evaluation (pre, outcome, post)

evaluate() runs one input assignment against one fresh subject. It knows
nothing about how inputs are searched for: it raises Discarded when the
assignment does not reach the precondition and PropertyViolation when the
postcondition fails, so any search backend (random, exhaustive, symbolic)
can drive it.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from hypothesis import strategies as st
from hypothesis.strategies import SearchStrategy

from ..adapter import SubjectAdapter
from ..core import (
    # Types
    Address, Amount, Call, CallMode, CallOutcome, StateSnapshot, TokenSubject, Witness,
    # Constants
    NULL_ADDRESS,
    # Call factories
    mint_call,
    # Exceptions
    AdapterError, Discarded, PropertyViolation, Revert, TokenPropsError,
)


Inputs = Mapping[str, Any]


# Operation groups, in catalog order.
OP_READS = "reads"
OP_TRANSFER = "transfer"
OP_TRANSFER_FROM = "transferFrom"
OP_APPROVE = "approve"
OPERATIONS = (OP_READS, OP_TRANSFER, OP_TRANSFER_FROM, OP_APPROVE)


class PostconditionFailed(TokenPropsError):
    """Raised by the ensure helpers; evaluate() turns it into a PropertyViolation."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def _no_setup(inputs: Inputs) -> List[Call]:
    return []


def _always(inputs: Inputs, pre: StateSnapshot) -> bool:
    return True


@dataclass(frozen=True, eq=False)
class Property:
    """
    A named invariant over one call of the subject.

    Attributes:
        id: Stable identifier, e.g. "ERC20-STDPROP-07"
        name: snake_case name, unique in the catalog
        operation: Operation group (reads, transfer, transferFrom, approve)
        description: One-line statement of the invariant
        call: Builds the call under test from the inputs
        postcondition: Asserts over the Evaluation; raises PostconditionFailed
        address_inputs: Strategies for the address-valued inputs
        amount_inputs: Strategies for the amount-valued inputs
        extra_inputs: Strategies for any other inputs (e.g. operation sequences)
        setup: Builds the setup calls from the inputs
        precondition: Predicate over (inputs, pre-state)
    """
    id: str
    name: str
    operation: str
    description: str
    call: Callable[[Inputs], Call]
    postcondition: Callable[['Evaluation'], None]
    address_inputs: Dict[str, SearchStrategy] = field(default_factory=dict)
    amount_inputs: Dict[str, SearchStrategy] = field(default_factory=dict)
    extra_inputs: Dict[str, SearchStrategy] = field(default_factory=dict)
    setup: Callable[[Inputs], List[Call]] = _no_setup
    precondition: Callable[[Inputs, StateSnapshot], bool] = _always

    def __post_init__(self):
        if self.operation not in OPERATIONS:
            raise ValueError(f"{self.id}: unknown operation group {self.operation!r}")
        names = list(self.address_inputs) + list(self.amount_inputs) + list(self.extra_inputs)
        if len(names) != len(set(names)):
            raise ValueError(f"{self.id}: duplicate input names in {names}")

    def strategy(self) -> SearchStrategy[Dict[str, Any]]:
        """Strategy producing one complete input assignment."""
        return st.fixed_dictionaries({
            **self.address_inputs,
            **self.amount_inputs,
            **self.extra_inputs,
        })

    def tracked(self, inputs: Inputs) -> Tuple[Address, ...]:
        """Addresses observed in the pre/post snapshots: every address input plus null."""
        return tuple(sorted({NULL_ADDRESS} | {inputs[name] for name in self.address_inputs}))

    def __repr__(self) -> str:
        return f"Property({self.id} {self.name} [{self.operation}])"


@dataclass(frozen=True)
class Evaluation:
    """
    Everything observed while evaluating one input assignment.

    Attributes:
        prop: The property evaluated
        inputs: The input assignment
        setup: Setup calls issued
        call: The call under test
        outcome: Outcome of the call under test
        pre: Snapshot before the call under test
        post: Snapshot after the call under test
    """
    prop: Property
    inputs: Inputs
    setup: Tuple[Call, ...]
    call: Call
    outcome: CallOutcome
    pre: StateSnapshot
    post: StateSnapshot

    def __getitem__(self, name: str) -> Any:
        return self.inputs[name]


# ============================================================================
# SETUP HELPERS
# ============================================================================

def fund(*grants: Tuple[Address, Amount]) -> List[Call]:
    """Mint calls for each (address, amount) grant, skipping the null address and zero amounts."""
    return [mint_call(address, amount) for address, amount in grants if address != NULL_ADDRESS and amount]


# ============================================================================
# POSTCONDITION HELPERS
# ============================================================================

def ensure(condition: bool, message: str) -> None:
    if not condition:
        raise PostconditionFailed(message)


def ensure_reverted(ev: Evaluation) -> None:
    if ev.outcome.completed_false:
        raise PostconditionFailed("call returned false instead of reverting")
    ensure(ev.outcome.reverted, f"call should revert, got {ev.outcome!r}")


def ensure_completed_true(ev: Evaluation) -> None:
    ensure(not ev.outcome.reverted, f"call should complete, got {ev.outcome!r}")
    ensure(ev.outcome.value is True, f"completed call should return true, got {ev.outcome.value!r}")


def ensure_state_unchanged(ev: Evaluation) -> None:
    ensure(ev.post.total_supply == ev.pre.total_supply,
           f"total supply changed {ev.pre.total_supply} -> {ev.post.total_supply}")
    changed = ev.pre.changed_balances(ev.post)
    ensure(not changed, f"balances changed: {_render_changes(changed)}")
    changed_allowances = ev.pre.changed_allowances(ev.post)
    ensure(not changed_allowances, f"allowances changed: {_render_changes(changed_allowances)}")


def ensure_supply_unchanged(ev: Evaluation) -> None:
    ensure(ev.post.total_supply == ev.pre.total_supply,
           f"total supply changed {ev.pre.total_supply} -> {ev.post.total_supply}")


def ensure_balances_unchanged(ev: Evaluation, addresses: Optional[Iterable[Address]] = None) -> None:
    """Balances of addresses (default: every tracked address) are identical before and after."""
    changed = ev.pre.changed_balances(ev.post)
    if addresses is not None:
        wanted = set(addresses)
        changed = {a: v for a, v in changed.items() if a in wanted}
    ensure(not changed, f"balances changed: {_render_changes(changed)}")


def ensure_allowances_unchanged(ev: Evaluation, except_pairs: Sequence[Tuple[Address, Address]] = ()) -> None:
    changed = {
        pair: v for pair, v in ev.pre.changed_allowances(ev.post).items()
        if pair not in except_pairs
    }
    ensure(not changed, f"allowances changed: {_render_changes(changed)}")


def ensure_balance_delta(ev: Evaluation, address: Address, delta: int) -> None:
    """post balance == pre balance + delta, computed exactly."""
    before = ev.pre.balance(address)
    after = ev.post.balance(address)
    ensure(after - before == delta,
           f"balance of {address:#x} moved by {after - before}, expected {delta}")


def _render_changes(changes: Mapping[Any, Tuple[int, int]]) -> str:
    parts = []
    for key, (before, after) in sorted(changes.items()):
        label = f"{key[0]:#x}->{key[1]:#x}" if isinstance(key, tuple) else f"{key:#x}"
        parts.append(f"{label}: {before} -> {after}")
    return ", ".join(parts)


# ============================================================================
# EVALUATION
# ============================================================================

def evaluate(prop: Property, subject: TokenSubject, inputs: Inputs) -> Evaluation:
    """
    Evaluate prop for one input assignment against a fresh subject.

    Steps:
    1. Issue the setup calls (a reverting TYPED setup call discards the assignment)
    2. Snapshot the pre-state and check the precondition
    3. Issue the call under test (a reverting TYPED call discards the assignment)
    4. Snapshot the post-state and check the postcondition

    Args:
        prop: Property to evaluate
        subject: A freshly constructed token; it is mutated
        inputs: One assignment drawn from prop.strategy()

    Returns:
        The Evaluation, if the postcondition holds

    Raises:
        Discarded: If the assignment does not reach the precondition
        PropertyViolation: If the postcondition fails or the subject crashes
    """
    adapter = SubjectAdapter(subject)
    setup = tuple(prop.setup(inputs))
    call = prop.call(inputs)
    # Parties of the call under test are always observed, input or not.
    tracked = tuple(sorted(set(prop.tracked(inputs)) | set(call.address_args())))
    outcome: Optional[CallOutcome] = None
    pre: Optional[StateSnapshot] = None
    post: Optional[StateSnapshot] = None

    def witness(message: str) -> Witness:
        return Witness(
            property_id=prop.id,
            message=message,
            inputs=dict(inputs),
            setup=setup,
            call=call,
            outcome=outcome,
            pre=pre,
            post=post,
            address_inputs=tuple(prop.address_inputs),
        )

    try:
        for step in setup:
            try:
                adapter.execute(step)
            except Revert as e:
                raise Discarded(f"setup call {step!r} reverted: {e.reason}") from e

        pre = adapter.snapshot(tracked)
        if not prop.precondition(inputs, pre):
            raise Discarded("precondition not met")

        try:
            outcome = adapter.execute(call)
        except Revert as e:
            # TYPED call under test: a rejection means "never happened".
            raise Discarded(f"call under test reverted: {e.reason}") from e

        post = adapter.snapshot(tracked)
    except AdapterError as e:
        raise PropertyViolation(witness(str(e))) from e

    evaluation = Evaluation(prop, dict(inputs), setup, call, outcome, pre, post)
    try:
        prop.postcondition(evaluation)
    except PostconditionFailed as e:
        raise PropertyViolation(witness(e.message)) from e
    return evaluation


def raw(call: Call) -> Call:
    """The same call, dispatched in RAW mode."""
    return call.with_mode(CallMode.RAW)
