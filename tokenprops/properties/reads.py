"""
reads.py - Read-only and global accounting properties

ERC20-STDPROP-01 .. 06:
    totalSupply, balanceOf and allowance always complete, report the state
    and never mutate it; balances are bounded by the supply, the null address
    holds nothing, and the supply equals the sum of balances in every
    reachable state.
"""

from __future__ import annotations
from typing import List, Sequence

from ..core import (
    Address, Call, Function,
    NULL_ADDRESS,
    checked_sum,
    approve_call, transfer_call, transfer_from_call,
    total_supply_call, balance_of_call, allowance_call,
)
from ..strategies import addresses, amounts, operations, Operation
from .base import (
    Evaluation, Inputs, Property, OP_READS,
    ensure, ensure_state_unchanged, fund, raw,
)


def _ensure_read_matches(ev: Evaluation, expected: int) -> None:
    ensure(ev.outcome.completed, f"read-only call must complete, got {ev.outcome!r}")
    ensure(ev.outcome.value == expected, f"read returned {ev.outcome.value!r}, state holds {expected}")
    ensure_state_unchanged(ev)


def _supply_fits(*names: str):
    """Precondition: the setup mints did not overflow the supply."""
    def precondition(inputs: Inputs, pre) -> bool:
        return checked_sum(inputs[n] for n in names) is not None
    return precondition


def operation_calls(holders: Sequence[Address], ops: Sequence[Operation]) -> List[Call]:
    """Turn generated (function, i, j, k, amount) tuples into RAW calls among holders."""
    calls = []
    for function, i, j, k, amount in ops:
        if function == Function.TRANSFER.name:
            calls.append(raw(transfer_call(holders[i], holders[j], amount)))
        elif function == Function.TRANSFER_FROM.name:
            calls.append(raw(transfer_from_call(holders[i], holders[j], holders[k], amount)))
        else:
            calls.append(raw(approve_call(holders[i], holders[j], amount)))
    return calls


# ============================================================================
# ERC20-STDPROP-01: totalSupply is a pure read
# ============================================================================

def _total_supply_post(ev: Evaluation) -> None:
    _ensure_read_matches(ev, ev.pre.total_supply)


TOTAL_SUPPLY_IS_PURE = Property(
    id="ERC20-STDPROP-01",
    name="total_supply_is_pure",
    operation=OP_READS,
    description="totalSupply() always completes, returns the supply and changes nothing",
    address_inputs={"holder": addresses()},
    amount_inputs={"balance": amounts()},
    setup=lambda i: fund((i["holder"], i["balance"])),
    call=lambda i: total_supply_call(),
    postcondition=_total_supply_post,
)


# ============================================================================
# ERC20-STDPROP-02: balanceOf is a pure read
# ============================================================================

def _balance_of_post(ev: Evaluation) -> None:
    _ensure_read_matches(ev, ev.pre.balance(ev["queried"]))


BALANCE_OF_IS_PURE = Property(
    id="ERC20-STDPROP-02",
    name="balance_of_is_pure",
    operation=OP_READS,
    description="balanceOf(any address, null included) completes, returns the balance and changes nothing",
    address_inputs={"holder": addresses(), "queried": addresses(allow_null=True)},
    amount_inputs={"balance": amounts()},
    setup=lambda i: fund((i["holder"], i["balance"])),
    call=lambda i: balance_of_call(i["queried"]),
    postcondition=_balance_of_post,
)


# ============================================================================
# ERC20-STDPROP-03: allowance is a pure read
# ============================================================================

def _allowance_post(ev: Evaluation) -> None:
    _ensure_read_matches(ev, ev.pre.allowance(ev["queried_owner"], ev["queried_spender"]))


ALLOWANCE_IS_PURE = Property(
    id="ERC20-STDPROP-03",
    name="allowance_is_pure",
    operation=OP_READS,
    description="allowance(any, any) completes, returns the allowance and changes nothing",
    address_inputs={
        "owner": addresses(),
        "spender": addresses(),
        "queried_owner": addresses(allow_null=True),
        "queried_spender": addresses(allow_null=True),
    },
    amount_inputs={"allowance": amounts()},
    setup=lambda i: [approve_call(i["owner"], i["spender"], i["allowance"])],
    call=lambda i: allowance_call(i["queried_owner"], i["queried_spender"]),
    postcondition=_allowance_post,
)


# ============================================================================
# ERC20-STDPROP-04: no balance exceeds the total supply
# ============================================================================

def _bounded_post(ev: Evaluation) -> None:
    ensure(ev.outcome.completed, f"totalSupply() must complete, got {ev.outcome!r}")
    supply = ev.outcome.value
    for address, balance in sorted(ev.post.balances.items()):
        ensure(balance <= supply, f"balance of {address:#x} is {balance}, above total supply {supply}")


BALANCE_BOUNDED_BY_SUPPLY = Property(
    id="ERC20-STDPROP-04",
    name="balance_bounded_by_supply",
    operation=OP_READS,
    description="for every account, balanceOf(account) <= totalSupply()",
    address_inputs={
        "first": addresses(),
        "second": addresses(),
        "receiver": addresses(allow_null=True),
    },
    amount_inputs={"first_balance": amounts(), "second_balance": amounts(), "amount": amounts()},
    setup=lambda i: fund((i["first"], i["first_balance"]), (i["second"], i["second_balance"])) + [
        raw(transfer_call(i["first"], i["receiver"], i["amount"])),
    ],
    precondition=_supply_fits("first_balance", "second_balance"),
    call=lambda i: total_supply_call(),
    postcondition=_bounded_post,
)


# ============================================================================
# ERC20-STDPROP-05: the null address never holds a balance
# ============================================================================

def _null_balance_post(ev: Evaluation) -> None:
    ensure(ev.outcome.completed, f"balanceOf(null) must complete, got {ev.outcome!r}")
    ensure(ev.outcome.value == 0, f"null address holds {ev.outcome.value!r}")


NULL_BALANCE_IS_ZERO = Property(
    id="ERC20-STDPROP-05",
    name="null_balance_is_zero",
    operation=OP_READS,
    description="balanceOf(null) == 0, even after attempts to send tokens to it",
    address_inputs={"sender": addresses()},
    amount_inputs={"balance": amounts(), "amount": amounts()},
    setup=lambda i: fund((i["sender"], i["balance"])) + [
        raw(transfer_call(i["sender"], NULL_ADDRESS, i["amount"])),
        raw(approve_call(i["sender"], i["sender"], i["amount"])),
        raw(transfer_from_call(i["sender"], i["sender"], NULL_ADDRESS, i["amount"])),
    ],
    call=lambda i: balance_of_call(NULL_ADDRESS),
    postcondition=_null_balance_post,
)


# ============================================================================
# ERC20-STDPROP-06: total supply equals the sum of balances
# ============================================================================

def _sum_post(ev: Evaluation) -> None:
    ensure(ev.outcome.completed, f"totalSupply() must complete, got {ev.outcome!r}")
    total = sum(ev.post.balances.values())
    ensure(total == ev.outcome.value, f"balances sum to {total}, total supply is {ev.outcome.value}")


def _holders(inputs: Inputs) -> List[Address]:
    return [inputs["first"], inputs["second"], inputs["third"]]


SUPPLY_EQUALS_SUM_OF_BALANCES = Property(
    id="ERC20-STDPROP-06",
    name="supply_equals_sum_of_balances",
    operation=OP_READS,
    description="after any sequence of calls, the balances sum to totalSupply()",
    address_inputs={"first": addresses(), "second": addresses(), "third": addresses()},
    amount_inputs={"first_balance": amounts(), "second_balance": amounts(), "third_balance": amounts()},
    extra_inputs={"operations": operations(holder_count=3)},
    setup=lambda i: fund(
        (i["first"], i["first_balance"]),
        (i["second"], i["second_balance"]),
        (i["third"], i["third_balance"]),
    ) + operation_calls(_holders(i), i["operations"]),
    precondition=_supply_fits("first_balance", "second_balance", "third_balance"),
    call=lambda i: total_supply_call(),
    postcondition=_sum_post,
)


PROPERTIES = (
    TOTAL_SUPPLY_IS_PURE,
    BALANCE_OF_IS_PURE,
    ALLOWANCE_IS_PURE,
    BALANCE_BOUNDED_BY_SUPPLY,
    NULL_BALANCE_IS_ZERO,
    SUPPLY_EQUALS_SUM_OF_BALANCES,
)
