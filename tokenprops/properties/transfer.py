"""
transfer.py - Properties of transfer(to, amount)

ERC20-STDPROP-07 .. 18. The caller of transfer is the sender.

Rejection properties issue the call RAW so that a silent `false` return is
told apart from a revert. Bookkeeping properties issue it TYPED: a revert
there means the assignment never reached the interesting case and is discarded.
"""

from __future__ import annotations

from ..core import (
    MAX_UINT256, NULL_ADDRESS,
    approve_call, transfer_call,
)
from ..strategies import addresses, amounts
from .base import (
    Evaluation, Inputs, Property, OP_TRANSFER,
    ensure, ensure_allowances_unchanged, ensure_balance_delta, ensure_balances_unchanged,
    ensure_completed_true, ensure_reverted, ensure_state_unchanged, ensure_supply_unchanged,
    fund, raw,
)


# Inputs shared by most transfer properties.
_PARTIES = {"sender": addresses(), "receiver": addresses()}
_AMOUNTS = {"sender_balance": amounts(), "receiver_balance": amounts(), "amount": amounts()}


def _fund_parties(i: Inputs):
    return fund((i["sender"], i["sender_balance"]), (i["receiver"], i["receiver_balance"]))


def _affordable(i: Inputs, pre) -> bool:
    return i["amount"] <= pre.balance(i["sender"])


def _receiver_fits(i: Inputs, pre) -> bool:
    return i["sender"] == i["receiver"] or pre.balance(i["receiver"]) + i["amount"] <= MAX_UINT256


def _distinct_affordable(i: Inputs, pre) -> bool:
    return i["sender"] != i["receiver"] and _affordable(i, pre)


def _transfer(i: Inputs):
    return transfer_call(i["sender"], i["receiver"], i["amount"])


# ============================================================================
# ERC20-STDPROP-07: transfer to the null address reverts
# ============================================================================

def _reverts_without_effect(ev: Evaluation) -> None:
    ensure_reverted(ev)
    ensure_state_unchanged(ev)


TRANSFER_TO_NULL_REVERTS = Property(
    id="ERC20-STDPROP-07",
    name="transfer_to_null_reverts",
    operation=OP_TRANSFER,
    description="transfer(null, amount) reverts, even when the sender can afford it",
    address_inputs={"sender": addresses()},
    amount_inputs={"sender_balance": amounts(), "amount": amounts()},
    setup=lambda i: fund((i["sender"], i["sender_balance"])),
    precondition=_affordable,
    call=lambda i: raw(transfer_call(i["sender"], NULL_ADDRESS, i["amount"])),
    postcondition=_reverts_without_effect,
)


# ============================================================================
# ERC20-STDPROP-08: transfer issued by the null address reverts
# ============================================================================

TRANSFER_FROM_NULL_CALLER_REVERTS = Property(
    id="ERC20-STDPROP-08",
    name="transfer_from_null_caller_reverts",
    operation=OP_TRANSFER,
    description="transfer issued with the null address as sender reverts",
    address_inputs={"receiver": addresses()},
    amount_inputs={"receiver_balance": amounts(), "amount": amounts()},
    setup=lambda i: fund((i["receiver"], i["receiver_balance"])),
    call=lambda i: raw(transfer_call(NULL_ADDRESS, i["receiver"], i["amount"])),
    postcondition=_reverts_without_effect,
)


# ============================================================================
# ERC20-STDPROP-09: a valid transfer completes
# ============================================================================

VALID_TRANSFER_COMPLETES = Property(
    id="ERC20-STDPROP-09",
    name="valid_transfer_completes",
    operation=OP_TRANSFER,
    description="transfer between non-null accounts within balance and without overflow completes with true",
    address_inputs=dict(_PARTIES),
    amount_inputs=dict(_AMOUNTS),
    setup=_fund_parties,
    precondition=lambda i, pre: _affordable(i, pre) and _receiver_fits(i, pre),
    call=lambda i: raw(_transfer(i)),
    postcondition=ensure_completed_true,
)


# ============================================================================
# ERC20-STDPROP-10: a non-reverting transfer returns true
# ============================================================================

def _returns_true_if_completed(ev: Evaluation) -> None:
    if ev.outcome.completed:
        ensure(ev.outcome.value is True,
               f"call completed without reverting but returned {ev.outcome.value!r}")


TRANSFER_RETURNS_TRUE = Property(
    id="ERC20-STDPROP-10",
    name="transfer_returns_true",
    operation=OP_TRANSFER,
    description="transfer either reverts or returns true; it never fails silently",
    address_inputs={"sender": addresses(allow_null=True), "receiver": addresses(allow_null=True)},
    amount_inputs=dict(_AMOUNTS),
    setup=_fund_parties,
    call=lambda i: raw(_transfer(i)),
    postcondition=_returns_true_if_completed,
)


# ============================================================================
# ERC20-STDPROP-11: transfer above the balance reverts
# ============================================================================

TRANSFER_EXCEEDING_BALANCE_REVERTS = Property(
    id="ERC20-STDPROP-11",
    name="transfer_exceeding_balance_reverts",
    operation=OP_TRANSFER,
    description="transfer of more than the sender's balance reverts and changes nothing",
    address_inputs=dict(_PARTIES),
    amount_inputs=dict(_AMOUNTS),
    setup=_fund_parties,
    precondition=lambda i, pre: i["amount"] > pre.balance(i["sender"]),
    call=lambda i: raw(_transfer(i)),
    postcondition=_reverts_without_effect,
)


# ============================================================================
# ERC20-STDPROP-12: transfer that would overflow the receiver reverts
# ============================================================================

def _overflow_post(ev: Evaluation) -> None:
    ensure_reverted(ev)
    ensure_balances_unchanged(ev, [ev["sender"], ev["receiver"]])
    ensure_state_unchanged(ev)


TRANSFER_OVERFLOW_REVERTS = Property(
    id="ERC20-STDPROP-12",
    name="transfer_overflow_reverts",
    operation=OP_TRANSFER,
    description="transfer that would push the receiver above MAX_UINT256 reverts, both balances unchanged",
    address_inputs=dict(_PARTIES),
    amount_inputs=dict(_AMOUNTS),
    setup=_fund_parties,
    precondition=lambda i, pre: _distinct_affordable(i, pre) and not _receiver_fits(i, pre),
    call=lambda i: raw(_transfer(i)),
    postcondition=_overflow_post,
)


# ============================================================================
# ERC20-STDPROP-13: self transfer keeps the balance
# ============================================================================

def _self_transfer_post(ev: Evaluation) -> None:
    ensure(ev.outcome.value is True, f"self transfer returned {ev.outcome.value!r}")
    ensure_balance_delta(ev, ev["sender"], 0)
    ensure_supply_unchanged(ev)


SELF_TRANSFER_KEEPS_BALANCE = Property(
    id="ERC20-STDPROP-13",
    name="self_transfer_keeps_balance",
    operation=OP_TRANSFER,
    description="a successful self transfer of at most the balance leaves the balance unchanged",
    address_inputs={"sender": addresses()},
    amount_inputs={"sender_balance": amounts(), "amount": amounts()},
    setup=lambda i: fund((i["sender"], i["sender_balance"])),
    precondition=_affordable,
    call=lambda i: transfer_call(i["sender"], i["sender"], i["amount"]),
    postcondition=_self_transfer_post,
)


# ============================================================================
# ERC20-STDPROP-14: zero-amount transfer is neutral
# ============================================================================

def _neutral_post(ev: Evaluation) -> None:
    ensure_completed_true(ev)
    ensure_balances_unchanged(ev)
    ensure_supply_unchanged(ev)


ZERO_TRANSFER_IS_NEUTRAL = Property(
    id="ERC20-STDPROP-14",
    name="zero_transfer_is_neutral",
    operation=OP_TRANSFER,
    description="transfer of 0 between non-null accounts completes with true and moves nothing",
    address_inputs=dict(_PARTIES),
    amount_inputs={"sender_balance": amounts(), "receiver_balance": amounts()},
    setup=_fund_parties,
    call=lambda i: raw(transfer_call(i["sender"], i["receiver"], 0)),
    postcondition=_neutral_post,
)


# ============================================================================
# ERC20-STDPROP-15: transfer moves exactly the amount
# ============================================================================

def _exact_post(ev: Evaluation) -> None:
    ensure_balance_delta(ev, ev["sender"], -ev["amount"])
    ensure_balance_delta(ev, ev["receiver"], ev["amount"])
    ensure_supply_unchanged(ev)


TRANSFER_MOVES_EXACT_AMOUNT = Property(
    id="ERC20-STDPROP-15",
    name="transfer_moves_exact_amount",
    operation=OP_TRANSFER,
    description="a successful non-self transfer debits the sender and credits the receiver by exactly amount",
    address_inputs=dict(_PARTIES),
    amount_inputs=dict(_AMOUNTS),
    setup=_fund_parties,
    precondition=_distinct_affordable,
    call=_transfer,
    postcondition=_exact_post,
)


# ============================================================================
# ERC20-STDPROP-16: transfer leaves unrelated accounts alone
# ============================================================================

def _isolation_post(ev: Evaluation) -> None:
    bystanders = [a for a in ev.pre.addresses() if a not in (ev["sender"], ev["receiver"])]
    ensure_balances_unchanged(ev, bystanders)
    ensure_supply_unchanged(ev)


TRANSFER_ISOLATES_OTHER_ACCOUNTS = Property(
    id="ERC20-STDPROP-16",
    name="transfer_isolates_other_accounts",
    operation=OP_TRANSFER,
    description="a successful transfer changes no balance but the sender's and receiver's, and not the supply",
    address_inputs={**_PARTIES, "other": addresses()},
    amount_inputs={**_AMOUNTS, "other_balance": amounts()},
    setup=lambda i: _fund_parties(i) + fund((i["other"], i["other_balance"])),
    precondition=lambda i, pre: _affordable(i, pre) and i["other"] not in (i["sender"], i["receiver"]),
    call=_transfer,
    postcondition=_isolation_post,
)


# ============================================================================
# ERC20-STDPROP-17: transfer leaves allowances alone
# ============================================================================

def _allowances_post(ev: Evaluation) -> None:
    ensure_allowances_unchanged(ev)


TRANSFER_KEEPS_ALLOWANCES = Property(
    id="ERC20-STDPROP-17",
    name="transfer_keeps_allowances",
    operation=OP_TRANSFER,
    description="a successful transfer changes no allowance",
    address_inputs={**_PARTIES, "spender": addresses()},
    amount_inputs={**_AMOUNTS, "allowance": amounts(), "receiver_allowance": amounts()},
    setup=lambda i: _fund_parties(i) + [
        approve_call(i["sender"], i["spender"], i["allowance"]),
        approve_call(i["receiver"], i["sender"], i["receiver_allowance"]),
    ],
    precondition=_affordable,
    call=_transfer,
    postcondition=_allowances_post,
)


# ============================================================================
# ERC20-STDPROP-18: a transfer returning false has no effect
# ============================================================================

def _false_return_post(ev: Evaluation) -> None:
    if ev.outcome.completed_false:
        ensure_state_unchanged(ev)


TRANSFER_FALSE_RETURN_HAS_NO_EFFECT = Property(
    id="ERC20-STDPROP-18",
    name="transfer_false_return_has_no_effect",
    operation=OP_TRANSFER,
    description="if transfer returns false instead of reverting, it must not have changed any state",
    address_inputs={"sender": addresses(allow_null=True), "receiver": addresses(allow_null=True)},
    amount_inputs=dict(_AMOUNTS),
    setup=_fund_parties,
    call=lambda i: raw(_transfer(i)),
    postcondition=_false_return_post,
)


PROPERTIES = (
    TRANSFER_TO_NULL_REVERTS,
    TRANSFER_FROM_NULL_CALLER_REVERTS,
    VALID_TRANSFER_COMPLETES,
    TRANSFER_RETURNS_TRUE,
    TRANSFER_EXCEEDING_BALANCE_REVERTS,
    TRANSFER_OVERFLOW_REVERTS,
    SELF_TRANSFER_KEEPS_BALANCE,
    ZERO_TRANSFER_IS_NEUTRAL,
    TRANSFER_MOVES_EXACT_AMOUNT,
    TRANSFER_ISOLATES_OTHER_ACCOUNTS,
    TRANSFER_KEEPS_ALLOWANCES,
    TRANSFER_FALSE_RETURN_HAS_NO_EFFECT,
)
