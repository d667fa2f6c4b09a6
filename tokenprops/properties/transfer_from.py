"""
transfer_from.py - Properties of transferFrom(from, to, amount)

ERC20-STDPROP-19 .. 32. The caller is the spender; `owner` is the `from`
account whose balance and allowance are consumed.

The allowance sentinel MAX_UINT256 ("unlimited") is kept out of the strict
decrement property (28) and gets its own property (29), which accepts either
a token that treats it as unlimited or one that decrements it.
"""

from __future__ import annotations

from ..core import (
    MAX_UINT256, NULL_ADDRESS,
    approve_call, transfer_from_call,
)
from ..strategies import addresses, amounts, unlimited
from .base import (
    Evaluation, Inputs, Property, OP_TRANSFER_FROM,
    ensure, ensure_allowances_unchanged, ensure_balance_delta, ensure_balances_unchanged,
    ensure_completed_true, ensure_reverted, ensure_state_unchanged, ensure_supply_unchanged,
    fund, raw,
)


_PARTIES = {"owner": addresses(), "spender": addresses(), "receiver": addresses()}
_AMOUNTS = {
    "owner_balance": amounts(),
    "receiver_balance": amounts(),
    "allowance": amounts(),
    "amount": amounts(),
}


def _setup(i: Inputs):
    """Fund owner and receiver, then let spender spend `allowance` of owner's tokens."""
    return fund((i["owner"], i["owner_balance"]), (i["receiver"], i["receiver_balance"])) + [
        approve_call(i["owner"], i["spender"], i["allowance"]),
    ]


def _tolerant_setup(i: Inputs):
    """Like _setup, but the approval may revert (null parties)."""
    return fund((i["owner"], i["owner_balance"]), (i["receiver"], i["receiver_balance"])) + [
        raw(approve_call(i["owner"], i["spender"], i["allowance"])),
    ]


def _within_allowance(i: Inputs, pre) -> bool:
    return i["amount"] <= pre.allowance(i["owner"], i["spender"])


def _affordable(i: Inputs, pre) -> bool:
    return i["amount"] <= pre.balance(i["owner"])


def _spendable(i: Inputs, pre) -> bool:
    return _within_allowance(i, pre) and _affordable(i, pre)


def _receiver_fits(i: Inputs, pre) -> bool:
    return i["owner"] == i["receiver"] or pre.balance(i["receiver"]) + i["amount"] <= MAX_UINT256


def _transfer_from(i: Inputs):
    return transfer_from_call(i["spender"], i["owner"], i["receiver"], i["amount"])


def _reverts_without_effect(ev: Evaluation) -> None:
    ensure_reverted(ev)
    ensure_state_unchanged(ev)


# ============================================================================
# ERC20-STDPROP-19: transferFrom out of the null address reverts
# ============================================================================

TRANSFER_FROM_NULL_OWNER_REVERTS = Property(
    id="ERC20-STDPROP-19",
    name="transfer_from_null_owner_reverts",
    operation=OP_TRANSFER_FROM,
    description="transferFrom(null, to, amount) reverts, whatever the allowance",
    address_inputs={"spender": addresses(), "receiver": addresses()},
    amount_inputs={"receiver_balance": amounts(), "allowance": amounts(), "amount": amounts()},
    setup=lambda i: fund((i["receiver"], i["receiver_balance"])) + [
        raw(approve_call(NULL_ADDRESS, i["spender"], i["allowance"])),
    ],
    call=lambda i: raw(transfer_from_call(i["spender"], NULL_ADDRESS, i["receiver"], i["amount"])),
    postcondition=_reverts_without_effect,
)


# ============================================================================
# ERC20-STDPROP-20: transferFrom into the null address reverts
# ============================================================================

TRANSFER_FROM_TO_NULL_REVERTS = Property(
    id="ERC20-STDPROP-20",
    name="transfer_from_to_null_reverts",
    operation=OP_TRANSFER_FROM,
    description="transferFrom(from, null, amount) reverts, even within balance and allowance",
    address_inputs={"owner": addresses(), "spender": addresses()},
    amount_inputs={"owner_balance": amounts(), "allowance": amounts(), "amount": amounts()},
    setup=lambda i: fund((i["owner"], i["owner_balance"])) + [
        approve_call(i["owner"], i["spender"], i["allowance"]),
    ],
    precondition=_spendable,
    call=lambda i: raw(transfer_from_call(i["spender"], i["owner"], NULL_ADDRESS, i["amount"])),
    postcondition=_reverts_without_effect,
)


# ============================================================================
# ERC20-STDPROP-21: transferFrom above the allowance reverts
# ============================================================================

TRANSFER_FROM_EXCEEDING_ALLOWANCE_REVERTS = Property(
    id="ERC20-STDPROP-21",
    name="transfer_from_exceeding_allowance_reverts",
    operation=OP_TRANSFER_FROM,
    description="transferFrom of more than the caller's allowance reverts, allowance unchanged",
    address_inputs=dict(_PARTIES),
    amount_inputs=dict(_AMOUNTS),
    setup=_setup,
    precondition=lambda i, pre: not _within_allowance(i, pre),
    call=lambda i: raw(_transfer_from(i)),
    postcondition=_reverts_without_effect,
)


# ============================================================================
# ERC20-STDPROP-22: transferFrom above the balance reverts
# ============================================================================

TRANSFER_FROM_EXCEEDING_BALANCE_REVERTS = Property(
    id="ERC20-STDPROP-22",
    name="transfer_from_exceeding_balance_reverts",
    operation=OP_TRANSFER_FROM,
    description="transferFrom of more than the owner's balance reverts, even within the allowance",
    address_inputs=dict(_PARTIES),
    amount_inputs=dict(_AMOUNTS),
    setup=_setup,
    precondition=lambda i, pre: _within_allowance(i, pre) and not _affordable(i, pre),
    call=lambda i: raw(_transfer_from(i)),
    postcondition=_reverts_without_effect,
)


# ============================================================================
# ERC20-STDPROP-23: a non-reverting transferFrom returns true
# ============================================================================

def _returns_true_if_completed(ev: Evaluation) -> None:
    if ev.outcome.completed:
        ensure(ev.outcome.value is True,
               f"call completed without reverting but returned {ev.outcome.value!r}")


TRANSFER_FROM_RETURNS_TRUE = Property(
    id="ERC20-STDPROP-23",
    name="transfer_from_returns_true",
    operation=OP_TRANSFER_FROM,
    description="transferFrom either reverts or returns true; it never fails silently",
    address_inputs={
        "owner": addresses(allow_null=True),
        "spender": addresses(allow_null=True),
        "receiver": addresses(allow_null=True),
    },
    amount_inputs=dict(_AMOUNTS),
    setup=_tolerant_setup,
    call=lambda i: raw(_transfer_from(i)),
    postcondition=_returns_true_if_completed,
)


# ============================================================================
# ERC20-STDPROP-24: transferFrom that would overflow the receiver reverts
# ============================================================================

def _overflow_post(ev: Evaluation) -> None:
    ensure_reverted(ev)
    ensure_balances_unchanged(ev, [ev["owner"], ev["receiver"]])
    ensure_state_unchanged(ev)


TRANSFER_FROM_OVERFLOW_REVERTS = Property(
    id="ERC20-STDPROP-24",
    name="transfer_from_overflow_reverts",
    operation=OP_TRANSFER_FROM,
    description="transferFrom that would push the receiver above MAX_UINT256 reverts, balances unchanged",
    address_inputs=dict(_PARTIES),
    amount_inputs=dict(_AMOUNTS),
    setup=_setup,
    precondition=lambda i, pre: (
        i["owner"] != i["receiver"] and _spendable(i, pre) and not _receiver_fits(i, pre)
    ),
    call=lambda i: raw(_transfer_from(i)),
    postcondition=_overflow_post,
)


# ============================================================================
# ERC20-STDPROP-25: self transferFrom keeps the balance
# ============================================================================

def _self_post(ev: Evaluation) -> None:
    ensure(ev.outcome.value is True, f"self transferFrom returned {ev.outcome.value!r}")
    ensure_balance_delta(ev, ev["owner"], 0)
    ensure_supply_unchanged(ev)


SELF_TRANSFER_FROM_KEEPS_BALANCE = Property(
    id="ERC20-STDPROP-25",
    name="self_transfer_from_keeps_balance",
    operation=OP_TRANSFER_FROM,
    description="a successful transferFrom with from == to leaves that balance unchanged",
    address_inputs={"owner": addresses(), "spender": addresses()},
    amount_inputs={"owner_balance": amounts(), "allowance": amounts(), "amount": amounts()},
    setup=lambda i: fund((i["owner"], i["owner_balance"])) + [
        approve_call(i["owner"], i["spender"], i["allowance"]),
    ],
    precondition=_spendable,
    call=lambda i: transfer_from_call(i["spender"], i["owner"], i["owner"], i["amount"]),
    postcondition=_self_post,
)


# ============================================================================
# ERC20-STDPROP-26: zero-amount transferFrom is neutral
# ============================================================================

def _neutral_post(ev: Evaluation) -> None:
    ensure_completed_true(ev)
    ensure_balances_unchanged(ev)
    ensure_supply_unchanged(ev)


ZERO_TRANSFER_FROM_IS_NEUTRAL = Property(
    id="ERC20-STDPROP-26",
    name="zero_transfer_from_is_neutral",
    operation=OP_TRANSFER_FROM,
    description="transferFrom of 0 between non-null accounts completes with true and moves nothing",
    address_inputs=dict(_PARTIES),
    amount_inputs={"owner_balance": amounts(), "receiver_balance": amounts(), "allowance": amounts()},
    setup=_setup,
    call=lambda i: raw(transfer_from_call(i["spender"], i["owner"], i["receiver"], 0)),
    postcondition=_neutral_post,
)


# ============================================================================
# ERC20-STDPROP-27: transferFrom moves exactly the amount
# ============================================================================

def _exact_post(ev: Evaluation) -> None:
    ensure_balance_delta(ev, ev["owner"], -ev["amount"])
    ensure_balance_delta(ev, ev["receiver"], ev["amount"])
    ensure_supply_unchanged(ev)


TRANSFER_FROM_MOVES_EXACT_AMOUNT = Property(
    id="ERC20-STDPROP-27",
    name="transfer_from_moves_exact_amount",
    operation=OP_TRANSFER_FROM,
    description="a successful transferFrom with from != to debits from and credits to by exactly amount",
    address_inputs=dict(_PARTIES),
    amount_inputs=dict(_AMOUNTS),
    setup=_setup,
    precondition=lambda i, pre: i["owner"] != i["receiver"] and _spendable(i, pre),
    call=_transfer_from,
    postcondition=_exact_post,
)


# ============================================================================
# ERC20-STDPROP-28: transferFrom consumes the allowance
# ============================================================================

def _consumes_post(ev: Evaluation) -> None:
    pair = (ev["owner"], ev["spender"])
    before = ev.pre.allowances[pair]
    after = ev.post.allowances[pair]
    ensure(after == before - ev["amount"],
           f"allowance went {before} -> {after}, expected a decrease of {ev['amount']}")


TRANSFER_FROM_CONSUMES_ALLOWANCE = Property(
    id="ERC20-STDPROP-28",
    name="transfer_from_consumes_allowance",
    operation=OP_TRANSFER_FROM,
    description="a successful transferFrom lowers a finite allowance by exactly amount",
    address_inputs=dict(_PARTIES),
    amount_inputs=dict(_AMOUNTS),
    setup=_setup,
    precondition=lambda i, pre: (
        pre.allowance(i["owner"], i["spender"]) != MAX_UINT256 and _spendable(i, pre)
    ),
    call=_transfer_from,
    postcondition=_consumes_post,
)


# ============================================================================
# ERC20-STDPROP-29: unlimited allowance
# ============================================================================

def _unlimited_post(ev: Evaluation) -> None:
    after = ev.post.allowance(ev["owner"], ev["spender"])
    ensure(after in (MAX_UINT256, MAX_UINT256 - ev["amount"]),
           f"unlimited allowance became {after} after spending {ev['amount']}")


TRANSFER_FROM_UNLIMITED_ALLOWANCE = Property(
    id="ERC20-STDPROP-29",
    name="transfer_from_unlimited_allowance",
    operation=OP_TRANSFER_FROM,
    description="spending from a MAX_UINT256 allowance leaves it unlimited or lowers it by exactly amount",
    address_inputs=dict(_PARTIES),
    amount_inputs={**_AMOUNTS, "allowance": unlimited()},
    setup=_setup,
    precondition=lambda i, pre: (
        pre.allowance(i["owner"], i["spender"]) == MAX_UINT256 and _affordable(i, pre)
    ),
    call=_transfer_from,
    postcondition=_unlimited_post,
)


# ============================================================================
# ERC20-STDPROP-30: transferFrom changes only its own parties
# ============================================================================

def _only_parties_post(ev: Evaluation) -> None:
    bystanders = [a for a in ev.pre.addresses() if a not in (ev["owner"], ev["receiver"])]
    ensure_balances_unchanged(ev, bystanders)
    ensure_allowances_unchanged(ev, except_pairs=[(ev["owner"], ev["spender"])])
    ensure_supply_unchanged(ev)


TRANSFER_FROM_CHANGES_ONLY_PARTIES = Property(
    id="ERC20-STDPROP-30",
    name="transfer_from_changes_only_parties",
    operation=OP_TRANSFER_FROM,
    description=(
        "a successful transferFrom changes only the from/to balances and the "
        "caller's allowance over from"
    ),
    address_inputs={**_PARTIES, "other": addresses()},
    amount_inputs={**_AMOUNTS, "other_balance": amounts(), "other_allowance": amounts()},
    setup=lambda i: _setup(i) + fund((i["other"], i["other_balance"])) + [
        approve_call(i["owner"], i["other"], i["other_allowance"]),
        approve_call(i["other"], i["spender"], i["other_allowance"]),
    ],
    precondition=lambda i, pre: (
        i["other"] not in (i["owner"], i["spender"], i["receiver"]) and _spendable(i, pre)
    ),
    call=_transfer_from,
    postcondition=_only_parties_post,
)


# ============================================================================
# ERC20-STDPROP-31: a transferFrom returning false has no effect
# ============================================================================

def _false_return_post(ev: Evaluation) -> None:
    if ev.outcome.completed_false:
        ensure_state_unchanged(ev)


TRANSFER_FROM_FALSE_RETURN_HAS_NO_EFFECT = Property(
    id="ERC20-STDPROP-31",
    name="transfer_from_false_return_has_no_effect",
    operation=OP_TRANSFER_FROM,
    description="if transferFrom returns false instead of reverting, it must not have changed any state",
    address_inputs={
        "owner": addresses(allow_null=True),
        "spender": addresses(allow_null=True),
        "receiver": addresses(allow_null=True),
    },
    amount_inputs=dict(_AMOUNTS),
    setup=_tolerant_setup,
    call=lambda i: raw(_transfer_from(i)),
    postcondition=_false_return_post,
)


# ============================================================================
# ERC20-STDPROP-32: a valid transferFrom completes
# ============================================================================

VALID_TRANSFER_FROM_COMPLETES = Property(
    id="ERC20-STDPROP-32",
    name="valid_transfer_from_completes",
    operation=OP_TRANSFER_FROM,
    description=(
        "transferFrom between non-null accounts within balance and allowance "
        "and without overflow completes with true"
    ),
    address_inputs=dict(_PARTIES),
    amount_inputs=dict(_AMOUNTS),
    setup=_setup,
    precondition=lambda i, pre: _spendable(i, pre) and _receiver_fits(i, pre),
    call=lambda i: raw(_transfer_from(i)),
    postcondition=ensure_completed_true,
)


PROPERTIES = (
    TRANSFER_FROM_NULL_OWNER_REVERTS,
    TRANSFER_FROM_TO_NULL_REVERTS,
    TRANSFER_FROM_EXCEEDING_ALLOWANCE_REVERTS,
    TRANSFER_FROM_EXCEEDING_BALANCE_REVERTS,
    TRANSFER_FROM_RETURNS_TRUE,
    TRANSFER_FROM_OVERFLOW_REVERTS,
    SELF_TRANSFER_FROM_KEEPS_BALANCE,
    ZERO_TRANSFER_FROM_IS_NEUTRAL,
    TRANSFER_FROM_MOVES_EXACT_AMOUNT,
    TRANSFER_FROM_CONSUMES_ALLOWANCE,
    TRANSFER_FROM_UNLIMITED_ALLOWANCE,
    TRANSFER_FROM_CHANGES_ONLY_PARTIES,
    TRANSFER_FROM_FALSE_RETURN_HAS_NO_EFFECT,
    VALID_TRANSFER_FROM_COMPLETES,
)
