"""
approve.py - Properties of approve(spender, amount)

ERC20-STDPROP-33 .. 37. The caller is the owner granting the allowance.
"""

from __future__ import annotations

from ..core import NULL_ADDRESS, approve_call
from ..strategies import addresses, amounts
from .base import (
    Evaluation, Property, OP_APPROVE,
    ensure, ensure_allowances_unchanged, ensure_balances_unchanged,
    ensure_reverted, ensure_state_unchanged, ensure_supply_unchanged,
    fund, raw,
)


# ============================================================================
# ERC20-STDPROP-33: approving the null address reverts
# ============================================================================

def _null_spender_post(ev: Evaluation) -> None:
    ensure_reverted(ev)
    ensure_state_unchanged(ev)


APPROVE_NULL_SPENDER_REVERTS = Property(
    id="ERC20-STDPROP-33",
    name="approve_null_spender_reverts",
    operation=OP_APPROVE,
    description="approve(null, amount) reverts and changes nothing",
    address_inputs={"owner": addresses()},
    amount_inputs={"owner_balance": amounts(), "amount": amounts()},
    setup=lambda i: fund((i["owner"], i["owner_balance"])),
    call=lambda i: raw(approve_call(i["owner"], NULL_ADDRESS, i["amount"])),
    postcondition=_null_spender_post,
)


# ============================================================================
# ERC20-STDPROP-34: a non-reverting approve returns true
# ============================================================================

def _returns_true_post(ev: Evaluation) -> None:
    if ev.outcome.completed:
        ensure(ev.outcome.value is True,
               f"approve completed without reverting but returned {ev.outcome.value!r}")


APPROVE_RETURNS_TRUE = Property(
    id="ERC20-STDPROP-34",
    name="approve_returns_true",
    operation=OP_APPROVE,
    description="approve either reverts or returns true; it never fails silently",
    address_inputs={"owner": addresses(allow_null=True), "spender": addresses(allow_null=True)},
    amount_inputs={"amount": amounts()},
    call=lambda i: raw(approve_call(i["owner"], i["spender"], i["amount"])),
    postcondition=_returns_true_post,
)


# ============================================================================
# ERC20-STDPROP-35: approve sets the allowance
# ============================================================================

def _sets_post(ev: Evaluation) -> None:
    after = ev.post.allowance(ev["owner"], ev["spender"])
    ensure(after == ev["amount"], f"allowance is {after} after approve({ev['amount']})")


APPROVE_SETS_ALLOWANCE = Property(
    id="ERC20-STDPROP-35",
    name="approve_sets_allowance",
    operation=OP_APPROVE,
    description="approve(spender, X) followed by allowance(owner, spender) yields exactly X",
    address_inputs={"owner": addresses(), "spender": addresses()},
    amount_inputs={"amount": amounts()},
    call=lambda i: approve_call(i["owner"], i["spender"], i["amount"]),
    postcondition=_sets_post,
)


# ============================================================================
# ERC20-STDPROP-36: approve overwrites instead of accumulating
# ============================================================================

def _overwrites_post(ev: Evaluation) -> None:
    ensure(ev.outcome.value is True, f"approve returned {ev.outcome.value!r}")
    after = ev.post.allowance(ev["owner"], ev["spender"])
    ensure(after == ev["second"],
           f"allowance is {after} after approve({ev['first']}) then approve({ev['second']})")


APPROVE_OVERWRITES = Property(
    id="ERC20-STDPROP-36",
    name="approve_overwrites",
    operation=OP_APPROVE,
    description="a second approve replaces the allowance set by the first",
    address_inputs={"owner": addresses(), "spender": addresses()},
    amount_inputs={"first": amounts(), "second": amounts()},
    setup=lambda i: [approve_call(i["owner"], i["spender"], i["first"])],
    call=lambda i: approve_call(i["owner"], i["spender"], i["second"]),
    postcondition=_overwrites_post,
)


# ============================================================================
# ERC20-STDPROP-37: approve changes only the one allowance
# ============================================================================

def _only_allowance_post(ev: Evaluation) -> None:
    ensure_balances_unchanged(ev)
    ensure_supply_unchanged(ev)
    ensure_allowances_unchanged(ev, except_pairs=[(ev["owner"], ev["spender"])])


APPROVE_CHANGES_ONLY_ALLOWANCE = Property(
    id="ERC20-STDPROP-37",
    name="approve_changes_only_allowance",
    operation=OP_APPROVE,
    description="approve changes no balance, not the supply, and no allowance but (owner, spender)",
    address_inputs={"owner": addresses(), "spender": addresses(), "other": addresses()},
    amount_inputs={
        "owner_balance": amounts(),
        "other_balance": amounts(),
        "other_allowance": amounts(),
        "amount": amounts(),
    },
    setup=lambda i: fund((i["owner"], i["owner_balance"]), (i["other"], i["other_balance"])) + [
        approve_call(i["other"], i["owner"], i["other_allowance"]),
        approve_call(i["owner"], i["other"], i["other_allowance"]),
    ],
    call=lambda i: approve_call(i["owner"], i["spender"], i["amount"]),
    postcondition=_only_allowance_post,
)


PROPERTIES = (
    APPROVE_NULL_SPENDER_REVERTS,
    APPROVE_RETURNS_TRUE,
    APPROVE_SETS_ALLOWANCE,
    APPROVE_OVERWRITES,
    APPROVE_CHANGES_ONLY_ALLOWANCE,
)
