"""
adapter.py - Subject Adapter

The narrow interface the property engine talks to. It wraps a token under
test and offers two calling conventions:

    Typed calls  - direct invocation; a Revert propagates to the caller.
    Raw calls    - low-level dispatch by Function; a Revert is captured as
                   CallOutcome.reverted_with() and the return payload is decoded,
                   so "reverted" and "completed with false" stay distinct.

The adapter never masks one outcome as the other. Anything the subject raises
other than Revert is a crash and surfaces as SubjectError.
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, Tuple

from .core import (
    # Types
    Address, Amount, Call, CallMode, CallOutcome, Function, StateSnapshot,
    TokenSubject,
    # Arithmetic
    is_amount,
    # Call factories
    mint_call, transfer_call, transfer_from_call, approve_call,
    total_supply_call, balance_of_call, allowance_call,
    # Exceptions
    Revert, ReturnDecodingError, SubjectError,
)


# Python method backing each entry point, and whether it takes the caller
# as its first argument.
_DISPATCH: Dict[Function, Tuple[str, bool]] = {
    Function.MINT: ("mint", False),
    Function.TRANSFER: ("transfer", True),
    Function.TRANSFER_FROM: ("transfer_from", True),
    Function.APPROVE: ("approve", True),
    Function.TOTAL_SUPPLY: ("total_supply", False),
    Function.BALANCE_OF: ("balance_of", False),
    Function.ALLOWANCE: ("allowance", False),
}


def decode_return(function: Function, payload: Any) -> Any:
    """
    Decode the payload of a completed call according to its declared return type.

    Bool functions accept True/False/1/0 and None (no return data). Amount
    functions accept any in-range int. mint returns nothing and its payload is
    ignored.

    Raises:
        ReturnDecodingError: If the payload does not decode
    """
    if function.returns_bool:
        if payload is None or isinstance(payload, bool):
            return payload
        if isinstance(payload, int) and payload in (0, 1):
            return bool(payload)
        raise ReturnDecodingError(f"{function.value} returned undecodable payload {payload!r}")
    if function.returns_amount:
        if is_amount(payload):
            return payload
        raise ReturnDecodingError(f"{function.value} returned out-of-range amount {payload!r}")
    return None


class SubjectAdapter:
    """
    Calls a token subject on behalf of the property engine.

    One adapter wraps one subject; neither is shared between evaluations.

    Example:
        adapter = SubjectAdapter(ReferenceToken())
        adapter.mint(0x10, 100)
        outcome = adapter.raw_call(transfer_call(0x10, 0x0, 5, CallMode.RAW))
        assert outcome.reverted
    """

    def __init__(self, subject: TokenSubject):
        self.subject = subject
        self.calls_made = 0

    # ========================================================================
    # DISPATCH
    # ========================================================================

    def _dispatch(self, call: Call) -> Any:
        method_name, takes_caller = _DISPATCH[call.function]
        method = getattr(self.subject, method_name)
        args = ((call.caller,) + call.args) if takes_caller else call.args
        self.calls_made += 1
        try:
            return method(*args)
        except Revert:
            raise
        except Exception as e:
            raise SubjectError(call, f"subject raised {type(e).__name__}: {e}") from e

    def invoke(self, call: Call) -> Any:
        """
        Typed invocation of call, whatever its mode field says.

        Returns:
            The decoded return value

        Raises:
            Revert: If the subject reverted
            SubjectError: If the subject crashed
            ReturnDecodingError: If the payload does not decode
        """
        return decode_return(call.function, self._dispatch(call))

    def raw_call(self, call: Call) -> CallOutcome:
        """
        Low-level dispatch of call, capturing a revert as an outcome.

        Returns:
            CallOutcome.reverted_with(reason) or CallOutcome.completed_with(decoded value)
        """
        try:
            payload = self._dispatch(call)
        except Revert as e:
            return CallOutcome.reverted_with(e.reason)
        return CallOutcome.completed_with(decode_return(call.function, payload))

    def execute(self, call: Call) -> CallOutcome:
        """
        Issue call in its declared mode.

        A TYPED call that reverts raises Revert; otherwise the result is
        wrapped in a completed outcome.
        """
        if call.mode is CallMode.RAW:
            return self.raw_call(call)
        return CallOutcome.completed_with(self.invoke(call))

    # ========================================================================
    # TYPED CONVENIENCE CALLS
    # ========================================================================

    def mint(self, to: Address, amount: Amount) -> None:
        self.invoke(mint_call(to, amount))

    def transfer(self, sender: Address, to: Address, amount: Amount) -> bool:
        return self.invoke(transfer_call(sender, to, amount))

    def transfer_from(self, spender: Address, owner: Address, to: Address, amount: Amount) -> bool:
        return self.invoke(transfer_from_call(spender, owner, to, amount))

    def approve(self, owner: Address, spender: Address, amount: Amount) -> bool:
        return self.invoke(approve_call(owner, spender, amount))

    def total_supply(self) -> Amount:
        return self._read(total_supply_call(CallMode.TYPED))

    def balance_of(self, account: Address) -> Amount:
        return self._read(balance_of_call(account, CallMode.TYPED))

    def allowance(self, owner: Address, spender: Address) -> Amount:
        return self._read(allowance_call(owner, spender, CallMode.TYPED))

    def _read(self, call: Call) -> Amount:
        # Reads must always succeed; a reverting read is a subject defect.
        try:
            return self.invoke(call)
        except Revert as e:
            raise SubjectError(call, f"read-only call reverted: {e.reason}") from e

    # ========================================================================
    # SNAPSHOTS
    # ========================================================================

    def snapshot(self, addresses: Iterable[Address]) -> StateSnapshot:
        """
        Observe supply, balances and pairwise allowances of the given addresses.

        Only the subject's public reads are used, so this works on any subject.
        """
        tracked = sorted(set(addresses))
        return StateSnapshot(
            total_supply=self.total_supply(),
            balances={a: self.balance_of(a) for a in tracked},
            allowances={(o, s): self.allowance(o, s) for o in tracked for s in tracked},
        )
