"""
reference.py - Reference Token Model

A minimal, standard-conforming token over an AccountState. It is the default
subject of the property engine and the baseline every catalog property must
classify as compliant.

Every entry point validates all of its rules before touching state and only
then applies the effects, so a revert never leaves a partial update behind.
"""

from __future__ import annotations
from typing import Optional

from .accounts import AccountState
from .core import (
    Address, Amount,
    NULL_ADDRESS, MAX_UINT256,
    checked_add,
    require_address, require_amount,
    Revert,
)


class ReferenceToken:
    """
    ERC-20 style token with explicit callers.

    Rules:
        - transfer/transferFrom revert on a null party, on insufficient
          balance, on receiver overflow; transferFrom also on insufficient allowance
        - an allowance of MAX_UINT256 is unlimited and is never decremented
        - approve overwrites the allowance and reverts only for a null spender
        - every completed mutating call returns True

    Example:
        token = ReferenceToken()
        token.mint(0x10, 100)
        token.transfer(0x10, 0x20, 40)
        assert token.balance_of(0x20) == 40
    """

    def __init__(self, state: Optional[AccountState] = None):
        self.state = state if state is not None else AccountState()

    # ========================================================================
    # READS
    # ========================================================================

    def total_supply(self) -> Amount:
        return self.state.total_supply()

    def balance_of(self, account: Address) -> Amount:
        return self.state.balance_of(account)

    def allowance(self, owner: Address, spender: Address) -> Amount:
        return self.state.allowance_of(owner, spender)

    # ========================================================================
    # MUTATING CALLS
    # ========================================================================

    def mint(self, to: Address, amount: Amount) -> None:
        """
        Credit `to` with `amount` and grow the supply by the same amount.

        Harness privilege, not part of the standard surface. The supply wraps
        at MAX_UINT256 so that states with a receiver near the top of the
        range stay reachable.

        Raises:
            Revert: If `to` is null or its balance would overflow
        """
        require_address(to)
        require_amount(amount)
        if to == NULL_ADDRESS:
            raise Revert("mint to the null address")
        if checked_add(self.state.balance_of(to), amount) is None:
            raise Revert("mint overflows balance")
        self.state.credit(to, amount)
        self.state.increase_supply(amount)

    def transfer(self, sender: Address, to: Address, amount: Amount) -> bool:
        self._check_move(sender, to, amount)
        self._move(sender, to, amount)
        return True

    def transfer_from(self, spender: Address, owner: Address, to: Address, amount: Amount) -> bool:
        require_address(spender)
        allowance = self.state.allowance_of(owner, spender)
        self._check_move(owner, to, amount)
        if amount > allowance:
            raise Revert("insufficient allowance")
        self._move(owner, to, amount)
        if allowance != MAX_UINT256:
            self.state.set_allowance(owner, spender, allowance - amount)
        return True

    def approve(self, owner: Address, spender: Address, amount: Amount) -> bool:
        require_address(owner)
        require_address(spender)
        require_amount(amount)
        if spender == NULL_ADDRESS:
            raise Revert("approve to the null address")
        self.state.set_allowance(owner, spender, amount)
        return True

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _check_move(self, source: Address, dest: Address, amount: Amount) -> None:
        """Validate a balance move without applying it."""
        require_address(source)
        require_address(dest)
        require_amount(amount)
        if source == NULL_ADDRESS:
            raise Revert("transfer from the null address")
        if dest == NULL_ADDRESS:
            raise Revert("transfer to the null address")
        if amount > self.state.balance_of(source):
            raise Revert("transfer amount exceeds balance")
        if source != dest and checked_add(self.state.balance_of(dest), amount) is None:
            raise Revert("transfer overflows receiver balance")

    def _move(self, source: Address, dest: Address, amount: Amount) -> None:
        # Self transfers are no-ops.
        if source == dest:
            return
        self.state.debit(source, amount)
        self.state.credit(dest, amount)
