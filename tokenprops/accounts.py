"""
accounts.py - Token Account State

AccountState is the state substrate behind the reference token: a balance
mapping, an allowance mapping and a total-supply scalar.

Key responsibilities:
    - Total, side-effect free reads (balance_of, allowance_of, total_supply)
    - Invariant-checked mutations used only by a token implementation
    - Accounting verification (sum of balances vs. total supply)
    - Snapshots for pre/post comparison

The null address never holds a balance: crediting it raises instead of
silently dropping the amount, so the rejection has to happen upstream in the
token logic.
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .core import (
    # Types
    Address, Amount, AllowanceMap, BalanceMap, StateSnapshot,
    # Constants
    NULL_ADDRESS,
    # Arithmetic
    add, checked_add, checked_sub, sub,
    require_address, require_amount,
    # Exceptions
    AccountModelError, NullAccountCredit,
)


class AccountState:
    """
    Balances, allowances and total supply of a single token.

    Reads never fail and never mutate. Mutations validate before writing, so a
    rejected mutation leaves the state untouched.

    Thread Safety:
        Not thread-safe. Each worker should own its own AccountState.

    Example:
        state = AccountState()
        state.credit(0x10, 100)
        state.increase_supply(100)
        state.debit(0x10, 40)
        state.credit(0x20, 40)
        assert state.verify_accounting()['valid']
    """

    def __init__(self):
        self.balances: BalanceMap = {}
        self.allowances: AllowanceMap = {}
        self._total_supply: Amount = 0

    # ========================================================================
    # READS
    # ========================================================================

    def balance_of(self, address: Address) -> Amount:
        """Balance of address (0 for unknown addresses)."""
        return self.balances.get(address, 0)

    def allowance_of(self, owner: Address, spender: Address) -> Amount:
        """Amount spender may move out of owner's balance."""
        return self.allowances.get((owner, spender), 0)

    def total_supply(self) -> Amount:
        return self._total_supply

    def holders(self) -> List[Address]:
        """Addresses with a non-zero balance, sorted."""
        return sorted(a for a, v in self.balances.items() if v)

    def sum_of_balances(self) -> int:
        """Exact (unbounded) sum of all balances."""
        return sum(self.balances[a] for a in sorted(self.balances))

    def verify_accounting(self) -> Dict[str, Any]:
        """
        Verify the accounting invariants of the state.

        Checks:
        1. Sum of all balances equals total supply
        2. No balance exceeds total supply
        3. The null address holds nothing

        Returns:
            Dict with keys:
            - 'valid': bool - True if every invariant holds
            - 'total_supply': Amount
            - 'sum_of_balances': int (exact, may exceed MAX_UINT256 after a wrapping mint)
            - 'discrepancies': List[Dict] - one entry per violated invariant

        Example:
            result = state.verify_accounting()
            assert result['valid'], f"Accounting broken: {result['discrepancies']}"
        """
        discrepancies = []
        total = self.sum_of_balances()

        if total != self._total_supply:
            discrepancies.append({
                'invariant': 'sum_of_balances',
                'expected': self._total_supply,
                'actual': total,
            })

        for address in self.holders():
            if self.balances[address] > self._total_supply:
                discrepancies.append({
                    'invariant': 'balance_bounded_by_supply',
                    'address': address,
                    'balance': self.balances[address],
                    'total_supply': self._total_supply,
                })

        if self.balance_of(NULL_ADDRESS):
            discrepancies.append({
                'invariant': 'null_balance_zero',
                'actual': self.balance_of(NULL_ADDRESS),
            })

        return {
            'valid': len(discrepancies) == 0,
            'total_supply': self._total_supply,
            'sum_of_balances': total,
            'discrepancies': discrepancies,
        }

    def snapshot(self, addresses: Optional[Iterable[Address]] = None) -> StateSnapshot:
        """
        Freeze the observable state.

        Args:
            addresses: Addresses to include (default: every known address plus null)

        Returns:
            StateSnapshot with balances for each address and allowances for
            every ordered pair of them.
        """
        if addresses is None:
            known = set(self.balances) | {NULL_ADDRESS}
            for owner, spender in self.allowances:
                known.update((owner, spender))
            addresses = known
        tracked = sorted(set(addresses))
        return StateSnapshot(
            total_supply=self._total_supply,
            balances={a: self.balance_of(a) for a in tracked},
            allowances={(o, s): self.allowance_of(o, s) for o in tracked for s in tracked},
        )

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    def credit(self, address: Address, amount: Amount) -> Amount:
        """
        Add amount to address's balance.

        Returns:
            The new balance

        Raises:
            NullAccountCredit: If address is the null address and amount > 0
            AccountModelError: If the new balance would exceed MAX_UINT256
        """
        require_address(address)
        require_amount(amount)
        if address == NULL_ADDRESS and amount:
            raise NullAccountCredit(f"Refusing to credit {amount} to the null address")
        new_balance = checked_add(self.balance_of(address), amount)
        if new_balance is None:
            raise AccountModelError(f"Balance of {address:#x} would exceed MAX_UINT256")
        self.balances[address] = new_balance
        return new_balance

    def debit(self, address: Address, amount: Amount) -> Amount:
        """
        Subtract amount from address's balance.

        Raises:
            AccountModelError: If amount exceeds the balance
        """
        require_address(address)
        require_amount(amount)
        new_balance = checked_sub(self.balance_of(address), amount)
        if new_balance is None:
            raise AccountModelError(
                f"Balance of {address:#x} is {self.balance_of(address)}, cannot debit {amount}"
            )
        self.balances[address] = new_balance
        return new_balance

    def set_allowance(self, owner: Address, spender: Address, amount: Amount) -> None:
        require_address(owner, "owner")
        require_address(spender, "spender")
        require_amount(amount)
        self.allowances[(owner, spender)] = amount

    def increase_supply(self, amount: Amount) -> Tuple[Amount, bool]:
        """
        Increase total supply, wrapping at MAX_UINT256.

        Returns:
            (new supply, overflowed)
        """
        self._total_supply, overflowed = add(self._total_supply, require_amount(amount))
        return self._total_supply, overflowed

    def decrease_supply(self, amount: Amount) -> Amount:
        new_supply, underflowed = sub(self._total_supply, require_amount(amount))
        if underflowed:
            raise AccountModelError(f"Total supply {self._total_supply} cannot drop by {amount}")
        self._total_supply = new_supply
        return new_supply

    def clone(self) -> AccountState:
        """Independent copy: mutating the clone never affects this state."""
        cloned = AccountState.__new__(AccountState)
        cloned.balances = dict(self.balances)
        cloned.allowances = dict(self.allowances)
        cloned._total_supply = self._total_supply
        return cloned

