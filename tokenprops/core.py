"""
Core types and pure functions for the token property engine.

This module provides the foundational data structures for the engine:
1. Constants: address and amount domains, the null address, driver defaults
2. Arithmetic domain: fixed-width unsigned add/sub with explicit overflow flags
3. Exceptions: TokenPropsError and the harness error taxonomy
4. Call specification: Function, Call and the call factories
5. Observations: CallOutcome, StateSnapshot, Witness
6. Protocols: TokenSubject, the surface a token under test must expose

Everything here is immutable or pure. State lives in accounts.py and in the
subject under test; nothing in this module mutates it.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Any, Dict, Iterable, Mapping, Optional, Protocol, Tuple,
    runtime_checkable,
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Width of an Amount in bits and the largest representable Amount.
AMOUNT_BITS = 256
MAX_UINT256 = 2 ** AMOUNT_BITS - 1

# Addresses are 160-bit identifiers. The null address is reserved and must
# never hold a balance.
ADDRESS_BITS = 160
MAX_ADDRESS = 2 ** ADDRESS_BITS - 1
NULL_ADDRESS = 0

# Small, fixed address set that generated addresses shrink toward.
CANONICAL_ADDRESSES: Tuple[int, ...] = (0x10, 0x20, 0x30, 0x40, 0x50)

# Boundary amounts always offered to the generators.
EDGE_AMOUNTS: Tuple[int, ...] = (0, 1, MAX_UINT256 - 1, MAX_UINT256)

# Exploration defaults (see explorer.ExplorationSettings).
DEFAULT_MAX_EXAMPLES = 200
DEFAULT_TIME_BUDGET = 30.0

# Type aliases
Address = int
Amount = int
BalanceMap = Dict[Address, Amount]
AllowanceMap = Dict[Tuple[Address, Address], Amount]


# ============================================================================
# ARITHMETIC DOMAIN
# ============================================================================

def is_amount(value: Any) -> bool:
    """Return True if value is an int inside [0, MAX_UINT256]."""
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= MAX_UINT256


def is_address(value: Any) -> bool:
    """Return True if value is an int inside [0, MAX_ADDRESS]."""
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= MAX_ADDRESS


def require_amount(value: Any, what: str = "amount") -> Amount:
    if not is_amount(value):
        raise ValueError(f"{what} must be an unsigned {AMOUNT_BITS}-bit int, got {value!r}")
    return value


def require_address(value: Any, what: str = "address") -> Address:
    if not is_address(value):
        raise ValueError(f"{what} must be an unsigned {ADDRESS_BITS}-bit int, got {value!r}")
    return value


def add(a: Amount, b: Amount) -> Tuple[Amount, bool]:
    """
    Add two amounts.

    Returns:
        (a + b modulo 2**256, overflowed). The flag is True iff the exact sum
        exceeds MAX_UINT256; the wrapped value is what a wrapping token would store.
    """
    total = a + b
    return total & MAX_UINT256, total > MAX_UINT256


def sub(a: Amount, b: Amount) -> Tuple[Amount, bool]:
    """
    Subtract b from a.

    Returns:
        (a - b modulo 2**256, underflowed). The flag is True iff b > a.
    """
    return (a - b) & MAX_UINT256, b > a


def checked_add(a: Amount, b: Amount) -> Optional[Amount]:
    """Return a + b, or None if the sum does not fit in an Amount."""
    total, overflowed = add(a, b)
    return None if overflowed else total


def checked_sub(a: Amount, b: Amount) -> Optional[Amount]:
    """Return a - b, or None if b > a."""
    difference, underflowed = sub(a, b)
    return None if underflowed else difference


def checked_sum(values: Iterable[Amount]) -> Optional[Amount]:
    """Sum amounts left to right, returning None as soon as the running total overflows."""
    total = 0
    for value in values:
        next_total = checked_add(total, value)
        if next_total is None:
            return None
        total = next_total
    return total


def format_address(address: Address) -> str:
    """Render an address as 0x followed by 40 hex digits."""
    return f"0x{address:040x}"


# ============================================================================
# ENUMS
# ============================================================================

class CallMode(Enum):
    """
    How the adapter issues a call.

    TYPED: direct invocation; a revert propagates as an exception and a
           property treats it as "never happened" (the example is discarded).
    RAW: low-level dispatch; a revert is captured as an outcome and the return
         payload is decoded, so "reverted" and "completed with false" stay
         distinguishable.
    """
    TYPED = "typed"
    RAW = "raw"


class Function(Enum):
    """Entry points of the subject, keyed by ABI signature."""
    MINT = "mint(address,uint256)"
    TRANSFER = "transfer(address,uint256)"
    TRANSFER_FROM = "transferFrom(address,address,uint256)"
    APPROVE = "approve(address,uint256)"
    TOTAL_SUPPLY = "totalSupply()"
    BALANCE_OF = "balanceOf(address)"
    ALLOWANCE = "allowance(address,address)"

    @property
    def mutating(self) -> bool:
        return self in (Function.MINT, Function.TRANSFER, Function.TRANSFER_FROM, Function.APPROVE)

    @property
    def returns_bool(self) -> bool:
        return self in (Function.TRANSFER, Function.TRANSFER_FROM, Function.APPROVE)

    @property
    def returns_amount(self) -> bool:
        return self in (Function.TOTAL_SUPPLY, Function.BALANCE_OF, Function.ALLOWANCE)


class OutcomeKind(Enum):
    REVERTED = "reverted"
    COMPLETED = "completed"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class TokenPropsError(Exception):
    """Base exception for all property-engine errors."""
    pass


class Revert(TokenPropsError):
    """Raised by a subject to abort a call. The call must leave no trace in state."""

    def __init__(self, reason: str = ""):
        super().__init__(reason)
        self.reason = reason


class AdapterError(TokenPropsError):
    """Raised when the adapter cannot faithfully report what a subject did."""
    pass


class ReturnDecodingError(AdapterError):
    """Raised when a completed call returned a payload that does not decode to its declared type."""
    pass


class SubjectError(AdapterError):
    """Raised when the subject failed in a way other than a revert (crash, reverting read)."""

    def __init__(self, call: 'Call', message: str):
        super().__init__(f"{call}: {message}")
        self.call = call
        self.message = message


class AccountModelError(TokenPropsError):
    """Raised when a mutation would break an account-model invariant."""
    pass


class NullAccountCredit(AccountModelError):
    """Raised when something tries to credit the null address."""
    pass


class Discarded(TokenPropsError):
    """Raised when a generated assignment does not reach the property's precondition."""
    pass


class PropertyViolation(TokenPropsError):
    """Raised when a postcondition fails. Carries the witness that reproduces it."""

    def __init__(self, witness: 'Witness'):
        super().__init__(f"{witness.property_id}: {witness.message}")
        self.witness = witness


class PreconditionUnsatisfiable(TokenPropsError):
    """The driver found no input meeting a property's precondition within budget."""
    pass


class EvaluationTimeout(TokenPropsError):
    """A property exhausted its time budget before reaching a conclusion."""
    pass


class UnknownProperty(TokenPropsError, KeyError):
    """Raised when a property ID or name is not in the catalog."""
    pass


# ============================================================================
# CALL SPECIFICATION
# ============================================================================

@dataclass(frozen=True, slots=True)
class Call:
    """
    A single invocation of the subject.

    Attributes:
        function: Entry point being called.
        caller: Address the call is issued from (msg.sender). None for the
                privileged mint and for read-only calls.
        args: Positional arguments in ABI order (addresses and amounts).
        mode: TYPED or RAW dispatch.
    """
    function: Function
    caller: Optional[Address] = None
    args: Tuple[int, ...] = ()
    mode: CallMode = CallMode.TYPED

    def __post_init__(self):
        if self.caller is not None:
            require_address(self.caller, "caller")
        types = self.arg_types()
        if len(types) != len(self.args):
            raise ValueError(f"{self.function.value} takes {len(types)} arguments, got {len(self.args)}")
        for arg, arg_type in zip(self.args, types):
            if arg_type == "address":
                require_address(arg, "address argument")
            else:
                require_amount(arg, "amount argument")

    def __repr__(self) -> str:
        rendered = ", ".join(
            format_address(a) if t == "address" else str(a)
            for a, t in zip(self.args, self.arg_types())
        )
        name = self.function.value.split("(")[0]
        prefix = f"{format_address(self.caller)}." if self.caller is not None else ""
        return f"{prefix}{name}({rendered}) [{self.mode.value}]"

    def arg_types(self) -> Tuple[str, ...]:
        """ABI argument types, parsed from the function signature."""
        inner = self.function.value.split("(")[1].rstrip(")")
        return tuple(inner.split(",")) if inner else ()

    def address_args(self) -> Tuple[Address, ...]:
        """Return the arguments that are addresses."""
        return tuple(a for a, t in zip(self.args, self.arg_types()) if t == "address")

    def with_mode(self, mode: CallMode) -> 'Call':
        return Call(self.function, self.caller, self.args, mode)


def mint_call(to: Address, amount: Amount) -> Call:
    return Call(Function.MINT, None, (to, amount))


def transfer_call(sender: Address, to: Address, amount: Amount, mode: CallMode = CallMode.TYPED) -> Call:
    return Call(Function.TRANSFER, sender, (to, amount), mode)


def transfer_from_call(
    spender: Address,
    owner: Address,
    to: Address,
    amount: Amount,
    mode: CallMode = CallMode.TYPED,
) -> Call:
    return Call(Function.TRANSFER_FROM, spender, (owner, to, amount), mode)


def approve_call(owner: Address, spender: Address, amount: Amount, mode: CallMode = CallMode.TYPED) -> Call:
    return Call(Function.APPROVE, owner, (spender, amount), mode)


def total_supply_call(mode: CallMode = CallMode.RAW) -> Call:
    return Call(Function.TOTAL_SUPPLY, None, (), mode)


def balance_of_call(account: Address, mode: CallMode = CallMode.RAW) -> Call:
    return Call(Function.BALANCE_OF, None, (account,), mode)


def allowance_call(owner: Address, spender: Address, mode: CallMode = CallMode.RAW) -> Call:
    return Call(Function.ALLOWANCE, None, (owner, spender), mode)


# ============================================================================
# OBSERVATIONS
# ============================================================================

@dataclass(frozen=True, slots=True)
class CallOutcome:
    """
    Tagged result of invoking an operation.

    REVERTED: the call aborted; value is None and reason holds the revert reason.
    COMPLETED: the call returned; value is the decoded payload (bool for
               mutating calls, Amount for reads, None when no data came back).
    """
    kind: OutcomeKind
    value: Any = None
    reason: str = ""

    @classmethod
    def reverted_with(cls, reason: str = "") -> 'CallOutcome':
        return cls(OutcomeKind.REVERTED, None, reason)

    @classmethod
    def completed_with(cls, value: Any) -> 'CallOutcome':
        return cls(OutcomeKind.COMPLETED, value)

    @property
    def reverted(self) -> bool:
        return self.kind is OutcomeKind.REVERTED

    @property
    def completed(self) -> bool:
        return self.kind is OutcomeKind.COMPLETED

    @property
    def completed_true(self) -> bool:
        return self.completed and self.value is True

    @property
    def completed_false(self) -> bool:
        """Completed without reverting but returned false - a silent failure."""
        return self.completed and self.value is False

    def __repr__(self) -> str:
        if self.reverted:
            return f"Reverted({self.reason!r})" if self.reason else "Reverted"
        return f"Completed({self.value!r})"


@dataclass(frozen=True, slots=True)
class StateSnapshot:
    """
    Observable token state restricted to a set of tracked addresses.

    Attributes:
        total_supply: totalSupply() at snapshot time
        balances: balanceOf() for every tracked address
        allowances: allowance() for every ordered pair of tracked addresses
    """
    total_supply: Amount
    balances: Mapping[Address, Amount] = field(default_factory=dict)
    allowances: Mapping[Tuple[Address, Address], Amount] = field(default_factory=dict)

    def balance(self, address: Address) -> Amount:
        return self.balances[address]

    def allowance(self, owner: Address, spender: Address) -> Amount:
        return self.allowances[(owner, spender)]

    def addresses(self) -> Tuple[Address, ...]:
        return tuple(sorted(self.balances))

    def changed_balances(self, other: 'StateSnapshot') -> Dict[Address, Tuple[Amount, Amount]]:
        """Map each address whose balance differs in other to (self value, other value)."""
        return {
            a: (self.balances[a], other.balances[a])
            for a in self.balances
            if a in other.balances and self.balances[a] != other.balances[a]
        }

    def changed_allowances(self, other: 'StateSnapshot') -> Dict[Tuple[Address, Address], Tuple[Amount, Amount]]:
        return {
            pair: (self.allowances[pair], other.allowances[pair])
            for pair in self.allowances
            if pair in other.allowances and self.allowances[pair] != other.allowances[pair]
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_supply": self.total_supply,
            "balances": {format_address(a): v for a, v in sorted(self.balances.items())},
            "allowances": {
                f"{format_address(o)}->{format_address(s)}": v
                for (o, s), v in sorted(self.allowances.items())
                if v
            },
        }


@dataclass(frozen=True, slots=True)
class Witness:
    """
    Concrete, reproducible evidence of a property violation.

    Attributes:
        property_id: Stable property identifier (e.g. "ERC20-STDPROP-07")
        message: Which postcondition clause failed
        inputs: Generated input assignment (feed to Explorer.replay to reproduce)
        setup: Setup calls issued before the call under test
        call: The call under test
        outcome: Observed outcome of the call under test (None if the subject crashed)
        pre: State snapshot before the call under test
        post: State snapshot after the call under test (None if unavailable)
        address_inputs: Names of the inputs holding addresses (for rendering)
    """
    property_id: str
    message: str
    inputs: Mapping[str, Any]
    setup: Tuple[Call, ...]
    call: Optional[Call]
    outcome: Optional[CallOutcome]
    pre: Optional[StateSnapshot]
    post: Optional[StateSnapshot]
    address_inputs: Tuple[str, ...] = ()

    def render_input(self, name: str) -> Any:
        value = self.inputs[name]
        if name in self.address_inputs:
            return format_address(value)
        if isinstance(value, (list, tuple)):
            return [list(item) if isinstance(item, tuple) else item for item in value]
        return value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "property_id": self.property_id,
            "message": self.message,
            "inputs": {name: self.render_input(name) for name in self.inputs},
            "setup": [repr(c) for c in self.setup],
            "call": repr(self.call) if self.call is not None else None,
            "outcome": repr(self.outcome) if self.outcome is not None else None,
            "pre": self.pre.to_dict() if self.pre is not None else None,
            "post": self.post.to_dict() if self.post is not None else None,
        }

    def __repr__(self) -> str:
        w = 100  # Inner content width
        bar = "─" * w

        def pad(text: str) -> str:
            """Pad or truncate text to exactly w characters."""
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))

        lines = [
            "",
            f"┌{bar}┐",
            f"│{pad(' Witness: ' + self.property_id)}│",
            f"│{pad('   ' + self.message)}│",
            f"├{bar}┤",
        ]
        for name in self.inputs:
            lines.append(f"│{pad(f'   {name:<18}: {self.render_input(name)}')}│")
        lines.append(f"├{bar}┤")
        lines.append(f"│{pad(' Setup (' + str(len(self.setup)) + '):')}│")
        for i, call in enumerate(self.setup):
            lines.append(f"│{pad(f'   [{i}] {call!r}')}│")
        lines.append(f"├{bar}┤")
        lines.append(f"│{pad('   call    : ' + repr(self.call))}│")
        lines.append(f"│{pad('   outcome : ' + repr(self.outcome))}│")
        for label, snap in (("pre ", self.pre), ("post", self.post)):
            if snap is None:
                continue
            lines.append(f"│{pad(f'   {label}    : supply={snap.total_supply}')}│")
            for address, balance in sorted(snap.balances.items()):
                lines.append(f"│{pad(f'      {format_address(address)} = {balance}')}│")
        lines.append(f"└{bar}┘")
        return "\n".join(lines)


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class TokenSubject(Protocol):
    """
    Surface a token under test must expose.

    Mutating methods raise Revert to abort; a revert must leave no trace.
    The caller of each standard call is passed explicitly as the first
    argument (msg.sender).
    """

    def mint(self, to: Address, amount: Amount) -> None:
        """Privileged, harness-only credit of `to` by `amount`."""
        ...

    def transfer(self, sender: Address, to: Address, amount: Amount) -> bool:
        ...

    def transfer_from(self, spender: Address, owner: Address, to: Address, amount: Amount) -> bool:
        ...

    def approve(self, owner: Address, spender: Address, amount: Amount) -> bool:
        ...

    def total_supply(self) -> Amount:
        ...

    def balance_of(self, account: Address) -> Amount:
        ...

    def allowance(self, owner: Address, spender: Address) -> Amount:
        ...
