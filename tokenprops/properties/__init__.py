"""
Property catalog - the named invariants checked against a token subject.

Properties are grouped by the operation they exercise:
- reads.py         - ERC20-STDPROP-01 .. 06 (totalSupply, balanceOf, allowance, accounting)
- transfer.py      - ERC20-STDPROP-07 .. 18
- transfer_from.py - ERC20-STDPROP-19 .. 32
- approve.py       - ERC20-STDPROP-33 .. 37

CATALOG holds every property in ID order.
"""

from typing import List, Optional, Tuple, Union

from ..core import UnknownProperty
from .base import (
    Property,
    Evaluation,
    PostconditionFailed,
    evaluate,
    OPERATIONS,
    OP_READS,
    OP_TRANSFER,
    OP_TRANSFER_FROM,
    OP_APPROVE,
)
from . import reads, transfer, transfer_from, approve


CATALOG: Tuple[Property, ...] = tuple(sorted(
    reads.PROPERTIES + transfer.PROPERTIES + transfer_from.PROPERTIES + approve.PROPERTIES,
    key=lambda p: p.id,
))

_BY_KEY = {**{p.id: p for p in CATALOG}, **{p.name: p for p in CATALOG}}

if len(_BY_KEY) != 2 * len(CATALOG):
    raise RuntimeError("Property IDs and names must be unique across the catalog")


def get_property(key: Union[str, Property]) -> Property:
    """
    Look up a property by ID ("ERC20-STDPROP-07") or name ("transfer_to_null_reverts").

    Raises:
        UnknownProperty: If no property matches
    """
    if isinstance(key, Property):
        return key
    try:
        return _BY_KEY[key]
    except KeyError:
        raise UnknownProperty(f"No property {key!r} in the catalog") from None


def list_properties(operation: Optional[str] = None) -> List[Property]:
    """All properties in ID order, optionally restricted to one operation group."""
    if operation is not None and operation not in OPERATIONS:
        raise ValueError(f"Unknown operation group {operation!r}, expected one of {OPERATIONS}")
    return [p for p in CATALOG if operation is None or p.operation == operation]


__all__ = [
    'CATALOG',
    'Property',
    'Evaluation',
    'PostconditionFailed',
    'evaluate',
    'get_property',
    'list_properties',
    'OPERATIONS',
    'OP_READS',
    'OP_TRANSFER',
    'OP_TRANSFER_FROM',
    'OP_APPROVE',
]
