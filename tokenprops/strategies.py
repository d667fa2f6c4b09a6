"""
strategies.py - Input generators for property exploration

Hypothesis strategies for the two input domains of the catalog (addresses
and amounts) plus generated call sequences used to reach arbitrary states.

Shrinking behaviour:
    - addresses shrink toward the null address (when allowed) and then toward
      the canonical address set, so witnesses use few, small addresses
    - amounts shrink toward 0; the edge values 0, 1, MAX-1 and MAX are always
      in play
"""

from __future__ import annotations
from typing import List, Tuple

from hypothesis import strategies as st
from hypothesis.strategies import SearchStrategy

from .core import (
    CANONICAL_ADDRESSES, EDGE_AMOUNTS,
    MAX_ADDRESS, MAX_UINT256, NULL_ADDRESS,
    Function,
)


def addresses(allow_null: bool = False) -> SearchStrategy[int]:
    """
    Generate an address.

    Args:
        allow_null: Whether the null address may be drawn (it is then the
                    first choice and the shrink target)
    """
    pool = ((NULL_ADDRESS,) if allow_null else ()) + CANONICAL_ADDRESSES
    return st.one_of(
        st.sampled_from(pool),
        st.integers(min_value=1, max_value=MAX_ADDRESS),
    )


def amounts(min_value: int = 0, max_value: int = MAX_UINT256) -> SearchStrategy[int]:
    """Generate an amount in [min_value, max_value], favouring the edge values."""
    if min_value == max_value:
        return st.just(min_value)
    edges = sorted({min_value, max_value} | {e for e in EDGE_AMOUNTS if min_value <= e <= max_value})
    return st.one_of(
        st.sampled_from(edges),
        st.integers(min_value=min_value, max_value=max_value),
    )


def unlimited() -> SearchStrategy[int]:
    """The unlimited-allowance sentinel."""
    return st.just(MAX_UINT256)


# A generated operation is (function, i, j, k, amount) where i, j, k index
# into the tuple of holders the property tracks.
Operation = Tuple[str, int, int, int, int]

_OPERATION_FUNCTIONS = (Function.TRANSFER.name, Function.TRANSFER_FROM.name, Function.APPROVE.name)


def operations(holder_count: int, max_size: int = 8) -> SearchStrategy[List[Operation]]:
    """
    Generate a sequence of transfer/transferFrom/approve operations among holders.

    Args:
        holder_count: Number of holders the indices refer to
        max_size: Longest sequence to generate
    """
    index = st.integers(min_value=0, max_value=holder_count - 1)
    return st.lists(
        st.tuples(st.sampled_from(_OPERATION_FUNCTIONS), index, index, index, amounts()),
        max_size=max_size,
    )
