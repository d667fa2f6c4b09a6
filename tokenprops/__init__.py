"""
tokenprops - Property-based verification of fungible-token semantics

Checks a token implementation against a catalog of named ERC-20 properties
and reports, per property, PASSED, FAILED (with a minimal reproducible
witness) or INCONCLUSIVE.

Usage:
    from tokenprops import Explorer, ExplorationSettings, ReferenceToken, summarize

    explorer = Explorer(ReferenceToken, ExplorationSettings(max_examples=100), verbose=True)
    results = explorer.check_all()
    assert summarize(results)['valid']

    # Reproduce a failure
    result = explorer.check("ERC20-STDPROP-18")
    if result.failed:
        explorer.replay(result.property_id, result.witness.inputs)

A token under test is any object exposing the TokenSubject methods; pass a
zero-argument factory so every evaluation gets a fresh instance.
"""

# Core types
from .core import (
    Address,
    Amount,
    Call,
    CallMode,
    CallOutcome,
    Function,
    OutcomeKind,
    StateSnapshot,
    Witness,
    TokenSubject,
    add,
    sub,
    checked_add,
    checked_sub,
    checked_sum,
    is_amount,
    is_address,
    format_address,
    mint_call,
    transfer_call,
    transfer_from_call,
    approve_call,
    total_supply_call,
    balance_of_call,
    allowance_call,
    TokenPropsError,
    Revert,
    AdapterError,
    ReturnDecodingError,
    SubjectError,
    AccountModelError,
    NullAccountCredit,
    Discarded,
    PropertyViolation,
    PreconditionUnsatisfiable,
    EvaluationTimeout,
    UnknownProperty,
    AMOUNT_BITS,
    MAX_UINT256,
    ADDRESS_BITS,
    MAX_ADDRESS,
    NULL_ADDRESS,
    CANONICAL_ADDRESSES,
    EDGE_AMOUNTS,
)

# Account model and reference token
from .accounts import AccountState
from .reference import ReferenceToken

# Subject adapter
from .adapter import SubjectAdapter, decode_return

# Property catalog
from .properties import (
    CATALOG,
    Property,
    Evaluation,
    evaluate,
    get_property,
    list_properties,
    OPERATIONS,
    OP_READS,
    OP_TRANSFER,
    OP_TRANSFER_FROM,
    OP_APPROVE,
)

# Exploration driver
from .explorer import (
    Explorer,
    ExplorationSettings,
    PropertyResult,
    Verdict,
    run_catalog,
    summarize,
)

__version__ = "0.1.0"
