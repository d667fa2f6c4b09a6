"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the reference token model and
of the exploration driver. The reference token must pass every catalog
property, so these invariants are checked directly against it as well.

The tests are organized by invariant:
1. conservation.py - Supply equals the sum of balances; transfers move value, never create it
2. atomicity.py - A reverted call leaves no trace
3. determinism.py - Derandomized and seeded explorations are reproducible

These tests use hypothesis for property-based testing.
"""
