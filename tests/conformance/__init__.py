"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the retail ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Value conservation and aggregate agreement
2. atomicity.py - All-or-nothing operation semantics
3. determinism.py - Reproducible behavior, clone and replay

These tests use hypothesis for property-based testing over random
command sequences (see commands.py).
"""
