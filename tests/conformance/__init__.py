"""
Conformance Test Suite

Property-based tests for the matching core: compatibility, price ranking,
greedy allocation and fill planning. Ledger atomicity and idempotency are
covered by tests/unit/test_ledger.py.

These tests use hypothesis for property-based testing.
"""
