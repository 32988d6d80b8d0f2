"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of tagged transfers.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. uniqueness.py - Every submitted transfer carries a distinct id
2. atomicity.py - Transfer, claim and message commit together or not at all
3. message_roundtrip.py - Message payloads split back into id and text
4. truncation.py - Printed rows keep their fixed column widths

These tests use hypothesis for property-based testing.
"""
