"""
Uniqueness Conformance Tests

INVARIANT: No two submitted transfers share a transfer id.

    ∀ transfers T1 ≠ T2 submitted by the application:
        id(T1) ≠ id(T2)

and an id, once claimed, can never be attached to a second committed transfer.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from decimal import Decimal

from transferid import (
    Ledger, LedgerClient, RRI, TransferSubmitter, BundleRejected,
    generate_correlation_id,
)

from tests.helpers import grant


def make_world(labels):
    ledger = Ledger("conformance")
    system = LedgerClient(ledger)
    token = system.create_token("TOK", "TOK", "Transfer ID Test Tokens")
    sessions = {}
    for label in labels:
        client = LedgerClient(ledger)
        grant(system, token, client, Decimal("1000000"))
        sessions[label] = client
    return ledger, token, sessions


class TestUniquenessProperties:
    """Property-based uniqueness tests."""

    @given(st.integers(min_value=1, max_value=30))
    @settings(max_examples=20, deadline=None)
    def test_ids_distinct_across_submissions(self, count):
        """
        PROPERTY: N submissions yield N distinct transfer ids.
        """
        ledger, token, sessions = make_world(["alice", "bob"])
        submitter = TransferSubmitter(sessions, token)

        ids = []
        for i in range(count):
            sender, receiver = ("alice", "bob") if i % 2 == 0 else ("bob", "alice")
            ids.append(submitter.submit(sender, receiver, 1, f"#{i}").correlation_id)

        assert len(set(ids)) == count
        assert all(ledger.is_claimed(RRI.parse(i)) for i in ids)

    @given(st.text(alphabet="abcdef0123456789", min_size=1, max_size=16))
    @settings(max_examples=50)
    def test_generated_ids_scoped_to_owner(self, owner):
        """
        PROPERTY: A generated id lives under its owner's address.
        """
        rri = generate_correlation_id(owner)
        assert rri.address == owner
        assert RRI.parse(str(rri)) == rri


class TestUniquenessExamples:

    def test_reused_id_rejected(self):
        ledger, token, sessions = make_world(["alice", "bob"])
        submitter = TransferSubmitter(sessions, token)
        rri = RRI.of(sessions["alice"].address, "reused")

        submitter.submit("alice", "bob", 1, correlation_id=rri)
        with pytest.raises(BundleRejected) as excinfo:
            submitter.submit("alice", "bob", 1, correlation_id=rri)
        assert excinfo.value.correlation_id == str(rri)

    def test_same_name_under_different_owners_allowed(self):
        ledger, token, sessions = make_world(["alice", "bob"])
        submitter = TransferSubmitter(sessions, token)

        submitter.submit("alice", "bob", 1, correlation_id=RRI.of(sessions["alice"].address, "x"))
        submitter.submit("bob", "alice", 1, correlation_id=RRI.of(sessions["bob"].address, "x"))

    def test_cannot_claim_under_another_address(self):
        ledger, token, sessions = make_world(["alice", "bob"])
        submitter = TransferSubmitter(sessions, token)
        foreign = RRI.of(sessions["bob"].address, "stolen")

        with pytest.raises(BundleRejected):
            submitter.submit("alice", "bob", 1, correlation_id=foreign)
        assert not ledger.is_claimed(foreign)

    def test_without_claim_reuse_goes_unguarded(self):
        ledger, token, sessions = make_world(["alice", "bob"])
        submitter = TransferSubmitter(sessions, token, claim_unique=False)
        rri = RRI.of(sessions["alice"].address, "reused")

        submitter.submit("alice", "bob", 1, correlation_id=rri)
        submitter.submit("alice", "bob", 1, correlation_id=rri)
        assert sessions["bob"].get_balance(token) == Decimal("1000002")
