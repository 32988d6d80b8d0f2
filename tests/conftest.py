"""
conftest.py - Shared pytest fixtures for transferid tests

Provides common fixtures used across unit, conformance and scenario tests:
- A ledger with a system identity and its TOK token
- Funded participant clients (alice, bob)
- A submitter over those participants
- A printer writing to an in-memory buffer
- A started Application whose output is captured
"""

import io
import pytest
from decimal import Decimal

from transferid import (
    Application,
    EventPrinter,
    Ledger,
    LedgerClient,
    TransferIdConfig,
    TransferSubmitter,
)

from tests.helpers import grant


# =============================================================================
# LEDGER FIXTURES
# =============================================================================

@pytest.fixture
def ledger():
    """Empty ledger."""
    return Ledger("test")


@pytest.fixture
def system(ledger):
    """System identity that owns the TOK token."""
    return LedgerClient(ledger)


@pytest.fixture
def token(system):
    """Multi-issuance TOK token owned by the system identity."""
    return system.create_token("TOK", "TOK", "Transfer ID Test Tokens")


@pytest.fixture
def alice(ledger, system, token):
    client = LedgerClient(ledger)
    grant(system, token, client, Decimal("1000"))
    return client


@pytest.fixture
def bob(ledger, system, token):
    client = LedgerClient(ledger)
    grant(system, token, client, Decimal("1000"))
    return client


@pytest.fixture
def sessions(alice, bob):
    return {"alice": alice, "bob": bob}


@pytest.fixture
def submitter(sessions, token):
    return TransferSubmitter(sessions, token)


# =============================================================================
# OUTPUT FIXTURES
# =============================================================================

@pytest.fixture
def buffer():
    return io.StringIO()


@pytest.fixture
def printer(buffer):
    return EventPrinter(buffer)


@pytest.fixture
def app(printer):
    """Started application with alice and bob; stopped after the test."""
    application = Application(TransferIdConfig(participants=("alice", "bob")), printer=printer)
    application.start()
    yield application
    application.stop()
