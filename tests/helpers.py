"""
helpers.py - Small assertions and setup helpers shared by the test modules
"""

import io
from decimal import Decimal

from transferid import LedgerClient, MintTokens, TransferTokens


def grant(system: LedgerClient, token, client: LedgerClient, amount: Decimal) -> None:
    """Mint amount and send it from the system identity to client."""
    tx = system.create_transaction()
    tx.stage(MintTokens(token, system.address, amount))
    tx.stage(TransferTokens(token, system.address, client.address, amount))
    result = tx.commit()
    assert result.applied, result.reason


def rows(buffer: io.StringIO):
    """Printed rows, without the trailing newline."""
    return [line for line in buffer.getvalue().splitlines() if line]


def parse_row(row: str):
    """Split a printed row back into (name, kind, data, id) columns."""
    return (
        row[0:10].rstrip(),
        row[10:20].rstrip(),
        row[20:60].rstrip(),
        row[60:100].rstrip(),
    )
