"""
printer.py - Console rendering of observed ledger events

One fixed-width row per event:

    [NAME]    Kind      payload (40)                            transfer id (40)

Every field is truncated silently to its column width. Balance rows leave
the transfer-id column blank.
"""

from __future__ import annotations
from threading import Lock
from typing import Optional, TextIO
import logging
import sys

from .core import RRI, Balance, DecryptedMessage, TokenTransfer, normalize_decimal
from .client import LedgerClient
from .correlation import decode_attachment, decode_message
from .streams import CompositeSubscription

logger = logging.getLogger(__name__)

NAME_WIDTH = 8
KIND_WIDTH = 10
DATA_WIDTH = 40
ID_WIDTH = 40

KIND_TRANSFER = "Transfer"
KIND_MESSAGE = "Message"
KIND_BALANCE = "Balance"


def format_row(name: str, kind: str, data: str, correlation_id: Optional[str]) -> str:
    """
    Render one event row.

    Args:
        name: Participant label; upper-cased by the caller, cut to 8 chars here.
        kind: Event kind, cut to 10 chars.
        data: Payload, cut to 40 chars.
        correlation_id: Transfer id, cut to 40 chars; None renders blank.
    """
    name_tag = f"[{name[:NAME_WIDTH]}]"
    kind_tag = kind[:KIND_WIDTH]
    data_tag = data[:DATA_WIDTH]
    id_tag = correlation_id[:ID_WIDTH] if correlation_id is not None else ""
    return f"{name_tag:<10}{kind_tag:<10}{data_tag:<40}{id_tag:<40}"


class EventPrinter:
    """
    Writes observed transfers, messages and balances to a text stream.

    Handlers for different participants may fire concurrently; a lock keeps
    each row on its own line.

    Args:
        stream: Where rows go (default: sys.stdout at write time).
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream
        self._lock = Lock()

    def print_row(self, name: str, kind: str, data: str, correlation_id: Optional[str]) -> str:
        row = format_row(name, kind, data, correlation_id)
        with self._lock:
            print(row, file=self._stream or sys.stdout, flush=True)
        return row

    def on_transfer(self, name: str, transfer: TokenTransfer, base64_encoded: bool = True) -> str:
        transfer_id = decode_attachment(transfer.attachment, base64_encoded=base64_encoded)
        return self.print_row(name.upper(), KIND_TRANSFER, normalize_decimal(transfer.amount), transfer_id)

    def on_message(self, name: str, message: DecryptedMessage) -> str:
        text, transfer_id = decode_message(message.data)
        return self.print_row(name.upper(), KIND_MESSAGE, text, transfer_id)

    def on_balance(self, name: str, balance: Balance) -> str:
        return self.print_row(name.upper(), KIND_BALANCE, str(balance), None)

    def observe(self, name: str, client: LedgerClient, token: RRI) -> CompositeSubscription:
        """
        Subscribe to one participant's transfers, messages and token balance.

        Returns:
            CompositeSubscription holding the three subscriptions.
        """
        subscriptions = CompositeSubscription()

        def on_transfer(transfer: TokenTransfer) -> None:
            self.on_transfer(name, transfer, base64_encoded=client.base64_attachments)

        def on_message(message: DecryptedMessage) -> None:
            self.on_message(name, message)

        def on_balance(balance: Balance) -> None:
            self.on_balance(name, balance)

        try:
            subscriptions.add(client.observe_transfers(on_transfer))
            subscriptions.add(client.observe_messages(on_message))
            subscriptions.add(client.observe_balance(token, on_balance))
        except Exception:
            subscriptions.dispose()
            raise
        logger.debug("Observing %s at %s", name, client.address)
        return subscriptions
