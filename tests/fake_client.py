"""
fake_client.py - Test helper standing in for LedgerClient

Records every bundle it is asked to commit and answers with a scripted
result, so submitter behavior can be tested without a Ledger. Rejected
bundles are never delivered to subscribers, mirroring the ledger's
all-or-nothing commit.
"""

from __future__ import annotations
from datetime import datetime
from typing import Callable, List, Optional

from transferid import (
    Atom, Bundle, CommitResult, ExecuteResult, SendMessage, Subscription,
    TransactionBuilder, TransferTokens, DecryptedMessage, TokenTransfer,
)


class FakeClient:
    """
    Minimal LedgerClient for testing the submitter.

    Example:
        client = FakeClient("alice-address", reject_with="unique id already claimed")
        submitter = TransferSubmitter({"alice": client, "bob": FakeClient("bob")}, token)
    """

    def __init__(self, address: str, reject_with: Optional[str] = None):
        self.address = address
        self.base64_attachments = False
        self.reject_with = reject_with
        self.committed: List[Bundle] = []
        self.rejected: List[Bundle] = []
        self.transfer_handlers: List[Callable] = []
        self.message_handlers: List[Callable] = []
        self._sequence = 0

    class _Ledger:
        current_time = datetime(2025, 1, 1)

    ledger = _Ledger()

    def create_transaction(self) -> TransactionBuilder:
        return TransactionBuilder(self)

    def commit(self, bundle: Bundle) -> CommitResult:
        if self.reject_with is not None:
            self.rejected.append(bundle)
            return CommitResult(ExecuteResult.REJECTED, reason=self.reject_with)

        self.committed.append(bundle)
        atom = Atom(
            signer=bundle.signer,
            actions=bundle.actions,
            timestamp=bundle.timestamp,
            intent_id=bundle.intent_id,
            atom_id=f"atom:fake:{self._sequence:012d}:0",
            ledger_name="fake",
            execution_time=bundle.timestamp,
            sequence_number=self._sequence,
        )
        self._sequence += 1
        for action in bundle.actions:
            if isinstance(action, TransferTokens):
                record = TokenTransfer(action.token, action.source, action.dest,
                                       action.amount, action.attachment, atom.atom_id)
                for handler in self.transfer_handlers:
                    handler(record)
            elif isinstance(action, SendMessage):
                record = DecryptedMessage(action.source, action.dest, action.data,
                                          action.encrypt, atom.atom_id)
                for handler in self.message_handlers:
                    handler(record)
        return CommitResult(ExecuteResult.APPLIED, atom=atom)

    def observe_transfers(self, handler) -> Subscription:
        self.transfer_handlers.append(handler)
        return Subscription(lambda: self.transfer_handlers.remove(handler))

    def observe_messages(self, handler) -> Subscription:
        self.message_handlers.append(handler)
        return Subscription(lambda: self.message_handlers.remove(handler))
