"""
client.py - Per-identity client API over the ledger

A LedgerClient is what application code holds for one participant: it knows
the participant's address, stages actions into bundles, commits them and
subscribes to the participant's observation streams.

Token-transfer attachments are delivered to observers Base64-encoded, the
way the ledger's serialization hands them out. Decoding them is the
observer's job (see transferid.correlation.decode_attachment).
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Callable, List, Optional
import base64
import hashlib
import logging
import uuid

from .core import (
    RRI, Token, Bundle, Action, Balance, DecryptedMessage, TokenTransfer,
    LedgerError,
)
from .ledger import Ledger, CommitResult
from .streams import Subscription

logger = logging.getLogger(__name__)

ADDRESS_LENGTH = 16


@dataclass(frozen=True, slots=True)
class Identity:
    """A ledger identity. Key material is out of scope; only the address is kept."""
    address: str

    @classmethod
    def create_new(cls) -> Identity:
        """Create an identity with a fresh random address."""
        digest = hashlib.sha256(uuid.uuid4().bytes).hexdigest()
        return cls(address=digest[:ADDRESS_LENGTH])


class TransactionBuilder:
    """
    Stages actions for one all-or-nothing commit.

    Example:
        tx = client.create_transaction()
        tx.stage(PutUniqueId(transfer_id))
        tx.stage(TransferTokens(token, client.address, other, Decimal("10")))
        result = tx.commit()
    """

    def __init__(self, client: LedgerClient):
        self._client = client
        self._actions: List[Action] = []
        self._committed = False

    @property
    def actions(self) -> List[Action]:
        return list(self._actions)

    def stage(self, action: Action) -> TransactionBuilder:
        if self._committed:
            raise LedgerError("Transaction already committed")
        self._actions.append(action)
        return self

    def build(self) -> Bundle:
        """Assemble the staged actions into a bundle signed by the client."""
        return Bundle(
            signer=self._client.address,
            actions=tuple(self._actions),
            timestamp=self._client.ledger.current_time,
            nonce=uuid.uuid4().hex,
        )

    def commit(self) -> CommitResult:
        """Commit the staged actions and block until the ledger answers."""
        if self._committed:
            raise LedgerError("Transaction already committed")
        self._committed = True
        return self._client.commit(self.build())


class LedgerClient:
    """
    Application API for one identity on a ledger.

    Args:
        ledger: The ledger node to talk to.
        identity: Identity to act as (default: a new random identity).
        base64_attachments: Deliver transfer attachments Base64-encoded.
    """

    def __init__(
        self,
        ledger: Ledger,
        identity: Optional[Identity] = None,
        base64_attachments: bool = True,
    ):
        self.ledger = ledger
        self.identity = identity or Identity.create_new()
        self.base64_attachments = base64_attachments
        if not ledger.is_registered(self.identity.address):
            ledger.register_address(self.identity.address)

    @property
    def address(self) -> str:
        return self.identity.address

    def create_transaction(self) -> TransactionBuilder:
        return TransactionBuilder(self)

    def commit(self, bundle: Bundle) -> CommitResult:
        """Submit a bundle signed by this client. Blocks until committed or rejected."""
        if bundle.signer != self.address:
            raise LedgerError(f"Bundle signed by {bundle.signer}, not {self.address}")
        result = self.ledger.execute(bundle)
        logger.debug("Commit of %s by %s: %s", bundle.intent_id, self.address, result.status.value)
        return result

    def create_token(
        self,
        symbol: str,
        name: str,
        description: str = "",
        multi_issuance: bool = True,
    ) -> RRI:
        """Create a token owned by this client and return its RRI."""
        token = Token(
            rri=RRI.of(self.address, symbol),
            name=name,
            description=description,
            multi_issuance=multi_issuance,
        )
        self.ledger.register_token(token)
        return token.rri

    def get_balance(self, token: RRI):
        return self.ledger.get_balance(self.address, token)

    def observe_transfers(self, handler: Callable[[TokenTransfer], None]) -> Subscription:
        """Observe transfers this client sends or receives."""
        if not self.base64_attachments:
            return self.ledger.observe_transfers(self.address, handler)

        def deliver(transfer: TokenTransfer) -> None:
            if transfer.attachment is not None:
                transfer = replace(transfer, attachment=base64.b64encode(transfer.attachment))
            handler(transfer)

        deliver.__name__ = getattr(handler, "__name__", "deliver")
        return self.ledger.observe_transfers(self.address, deliver)

    def observe_messages(self, handler: Callable[[DecryptedMessage], None]) -> Subscription:
        """Observe messages this client sends or receives."""
        return self.ledger.observe_messages(self.address, handler)

    def observe_balance(self, token: RRI, handler: Callable[[Balance], None]) -> Subscription:
        """Observe this client's balance of token, starting with the current value."""
        return self.ledger.observe_balance(self.address, token, handler)

    def __repr__(self) -> str:
        return f"LedgerClient({self.address}@{self.ledger.name})"
