"""
submitter.py - Tagged token transfers

Builds the bundle for one transfer:

    1. PutUniqueId(transfer_id)          uniqueness claim at the sender's address
    2. TransferTokens(..., transfer_id)  the value movement, id as attachment
    3. SendMessage("<id>::<text>")       only when a message was supplied

and commits it as a single unit. If the claim collides with an existing one,
or any other action fails validation, the ledger drops the whole bundle:
tokens never move without their message, and the message never arrives
without its tokens.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping, Optional, Union
import logging

from .core import (
    RRI, PutUniqueId, TransferTokens, SendMessage,
    BundleRejected, UnknownParticipant, quantize_amount, to_amount,
)
from .client import LedgerClient
from .correlation import generate_correlation_id, encode_attachment, encode_message

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TransferReceipt:
    """Proof of a committed transfer."""
    correlation_id: str
    atom_id: str
    sender: str
    receiver: str
    amount: Decimal
    message: Optional[str] = None


def resolve_participant(sessions: Mapping[str, LedgerClient], label: str) -> LedgerClient:
    """Look up a participant's client, raising UnknownParticipant if absent."""
    try:
        return sessions[label]
    except KeyError:
        raise UnknownParticipant(f"No such user: {label}") from None


class TransferSubmitter:
    """
    Sends tokens between registered participants, tagging each transfer.

    Args:
        sessions: Participant label to client. Copied into a read-only view.
        token: RRI of the token to transfer.
        claim_unique: Stage a uniqueness claim for the transfer id. Without
            it the id is still attached, but the ledger does not guard it.
    """

    def __init__(
        self,
        sessions: Mapping[str, LedgerClient],
        token: RRI,
        claim_unique: bool = True,
    ):
        self.sessions = MappingProxyType(dict(sessions))
        self.token = token
        self.claim_unique = claim_unique

    def submit(
        self,
        sender: str,
        receiver: str,
        amount: Union[Decimal, int, float, str],
        message: Optional[str] = None,
        correlation_id: Optional[RRI] = None,
    ) -> TransferReceipt:
        """
        Transfer amount from sender to receiver with an optional message.

        Blocks until the ledger has committed or rejected the bundle.

        Args:
            sender: Participant label of the payer.
            receiver: Participant label of the payee.
            amount: Positive amount of tokens.
            message: Optional text delivered encrypted to both parties.
            correlation_id: Reuse a given transfer id instead of generating one.

        Returns:
            TransferReceipt for the committed atom.

        Raises:
            UnknownParticipant: If either label is not registered.
            ValueError: If amount is not a positive, finite number.
            BundleRejected: If the ledger rejected the bundle. Nothing applied.
        """
        sender_client = resolve_participant(self.sessions, sender)
        receiver_client = resolve_participant(self.sessions, receiver)
        value = quantize_amount(to_amount(amount))

        transfer_id = correlation_id or generate_correlation_id(sender_client.address)
        id_text = str(transfer_id)

        tx = sender_client.create_transaction()
        if self.claim_unique:
            tx.stage(PutUniqueId(transfer_id))
        tx.stage(TransferTokens(
            token=self.token,
            source=sender_client.address,
            dest=receiver_client.address,
            amount=value,
            attachment=encode_attachment(transfer_id),
        ))
        if message is not None:
            tx.stage(SendMessage(
                source=sender_client.address,
                dest=receiver_client.address,
                data=encode_message(transfer_id, message),
                encrypt=True,
            ))

        result = tx.commit()
        if not result.applied:
            logger.warning("Transfer %s from %s to %s rejected: %s", id_text, sender, receiver, result.reason)
            raise BundleRejected(result.reason, correlation_id=id_text)

        logger.info("Transfer %s: %s -> %s (%s)", id_text, sender, receiver, value)
        return TransferReceipt(
            correlation_id=id_text,
            atom_id=result.atom.atom_id,
            sender=sender,
            receiver=receiver,
            amount=value,
            message=message,
        )
