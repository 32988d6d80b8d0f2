"""
correlation.py - Transfer ids and the message payload convention

A transfer id (correlation id) ties a token transfer to the message sent
alongside it. It travels in two places:

    transfer attachment : the id's UTF-8 bytes
    message payload     : "<id>::<message text>", UTF-8

Transfers carry an attachment field; messages do not, hence the delimiter
convention. Decoding splits on the first delimiter only, so message text
may itself contain "::".

A payload without any delimiter decodes as plain text with an empty id.
That makes a message sent without an id indistinguishable from a malformed
one; the convention has no way to tell them apart.
"""

from __future__ import annotations
from typing import Optional, Tuple, Union
import base64
import binascii
import logging
import re
import uuid

from .core import RRI, MESSAGE_DELIMITER, DecodeAnomaly

logger = logging.getLogger(__name__)

_NON_ALPHANUMERIC = re.compile(r"[^A-Za-z0-9]")


def generate_correlation_id(owner_address: str) -> RRI:
    """
    Generate a fresh transfer id scoped to owner_address.

    The name part is a random UUID with its dashes stripped, so the id
    renders as ``/<owner_address>/<32 hex chars>``.
    """
    unique = _NON_ALPHANUMERIC.sub("", str(uuid.uuid4()))
    return RRI.of(owner_address, unique)


def encode_attachment(correlation_id: Union[RRI, str]) -> bytes:
    """Attachment bytes for a transfer carrying correlation_id."""
    return str(correlation_id).encode("utf-8")


def encode_message(correlation_id: Union[RRI, str], text: str) -> bytes:
    """Message payload ``<id>::<text>`` as UTF-8 bytes."""
    return f"{correlation_id}{MESSAGE_DELIMITER}{text}".encode("utf-8")


def _to_text(data: Union[bytes, str], strict: bool, what: str) -> str:
    if isinstance(data, str):
        return data
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        if strict:
            raise DecodeAnomaly(f"{what} is not valid UTF-8: {e}") from e
        logger.warning("%s is not valid UTF-8, rendering with replacement characters", what)
        return data.decode("utf-8", errors="replace")


def split_message(text: str) -> Tuple[str, str]:
    """
    Split ``<id>::<text>`` on the first delimiter.

    Returns:
        (message_text, correlation_id); correlation_id is "" when the
        payload holds no delimiter.
    """
    head, sep, tail = text.partition(MESSAGE_DELIMITER)
    if not sep:
        return text, ""
    return tail, head


def decode_message(data: Union[bytes, str], strict: bool = False) -> Tuple[str, str]:
    """
    Decode a message payload into (message_text, correlation_id).

    Args:
        data: Raw payload bytes (or already-decoded text).
        strict: Raise DecodeAnomaly on invalid UTF-8 instead of degrading.
    """
    return split_message(_to_text(data, strict, "Message payload"))


def decode_attachment(
    data: Optional[bytes],
    base64_encoded: bool = True,
    strict: bool = False,
) -> str:
    """
    Recover the correlation id from a transfer attachment.

    Args:
        data: Attachment bytes as delivered by the client, or None.
        base64_encoded: The client delivers attachments Base64-encoded.
        strict: Raise DecodeAnomaly on malformed input instead of degrading.

    Returns:
        The correlation id, or "" when there is no attachment. Malformed
        input renders as the raw bytes decoded leniently.
    """
    if not data:
        return ""
    if not base64_encoded:
        return _to_text(data, strict, "Attachment")
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        if strict:
            raise DecodeAnomaly(f"Attachment is not valid Base64: {e}") from e
        logger.warning("Attachment is not valid Base64, rendering it as plain text")
        return _to_text(data, False, "Attachment")
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        if strict:
            raise DecodeAnomaly(f"Decoded attachment is not valid UTF-8: {e}") from e
        logger.warning("Decoded attachment is not valid UTF-8, rendering the encoded form")
        return _to_text(data, False, "Attachment")
