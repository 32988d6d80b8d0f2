"""
transferid - Transfer IDs on Token Transfers and Messages

Tags every token transfer with an application-level transfer id, carried in
the transfer's attachment and prefixed onto an optional message, so that an
observer can correlate the two records afterwards.

Usage:
    from transferid import Application

    app = Application()
    app.start()
    receipt = app.send_tokens("alice", "bob", 10, "Hello! I sent you 10 tokens")
    print(receipt.correlation_id)
    app.stop()

Lower level:
    from transferid import Ledger, LedgerClient, TransferSubmitter

    ledger = Ledger("main")
    system = LedgerClient(ledger)
    token = system.create_token("TOK", "Test Tokens")
"""

# Core types
from .core import (
    RRI,
    Token,
    MintTokens,
    TransferTokens,
    PutUniqueId,
    SendMessage,
    Action,
    Bundle,
    Atom,
    ExecuteResult,
    TokenTransfer,
    DecryptedMessage,
    Balance,
    LedgerView,
    LedgerError,
    InsufficientFunds,
    AddressNotRegistered,
    TokenNotRegistered,
    UniqueIdCollision,
    SignerMismatch,
    UnknownParticipant,
    BundleRejected,
    DecodeAnomaly,
    normalize_decimal,
    SYSTEM_WALLET,
    MESSAGE_DELIMITER,
)

# Ledger node and client
from .ledger import Ledger, CommitResult
from .client import Identity, LedgerClient, TransactionBuilder
from .streams import Subscription, CompositeSubscription, EventStreams

# Transfer ids
from .correlation import (
    generate_correlation_id,
    encode_attachment,
    encode_message,
    decode_attachment,
    decode_message,
    split_message,
)

# Application
from .submitter import TransferSubmitter, TransferReceipt
from .printer import EventPrinter, format_row
from .config import TransferIdConfig, configure_logging
from .application import Application

__all__ = [
    # Core
    'RRI', 'Token', 'MintTokens', 'TransferTokens', 'PutUniqueId', 'SendMessage',
    'Action', 'Bundle', 'Atom', 'ExecuteResult',
    'TokenTransfer', 'DecryptedMessage', 'Balance', 'LedgerView',
    'LedgerError', 'InsufficientFunds', 'AddressNotRegistered', 'TokenNotRegistered',
    'UniqueIdCollision', 'SignerMismatch', 'UnknownParticipant', 'BundleRejected',
    'DecodeAnomaly', 'normalize_decimal', 'SYSTEM_WALLET', 'MESSAGE_DELIMITER',
    # Ledger and client
    'Ledger', 'CommitResult', 'Identity', 'LedgerClient', 'TransactionBuilder',
    'Subscription', 'CompositeSubscription', 'EventStreams',
    # Transfer ids
    'generate_correlation_id', 'encode_attachment', 'encode_message',
    'decode_attachment', 'decode_message', 'split_message',
    # Application
    'TransferSubmitter', 'TransferReceipt', 'EventPrinter', 'format_row',
    'TransferIdConfig', 'configure_logging', 'Application',
]

__version__ = '1.0.0'
