"""
Command line entry point.

    python -m transferid
    python -m transferid --participants alice,bob,carol --amount 25
    python -m transferid --no-unique-claim --log-level INFO
"""

from __future__ import annotations
from decimal import Decimal
from typing import List, Optional
import argparse
import sys

from .application import Application
from .config import TransferIdConfig, configure_logging
from .core import LedgerError, normalize_decimal, quantize_amount, to_amount


def positive_amount(text: str) -> Decimal:
    """argparse type: a finite amount greater than zero."""
    try:
        value = to_amount(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from None
    if quantize_amount(value) <= 0:
        raise argparse.ArgumentTypeError(f"amount must be positive, got {text}")
    return value


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="transferid",
        description="Send tagged token transfers between participants and print what they observe.",
    )
    parser.add_argument("--participants", help="Comma-separated participant labels (default: alice,bob)")
    parser.add_argument("--amount", type=positive_amount, default=Decimal("10"),
                        help="Tokens the first participant sends the second (default: 10)")
    parser.add_argument("--refund", type=positive_amount, default=Decimal("4"),
                        help="Tokens sent back (default: 4)")
    parser.add_argument("--no-message", action="store_true", help="Send transfers without messages")
    parser.add_argument("--no-unique-claim", action="store_true",
                        help="Attach transfer ids without claiming them as unique")
    parser.add_argument("--log-level", help="Log level for diagnostics on stderr")
    parser.add_argument("--verbose", action="store_true", help="Print every committed atom")
    return parser


def build_config(args: argparse.Namespace) -> TransferIdConfig:
    """Settings from the environment, overridden by the given arguments."""
    overrides = {}
    if args.participants:
        overrides["participants"] = args.participants
    if args.no_unique_claim:
        overrides["claim_unique"] = False
    if args.verbose:
        overrides["verbose"] = True
    if args.log_level:
        overrides["log_level"] = args.log_level
    return TransferIdConfig(**overrides)


def main(argv: Optional[List[str]] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)
    try:
        config = build_config(args)
    except ValueError as e:
        parser.error(str(e))
    configure_logging(config.log_level)

    application = Application(config)
    try:
        application.start()
        users = application.get_users()
        if len(users) > 1:
            first, second = users[0], users[1]
            amount, refund = normalize_decimal(args.amount), normalize_decimal(args.refund)
            message = None if args.no_message else f"Hello! I sent you {amount} tokens"
            reply = None if args.no_message else f"Thanks! I sent you {refund} back"
            application.send_tokens(first, second, args.amount, message)
            application.send_tokens(second, first, args.refund, reply)
    except LedgerError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    finally:
        application.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
