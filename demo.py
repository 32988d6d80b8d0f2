#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Transfer IDs Step by Step

Shows how an application-level transfer id ties a token transfer to the
message that travels with it. Each step builds on the previous one.
Press Enter to advance.

WHAT YOU'LL LEARN:
  1-2: Setup        - The ledger, the system token, two participants
  3-4: Transfers    - Tagged transfers with and without a message
  5:   Atomicity    - A colliding transfer id rejects the whole bundle
  6:   Decoding     - The "<id>::<text>" convention and its limits

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from decimal import Decimal
import sys

from transferid import (
    Application, TransferIdConfig, BundleRejected, RRI,
    decode_message, encode_message, format_row,
)


CONFIG = TransferIdConfig(participants=("alice", "bob"))

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def step_01_start() -> Application:
    step_header(1, "Starting the Application",
        "A system identity creates TOK and grants every participant 1,000,000.")

    print(">>> app = Application(CONFIG); app.start()")
    app = Application(CONFIG)
    app.start()

    section_header("State")
    print(f"Token:        {app.token}")
    print(f"Participants: {', '.join(app.get_users())}")
    for name, client in app.sessions.items():
        print(f"  {name:<8} {client.address}  balance={client.get_balance(app.token)}")
    return app


def step_02_columns():
    step_header(2, "Reading the Output",
        "Every observed event prints as one fixed-width row.")
    print(format_row("NAME", "Kind", "payload (40 chars)", "transfer id (40 chars)"))
    print(format_row("EXAMPLE", "Balance", "1000000", None))


def step_03_transfer_with_message(app: Application):
    step_header(3, "A Transfer With a Message",
        "The transfer and the message carry the same transfer id.")
    alice, bob = app.get_users()[:2]
    receipt = app.send_tokens(alice, bob, Decimal("10"), "Hello! I sent you 10 tokens")
    section_header("Receipt")
    print(f"Transfer id: {receipt.correlation_id}")
    print(f"Atom:        {receipt.atom_id}")


def step_04_transfer_without_message(app: Application):
    step_header(4, "A Transfer Without a Message",
        "No message row appears, but the transfer still carries its id.")
    alice, bob = app.get_users()[:2]
    app.send_tokens(bob, alice, Decimal("4"))


def step_05_collision(app: Application):
    step_header(5, "Atomicity",
        "Reusing a transfer id collides with the earlier claim; nothing moves.")
    alice, bob = app.get_users()[:2]
    sender = app.sessions[alice]
    reused = RRI.of(sender.address, "reused")
    app.submitter.submit(alice, bob, Decimal("1"), "first", correlation_id=reused)
    before = sender.get_balance(app.token)
    try:
        app.submitter.submit(alice, bob, Decimal("1"), "second", correlation_id=reused)
    except BundleRejected as e:
        print(f"Rejected: {e.reason}")
    print(f"Alice balance unchanged: {sender.get_balance(app.token) == before}")


def step_06_decoding():
    step_header(6, "Decoding Messages",
        "Only the first '::' separates id from text.")
    payload = encode_message("/addr/abc", "ratio is 3::2")
    print(f"Payload:  {payload!r}")
    print(f"Decoded:  {decode_message(payload)}")
    print(f"No delim: {decode_message(b'plain text')}")


def main():
    app = step_01_start()
    wait_for_enter()
    step_02_columns()
    wait_for_enter()
    step_03_transfer_with_message(app)
    wait_for_enter()
    step_04_transfer_without_message(app)
    wait_for_enter()
    step_05_collision(app)
    wait_for_enter()
    step_06_decoding()
    app.stop()

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)


if __name__ == "__main__":
    main()
