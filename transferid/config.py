"""
config.py - Application settings and logging setup

Settings come from TRANSFERID_* environment variables through
pydantic-settings; keyword arguments win over the environment.

    TRANSFERID_PARTICIPANTS=alice,bob,carol
    TRANSFERID_INITIAL_GRANT=500
    TRANSFERID_CLAIM_UNIQUE=false
"""

from __future__ import annotations
from decimal import Decimal
from typing import Annotated, Tuple
import logging

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

ENV_PREFIX = "TRANSFERID_"


class TransferIdConfig(BaseSettings):
    """Configuration for the application. Modify these to experiment."""

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, frozen=True)

    # Participants, in the order get_users() reports them
    participants: Annotated[Tuple[str, ...], NoDecode] = ("alice", "bob")

    # Token issued by the system identity
    token_symbol: str = "TOK"
    token_name: str = "TOK"
    token_description: str = "Transfer ID Test Tokens"

    # Minted and granted to every participant at start-up
    initial_grant: Decimal = Decimal("1000000")

    # Stage a uniqueness claim for every transfer id
    claim_unique: bool = True

    # Deliver transfer attachments Base64-encoded to observers
    base64_attachments: bool = True

    ledger_name: str = "transferid"
    verbose: bool = False
    log_level: str = "WARNING"

    @field_validator("participants", mode="before")
    @classmethod
    def split_participants(cls, v):
        """Accept a comma-separated string as well as a sequence."""
        if isinstance(v, str):
            return tuple(p.strip() for p in v.split(",") if p.strip())
        return v

    @model_validator(mode="after")
    def check_values(self) -> TransferIdConfig:
        if len(set(self.participants)) != len(self.participants):
            raise ValueError(f"Duplicate participant labels: {self.participants}")
        if any(not p or not p.strip() for p in self.participants):
            raise ValueError("Participant labels cannot be empty")
        if self.initial_grant < 0:
            raise ValueError(f"initial_grant must be non-negative, got {self.initial_grant}")
        return self


def configure_logging(level: str = "WARNING", logger_name: str = "transferid") -> logging.Logger:
    """
    Send the package's log records to stderr.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        logger_name: Logger to configure

    Returns:
        The configured logger
    """
    logger = logging.getLogger(logger_name)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False
    return logger
