"""
Tests for TransferIdConfig and logging setup.
"""

import logging
import os
import pytest
from decimal import Decimal

from pydantic import ValidationError

from transferid import TransferIdConfig, configure_logging


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for key in list(os.environ):
        if key.upper().startswith("TRANSFERID_"):
            monkeypatch.delenv(key)


class TestDefaults:

    def test_defaults(self):
        config = TransferIdConfig()
        assert config.participants == ("alice", "bob")
        assert config.token_symbol == "TOK"
        assert config.token_description == "Transfer ID Test Tokens"
        assert config.initial_grant == Decimal("1000000")
        assert config.claim_unique is True
        assert config.base64_attachments is True
        assert config.ledger_name == "transferid"
        assert config.log_level == "WARNING"

    def test_frozen(self):
        config = TransferIdConfig()
        with pytest.raises(ValidationError):
            config.verbose = True


class TestValidation:

    def test_duplicate_participants(self):
        with pytest.raises(ValueError, match="Duplicate"):
            TransferIdConfig(participants=("alice", "alice"))

    def test_blank_participant(self):
        with pytest.raises(ValueError, match="empty"):
            TransferIdConfig(participants=("alice", " "))

    def test_negative_grant(self):
        with pytest.raises(ValueError, match="non-negative"):
            TransferIdConfig(initial_grant=Decimal("-1"))

    def test_zero_grant_allowed(self):
        assert TransferIdConfig(initial_grant=Decimal("0")).initial_grant == 0

    def test_participants_accept_comma_string(self):
        assert TransferIdConfig(participants="x, y,").participants == ("x", "y")


class TestEnvironment:

    def test_reads_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("TRANSFERID_PARTICIPANTS", "alice, bob ,carol")
        monkeypatch.setenv("TRANSFERID_INITIAL_GRANT", "250.5")
        monkeypatch.setenv("TRANSFERID_CLAIM_UNIQUE", "no")
        monkeypatch.setenv("TRANSFERID_VERBOSE", "1")
        monkeypatch.setenv("TRANSFERID_TOKEN_SYMBOL", "XYZ")
        monkeypatch.setenv("UNRELATED", "ignored")

        config = TransferIdConfig()
        assert config.participants == ("alice", "bob", "carol")
        assert config.initial_grant == Decimal("250.5")
        assert config.claim_unique is False
        assert config.verbose is True
        assert config.token_symbol == "XYZ"

    def test_bad_boolean(self, monkeypatch):
        monkeypatch.setenv("TRANSFERID_BASE64_ATTACHMENTS", "maybe")
        with pytest.raises(ValidationError, match="base64_attachments"):
            TransferIdConfig()

    def test_duplicate_participants_from_environment(self, monkeypatch):
        monkeypatch.setenv("TRANSFERID_PARTICIPANTS", "alice,alice")
        with pytest.raises(ValidationError, match="Duplicate"):
            TransferIdConfig()

    def test_keyword_arguments_win(self, monkeypatch):
        monkeypatch.setenv("TRANSFERID_LOG_LEVEL", "DEBUG")
        assert TransferIdConfig(log_level="ERROR").log_level == "ERROR"


class TestConfigureLogging:

    def test_sets_level_and_single_handler(self):
        logger = configure_logging("debug", logger_name="transferid.test_config")
        configure_logging("INFO", logger_name="transferid.test_config")
        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1
        assert logger.propagate is False

    def test_returns_named_logger(self):
        logger = configure_logging(logger_name="transferid.test_named")
        assert logger is logging.getLogger("transferid.test_named")
        assert logger.level == logging.WARNING
