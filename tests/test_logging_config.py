"""Tests for the structlog setup."""

from __future__ import annotations

import logging

from bitlogic_escrow.logging_config import redact_witness, setup_logging


class TestRedaction:
    def test_witness_keys_masked(self) -> None:
        event = {"event": "proof.generated", "preimage": "secret", "escrow_id": "escrow_1"}
        assert redact_witness(None, "info", event) == {
            "event": "proof.generated",
            "preimage": "***",
            "escrow_id": "escrow_1",
        }

    def test_other_keys_untouched(self) -> None:
        event = {"event": "escrow.created", "amount": "0.5"}
        assert redact_witness(None, "info", dict(event)) == event


class TestSetup:
    def test_single_root_handler_at_level(self) -> None:
        setup_logging(log_level="warning", json_logs=True)
        setup_logging(log_level="info", json_logs=True)

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.INFO
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
