"""
Unit Tests for the logging context helpers
==========================================
"""

import logging

import pytest

import fightslot.core.logging as fightslot_logging
from fightslot.core.logging.logger import ContextFilter, LogContext, set_log_context
from tests.conftest import PLAYER


def _record() -> logging.LogRecord:
    return logging.LogRecord(
        "fightslot.modules.sync.synchronizer", logging.INFO, __file__, 1, "msg", (), None
    )


@pytest.mark.unit
class TestLogContext:
    def test_public_context_api(self):
        assert "LogContext" in fightslot_logging.__all__
        assert "set_log_context" in fightslot_logging.__all__
        assert "clear_log_context" not in fightslot_logging.__all__

    def test_fields_stamped_inside_block(self):
        """Test records inside a LogContext carry its fields."""
        # Arrange
        record = _record()

        # Act
        with LogContext(player_address=PLAYER, operation="sync.char_hp", cycle=3):
            ContextFilter().filter(record)

        # Assert
        assert record.player_address == PLAYER
        assert record.operation == "sync.char_hp"
        assert record.component == "synchronizer"

    def test_set_log_context_scoped_to_block(self):
        """Test set_log_context merges non-None fields until the block exits."""
        # Arrange
        inside, outside = _record(), _record()

        # Act
        with LogContext(player_address=PLAYER):
            set_log_context(operation="fight", chain_id=None)
            ContextFilter().filter(inside)
        ContextFilter().filter(outside)

        # Assert
        assert inside.player_address == PLAYER
        assert inside.operation == "fight"
        assert inside.chain_id == "N/A"
        assert outside.player_address == "N/A"
