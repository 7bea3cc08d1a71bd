"""Unit tests for notifications and logging setup."""
import logging

import pytest

from mathfluent.log import configure_logging
from mathfluent.notifications import (
    LoggingNotifier,
    Notification,
    NotificationVariant,
    RecordingNotifier,
    notify,
)


class TestNotify:
    """Tests for the notify helper."""

    def test_records_in_order(self):
        """Test that notifications are kept in order with their variant."""
        notifier = RecordingNotifier()

        notify(notifier, "Solution Generated!", "ready")
        notify(notifier, "Error", "Could not send message.", destructive=True)

        assert notifier.notifications == [
            Notification(title="Solution Generated!", description="ready"),
            Notification(
                title="Error",
                description="Could not send message.",
                variant=NotificationVariant.DESTRUCTIVE,
            ),
        ]

    def test_without_notifier(self):
        """Test that no notifier means nothing happens."""
        notify(None, "ignored")

    def test_logging_notifier(self, caplog):
        """Test that destructive notifications are logged as errors."""
        with caplog.at_level(logging.INFO, logger="mathfluent"):
            notify(LoggingNotifier(), "Logged Out", "bye")
            notify(LoggingNotifier(), "Error", "Could not send message.", destructive=True)

        assert [r.levelno for r in caplog.records] == [logging.INFO, logging.ERROR]
        assert "Could not send message." in caplog.records[-1].getMessage()

    def test_drain(self):
        """Test that draining returns and clears."""
        notifier = RecordingNotifier()
        notify(notifier, "a")

        assert [n.title for n in notifier.drain()] == ["a"]
        assert notifier.notifications == []


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_level_from_argument(self):
        """Test that the given level is applied to the package logger."""
        configure_logging("debug")

        logger = logging.getLogger("mathfluent")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert not logger.propagate

    def test_level_from_environment(self, monkeypatch):
        """Test the environment fallback."""
        monkeypatch.setenv("MATHFLUENT_LOG_LEVEL", "error")

        configure_logging()

        assert logging.getLogger("mathfluent").level == logging.ERROR

    def test_unknown_level(self):
        """Test that unknown level names are rejected."""
        with pytest.raises(ValueError):
            configure_logging("chatty")
