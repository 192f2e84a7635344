"""Test log level handling."""

from __future__ import annotations

import logging

from zkgate_relay.log import setup_logging


def test_named_level_is_applied():
    assert setup_logging("debug") == logging.DEBUG
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("werkzeug").level == logging.DEBUG


def test_invalid_level_falls_back_to_info(capsys):
    assert setup_logging("bogus") == logging.INFO
    assert logging.getLogger().level == logging.INFO
    assert "Invalid LOG_LEVEL 'BOGUS'. Defaulting to INFO." in capsys.readouterr().err


def test_missing_level_defaults_to_info():
    assert setup_logging(None) == logging.INFO
