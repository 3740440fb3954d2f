"""Tests for logging setup."""

import logging

import pytest
import structlog

from autoschema.logs import configure_logging


@pytest.fixture
def basic_config(monkeypatch):
    calls = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
    yield calls
    structlog.reset_defaults()


def test_json_format(basic_config):
    configure_logging("debug", "json")

    assert basic_config[0]["level"] == logging.DEBUG
    assert basic_config[0]["format"] == "%(message)s"
    processors = structlog.get_config()["processors"]
    assert isinstance(processors[-1], structlog.processors.JSONRenderer)


def test_console_format(basic_config):
    configure_logging("WARNING")

    assert basic_config[0]["level"] == logging.WARNING
    assert "%(levelname)s" in basic_config[0]["format"]
    processors = structlog.get_config()["processors"]
    assert isinstance(processors[-1], structlog.processors.KeyValueRenderer)


def test_unknown_level_falls_back_to_info(basic_config):
    configure_logging("chatty")
    assert basic_config[0]["level"] == logging.INFO
