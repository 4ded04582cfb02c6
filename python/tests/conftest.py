"""Shared fixtures for p11ne_init tests."""

import logging

import pytest

from p11ne_init import logging_config


@pytest.fixture
def fresh_sink(monkeypatch):
    """Start from an uninitialized sink and restore the root logger afterwards."""
    root = logging.getLogger()
    original_level = root.level
    monkeypatch.setattr(logging_config, "_sink", None)

    yield

    sink = logging_config.get_sink()
    if sink is not None:
        root.removeHandler(sink)
    root.setLevel(original_level)
