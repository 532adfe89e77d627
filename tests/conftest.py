"""Pytest configuration and fixtures for jsonvet tests."""

import os

import pytest

# Set a fixed terminal width to prevent line wrapping issues in CI
# This must be set before any Rich imports
os.environ.setdefault("COLUMNS", "200")
os.environ.setdefault("LINES", "50")
# Disable Rich's terminal detection to ensure consistent output
os.environ.setdefault("TERM", "dumb")

from jsonvet.factory import Factory  # noqa: E402

JSONVET_ENV_VARS = [
    "JSONVET_THROW_IF_CONFIGURE_ERROR",
    "JSONVET_THROW_IF_ERROR",
    "JSONVET_STOP_IF_ERROR",
    "JSONVET_REMOVE_FAULTY",
    "JSONVET_CREATE_MODE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove jsonvet variables inherited from the calling shell."""
    for var in JSONVET_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def v() -> Factory:
    """Factory with the default configuration."""
    return Factory()
