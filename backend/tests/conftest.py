"""Pytest configuration and fixtures."""

import pytest

from dashboard.config import reset_config


@pytest.fixture
def event_loop_policy():
    """Use the default event loop policy for all async tests."""
    import asyncio

    return asyncio.DefaultEventLoopPolicy()


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch, tmp_path):
    """Keep tests away from the user's data dir and any ambient provider key."""
    monkeypatch.setenv("DASHBOARD_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("ALPHA_VANTAGE_API_KEY", raising=False)
    monkeypatch.delenv("DASHBOARD_ALPHA_VANTAGE_API_KEY", raising=False)
    reset_config()
    yield
    reset_config()
