"""
Shared fixtures for the test suite.
"""

import pytest


@pytest.fixture(autouse=True)
def isolated_log_file(tmp_path, monkeypatch):
    """Keep CLI log files out of the user's home directory."""
    log_path = tmp_path / "logs" / "dependings.log"
    monkeypatch.setenv("DEPENDINGS_LOG", str(log_path))
    return log_path
