"""Smoke test for the Streamlit table app (app.py).

Uses streamlit.testing.v1.AppTest to verify the first render of both tables
completes without exceptions. Settings are written to a temporary directory.
"""

import pytest

try:
    from streamlit.testing.v1 import AppTest

    _STREAMLIT_AVAILABLE = True
except ImportError:
    _STREAMLIT_AVAILABLE = False


@pytest.fixture(autouse=True)
def settings_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("ARCTURUS_SETTINGS_DIR", str(tmp_path))


@pytest.mark.skipif(not _STREAMLIT_AVAILABLE, reason="streamlit not installed")
def test_app_runs_without_exception():
    """App renders both tables without raising an exception."""
    at = AppTest.from_file("../app.py")
    at.run(timeout=60)
    assert not at.exception, f"App raised an exception: {at.exception}"


@pytest.mark.skipif(not _STREAMLIT_AVAILABLE, reason="streamlit not installed")
def test_app_has_expected_tabs():
    """App exposes one tab per table."""
    at = AppTest.from_file("../app.py")
    at.run(timeout=60)
    tab_labels = [t.label for t in at.tabs]
    assert "Blackjack" in tab_labels
    assert "Baccarat" in tab_labels
