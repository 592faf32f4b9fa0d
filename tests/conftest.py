"""Central test fixtures."""

import os

import pytest


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Hide LISTFEED_* variables of the host so settings start from defaults."""
    for name in list(os.environ):
        if name.startswith("LISTFEED_"):
            monkeypatch.delenv(name)
