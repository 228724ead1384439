"""
Test configuration and shared fixtures.
"""

from collections.abc import Iterator

import pytest

from tests.helpers import FakeStatusSource


@pytest.fixture
def fake_source() -> FakeStatusSource:
    """Empty in-memory status source."""
    return FakeStatusSource()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[pytest.MonkeyPatch]:
    """
    Remove repowatch-related environment variables.

    Why: Configuration defaults read GITHUB_TOKEN and the config search path
         from the environment; tests must not depend on the developer's shell.
    What: Clears GITHUB_TOKEN and REPOWATCH_CONFIG_PATH for one test.
    How: Uses monkeypatch so the environment is restored afterwards.
    """
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("REPOWATCH_CONFIG_PATH", raising=False)
    yield monkeypatch
