from __future__ import annotations

import pytest

from fakes import FakeDocument, FakeSignal
from live_theme_sync.config import SyncConfig


@pytest.fixture
def document() -> FakeDocument:
    return FakeDocument()


@pytest.fixture
def signal() -> FakeSignal:
    return FakeSignal()


@pytest.fixture
def config() -> SyncConfig:
    return SyncConfig()
