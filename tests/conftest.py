"""Shared test configuration and fixtures."""

import os

os.environ.setdefault('PAGEQUERY_SETUP_LOGGING', 'false')

from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402

from _fakes import make_channel, make_client  # noqa: E402
from pagequery.config import load_defaults  # noqa: E402


@pytest.fixture
def client() -> MagicMock:
	return make_client()


@pytest.fixture
def channel() -> MagicMock:
	return make_channel()


@pytest.fixture(autouse=True)
def _isolated_defaults(monkeypatch):
	"""Pages built without explicit defaults read PAGEQUERY; keep the outer environment out."""
	monkeypatch.delenv('PAGEQUERY', raising=False)
	load_defaults.cache_clear()
	yield
	load_defaults.cache_clear()
