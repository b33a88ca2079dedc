"""Shared pytest fixtures for ctrstream tests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterable, Callable

import pytest
from helpers import XorCounterProvider

from ctrstream import collect


@pytest.fixture
def fake_provider() -> XorCounterProvider:
    return XorCounterProvider()


@pytest.fixture
def drain() -> Callable[[AsyncIterable[bytes]], bytes]:
    """Run a stream to completion on a fresh event loop and return its bytes."""

    def _drain(stream: AsyncIterable[bytes]) -> bytes:
        return asyncio.run(collect(stream))

    return _drain


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Keep stray CTRSTREAM_* variables and .env files out of the tests."""
    for name in ("CTRSTREAM_PASSWORD", "CTRSTREAM_ITERATIONS", "CTRSTREAM_HASH", "CTRSTREAM_KEY_BITS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
