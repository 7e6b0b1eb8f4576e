import asyncio

import pytest

from checkpoint import RpcCheckpointSource
from conftest import TEST_BLOCKHASH
from errors import CheckpointUnavailable


def test_returns_fetched_blockhash(monkeypatch):
    source = RpcCheckpointSource("http://rpc.invalid", timeout=1)

    async def fetch():
        return TEST_BLOCKHASH

    monkeypatch.setattr(source, "_fetch", fetch)
    assert asyncio.run(source.latest_blockhash()) == TEST_BLOCKHASH


def test_timeout_is_checkpoint_unavailable(monkeypatch):
    source = RpcCheckpointSource("http://rpc.invalid", timeout=0.01)

    async def slow_fetch():
        await asyncio.sleep(1)

    monkeypatch.setattr(source, "_fetch", slow_fetch)
    with pytest.raises(CheckpointUnavailable):
        asyncio.run(source.latest_blockhash())


def test_rpc_error_is_checkpoint_unavailable(monkeypatch):
    source = RpcCheckpointSource("http://rpc.invalid", timeout=1)

    async def broken_fetch():
        raise ConnectionError("connection refused")

    monkeypatch.setattr(source, "_fetch", broken_fetch)
    with pytest.raises(CheckpointUnavailable) as excinfo:
        asyncio.run(source.latest_blockhash())
    assert "connection refused" not in str(excinfo.value)
