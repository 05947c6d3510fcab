"""
Pytest configuration and shared fixtures for Timeline backend tests.

Nothing here touches a real database, chain or network: asyncpg pools are
faked, Neynar goes through httpx.MockTransport or AsyncMock.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from models.domain.engagement import EngagementRecord, ReactionKind

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)

# EIP-55 test vector, already in checksum form
CREATOR_ADDRESS = "0x8617E340B3D01FA5F11F306F4090FD50E238070D"


def pytest_configure(config):
    """Configure pytest with asyncio marker."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as an async test."
    )


def likes(cast_hash: str, fid: str, n: int):
    return [EngagementRecord(cast_hash, fid, ReactionKind.LIKE) for _ in range(n)]


def recasts(cast_hash: str, fid: str, n: int):
    return [EngagementRecord(cast_hash, fid, ReactionKind.RECAST) for _ in range(n)]


def address_for(fid: str) -> str:
    """Deterministic checksummed-looking test address per fid."""
    return "0x" + fid.rjust(40, "a")


class FakeAcquire:
    """Stands in for asyncpg's pool.acquire() context manager."""

    def __init__(self, conn):
        self.conn = conn

    async def __aenter__(self):
        return self.conn

    async def __aexit__(self, *exc):
        return False


class FakeTransaction:
    def __init__(self):
        self.entered = False
        self.rolled_back = False

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.rolled_back = exc_type is not None
        return False


@pytest.fixture
def example_records():
    """Three fids scoring 5, 10 and 30 across two casts."""
    return (
        likes("0xc1", "101", 5)
        + recasts("0xc1", "202", 3)
        + recasts("0xc2", "202", 2)
        + likes("0xc2", "303", 10)
        + recasts("0xc2", "303", 10)
    )


@pytest.fixture
def conn():
    conn = AsyncMock()
    conn.transaction = MagicMock(return_value=FakeTransaction())
    return conn


@pytest.fixture
def db_pool(conn):
    pool = MagicMock()
    pool.acquire = MagicMock(return_value=FakeAcquire(conn))
    return pool
