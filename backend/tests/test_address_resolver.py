"""
Tests for AddressResolver and supporter address resolution.
"""

import asyncio
import pytest
from unittest.mock import AsyncMock

from services.address_resolver import AddressResolver, first_verified_eth_address
from services.cache import AddressCache, MISSING
from services.errors import NeynarAPIError
from services.reconciliation import resolve_supporter_addresses
from services.allocation_engine import compute_allocations

LOWER = "0x52908400098527886e0f7030069857d2e4169ee7"
CHECKSUM = "0x52908400098527886E0F7030069857D2E4169EE7"


def user_with(*addresses):
    return {"fid": 1, "verified_addresses": {"eth_addresses": list(addresses)}}


class TestFirstVerifiedAddress:

    def test_checksums_first_address(self):
        assert first_verified_eth_address(user_with(LOWER, "0x" + "1" * 40)) == CHECKSUM

    def test_skips_garbage(self):
        assert first_verified_eth_address(user_with("not-an-address", LOWER)) == CHECKSUM

    @pytest.mark.parametrize("user", [None, {}, {"verified_addresses": None}, user_with()])
    def test_none_without_addresses(self, user):
        assert first_verified_eth_address(user) is None


@pytest.mark.asyncio
async def test_resolve_caches_results():
    neynar = AsyncMock()
    neynar.fetch_user.return_value = user_with(LOWER)
    resolver = AddressResolver(neynar)

    assert await resolver.resolve("1") == CHECKSUM
    assert await resolver.resolve("1") == CHECKSUM
    neynar.fetch_user.assert_awaited_once_with("1")


@pytest.mark.asyncio
async def test_resolve_caches_missing_address():
    neynar = AsyncMock()
    neynar.fetch_user.return_value = user_with()
    resolver = AddressResolver(neynar)

    assert await resolver.resolve("2") is None
    assert await resolver.resolve("2") is None
    assert neynar.fetch_user.await_count == 1


@pytest.mark.asyncio
async def test_lookup_failure_is_not_cached():
    neynar = AsyncMock()
    neynar.fetch_user.side_effect = [NeynarAPIError("down"), user_with(LOWER)]
    resolver = AddressResolver(neynar)

    with pytest.raises(NeynarAPIError):
        await resolver.resolve("3")
    assert await resolver.resolve("3") == CHECKSUM


@pytest.mark.asyncio
async def test_supporter_resolution_failures_are_individual(example_records):
    """One fid has an address, one has none, one lookup fails."""
    answers = {"101": user_with(LOWER), "202": user_with(), "303": NeynarAPIError("500")}

    async def fetch_user(fid):
        answer = answers[fid]
        if isinstance(answer, Exception):
            raise answer
        return answer

    neynar = AsyncMock()
    neynar.fetch_user.side_effect = fetch_user

    entries = compute_allocations(example_records, 20)
    resolved = await resolve_supporter_addresses(entries, AddressResolver(neynar))

    assert [e.identity_id for e in resolved] == ["101", "202", "303"]
    assert [e.resolved_address for e in resolved] == [CHECKSUM, None, None]
    # Original entries untouched
    assert all(e.resolved_address is None for e in entries)


@pytest.mark.asyncio
async def test_supporter_resolution_timeout(example_records):
    async def fetch_user(fid):
        if fid == "202":
            await asyncio.sleep(5)
        return user_with(LOWER)

    neynar = AsyncMock()
    neynar.fetch_user.side_effect = fetch_user

    entries = compute_allocations(example_records, 20)
    resolved = await resolve_supporter_addresses(entries, AddressResolver(neynar), timeout=0.05)

    assert [e.is_resolved for e in resolved] == [True, False, True]


class TestAddressCache:

    def test_miss_vs_cached_none(self):
        cache = AddressCache()
        assert cache.get("1") is MISSING
        cache.set("1", None)
        assert cache.get("1") is None

    def test_expiry(self):
        cache = AddressCache(default_ttl=0)
        cache.set("1", CHECKSUM)
        assert cache.get("1") is MISSING
        assert len(cache) == 0

    def test_delete_and_clear(self):
        cache = AddressCache()
        cache.set("1", CHECKSUM)
        cache.set("2", CHECKSUM)
        cache.delete("1")
        assert cache.get("1") is MISSING
        cache.clear()
        assert len(cache) == 0

    def test_expired_entries_swept_on_set(self):
        cache = AddressCache(default_ttl=0)
        for fid in range(1000):
            cache.set(str(fid), CHECKSUM)
        cache.set("live", CHECKSUM, ttl=300)

        assert len(cache) == 1
        assert cache.get("live") == CHECKSUM
