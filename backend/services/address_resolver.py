"""
AddressResolver - fid -> verified ETH address.

Uses the first verified ETH address on the fid's Neynar profile. A fid
without one resolves to None; a failed lookup raises so the caller can
decide (the reconciliation step drops the supporter, the creator lookup
aborts the run). Successful lookups, including "no address", are cached.
"""
import logging
from typing import Optional

from web3 import Web3

from services.cache import AddressCache, MISSING
from services.neynar_client import NeynarClient

logger = logging.getLogger(__name__)


def first_verified_eth_address(user: Optional[dict]) -> Optional[str]:
    """Pick the first well-formed verified ETH address, checksummed."""
    if not user:
        return None
    verified = user.get('verified_addresses') or {}
    for address in verified.get('eth_addresses') or []:
        if isinstance(address, str) and Web3.is_address(address):
            return Web3.to_checksum_address(address)
    return None


class AddressResolver:
    """Resolves fids to payout addresses through Neynar's bulk user lookup."""

    def __init__(self, neynar: NeynarClient, cache: Optional[AddressCache] = None):
        self.neynar = neynar
        self.cache = cache if cache is not None else AddressCache()

    async def resolve(self, fid: str) -> Optional[str]:
        """
        Resolve one fid.

        Returns:
            Checksummed address, or None if the fid has no verified address

        Raises:
            NeynarAPIError: if the lookup itself failed
        """
        cached = self.cache.get(fid)
        if cached is not MISSING:
            return cached

        user = await self.neynar.fetch_user(fid)
        address = first_verified_eth_address(user)
        self.cache.set(fid, address)

        if address is None:
            logger.debug(f"fid {fid} has no verified ETH address")
        return address
