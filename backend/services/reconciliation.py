"""
Reconciliation - supporter allocations -> on-chain payout table.

Two steps:
1. resolve_supporter_addresses: attach a verified ETH address to every
   supporter. Lookups run concurrently; a failed or timed-out lookup only
   leaves that supporter unresolved.
2. reconcile: convert resolved supporters' percentages to basis points
   (percent * 100) and give the creator whatever is left of 10000.

Unresolved supporters are kept in the stored supporter table but are left
out of the payout table; their share falls to the creator.

Rounding: every supporter gets round-half-up(percent * 100). Independent
rounding can overshoot 10000 in total; when it does, the overshoot is
trimmed one basis point at a time from the supporters that were rounded up
the most (largest-remainder order), so the creator share is never negative
and the table always sums to exactly 10000.
"""
import asyncio
import logging
import math
from typing import List, Optional, Sequence

from models.domain.engagement import (
    AllocationEntry,
    PayoutShare,
    PayoutShareTable,
    TOTAL_BASIS_POINTS,
)
from services.address_resolver import AddressResolver

logger = logging.getLogger(__name__)

BASIS_POINTS_PER_PERCENT = 100


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def apportion_basis_points(percentages: Sequence[float]) -> List[int]:
    """
    Convert supporter percentages to integer basis points.

    The result never sums to more than TOTAL_BASIS_POINTS.

    Args:
        percentages: Supporter allocations in percent (each >= 0)

    Returns:
        Basis points per supporter, same order
    """
    quotas = [max(p, 0.0) * BASIS_POINTS_PER_PERCENT for p in percentages]
    shares = [_round_half_up(q) for q in quotas]

    overshoot = sum(shares) - TOTAL_BASIS_POINTS
    if overshoot > 0:
        # Trim where rounding added the most; later supporters lose ties
        order = sorted(
            range(len(shares)),
            key=lambda i: (shares[i] - quotas[i], i),
            reverse=True,
        )
        while overshoot > 0:
            trimmed = False
            for i in order:
                if overshoot == 0:
                    break
                if shares[i] > 0:
                    shares[i] -= 1
                    overshoot -= 1
                    trimmed = True
            if not trimmed:
                break
        logger.warning(f"Supporter shares overshot {TOTAL_BASIS_POINTS} bps; trimmed to fit")

    return shares


async def resolve_supporter_addresses(
    entries: Sequence[AllocationEntry],
    resolver: AddressResolver,
    timeout: Optional[float] = None,
) -> List[AllocationEntry]:
    """
    Attach resolved addresses to allocation entries.

    Returns:
        New entries (same order); unresolvable ones keep resolved_address=None
    """
    async def _resolve(entry: AllocationEntry) -> Optional[str]:
        if timeout is None:
            return await resolver.resolve(entry.identity_id)
        return await asyncio.wait_for(resolver.resolve(entry.identity_id), timeout=timeout)

    results = await asyncio.gather(*(_resolve(e) for e in entries), return_exceptions=True)

    resolved = []
    for entry, result in zip(entries, results):
        if isinstance(result, Exception):
            logger.warning(f"Error getting ETH address for supporter {entry.identity_id}: {result!r}")
            result = None
        elif isinstance(result, BaseException):
            raise result
        elif result is None:
            logger.warning(f"Supporter {entry.identity_id} has no ETH address")
        resolved.append(entry.with_address(result))

    logger.info(f"Resolved {sum(1 for e in resolved if e.is_resolved)}/{len(resolved)} supporter addresses")
    return resolved


def reconcile(entries: Sequence[AllocationEntry], creator_address: str) -> PayoutShareTable:
    """
    Build the payout table for RewardManager.initialize.

    Sets basis_points on every resolved entry in place so the stored
    supporter rows match what went on-chain. Unresolved entries keep None.

    Args:
        entries: Allocation entries, with addresses already resolved
        creator_address: Creator payout address (first row of the table)

    Returns:
        PayoutShareTable: creator first, then resolved supporters in order
    """
    if not creator_address:
        raise ValueError("creator_address is required")

    kept = [e for e in entries if e.is_resolved]
    shares = apportion_basis_points([e.fractional_allocation for e in kept])

    for entry, bps in zip(kept, shares):
        entry.basis_points = bps

    creator_share = TOTAL_BASIS_POINTS - sum(shares)
    table = PayoutShareTable(shares=tuple(
        [PayoutShare(creator_address, creator_share)]
        + [PayoutShare(e.resolved_address, bps) for e, bps in zip(kept, shares)]
    ))

    dropped = len(entries) - len(kept)
    logger.info(
        f"Payout table: creator {creator_share} bps, {len(kept)} supporters "
        f"{sum(shares)} bps" + (f", {dropped} unresolved forfeited to creator" if dropped else "")
    )
    return table
