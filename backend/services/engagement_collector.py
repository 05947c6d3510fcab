"""
EngagementCollector - best-effort reaction gathering for a timeline's casts.

One reactions fetch per cast, dispatched concurrently, each bounded by its
own timeout. A cast whose fetch fails (transport error, non-2xx, malformed
payload, timeout) is logged and contributes nothing; the others are kept.
If every cast fails the result is simply empty.
"""
import asyncio
import logging
from typing import List, Optional, Sequence

from models.domain.engagement import EngagementRecord
from services.neynar_client import NeynarClient

logger = logging.getLogger(__name__)


class EngagementCollector:
    """Collects EngagementRecords for an ordered list of casts."""

    def __init__(self, neynar: NeynarClient, timeout: float = 10.0):
        self.neynar = neynar
        self.timeout = timeout

    async def _fetch(self, cast_hash: str) -> List[EngagementRecord]:
        return await asyncio.wait_for(
            self.neynar.fetch_cast_reactions(cast_hash),
            timeout=self.timeout,
        )

    async def collect(
        self,
        cast_hashes: Sequence[str],
        author_fid: Optional[str] = None,
    ) -> List[EngagementRecord]:
        """
        Gather reactions for every cast.

        Args:
            cast_hashes: Casts in timeline order
            author_fid: Timeline creator (log context only; self-reactions count)

        Returns:
            Records grouped by cast in input order, reactions in API order
        """
        if not cast_hashes:
            return []

        results = await asyncio.gather(
            *(self._fetch(h) for h in cast_hashes),
            return_exceptions=True,
        )

        records: List[EngagementRecord] = []
        failed = 0
        for cast_hash, result in zip(cast_hashes, results):
            if isinstance(result, asyncio.TimeoutError):
                failed += 1
                logger.warning(f"Timed out fetching reactions for cast {cast_hash} after {self.timeout}s")
                continue
            if isinstance(result, Exception):
                failed += 1
                logger.warning(f"Error fetching reactions for cast {cast_hash}: {result}")
                continue
            if isinstance(result, BaseException):
                # CancelledError and friends are not per-cast failures
                raise result
            records.extend(result)

        logger.info(
            f"Collected {len(records)} reactions from {len(cast_hashes) - failed}/{len(cast_hashes)} casts"
            + (f" (creator fid {author_fid})" if author_fid else "")
        )
        return records
