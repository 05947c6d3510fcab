"""
RewardManager Repository - PostgreSQL pool of pre-deployed payout contracts

Storage: PostgreSQL (reward_managers table)

A contract moves available -> claimed -> initialized. Claiming is a single
atomic UPDATE over a SKIP LOCKED subselect, so two concurrent timeline
creations can never claim the same contract. A claimed contract only becomes
initialized after its on-chain initialize call is confirmed; until then a
failed run releases it back to the pool.
"""
import uuid
import logging
from typing import Optional
import asyncpg

from models.domain.reward_manager import RewardManagerClaim, RewardManagerStatus
from utils.id_generator import generate_reward_manager_id

logger = logging.getLogger(__name__)


class RewardManagerRepository:
    """
    Repository for the RewardManager contract pool
    """

    def __init__(self, db_pool: asyncpg.Pool):
        self.db_pool = db_pool

    async def register(self, address: str) -> bool:
        """
        Add a deployed contract to the available pool.

        Args:
            address: RewardManager contract address

        Returns:
            True if added, False if the address was already known
        """
        async with self.db_pool.acquire() as conn:
            result = await conn.execute("""
                INSERT INTO reward_managers (id, address, status, created_at)
                VALUES ($1, $2, $3, NOW())
                ON CONFLICT (address) DO NOTHING
            """, generate_reward_manager_id(), address, RewardManagerStatus.AVAILABLE.value)

            inserted = int(result.split()[-1]) > 0
            if inserted:
                logger.info(f"Registered RewardManager {address}")
            return inserted

    async def claim(self) -> Optional[RewardManagerClaim]:
        """
        Atomically claim an available contract.

        Never-released contracts go first (oldest first); released ones queue
        behind them by release time, so a contract whose initialize keeps
        failing cannot starve the rest of the pool.

        Returns:
            Claim with a fresh claim token, or None if the pool is empty
        """
        claim_token = uuid.uuid4().hex
        async with self.db_pool.acquire() as conn:
            row = await conn.fetchrow("""
                UPDATE reward_managers
                SET status = 'claimed', claim_token = $1, claimed_at = NOW()
                WHERE id = (
                    SELECT id FROM reward_managers
                    WHERE status = 'available'
                    ORDER BY released_at ASC NULLS FIRST, created_at ASC
                    LIMIT 1
                    FOR UPDATE SKIP LOCKED
                )
                RETURNING id, address, claim_token, claimed_at
            """, claim_token)

            if not row:
                return None

            logger.info(f"Claimed RewardManager {row['address']} ({row['id']})")
            return RewardManagerClaim(
                id=row['id'],
                address=row['address'],
                claim_token=row['claim_token'],
                claimed_at=row['claimed_at'],
            )

    async def release(self, claim: RewardManagerClaim) -> bool:
        """
        Return a claimed contract to the pool (compensating action).

        Only releases if the contract is still held under this claim.

        Returns:
            True if released
        """
        async with self.db_pool.acquire() as conn:
            result = await conn.execute("""
                UPDATE reward_managers
                SET status = 'available', claim_token = NULL, claimed_at = NULL,
                    released_at = NOW()
                WHERE id = $1 AND status = 'claimed' AND claim_token = $2
            """, claim.id, claim.claim_token)

            released = int(result.split()[-1]) > 0
            if released:
                logger.warning(f"Released RewardManager {claim.address} back to pool")
            return released

    async def mark_initialized(
        self,
        claim: RewardManagerClaim,
        tx_hash: str,
        timeline_id: Optional[str] = None,
        conn: Optional[asyncpg.Connection] = None,
    ) -> bool:
        """
        Mark a claimed contract as spent after a confirmed initialize.

        Pass `conn` to run inside a caller's transaction.

        Returns:
            True if the row moved claimed -> initialized under this claim
        """
        query = """
            UPDATE reward_managers
            SET status = 'initialized', initialized_at = NOW(),
                tx_hash = $3, timeline_id = $4
            WHERE id = $1 AND status = 'claimed' AND claim_token = $2
        """
        if conn is not None:
            result = await conn.execute(query, claim.id, claim.claim_token, tx_hash, timeline_id)
        else:
            async with self.db_pool.acquire() as pooled:
                result = await pooled.execute(query, claim.id, claim.claim_token, tx_hash, timeline_id)

        return int(result.split()[-1]) > 0

    async def release_stale(self, max_age_seconds: float) -> int:
        """
        Return claims abandoned by crashed runs to the pool.

        A claim older than max_age_seconds is released. Pick max_age_seconds
        well above the chain tx timeout so live runs are never swept.

        Returns:
            Number of contracts released
        """
        async with self.db_pool.acquire() as conn:
            result = await conn.execute("""
                UPDATE reward_managers
                SET status = 'available', claim_token = NULL, claimed_at = NULL,
                    released_at = NOW()
                WHERE status = 'claimed'
                  AND claimed_at < NOW() - make_interval(secs => $1)
            """, float(max_age_seconds))

            released = int(result.split()[-1])
            if released:
                logger.warning(f"Released {released} stale RewardManager claims back to pool")
            return released

    async def count_available(self) -> int:
        """Number of contracts left to claim."""
        async with self.db_pool.acquire() as conn:
            count = await conn.fetchval("""
                SELECT COUNT(*) FROM reward_managers WHERE status = 'available'
            """)
            return count or 0
