"""
Timeline Repository - PostgreSQL storage for timelines and their supporters

Storage: PostgreSQL (timelines, timeline_supporters tables)

Timelines are written exactly once, together with their supporter rows and
the RewardManager status flip, in one transaction. Readers never see a
timeline without its supporters or one whose contract is not initialized.
"""
import logging
from typing import Optional, List, Sequence
import asyncpg

from models.domain.engagement import AllocationEntry
from models.domain.reward_manager import RewardManagerClaim
from models.domain.timeline import Timeline, TimelineTemplate, Creator
from repositories.reward_manager_repository import RewardManagerRepository

logger = logging.getLogger(__name__)

TIMELINE_COLUMNS = """
    id, name, template, creator_fid, creator_username, creator_display_name,
    creator_pfp_url, cover_image, metadata_url, tags, keywords,
    supporter_allocation, cast_hashes, total_supporters, reward_manager,
    coin_address, created_at, updated_at
"""


def _row_to_timeline(row) -> Timeline:
    return Timeline(
        id=row['id'],
        name=row['name'],
        template=TimelineTemplate(row['template']),
        creator=Creator(
            fid=row['creator_fid'],
            username=row['creator_username'],
            display_name=row['creator_display_name'],
            pfp_url=row['creator_pfp_url'],
        ),
        supporter_allocation=row['supporter_allocation'],
        tags=list(row['tags'] or []),
        keywords=list(row['keywords'] or []),
        cast_hashes=list(row['cast_hashes'] or []),
        cover_image=row['cover_image'],
        metadata_url=row['metadata_url'],
        total_supporters=row['total_supporters'],
        reward_manager=row['reward_manager'],
        coin_address=row['coin_address'],
        created_at=row['created_at'],
        updated_at=row['updated_at'],
    )


class TimelineRepository:
    """
    Repository for Timeline domain model
    """

    def __init__(self, db_pool: asyncpg.Pool):
        self.db_pool = db_pool
        self.reward_managers = RewardManagerRepository(db_pool)

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    async def get_by_id(self, timeline_id: str) -> Optional[Timeline]:
        """
        Retrieve timeline by ID.

        Args:
            timeline_id: Timeline ID (tl_xxxxxxxx)

        Returns:
            Timeline model or None
        """
        async with self.db_pool.acquire() as conn:
            row = await conn.fetchrow(f"""
                SELECT {TIMELINE_COLUMNS}
                FROM timelines
                WHERE id = $1
            """, timeline_id)

            return _row_to_timeline(row) if row else None

    async def list_recent(self, limit: int = 50) -> List[Timeline]:
        """Newest timelines first."""
        async with self.db_pool.acquire() as conn:
            rows = await conn.fetch(f"""
                SELECT {TIMELINE_COLUMNS}
                FROM timelines
                ORDER BY created_at DESC
                LIMIT $1
            """, limit)

            return [_row_to_timeline(row) for row in rows]

    async def get_supporters(self, timeline_id: str) -> List[AllocationEntry]:
        """
        Supporter table of a timeline, in allocation order.

        Includes supporters without an ETH address (not paid on-chain).
        """
        async with self.db_pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT fid, likes, recasts, total_score, allocation,
                       eth_address, basis_points
                FROM timeline_supporters
                WHERE timeline_id = $1
                ORDER BY position ASC
            """, timeline_id)

            return [
                AllocationEntry(
                    identity_id=row['fid'],
                    like_count=row['likes'],
                    recast_count=row['recasts'],
                    weighted_score=row['total_score'],
                    fractional_allocation=row['allocation'],
                    resolved_address=row['eth_address'],
                    basis_points=row['basis_points'],
                )
                for row in rows
            ]

    # =========================================================================
    # CREATE OPERATION
    # =========================================================================

    async def create_initialized(
        self,
        timeline: Timeline,
        supporters: Sequence[AllocationEntry],
        claim: RewardManagerClaim,
        tx_hash: str,
    ) -> Timeline:
        """
        Store a timeline whose RewardManager was just initialized.

        Uses a transaction to ensure atomicity:
        1. Insert the timeline
        2. Insert every supporter row
        3. Flip the RewardManager claimed -> initialized

        Raises:
            ValueError: if the claim is no longer held (nothing is written)
        """
        timeline.reward_manager = claim.address
        timeline.total_supporters = len(supporters)

        async with self.db_pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow("""
                    INSERT INTO timelines (
                        id, name, template, creator_fid, creator_username,
                        creator_display_name, creator_pfp_url, cover_image,
                        metadata_url, tags, keywords, supporter_allocation,
                        cast_hashes, total_supporters, reward_manager,
                        created_at, updated_at
                    )
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, NOW(), NOW())
                    RETURNING created_at, updated_at
                """,
                    timeline.id,
                    timeline.name,
                    timeline.template.value,
                    timeline.creator.fid,
                    timeline.creator.username,
                    timeline.creator.display_name,
                    timeline.creator.pfp_url,
                    timeline.cover_image,
                    timeline.metadata_url,
                    timeline.tags,
                    timeline.keywords,
                    timeline.supporter_allocation,
                    timeline.cast_hashes,
                    timeline.total_supporters,
                    timeline.reward_manager,
                )

                if supporters:
                    await conn.executemany("""
                        INSERT INTO timeline_supporters (
                            timeline_id, fid, likes, recasts, total_score,
                            allocation, eth_address, basis_points, position,
                            last_updated
                        )
                        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, NOW())
                    """, [
                        (
                            timeline.id,
                            s.identity_id,
                            s.like_count,
                            s.recast_count,
                            s.weighted_score,
                            s.fractional_allocation,
                            s.resolved_address,
                            s.basis_points,
                            position,
                        )
                        for position, s in enumerate(supporters)
                    ])

                flipped = await self.reward_managers.mark_initialized(
                    claim, tx_hash, timeline_id=timeline.id, conn=conn,
                )
                if not flipped:
                    raise ValueError(f"RewardManager {claim.address} is no longer claimed by this run")

                timeline.created_at = row['created_at']
                timeline.updated_at = row['updated_at']

        logger.info(f"Created timeline {timeline.id} with {len(supporters)} supporters (RewardManager {claim.address})")
        return timeline

    # =========================================================================
    # UPDATE OPERATIONS
    # =========================================================================

    async def update_coin_address(self, timeline_id: str, coin_address: str) -> bool:
        """
        Record the coin minted for a timeline.

        Returns:
            True if updated, False if the timeline does not exist
        """
        async with self.db_pool.acquire() as conn:
            result = await conn.execute("""
                UPDATE timelines
                SET coin_address = $2, updated_at = NOW()
                WHERE id = $1
            """, timeline_id, coin_address)

            updated = int(result.split()[-1]) > 0
            if updated:
                logger.info(f"Timeline {timeline_id} coined at {coin_address}")
            return updated
