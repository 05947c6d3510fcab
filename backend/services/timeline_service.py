"""
TimelineService - end-to-end timeline creation.

Pipeline (one sequential run per request):

    casts (explicit or keyword search)
      -> EngagementCollector       per-cast failures skipped
      -> compute_allocations       weighted, normalized to the cap
      -> resolve addresses         per-fid failures leave supporter unpaid
      -> reconcile                 exact 10000 bps table, creator first
      -> claim RewardManager       atomic, or RewardManagerUnavailableError
      -> PayoutInitializer         on failure: release claim, raise
      -> TimelineRepository        timeline + supporters + contract flip, one txn

Either the run ends with a confirmed initialize and a stored timeline, or it
raises a TimelineError and nothing is stored. The only state that survives a
failure after the chain call succeeded is the contract marked initialized,
since it can never be initialized again.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from web3 import Web3

from models.domain.engagement import AllocationEntry, PayoutShareTable
from models.domain.reward_manager import RewardManagerClaim
from models.domain.timeline import Timeline, TimelineTemplate, Creator
from repositories.reward_manager_repository import RewardManagerRepository
from repositories.timeline_repository import TimelineRepository
from services.address_resolver import AddressResolver
from services.allocation_engine import compute_allocations, validate_allocation_cap
from services.engagement_collector import EngagementCollector
from services.errors import (
    CreatorAddressError,
    NeynarAPIError,
    NoCastsFoundError,
    RewardManagerUnavailableError,
    TimelinePersistenceError,
)
from services.neynar_client import NeynarClient
from services.payout_contract import PayoutInitializer
from services.reconciliation import reconcile, resolve_supporter_addresses

logger = logging.getLogger(__name__)


@dataclass
class TimelineDraft:
    """Everything the create form submits."""
    name: str
    template: TimelineTemplate
    creator: Creator
    supporter_allocation: float
    keywords: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    cast_hashes: List[str] = field(default_factory=list)
    author_address: Optional[str] = None
    cover_image: str = ""
    metadata_url: str = ""


@dataclass
class TimelineCreationResult:
    timeline: Timeline
    supporters: List[AllocationEntry]
    payout_table: PayoutShareTable
    tx_hash: str


class TimelineService:
    """Wires the allocation pipeline to storage and the chain."""

    def __init__(
        self,
        neynar: NeynarClient,
        collector: EngagementCollector,
        resolver: AddressResolver,
        initializer: PayoutInitializer,
        timelines: TimelineRepository,
        reward_managers: RewardManagerRepository,
        resolve_timeout: Optional[float] = None,
        stale_claim_seconds: Optional[float] = None,
    ):
        self.neynar = neynar
        self.collector = collector
        self.resolver = resolver
        self.initializer = initializer
        self.timelines = timelines
        self.reward_managers = reward_managers
        self.resolve_timeout = resolve_timeout
        self.stale_claim_seconds = stale_claim_seconds

    async def preview_allocations(self, cast_hashes: Sequence[str], supporter_allocation) -> List[AllocationEntry]:
        """Allocation table for a set of casts, without touching chain or storage."""
        cap = validate_allocation_cap(supporter_allocation)
        records = await self.collector.collect(cast_hashes)
        return compute_allocations(records, cap)

    async def _discover_casts(self, draft: TimelineDraft) -> List[str]:
        if draft.cast_hashes:
            # Dedupe, keep order
            return list(dict.fromkeys(draft.cast_hashes))

        if not draft.keywords:
            raise NoCastsFoundError("Timeline needs cast hashes or keywords")

        hashes = await self.neynar.search_casts(draft.keywords, draft.creator.fid)
        if not hashes:
            raise NoCastsFoundError(
                f"No casts by fid {draft.creator.fid} match keywords {draft.keywords}"
            )
        return hashes

    async def _creator_address(self, draft: TimelineDraft) -> str:
        if draft.author_address:
            if not Web3.is_address(draft.author_address):
                raise CreatorAddressError(f"Invalid creator address: {draft.author_address!r}")
            return Web3.to_checksum_address(draft.author_address)

        try:
            address = await self.resolver.resolve(draft.creator.fid)
        except NeynarAPIError as e:
            raise CreatorAddressError(f"Could not look up creator fid {draft.creator.fid}: {e}") from e

        if not address:
            raise CreatorAddressError(f"Creator fid {draft.creator.fid} has no verified ETH address")
        return address

    async def _release(self, claim: RewardManagerClaim) -> None:
        try:
            await self.reward_managers.release(claim)
        except Exception as e:
            # Left claimed; release_stale returns it to the pool later
            logger.error(f"Could not release RewardManager {claim.id}: {e}")

    async def create_timeline(self, draft: TimelineDraft) -> TimelineCreationResult:
        """
        Run the full creation pipeline.

        Raises:
            InvalidAllocationError: cap outside [0, 100]
            NoCastsFoundError: nothing to build the timeline from
            NeynarAPIError: cast search failed
            CreatorAddressError: creator has no payout address
            RewardManagerUnavailableError: contract pool exhausted
            PayoutInitializationError: on-chain initialize failed (contract released)
            TimelinePersistenceError: stored nothing after a confirmed initialize
        """
        cap = validate_allocation_cap(draft.supporter_allocation)
        logger.info(f"Timeline creation started: {draft.name!r} by fid {draft.creator.fid}")

        cast_hashes = await self._discover_casts(draft)
        creator_address = await self._creator_address(draft)

        records = await self.collector.collect(cast_hashes, author_fid=draft.creator.fid)
        supporters = compute_allocations(records, cap)
        supporters = await resolve_supporter_addresses(supporters, self.resolver, timeout=self.resolve_timeout)
        payout_table = reconcile(supporters, creator_address)

        if self.stale_claim_seconds is not None:
            await self.reward_managers.release_stale(self.stale_claim_seconds)

        claim = await self.reward_managers.claim()
        if claim is None:
            logger.error("No unused RewardManager contract available")
            raise RewardManagerUnavailableError("No unused RewardManager contract available")

        try:
            tx_hash = await self.initializer.initialize(
                claim.address, payout_table.addresses, payout_table.basis_points,
            )
        except BaseException:
            await self._release(claim)
            raise

        timeline = Timeline(
            id="",
            name=draft.name,
            template=draft.template,
            creator=draft.creator,
            supporter_allocation=cap,
            tags=list(draft.tags),
            keywords=list(draft.keywords),
            cast_hashes=cast_hashes,
            cover_image=draft.cover_image,
            metadata_url=draft.metadata_url,
        )

        try:
            timeline = await self.timelines.create_initialized(timeline, supporters, claim, tx_hash)
        except Exception as e:
            logger.error(f"Error storing timeline after initialize tx {tx_hash}: {e}")
            # Contract is spent on-chain either way; never hand it out again
            try:
                await self.reward_managers.mark_initialized(claim, tx_hash)
            except Exception as mark_error:
                logger.error(
                    f"Could not mark RewardManager {claim.id} initialized (tx {tx_hash}): {mark_error}"
                )
            raise TimelinePersistenceError(
                f"RewardManager {claim.address} initialized (tx {tx_hash}) but timeline was not stored: {e}"
            ) from e

        logger.info(f"Timeline creation completed successfully: {timeline.id}")
        return TimelineCreationResult(
            timeline=timeline,
            supporters=supporters,
            payout_table=payout_table,
            tx_hash=tx_hash,
        )
