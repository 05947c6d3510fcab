"""
Timelines API
=============

Endpoints:
- POST /api/timelines/calculate-allocations - Preview supporter allocations
- POST /api/timelines - Create a timeline (initializes its RewardManager)
- GET  /api/timelines - Recent timelines
- GET  /api/timelines/user-stats - On-chain stats of an address for a timeline coin
- GET  /api/timelines/{timeline_id} - Timeline with supporter table
- GET  /api/timelines/{timeline_id}/casts - Timeline casts for display
- POST /api/timelines/{timeline_id}/coin - Record the minted coin address
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List, Optional
import logging

from api.dependencies import (
    get_neynar_client,
    get_stats_reader,
    get_timeline_repository,
    get_timeline_service,
)
from models.api.timeline import (
    AllocationRequest,
    CoinAddressUpdate,
    PayoutShareResponse,
    SupporterResponse,
    TimelineCreate,
    TimelineCreated,
    TimelineResponse,
    UserStatsResponse,
)
from models.domain.timeline import Creator
from repositories.timeline_repository import TimelineRepository
from services.errors import (
    CreatorAddressError,
    InvalidAllocationError,
    NeynarAPIError,
    NoCastsFoundError,
    PayoutInitializationError,
    RewardManagerUnavailableError,
    TimelineError,
)
from services.neynar_client import NeynarClient
from services.payout_contract import PayoutStatsReader
from services.timeline_service import TimelineDraft, TimelineService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/timelines", tags=["Timelines"])

# Most specific first: subclasses of TimelineError map before the base
ERROR_STATUS = [
    (InvalidAllocationError, status.HTTP_400_BAD_REQUEST),
    (NoCastsFoundError, status.HTTP_400_BAD_REQUEST),
    (CreatorAddressError, status.HTTP_400_BAD_REQUEST),
    (RewardManagerUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (PayoutInitializationError, status.HTTP_502_BAD_GATEWAY),
    (NeynarAPIError, status.HTTP_502_BAD_GATEWAY),
    (TimelineError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def to_http_error(error: TimelineError, action: str) -> HTTPException:
    """Map a pipeline error to an HTTPException with a descriptive detail."""
    for error_cls, status_code in ERROR_STATUS:
        if isinstance(error, error_cls):
            return HTTPException(status_code=status_code, detail=f"Failed to {action}: {error}")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to {action}: {error}")


@router.post("/calculate-allocations", response_model=List[SupporterResponse])
async def calculate_allocations(
    body: AllocationRequest,
    service: TimelineService = Depends(get_timeline_service),
):
    """
    Preview supporter allocations for a set of casts.

    Nothing is claimed, resolved or stored.
    """
    try:
        supporters = await service.preview_allocations(body.cast_hashes, body.supporter_allocation)
    except TimelineError as e:
        raise to_http_error(e, "calculate allocations")

    return [SupporterResponse.from_entry(s) for s in supporters]


@router.post("", response_model=TimelineCreated, status_code=status.HTTP_201_CREATED)
async def create_timeline(
    body: TimelineCreate,
    service: TimelineService = Depends(get_timeline_service),
):
    """
    Create a timeline.

    Collects engagement, allocates supporter shares, initializes a
    RewardManager on-chain and stores the timeline. All or nothing.
    """
    draft = TimelineDraft(
        name=body.name,
        template=body.template,
        creator=Creator(
            fid=body.creator.fid,
            username=body.creator.username,
            display_name=body.creator.display_name,
            pfp_url=body.creator.pfp_url,
        ),
        supporter_allocation=body.supporter_allocation,
        keywords=body.keywords,
        tags=body.tags,
        cast_hashes=body.cast_hashes,
        author_address=body.author_address,
        cover_image=body.cover_image,
        metadata_url=body.metadata_url,
    )

    try:
        result = await service.create_timeline(draft)
    except TimelineError as e:
        logger.error(f"Error creating timeline {body.name!r}: {e}")
        raise to_http_error(e, "create timeline")

    return TimelineCreated(
        timeline_id=result.timeline.id,
        reward_manager=result.timeline.reward_manager,
        tx_hash=result.tx_hash,
        metadata_url=result.timeline.metadata_url,
        supporters=[SupporterResponse.from_entry(s) for s in result.supporters],
        payout=[
            PayoutShareResponse(address=s.address, basis_points=s.basis_points)
            for s in result.payout_table.shares
        ],
    )


@router.get("", response_model=List[TimelineResponse])
async def list_timelines(
    limit: int = Query(50, ge=1, le=200),
    timelines: TimelineRepository = Depends(get_timeline_repository),
):
    """Newest timelines first (without supporter tables)."""
    return [TimelineResponse.from_domain(t) for t in await timelines.list_recent(limit)]


@router.get("/user-stats", response_model=UserStatsResponse)
async def get_user_stats(
    user_address: Optional[str] = None,
    reward_manager: Optional[str] = None,
    coin_address: Optional[str] = None,
    reader: PayoutStatsReader = Depends(get_stats_reader),
):
    """
    Supporter share, accrued earnings and coin balance of an address.
    """
    if not user_address or not reward_manager or not coin_address:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required parameters",
        )

    try:
        share = await reader.supporter_share_percent(reward_manager, user_address)
        earnings = await reader.user_earnings(reward_manager, user_address)
        balance = await reader.coin_balance(coin_address, user_address)
    except Exception as e:
        logger.error(f"Error fetching user stats for {user_address}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to fetch user stats",
        )

    return UserStatsResponse(
        supporter_allocation=f"{share.normalize():f}%",
        earnings=float(earnings),
        balance=float(balance),
    )


@router.get("/{timeline_id}", response_model=TimelineResponse)
async def get_timeline(
    timeline_id: str,
    timelines: TimelineRepository = Depends(get_timeline_repository),
):
    """Timeline with its full supporter table (including unpaid supporters)."""
    timeline = await timelines.get_by_id(timeline_id)
    if not timeline:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Timeline not found")

    supporters = await timelines.get_supporters(timeline_id)
    return TimelineResponse.from_domain(timeline, supporters)


@router.get("/{timeline_id}/casts")
async def get_timeline_casts(
    timeline_id: str,
    timelines: TimelineRepository = Depends(get_timeline_repository),
    neynar: NeynarClient = Depends(get_neynar_client),
):
    """Casts of a timeline, shaped for display."""
    timeline = await timelines.get_by_id(timeline_id)
    if not timeline:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Timeline not found")

    if not timeline.cast_hashes:
        return {"casts": []}

    try:
        casts = await neynar.fetch_casts(timeline.cast_hashes)
    except NeynarAPIError as e:
        logger.error(f"Error fetching casts for timeline {timeline_id}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to fetch casts")

    return {"casts": casts}


@router.post("/{timeline_id}/coin")
async def update_coin_address(
    timeline_id: str,
    body: CoinAddressUpdate,
    timelines: TimelineRepository = Depends(get_timeline_repository),
):
    """Record the coin minted for a timeline."""
    if not body.coin_address or not body.coin_address.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Coin address is required")

    coin_address = body.coin_address.strip()
    if not await timelines.update_coin_address(timeline_id, coin_address):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Timeline not found")

    return {"success": True, "timeline_id": timeline_id, "coin_address": coin_address}
