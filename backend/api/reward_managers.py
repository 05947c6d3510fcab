"""
RewardManager pool API
======================

Operator endpoints for the pool of pre-deployed payout contracts.

Endpoints:
- POST /api/reward-managers - Register deployed contracts as available
- GET  /api/reward-managers/available - Contracts left to claim
"""

from fastapi import APIRouter, Depends, HTTPException, status
import logging

from web3 import Web3

from api.dependencies import get_reward_manager_repository
from models.api.timeline import RewardManagerRegister
from repositories.reward_manager_repository import RewardManagerRepository

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/reward-managers", tags=["RewardManagers"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def register_reward_managers(
    body: RewardManagerRegister,
    reward_managers: RewardManagerRepository = Depends(get_reward_manager_repository),
):
    """Add deployed RewardManager contracts to the pool."""
    invalid = [a for a in body.addresses if not Web3.is_address(a)]
    if invalid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid contract addresses: {', '.join(invalid)}",
        )

    registered = []
    for address in body.addresses:
        checksummed = Web3.to_checksum_address(address)
        if await reward_managers.register(checksummed):
            registered.append(checksummed)

    return {
        "registered": registered,
        "skipped": len(body.addresses) - len(registered),
        "available": await reward_managers.count_available(),
    }


@router.get("/available")
async def count_available(
    reward_managers: RewardManagerRepository = Depends(get_reward_manager_repository),
):
    return {"available": await reward_managers.count_available()}
