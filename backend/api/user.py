"""
User API Endpoints
==================

Farcaster user lookup for the create form.

Endpoints:
- GET /api/user-profile?fid= - Neynar profile of a fid
"""

from fastapi import APIRouter, Depends, HTTPException, status
from typing import Optional
import logging

from api.dependencies import get_neynar_client
from services.errors import NeynarAPIError
from services.neynar_client import NeynarClient

logger = logging.getLogger(__name__)
router = APIRouter(tags=["User"])


@router.get("/api/user-profile")
async def get_user_profile(
    fid: Optional[str] = None,
    neynar: NeynarClient = Depends(get_neynar_client),
):
    """
    Get a Farcaster user profile.

    Returns the first user of Neynar's bulk lookup.
    """
    if not fid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing fid")

    try:
        user = await neynar.fetch_user(fid)
    except NeynarAPIError as e:
        logger.error(f"Error fetching user profile for fid {fid}: {e}")
        raise HTTPException(
            status_code=e.status_code or status.HTTP_502_BAD_GATEWAY,
            detail="Failed to fetch user profile",
        )

    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return {"user": user}
