"""
RewardManager (payout contract) pool models
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from enum import Enum


class RewardManagerStatus(str, Enum):
    """
    Lifecycle of a pre-deployed payout contract:

        available -> claimed -> initialized
                 ^---------/   (released when the pipeline fails)
    """
    AVAILABLE = "available"
    CLAIMED = "claimed"
    INITIALIZED = "initialized"


@dataclass
class RewardManagerClaim:
    """
    Exclusive hold on one payout contract for the duration of a pipeline run.

    claim_token guards release/initialize so a stale run can never touch a
    contract that has since been re-claimed by someone else.
    """
    id: str
    address: str
    claim_token: str
    claimed_at: Optional[datetime] = None
