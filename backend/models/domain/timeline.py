"""
Timeline domain model
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List
from enum import Enum

from utils.id_generator import generate_timeline_id, validate_id


class TimelineTemplate(str, Enum):
    """Layout templates a timeline can be rendered with"""
    PULSE_THREAD = "pulse-thread"
    SNAPCAST = "snapcast"
    BRANCHING_MEMORY = "branching-memory"


@dataclass
class Creator:
    """Farcaster account that curated the timeline"""
    fid: str
    username: str
    display_name: str = ""
    pfp_url: str = ""


@dataclass
class Timeline:
    """
    Timeline domain model - storage-agnostic representation

    Storage: PostgreSQL (timelines table, supporters in timeline_supporters)

    A timeline is only ever stored after its RewardManager contract has
    been initialized on-chain, so reward_manager is always set for
    persisted rows. coin_address arrives later, once the coin is minted.

    ID format: tl_xxxxxxxx (11 chars)
    """
    id: str
    name: str
    template: TimelineTemplate
    creator: Creator
    supporter_allocation: float

    tags: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    cast_hashes: List[str] = field(default_factory=list)

    cover_image: str = ""
    metadata_url: str = ""

    total_supporters: int = 0
    reward_manager: Optional[str] = None
    coin_address: Optional[str] = None

    # Timestamps
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        """Validate and generate ID if needed"""
        if not self.id or not validate_id(self.id):
            self.id = generate_timeline_id()

        if not self.name or not self.name.strip():
            raise ValueError("Timeline must have a name")

    @property
    def is_coined(self) -> bool:
        return self.coin_address is not None
