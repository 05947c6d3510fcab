"""
Pydantic models for Timeline endpoints
"""

from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List, Union

from models.domain.engagement import AllocationEntry
from models.domain.timeline import Timeline, TimelineTemplate


class CreatorIn(BaseModel):
    """Creator block of the create form"""
    fid: str
    username: str
    display_name: str = ""
    pfp_url: str = ""

    @field_validator('fid', mode='before')
    @classmethod
    def coerce_fid(cls, v):
        return str(v) if isinstance(v, int) else v


class AllocationRequest(BaseModel):
    """Request model for an allocation preview"""
    cast_hashes: List[str] = Field(min_length=1)
    # Validated by the allocation engine so range errors share one message
    supporter_allocation: Union[float, str]


class TimelineCreate(BaseModel):
    """Request model for creating a timeline"""
    name: str = Field(min_length=1)
    template: TimelineTemplate
    creator: CreatorIn
    supporter_allocation: Union[float, str]
    keywords: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    cast_hashes: List[str] = Field(default_factory=list)
    author_address: Optional[str] = None
    cover_image: str = ""
    metadata_url: str = ""


class CoinAddressUpdate(BaseModel):
    """Request model for recording the minted coin"""
    coin_address: Optional[str] = None


class RewardManagerRegister(BaseModel):
    """Request model for adding payout contracts to the pool"""
    addresses: List[str] = Field(min_length=1)


class SupporterResponse(BaseModel):
    """One supporter row"""
    fid: str
    likes: int
    recasts: int
    total_score: int
    allocation: float
    eth_address: Optional[str] = None
    basis_points: Optional[int] = None

    @classmethod
    def from_entry(cls, entry: AllocationEntry) -> 'SupporterResponse':
        return cls(**entry.to_dict())


class PayoutShareResponse(BaseModel):
    address: str
    basis_points: int


class TimelineResponse(BaseModel):
    """Response model for a stored timeline"""
    id: str
    name: str
    template: TimelineTemplate
    creator: CreatorIn
    tags: List[str]
    keywords: List[str]
    supporter_allocation: float
    cast_hashes: List[str]
    cover_image: str
    metadata_url: str
    total_supporters: int
    reward_manager: Optional[str] = None
    coin_address: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    supporters: Optional[List[SupporterResponse]] = None

    @classmethod
    def from_domain(
        cls,
        timeline: Timeline,
        supporters: Optional[List[AllocationEntry]] = None,
    ) -> 'TimelineResponse':
        return cls(
            id=timeline.id,
            name=timeline.name,
            template=timeline.template,
            creator=CreatorIn(
                fid=timeline.creator.fid,
                username=timeline.creator.username,
                display_name=timeline.creator.display_name,
                pfp_url=timeline.creator.pfp_url,
            ),
            tags=timeline.tags,
            keywords=timeline.keywords,
            supporter_allocation=timeline.supporter_allocation,
            cast_hashes=timeline.cast_hashes,
            cover_image=timeline.cover_image,
            metadata_url=timeline.metadata_url,
            total_supporters=timeline.total_supporters,
            reward_manager=timeline.reward_manager,
            coin_address=timeline.coin_address,
            created_at=timeline.created_at,
            updated_at=timeline.updated_at,
            supporters=[SupporterResponse.from_entry(s) for s in supporters] if supporters is not None else None,
        )


class TimelineCreated(BaseModel):
    """Response model for a successful creation"""
    timeline_id: str
    reward_manager: str
    tx_hash: str
    metadata_url: str
    supporters: List[SupporterResponse]
    payout: List[PayoutShareResponse]


class UserStatsResponse(BaseModel):
    """On-chain stats of one address for one timeline coin"""
    supporter_allocation: str
    earnings: float
    balance: float
