"""
Engagement and allocation domain models

Pipeline shapes, leaves first:
- EngagementRecord: one reaction (like/recast) on one cast (never persisted)
- EngagementTally: per-identity fold of records for a single allocation run
- AllocationEntry: tally + fractional share of the supporter cap (persisted)
- PayoutShareTable: integer basis-point table handed to the payout contract
"""
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple, List
from enum import Enum

from services.errors import ShareTableError

LIKE_WEIGHT = 1
RECAST_WEIGHT = 2

# Creator + supporters always split exactly this many basis points
TOTAL_BASIS_POINTS = 10000


class ReactionKind(str, Enum):
    """Reaction types that count as engagement"""
    LIKE = "like"
    RECAST = "recast"

    @property
    def weight(self) -> int:
        return RECAST_WEIGHT if self is ReactionKind.RECAST else LIKE_WEIGHT


@dataclass(frozen=True)
class EngagementRecord:
    """A single (cast, fid) reaction."""
    post_id: str      # cast hash
    identity_id: str  # reacting fid, as string
    kind: ReactionKind


@dataclass
class EngagementTally:
    """
    Aggregated engagement of one identity across every cast in a timeline.

    weighted_score is derived from the counts so it can never drift.
    """
    identity_id: str
    like_count: int = 0
    recast_count: int = 0

    @property
    def weighted_score(self) -> int:
        return self.like_count * LIKE_WEIGHT + self.recast_count * RECAST_WEIGHT

    def add(self, kind: ReactionKind) -> None:
        if kind is ReactionKind.LIKE:
            self.like_count += 1
        elif kind is ReactionKind.RECAST:
            self.recast_count += 1


@dataclass
class AllocationEntry:
    """
    One supporter row of a timeline.

    fractional_allocation is a percentage of the whole coin reward
    (0..allocation cap). resolved_address stays None when the fid has no
    verified ETH address; such rows are stored but never paid on-chain.
    """
    identity_id: str
    like_count: int
    recast_count: int
    weighted_score: int
    fractional_allocation: float = 0.0
    resolved_address: Optional[str] = None
    basis_points: Optional[int] = None

    @classmethod
    def from_tally(cls, tally: EngagementTally, fractional_allocation: float) -> 'AllocationEntry':
        return cls(
            identity_id=tally.identity_id,
            like_count=tally.like_count,
            recast_count=tally.recast_count,
            weighted_score=tally.weighted_score,
            fractional_allocation=fractional_allocation,
        )

    @property
    def is_resolved(self) -> bool:
        return self.resolved_address is not None

    def with_address(self, address: Optional[str]) -> 'AllocationEntry':
        return replace(self, resolved_address=address)

    def to_dict(self) -> dict:
        return {
            'fid': self.identity_id,
            'likes': self.like_count,
            'recasts': self.recast_count,
            'total_score': self.weighted_score,
            'allocation': self.fractional_allocation,
            'eth_address': self.resolved_address,
            'basis_points': self.basis_points,
        }


@dataclass(frozen=True)
class PayoutShare:
    address: str
    basis_points: int


@dataclass(frozen=True)
class PayoutShareTable:
    """
    Ordered (address, basis points) table: creator first, then supporters.

    Construction fails unless every share is non-negative and the shares
    sum to exactly TOTAL_BASIS_POINTS.
    """
    shares: Tuple[PayoutShare, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.shares:
            raise ShareTableError("Payout table needs at least the creator share")

        negative = [s for s in self.shares if s.basis_points < 0]
        if negative:
            raise ShareTableError(f"Negative payout shares: {negative}")

        total = sum(s.basis_points for s in self.shares)
        if total != TOTAL_BASIS_POINTS:
            raise ShareTableError(
                f"Payout shares sum to {total}, expected {TOTAL_BASIS_POINTS}"
            )

    @property
    def creator_share(self) -> int:
        return self.shares[0].basis_points

    @property
    def supporter_shares(self) -> Tuple[PayoutShare, ...]:
        return self.shares[1:]

    @property
    def addresses(self) -> List[str]:
        return [s.address for s in self.shares]

    @property
    def basis_points(self) -> List[int]:
        return [s.basis_points for s in self.shares]

    def __len__(self) -> int:
        return len(self.shares)
