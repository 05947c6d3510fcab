"""
Domain Models - Storage-agnostic data structures

These models represent the core domain entities independent of storage layer.
Services operate on these models, not raw database rows.

Architecture:
- Domain models are pure Python objects (dataclasses)
- Storage details (PostgreSQL) are abstracted via repositories
- Allocation logic operates on these models, not Neynar payloads

Allocation Pipeline Models:
- EngagementRecord: Ephemeral reaction parsed from Neynar (not persisted)
- EngagementTally: Per-fid fold of one run's records
- AllocationEntry: Supporter row (persisted with the timeline)
- PayoutShareTable: Basis-point table for RewardManager.initialize
"""

from .engagement import (
    ReactionKind,
    EngagementRecord,
    EngagementTally,
    AllocationEntry,
    PayoutShare,
    PayoutShareTable,
    LIKE_WEIGHT,
    RECAST_WEIGHT,
    TOTAL_BASIS_POINTS,
)
from .timeline import Timeline, TimelineTemplate, Creator
from .reward_manager import RewardManagerClaim, RewardManagerStatus

__all__ = [
    # Allocation pipeline
    'ReactionKind',
    'EngagementRecord',
    'EngagementTally',
    'AllocationEntry',
    'PayoutShare',
    'PayoutShareTable',
    'LIKE_WEIGHT',
    'RECAST_WEIGHT',
    'TOTAL_BASIS_POINTS',

    # Timelines
    'Timeline',
    'TimelineTemplate',
    'Creator',

    # Payout contract pool
    'RewardManagerClaim',
    'RewardManagerStatus',
]
