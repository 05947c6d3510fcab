"""
AllocationEngine - engagement -> supporter allocation.

Likes weigh 1, recasts weigh 2. Each supporter's share of the cap is its
weighted score over the timeline's total weighted score:

    allocation = score / total_score * cap_percent

With no engagement at all every allocation is 0 (the creator keeps 100%).
The cap is validated here but never clamped: out-of-range caps are rejected.
"""
import math
import logging
from typing import Dict, Iterable, List

from models.domain.engagement import EngagementRecord, EngagementTally, AllocationEntry
from services.errors import InvalidAllocationError

logger = logging.getLogger(__name__)

MAX_ALLOCATION_PERCENT = 100.0


def validate_allocation_cap(cap_percent) -> float:
    """
    Parse and range-check a supporter allocation cap.

    Accepts numbers and numeric strings (the create form posts strings).

    Raises:
        InvalidAllocationError: non-numeric, non-finite or outside [0, 100]
    """
    if isinstance(cap_percent, bool):
        raise InvalidAllocationError(f"Invalid supporter allocation: {cap_percent!r}")
    try:
        cap = float(cap_percent)
    except (TypeError, ValueError):
        raise InvalidAllocationError(f"Invalid supporter allocation: {cap_percent!r}")

    if not math.isfinite(cap) or cap < 0 or cap > MAX_ALLOCATION_PERCENT:
        raise InvalidAllocationError(
            f"Supporter allocation must be between 0 and {MAX_ALLOCATION_PERCENT:g}, got {cap_percent!r}"
        )
    return cap


def fold_engagement(records: Iterable[EngagementRecord]) -> List[EngagementTally]:
    """
    Fold records into per-fid tallies, first-seen order.

    Always starts from an empty tally, so re-running on the same records
    yields the same counts.
    """
    tallies: Dict[str, EngagementTally] = {}
    for record in records:
        tally = tallies.get(record.identity_id)
        if tally is None:
            tally = tallies[record.identity_id] = EngagementTally(identity_id=record.identity_id)
        tally.add(record.kind)
    return list(tallies.values())


def compute_allocations(records: Iterable[EngagementRecord], cap_percent) -> List[AllocationEntry]:
    """
    Turn raw reactions into supporter allocation entries.

    Args:
        records: Reactions across all of the timeline's casts
        cap_percent: Share of the coin reward reserved for supporters (0-100)

    Returns:
        One entry per reacting fid, in first-seen order
    """
    cap = validate_allocation_cap(cap_percent)
    tallies = fold_engagement(records)
    total_score = sum(t.weighted_score for t in tallies)

    entries = []
    for tally in tallies:
        if total_score > 0:
            allocation = tally.weighted_score / total_score * cap
        else:
            allocation = 0.0
        entries.append(AllocationEntry.from_tally(tally, allocation))

    logger.info(
        f"Allocated {cap:g}% across {len(entries)} supporters "
        f"(total engagement score {total_score})"
    )
    return entries
