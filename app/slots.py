"""
Slot assignment for approved bookings.

A gig either lists its spots explicitly (``[{"kind": "host"}, {"kind": "timed",
"minutes": 5}, ...]``) or, for legacy gigs, only carries ``slots_total``.
Only gigs with explicit spots get a ``spot_index`` on their lineup entries.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.schemas import LineupEntry, Spot

HOST_LABEL = "Host"


def spot_label(spot: Spot) -> str:
    """Human label a comedian picks when requesting a spot: "Host" or "5min"."""
    if spot.kind == "host":
        return HOST_LABEL
    return f"{spot.minutes}min"


def capacity(spots: Sequence[Spot] | None, slots_total: int | None) -> int:
    if spots is not None:
        return len(spots)
    return slots_total or 0


def occupied_indices(lineup: Sequence[LineupEntry]) -> set[int]:
    return {e.spot_index for e in lineup if e.spot_index is not None}


def assign_spot(
    spots: Sequence[Spot] | None,
    lineup: Sequence[LineupEntry],
    requested_spot_type: str,
) -> int | None:
    """
    Pick the spot index a newly approved booking occupies.

    Lowest free index whose label equals ``requested_spot_type`` wins; failing
    that, the lowest free index of any kind. Returns None for legacy gigs
    without spots, or when every spot is taken.
    """
    if spots is None:
        return None

    taken = occupied_indices(lineup)
    free = [i for i in range(len(spots)) if i not in taken]

    for i in free:
        if spot_label(spots[i]) == requested_spot_type:
            return i

    return free[0] if free else None
