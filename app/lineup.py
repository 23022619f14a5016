"""Running-order maintenance for a gig's lineup."""

from __future__ import annotations

from collections.abc import Sequence

from app.errors import StateConflict, ValidationFailure
from app.schemas import GigResponse, LineupEntry


def renumber(entries: Sequence[LineupEntry]) -> list[LineupEntry]:
    """Re-stamp ``order`` as the 1-based position, keeping relative order."""
    return [e.model_copy(update={"order": i}) for i, e in enumerate(entries, start=1)]


def reorder(gig: GigResponse, entries: Sequence[LineupEntry]) -> GigResponse:
    """
    Replace the lineup wholesale with ``entries``.

    This is an overwrite, not a merge: whatever another admin wrote in the
    meantime is lost (last write wins).
    """
    if len(entries) > gig.capacity:
        raise StateConflict(
            f"Lineup has {len(entries)} entries but the gig only has "
            f"{gig.capacity} slots"
        )

    seen_comedians: set[str] = set()
    seen_spots: set[int] = set()
    for e in entries:
        if e.comedian_id in seen_comedians:
            raise ValidationFailure(f"Comedian '{e.comedian_id}' appears twice")
        seen_comedians.add(e.comedian_id)

        if e.spot_index is None:
            continue
        if gig.spots is None or e.spot_index >= len(gig.spots):
            raise ValidationFailure(f"spot_index {e.spot_index} does not exist")
        if e.spot_index in seen_spots:
            raise ValidationFailure(f"spot_index {e.spot_index} is used twice")
        seen_spots.add(e.spot_index)

    return gig.model_copy(update={"lineup": renumber(entries)})


def remove(gig: GigResponse, comedian_id: str) -> GigResponse:
    """Drop ``comedian_id`` from the lineup and close the gap in ``order``."""
    kept = [e for e in gig.lineup if e.comedian_id != comedian_id]
    return gig.model_copy(update={"lineup": renumber(kept)})
