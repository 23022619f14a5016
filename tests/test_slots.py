"""Tests for spot labels, capacity and spot assignment."""

from app.schemas import HostSpot, TimedSpot
from app.slots import assign_spot, capacity, occupied_indices, spot_label

from .factories import lineup_entry, showcase_spots


class TestSpotLabel:
    def test_host(self):
        assert spot_label(HostSpot()) == "Host"

    def test_timed(self):
        assert spot_label(TimedSpot(minutes=7)) == "7min"


class TestCapacity:
    def test_spots_take_precedence(self):
        assert capacity(showcase_spots(), 10) == 4

    def test_legacy_slots_total(self):
        assert capacity(None, 6) == 6

    def test_nothing_configured(self):
        assert capacity(None, None) == 0


class TestAssignSpot:
    def test_sequence_of_approvals(self):
        """[Host, 5min, 5min, 10min]: 5min -> 1, 5min -> 2, unmatched -> 0."""
        spots = showcase_spots()
        lineup = []

        first = assign_spot(spots, lineup, "5min")
        assert first == 1
        lineup.append(lineup_entry("a", 1, spot_index=first))

        second = assign_spot(spots, lineup, "5min")
        assert second == 2
        lineup.append(lineup_entry("b", 2, spot_index=second))

        third = assign_spot(spots, lineup, "7min")
        assert third == 0

    def test_exact_match_preferred_over_lower_free_index(self):
        assert assign_spot(showcase_spots(), [], "10min") == 3

    def test_empty_request_falls_back_to_first_free(self):
        lineup = [lineup_entry("a", 1, spot_index=0)]
        assert assign_spot(showcase_spots(), lineup, "") == 1

    def test_never_reuses_an_index(self):
        spots = showcase_spots()
        lineup = []
        for i in range(len(spots)):
            idx = assign_spot(spots, lineup, "Host")
            assert idx not in occupied_indices(lineup)
            lineup.append(lineup_entry(f"c{i}", i + 1, spot_index=idx))
        assert sorted(e.spot_index for e in lineup) == [0, 1, 2, 3]

    def test_full_gig_yields_none(self):
        lineup = [lineup_entry(f"c{i}", i + 1, spot_index=i) for i in range(4)]
        assert assign_spot(showcase_spots(), lineup, "5min") is None

    def test_entries_without_spot_index_do_not_occupy(self):
        lineup = [lineup_entry("a", 1), lineup_entry("b", 2)]
        assert assign_spot(showcase_spots(), lineup, "Host") == 0

    def test_legacy_gig_has_no_assignment(self):
        assert assign_spot(None, [], "5min") is None

    def test_deterministic(self):
        lineup = [lineup_entry("a", 1, spot_index=1)]
        results = {assign_spot(showcase_spots(), lineup, "5min") for _ in range(5)}
        assert results == {2}
