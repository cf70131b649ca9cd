"""
Tests for active-caption selection and the playback clock bridge
"""

import pytest

from bisubs.playback import PlaybackClock, find_active_index, find_active_subtitle
from bisubs.subtitles import SubtitleItem


@pytest.fixture
def items(sample_subtitles):
    return [SubtitleItem.from_dict(d) for d in sample_subtitles]


class TestActiveSubtitle:
    def test_inside_first_range(self, items):
        assert find_active_subtitle(items, 2.0) is items[0]

    def test_gap_between_ranges(self, items):
        assert find_active_subtitle(items, 3.5) is None

    def test_upper_bound_is_inclusive(self, items):
        assert find_active_subtitle(items, 6.0) is items[1]

    def test_lower_bound_is_inclusive(self, items):
        assert find_active_index(items, 1.0) == 0

    def test_before_and_after(self, items):
        assert find_active_index(items, 0.0) is None
        assert find_active_index(items, 60.0) is None

    def test_empty_list(self):
        assert find_active_subtitle([], 1.0) is None

    def test_overlap_first_in_list_order_wins(self):
        overlapping = [
            SubtitleItem("00:00:05,000", "00:00:09,000", "late", "晚"),
            SubtitleItem("00:00:01,000", "00:00:06,000", "early", "早"),
        ]
        assert find_active_index(overlapping, 5.5) == 0


class TestPlaybackClock:
    def test_small_difference_does_not_seek(self):
        clock = PlaybackClock(tolerance=0.5)
        clock.report_position(10.2)
        assert clock.request_seek(10.4) is False
        assert clock.current_time == pytest.approx(10.4)
        assert clock.player_position == pytest.approx(10.2)

    def test_large_difference_seeks(self):
        clock = PlaybackClock(tolerance=0.5)
        clock.report_position(10.2)
        assert clock.request_seek(12.0) is True
        assert clock.player_position == pytest.approx(12.0)

    def test_repeated_seek_to_same_time_is_ignored(self):
        clock = PlaybackClock()
        assert clock.request_seek(30.0) is True
        assert clock.request_seek(30.0) is False

    def test_player_ticks_update_logical_time(self):
        clock = PlaybackClock()
        clock.request_seek(12.0)
        clock.report_position(12.25)
        assert clock.current_time == pytest.approx(12.25)
