"""Tests for star rating aggregation."""

import pytest

from skillwise.utils import RatingStats, summarize_ratings


@pytest.mark.parametrize(
    ("ratings", "average"),
    [
        ([4, 5], 4.5),
        ([1, 2, 2], 1.7),
        ([3, 4, 4, 4], 3.8),
        ([5], 5.0),
    ],
)
def test_average_rounds_half_up_to_one_decimal(ratings, average) -> None:
    assert summarize_ratings(ratings).average == average


def test_no_ratings() -> None:
    stats = summarize_ratings([])
    assert stats == RatingStats()
    assert stats.distribution == {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}


def test_distribution_ignores_out_of_range_values() -> None:
    stats = summarize_ratings([0, 1, 5, 5, 6])
    assert stats.count == 3
    assert stats.distribution == {1: 1, 2: 0, 3: 0, 4: 0, 5: 2}


def test_stats_from_stored_columns() -> None:
    stats = RatingStats.from_columns(None, None, None)
    assert stats.count == 0
    assert stats.average == 0.0
