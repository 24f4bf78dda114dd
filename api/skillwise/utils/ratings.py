"""Star rating aggregation shared by course ratings and skill post reviews."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal


MIN_RATING = 1
MAX_RATING = 5
RATING_VALUES = tuple(range(MIN_RATING, MAX_RATING + 1))


def _empty_distribution() -> dict[int, int]:
    return dict.fromkeys(RATING_VALUES, 0)


@dataclass
class RatingStats:
    """Average (one decimal), count and per-star distribution."""

    average: float = 0.0
    count: int = 0
    distribution: dict[int, int] = field(default_factory=_empty_distribution)

    @classmethod
    def from_columns(
        cls,
        average: float | None,
        count: int | None,
        distribution: Mapping[int, int] | None,
    ) -> "RatingStats":
        stats = cls(average=average or 0.0, count=count or 0)
        for stars, total in (distribution or {}).items():
            if stars in stats.distribution:
                stats.distribution[stars] = total
        return stats


def summarize_ratings(ratings: Iterable[int]) -> RatingStats:
    """Aggregate star values; values outside 1..5 are ignored."""
    stats = RatingStats()
    total = 0
    for rating in ratings:
        if rating not in stats.distribution:
            continue
        stats.distribution[rating] += 1
        stats.count += 1
        total += rating
    if stats.count:
        stats.average = float(
            (Decimal(total) / stats.count).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
        )
    return stats
