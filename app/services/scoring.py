"""
Inspection Scoring
Reduces item-level pass/fail/na results to an overall 0-100 score and a
rating label, and builds per-category aggregates for bulk entry.

Weighting:
    pass -> weight counts in numerator and denominator
    fail -> weight counts in denominator only
    na   -> ignored
    overall = round_half_up(100 * numerator / denominator), None when the
    denominator is 0 (every item 'na').
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Mapping, NamedTuple, Optional, Tuple

from app.core.exceptions import ValidationError
from app.models.inspection import ItemScore

logger = logging.getLogger(__name__)

RatingBands = Tuple[Tuple[str, int], ...]

# Minimum score per label, highest first. Cut points pending product sign-off;
# override through Settings.RATING_BANDS.
DEFAULT_RATING_BANDS: RatingBands = (
    ("excellent", 90),
    ("good", 75),
    ("fair", 60),
    ("poor", 40),
    ("failing", 0),
)

# Category aggregate precedence: the first score present wins
CATEGORY_SCORE_PRECEDENCE = (ItemScore.FAIL.value, ItemScore.PASS.value, ItemScore.NA.value)

VALID_SCORES = {s.value for s in ItemScore}


class ScoreResult(NamedTuple):
    overall_score: Optional[int]
    overall_rating: Optional[str]
    numerator: int
    denominator: int


class CategoryAggregate(NamedTuple):
    category: str
    score: Optional[str]
    rating: Optional[float]
    notes: Optional[str]
    item_count: int
    scored_count: int


def _round_half_up(value: Decimal, places: int = 0) -> Decimal:
    exponent = Decimal(1).scaleb(-places)
    return value.quantize(exponent, rounding=ROUND_HALF_UP)


def build_rating_bands(table: Mapping[str, int]) -> RatingBands:
    """
    Validate a {label: minimum score} table and return it as bands sorted
    highest minimum first.
    """
    if not table:
        raise ValueError("Rating band table must not be empty")

    minimums = list(table.values())
    if len(set(minimums)) != len(minimums):
        raise ValueError("Rating band minimums must be unique")
    for label, minimum in table.items():
        if not label:
            raise ValueError("Rating band labels must be non-empty")
        if not 0 <= int(minimum) <= 100:
            raise ValueError(f"Rating band '{label}' minimum must be within 0..100")
    if 0 not in minimums:
        raise ValueError("Rating bands must include a band starting at 0")

    return tuple(sorted(((k, int(v)) for k, v in table.items()), key=lambda band: band[1], reverse=True))


def rating_for_score(score: Optional[int], bands: RatingBands = DEFAULT_RATING_BANDS) -> Optional[str]:
    """Map an overall score to its rating label. None stays None."""
    if score is None:
        return None
    for label, minimum in bands:
        if score >= minimum:
            return label
    # Unreachable for validated bands (a 0 band always exists)
    return bands[-1][0]


def calculate_overall_score(items: Iterable, bands: RatingBands = DEFAULT_RATING_BANDS) -> ScoreResult:
    """
    Compute the weighted overall score for scored items.

    Args:
        items: objects exposing `score` ('pass'|'fail'|'na') and `weight` (int >= 1)
        bands: rating band table

    Returns:
        ScoreResult; score and rating are both None when nothing counted.
    """
    numerator = 0
    denominator = 0

    for item in items:
        if item.score not in VALID_SCORES:
            raise ValidationError(f"Item score must be one of pass, fail, na (got {item.score!r})")
        weight = item.weight or 1
        if item.score == ItemScore.PASS.value:
            numerator += weight
            denominator += weight
        elif item.score == ItemScore.FAIL.value:
            denominator += weight

    if denominator == 0:
        return ScoreResult(None, None, numerator, denominator)

    score = int(_round_half_up(Decimal(100 * numerator) / Decimal(denominator)))
    return ScoreResult(score, rating_for_score(score, bands), numerator, denominator)


def aggregate_category(category: str, items: Iterable) -> CategoryAggregate:
    """
    Display aggregate for one category: score by precedence fail > pass > na,
    rating as the mean of rated items to one decimal, first non-empty note.
    """
    items = list(items)
    scores = {item.score for item in items if item.score}
    ratings = [item.rating for item in items if item.rating is not None]
    notes = next((item.notes for item in items if item.notes), None)

    score = next((s for s in CATEGORY_SCORE_PRECEDENCE if s in scores), None)
    rating = None
    if ratings:
        rating = float(_round_half_up(Decimal(sum(ratings)) / Decimal(len(ratings)), 1))

    return CategoryAggregate(
        category=category,
        score=score,
        rating=rating,
        notes=notes,
        item_count=len(items),
        scored_count=sum(1 for item in items if item.score),
    )


def summarize_categories(items: Iterable) -> List[CategoryAggregate]:
    """Aggregate items per category, categories in first-seen order."""
    grouped = {}
    for item in items:
        grouped.setdefault(item.category, []).append(item)
    return [aggregate_category(category, members) for category, members in grouped.items()]
