from types import SimpleNamespace

import pytest

from app.core.exceptions import ValidationError
from app.services.scoring import (
    DEFAULT_RATING_BANDS, aggregate_category, build_rating_bands,
    calculate_overall_score, rating_for_score, summarize_categories,
)


def item(score, weight=1, category="General", rating=None, notes=None):
    return SimpleNamespace(score=score, weight=weight, category=category, rating=rating, notes=notes)


def test_weighted_score_kitchen_pass_restroom_fail():
    result = calculate_overall_score([item("pass", 2), item("fail", 1)])
    assert result.overall_score == 67
    assert result.overall_rating == "fair"
    assert (result.numerator, result.denominator) == (2, 3)


def test_all_fail_scores_zero():
    result = calculate_overall_score([item("fail", 3), item("fail", 1)])
    assert result.overall_score == 0
    assert result.overall_rating == "failing"


def test_all_na_scores_none():
    result = calculate_overall_score([item("na", 2), item("na")])
    assert result.overall_score is None
    assert result.overall_rating is None


def test_na_items_are_ignored():
    result = calculate_overall_score([item("pass"), item("na", 5)])
    assert result.overall_score == 100
    assert result.overall_rating == "excellent"


def test_rounds_half_up():
    # 7/8 = 87.5 -> 88
    items = [item("pass")] * 7 + [item("fail")]
    assert calculate_overall_score(items).overall_score == 88
    # 1/8 = 12.5 -> 13
    items = [item("pass")] + [item("fail")] * 7
    assert calculate_overall_score(items).overall_score == 13


def test_missing_or_invalid_score_rejected():
    with pytest.raises(ValidationError):
        calculate_overall_score([item("pass"), item(None)])
    with pytest.raises(ValidationError):
        calculate_overall_score([item("maybe")])


@pytest.mark.parametrize("score,label", [
    (100, "excellent"), (90, "excellent"), (89, "good"), (75, "good"),
    (74, "fair"), (60, "fair"), (59, "poor"), (40, "poor"), (39, "failing"), (0, "failing"),
])
def test_rating_band_boundaries(score, label):
    assert rating_for_score(score) == label


def test_rating_for_none_is_none():
    assert rating_for_score(None) is None


def test_build_rating_bands_sorts_and_validates():
    bands = build_rating_bands({"ok": 0, "great": 80})
    assert bands == (("great", 80), ("ok", 0))
    assert rating_for_score(79, bands) == "ok"

    with pytest.raises(ValueError):
        build_rating_bands({})
    with pytest.raises(ValueError):
        build_rating_bands({"a": 50, "b": 50, "c": 0})
    with pytest.raises(ValueError):
        build_rating_bands({"high": 120, "low": 0})
    with pytest.raises(ValueError):
        build_rating_bands({"high": 80, "low": 10})


def test_default_bands_match_settings_default():
    from app.core.config import Settings
    assert build_rating_bands(Settings().RATING_BANDS) == DEFAULT_RATING_BANDS


def test_category_aggregate_precedence_and_mean_rating():
    aggregate = aggregate_category("Kitchen", [
        item("pass", rating=4),
        item("fail", rating=2, notes="Grease on hood"),
        item("na", rating=5),
    ])
    assert aggregate.score == "fail"
    assert aggregate.rating == 3.7
    assert aggregate.notes == "Grease on hood"
    assert aggregate.item_count == 3
    assert aggregate.scored_count == 3


def test_category_aggregate_pass_beats_na_and_unscored():
    aggregate = aggregate_category("Lobby", [item("na"), item("pass"), item(None)])
    assert aggregate.score == "pass"
    assert aggregate.rating is None
    assert aggregate.scored_count == 2


def test_summarize_keeps_first_seen_category_order():
    summary = summarize_categories([
        item("pass", category="Restroom"),
        item("fail", category="Kitchen"),
        item("na", category="Restroom"),
    ])
    assert [a.category for a in summary] == ["Restroom", "Kitchen"]
    assert summary[0].score == "pass"
    assert summary[0].item_count == 2
