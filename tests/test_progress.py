from datetime import timedelta
from types import SimpleNamespace

import pytest

from memory_curve.errors import InvalidArgumentError
from memory_curve.schemas import (
    FamiliarityLevel,
    LearningRecord,
    LearningStats,
    LearningType,
    ReviewItem,
)
from memory_curve.sm2 import (
    ADVICE_BACKLOG,
    ADVICE_HARD_MATERIAL,
    ADVICE_HIGH_MASTERY,
    ADVICE_LOW_MASTERY,
    ADVICE_MEDIUM_MASTERY,
    MemoryCurveScheduler,
)
from tests.conftest import NOW


def _record(item_id="s-1", level=FamiliarityLevel.FAMILIAR, next_review_at=NOW, ease=2.5, interval=6):
    return LearningRecord(
        item_id=item_id,
        learning_type=LearningType.SENTENCE_TRANSLATION,
        familiarity_level=level,
        review_count=2,
        ease_factor=ease,
        interval_days=interval,
        last_reviewed_at=NOW - timedelta(days=interval),
        next_review_at=next_review_at,
    )


def test_review_eligibility_preserves_order(scheduler):
    items = [
        ReviewItem(item_id="new"),
        ReviewItem(item_id="yesterday", learning_record=_record("yesterday", next_review_at=NOW - timedelta(days=1))),
        ReviewItem(item_id="tomorrow", learning_record=_record("tomorrow", next_review_at=NOW + timedelta(days=1))),
    ]

    due = scheduler.get_sentences_for_review(items)

    assert [item.item_id for item in due] == ["new", "yesterday"]
    assert due[0] is items[0]


def test_review_eligibility_accepts_mappings_and_objects(scheduler):
    items = [
        {"text": "a", "learningRecord": _record("a", next_review_at=NOW + timedelta(hours=1))},
        {"text": "b", "learning_record": None},
        {"text": "c", "learningRecord": _record("c", next_review_at=None).model_dump(by_alias=True)},
        SimpleNamespace(text="d", learning_record=_record("d", next_review_at=NOW)),
        SimpleNamespace(text="e"),
    ]

    due = scheduler.get_sentences_for_review(items)

    assert [getattr(item, "text", None) or item["text"] for item in due] == ["b", "c", "d", "e"]


def test_malformed_mapping_record_raises_invalid_argument(scheduler):
    items = [{"text": "a", "learningRecord": {"itemId": "", "learningType": "word_learning"}}]

    with pytest.raises(InvalidArgumentError, match="Malformed learning record"):
        scheduler.get_sentences_for_review(items)
    with pytest.raises(InvalidArgumentError):
        scheduler.calculate_learning_stats(items)


def test_fresh_record_is_not_due_at_creation(scheduler):
    created = scheduler.create_learning_record("s-1", LearningType.SENTENCE_TRANSLATION)

    assert scheduler.get_sentences_for_review([{"learningRecord": created}]) == []


def test_due_selection_reevaluates_with_fresh_now(stepping_clock):
    scheduler = MemoryCurveScheduler(clock=stepping_clock)
    items = [ReviewItem(item_id="s-1", learning_record=scheduler.create_learning_record("s-1", "word_learning"))]

    assert scheduler.get_sentences_for_review(items) == []
    stepping_clock.advance(days=1)
    assert scheduler.get_sentences_for_review(items) == items


def test_iter_due_items_is_lazy(scheduler):
    consumed = []

    def produce():
        for name in ["a", "b", "c"]:
            consumed.append(name)
            yield {"name": name}

    due = scheduler.iter_due_items(produce())
    assert consumed == []
    assert next(due) == {"name": "a"}
    assert consumed == ["a"]


def test_stats_on_empty_collection(scheduler):
    stats = scheduler.calculate_learning_stats([])

    assert stats.total == 0
    assert stats.average_ease_factor == 0
    assert stats.average_interval == 0
    assert stats.next_review_count == 0
    assert stats.mastery_rate == 0


def test_stats_counts_and_averages(scheduler):
    items = [
        ReviewItem(item_id="1"),
        ReviewItem(item_id="2"),
        ReviewItem(item_id="3", learning_record=_record("3", FamiliarityLevel.MASTERED, NOW + timedelta(days=9), 2.8, 15)),
        ReviewItem(item_id="4", learning_record=_record("4", FamiliarityLevel.FAMILIAR, NOW, 2.5, 6)),
        ReviewItem(item_id="5", learning_record=_record("5", FamiliarityLevel.UNFAMILIAR, NOW - timedelta(days=2), 1.9, 1)),
        ReviewItem(item_id="6", learning_record=_record("6", FamiliarityLevel.MASTERED, None, 2.6, 8)),
    ]

    stats = scheduler.calculate_learning_stats(items)

    assert stats.total == 6
    assert stats.unlearned == 2
    assert stats.mastered == 2
    assert stats.familiar == 1
    assert stats.unfamiliar == 1
    assert stats.average_ease_factor == pytest.approx((2.8 + 2.5 + 1.9 + 2.6) / 4)
    assert stats.average_interval == pytest.approx((15 + 6 + 1 + 8) / 4)
    # records without a next review date are not counted as pending
    assert stats.next_review_count == 2


def test_prediction_when_target_already_met():
    prediction = MemoryCurveScheduler.predict_learning_progress(LearningStats(total=10, mastered=8))

    assert (prediction.days_to_target, prediction.estimated_reviews, prediction.confidence) == (0, 0, "high")


def test_prediction_on_empty_collection_is_not_vacuously_met():
    prediction = MemoryCurveScheduler.predict_learning_progress(LearningStats())

    assert (prediction.days_to_target, prediction.estimated_reviews) == (0, 0)
    assert prediction.confidence == "low"


def test_prediction_falls_back_to_seven_day_interval():
    stats = LearningStats(total=10, mastered=2, average_interval=0, average_ease_factor=2.5)
    prediction = MemoryCurveScheduler.predict_learning_progress(stats)

    assert prediction.days_to_target == 17  # ceil(8 * 7 * 0.3)
    assert prediction.estimated_reviews == 24
    assert prediction.confidence == "medium"


@pytest.mark.parametrize(
    "total, mastered, ease, interval, expected",
    [
        (5, 0, 2.5, 2.5, (4, 15, "low")),
        (200, 20, 2.3, 4, (216, 540, "high")),
        (200, 20, 2.0, 4, (216, 540, "medium")),
        (100, 10, 2.9, 4, (108, 270, "medium")),
    ],
)
def test_prediction_heuristic(total, mastered, ease, interval, expected):
    stats = LearningStats(total=total, mastered=mastered, average_ease_factor=ease, average_interval=interval)
    prediction = MemoryCurveScheduler.predict_learning_progress(stats)

    assert (prediction.days_to_target, prediction.estimated_reviews, prediction.confidence) == expected


def test_prediction_respects_custom_target():
    stats = LearningStats(total=10, mastered=5, average_interval=10, average_ease_factor=2.5)

    assert MemoryCurveScheduler.predict_learning_progress(stats, 0.5).days_to_target == 0
    assert MemoryCurveScheduler.predict_learning_progress(stats, 0.9).days_to_target == 15


@pytest.mark.parametrize("target", [0, -0.5])
def test_prediction_with_non_positive_target_is_already_met(target):
    # any mastery rate, including the 0 of an empty collection, meets such a target
    for stats in (LearningStats(total=10, mastered=5, average_interval=10), LearningStats()):
        prediction = MemoryCurveScheduler.predict_learning_progress(stats, target)

        assert (prediction.days_to_target, prediction.estimated_reviews, prediction.confidence) == (0, 0, "high")


def test_advice_low_mastery_only():
    stats = LearningStats(total=10, mastered=0, next_review_count=0, average_ease_factor=2.5)

    assert MemoryCurveScheduler.generate_learning_advice(stats) == ADVICE_LOW_MASTERY


@pytest.mark.parametrize(
    "mastered, expected",
    [(2, ADVICE_LOW_MASTERY), (3, ADVICE_MEDIUM_MASTERY), (5, ADVICE_MEDIUM_MASTERY), (6, ADVICE_HIGH_MASTERY), (10, ADVICE_HIGH_MASTERY)],
)
def test_advice_mastery_bands(mastered, expected):
    stats = LearningStats(total=10, mastered=mastered, average_ease_factor=2.5)

    assert MemoryCurveScheduler.generate_learning_advice(stats) == expected


def test_advice_appends_backlog_and_difficulty_in_order():
    stats = LearningStats(total=50, mastered=40, next_review_count=21, average_ease_factor=1.9)

    assert MemoryCurveScheduler.generate_learning_advice(stats) == ADVICE_HIGH_MASTERY + [ADVICE_BACKLOG, ADVICE_HARD_MATERIAL]


def test_advice_thresholds_are_strict():
    stats = LearningStats(total=50, mastered=10, next_review_count=20, average_ease_factor=2.0)

    assert MemoryCurveScheduler.generate_learning_advice(stats) == ADVICE_LOW_MASTERY


def test_advice_for_empty_collection():
    # nothing learned yet: average ease is 0, so the difficulty hint fires too
    advice = MemoryCurveScheduler.generate_learning_advice(LearningStats())

    assert advice == ADVICE_LOW_MASTERY + [ADVICE_HARD_MATERIAL]
