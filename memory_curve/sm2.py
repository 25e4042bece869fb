import math
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Iterable, Iterator, List, Optional, Union

import structlog
from pydantic import ValidationError

from memory_curve.clock import Clock, system_clock
from memory_curve.errors import InvalidArgumentError
from memory_curve.schemas import (
    FamiliarityLevel,
    LearningRecord,
    LearningStats,
    LearningType,
    ProgressPrediction,
    ReviewResult,
)

logger = structlog.get_logger(__name__)

# SM-2 parameters
INITIAL_INTERVAL = 1
INITIAL_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MAX_EASE_FACTOR = 3.0
EASE_FACTOR_STEP = 0.1
MIN_INTERVAL = 1
MAX_INTERVAL = 365
FAMILIAR_MULTIPLIER = 1.3

# Progress projection
DEFAULT_AVERAGE_INTERVAL = 7
INTERVAL_WEIGHT = 0.3
REVIEWS_PER_ITEM = 3

ADVICE_LOW_MASTERY = [
    "Increase your study frequency: review at least 20-30 sentences every day.",
    "Focus on the sentences you marked unfamiliar and practise translating them.",
]
ADVICE_MEDIUM_MASTERY = [
    "Good progress, keep up your current pace.",
    "You can start importing a few more new sentences.",
]
ADVICE_HIGH_MASTERY = [
    "Your mastery rate is high, try more challenging sentences.",
    "Keep reviewing the sentences you have mastered so you don't forget them.",
]
ADVICE_BACKLOG = "Many sentences are waiting for review, clear those first."
ADVICE_HARD_MATERIAL = "Overall difficulty is high, consider slowing down."

BACKLOG_THRESHOLD = 20
HARD_EASE_THRESHOLD = 2.0


def parse_response(response: Union[FamiliarityLevel, str]) -> FamiliarityLevel:
    """Validate a review response, raising InvalidArgumentError on anything else"""
    try:
        return FamiliarityLevel(response)
    except ValueError:
        raise InvalidArgumentError(
            f"Invalid response {response!r}; expected one of "
            f"{', '.join(level.value for level in FamiliarityLevel)}"
        ) from None


def parse_learning_type(learning_type: Union[LearningType, str]) -> LearningType:
    try:
        return LearningType(learning_type)
    except ValueError:
        raise InvalidArgumentError(
            f"Invalid learning type {learning_type!r}; expected one of "
            f"{', '.join(kind.value for kind in LearningType)}"
        ) from None


def _clamp(value, low, high):
    return max(min(value, high), low)


def record_of(item) -> Optional[LearningRecord]:
    """Learning record carried by an item, attribute or mapping style"""
    if isinstance(item, Mapping):
        record = item.get("learning_record")
        if record is None:
            record = item.get("learningRecord")
    else:
        record = getattr(item, "learning_record", None)

    if isinstance(record, Mapping):
        try:
            return LearningRecord.model_validate(record)
        except ValidationError as e:
            raise InvalidArgumentError(f"Malformed learning record: {e}") from e
    return record


class MemoryCurveScheduler:
    """
    Restricted SM-2 scheduler for sentence / word / pronunciation review.

    The first two reviews always land on 1 and 6 days whatever the response
    (learning phase); after that "mastered" grows the interval by the ease
    factor and "familiar" by a fixed 1.3. "unfamiliar" is a full lapse and
    resets the interval to one day.

    Holds no mutable state. Every method that needs the current time reads it
    from the injected clock.
    """

    def __init__(self, clock: Clock = None):
        self.clock = clock or system_clock

    def now(self) -> datetime:
        """Current instant in UTC; naive clock values (e.g. datetime.now) are local time"""
        return self.clock().astimezone(timezone.utc)

    def _resolve(self, now: Optional[datetime]) -> datetime:
        return now.astimezone(timezone.utc) if now is not None else self.now()

    def create_learning_record(
        self,
        item_id: str,
        learning_type: Union[LearningType, str]
    ) -> LearningRecord:
        """
        Initialize the record for an item encountered for the first time.

        `last_reviewed_at` is stamped with the creation time even though no
        review has happened yet; consumers rely on it being set.
        """
        now = self.now()
        return LearningRecord(
            item_id=item_id,
            learning_type=parse_learning_type(learning_type),
            familiarity_level=FamiliarityLevel.UNFAMILIAR,
            review_count=0,
            ease_factor=INITIAL_EASE_FACTOR,
            interval_days=INITIAL_INTERVAL,
            last_reviewed_at=now,
            next_review_at=now + timedelta(days=INITIAL_INTERVAL),
        )

    def calculate_next_review(
        self,
        record: LearningRecord,
        response: Union[FamiliarityLevel, str],
        now: datetime = None
    ) -> ReviewResult:
        """
        Calculate the next interval and ease factor for a review response.

        Args:
            record: Current learning record (not modified)
            response: "unfamiliar", "familiar" or "mastered"
            now: Optional reference instant (defaults to the scheduler clock)

        Returns:
            ReviewResult with the new interval, ease factor and review date
        """
        response = parse_response(response)
        ease_factor = record.ease_factor

        if response is FamiliarityLevel.MASTERED:
            if record.review_count == 0:
                new_interval = 1
            elif record.review_count == 1:
                new_interval = 6
            else:
                new_interval = math.floor(record.interval_days * ease_factor)
            new_ease_factor = min(ease_factor + EASE_FACTOR_STEP, MAX_EASE_FACTOR)
        elif response is FamiliarityLevel.FAMILIAR:
            if record.review_count == 0:
                new_interval = 1
            elif record.review_count == 1:
                new_interval = 6
            else:
                new_interval = math.floor(record.interval_days * FAMILIAR_MULTIPLIER)
            new_ease_factor = ease_factor
        else:
            new_interval = MIN_INTERVAL
            new_ease_factor = max(ease_factor - EASE_FACTOR_STEP, MIN_EASE_FACTOR)

        # Out-of-range stored values are pulled back into range here
        new_interval = _clamp(new_interval, MIN_INTERVAL, MAX_INTERVAL)
        new_ease_factor = _clamp(new_ease_factor, MIN_EASE_FACTOR, MAX_EASE_FACTOR)

        base = self._resolve(now)
        return ReviewResult(
            new_interval=new_interval,
            new_ease_factor=new_ease_factor,
            next_review_date=base + timedelta(days=new_interval),
            should_review=True,
        )

    def update_learning_record(
        self,
        record: LearningRecord,
        response: Union[FamiliarityLevel, str]
    ) -> LearningRecord:
        """Apply a review response and return the replacement record"""
        response = parse_response(response)
        now = self.now()
        result = self.calculate_next_review(record, response, now=now)

        updated = record.model_copy(update={
            "familiarity_level": response,
            "review_count": record.review_count + 1,
            "last_reviewed_at": now,
            "next_review_at": result.next_review_date,
            "ease_factor": result.new_ease_factor,
            "interval_days": result.new_interval,
        })
        logger.debug(
            "learning_record_updated",
            item_id=record.item_id,
            response=response.value,
            review_count=updated.review_count,
            interval_days=updated.interval_days,
            ease_factor=updated.ease_factor,
        )
        return updated

    def is_due(self, record: Optional[LearningRecord], now: datetime = None) -> bool:
        """Check if a record is due for review (no record or no date means due)"""
        if record is None or record.next_review_at is None:
            return True
        return record.next_review_at <= self._resolve(now)

    def days_overdue(self, record: LearningRecord, now: datetime = None) -> int:
        """Calculate how many whole days overdue a review is"""
        if record.next_review_at is None:
            return 0
        now = self._resolve(now)
        if now < record.next_review_at:
            return 0
        return (now - record.next_review_at).days

    def iter_due_items(self, items: Iterable) -> Iterator:
        """Lazily yield the items due for review, in input order"""
        now = self.now()
        for item in items:
            if self.is_due(record_of(item), now=now):
                yield item

    def get_sentences_for_review(self, items: Iterable) -> List:
        """Items never reviewed or whose next review date has arrived"""
        return list(self.iter_due_items(items))

    def calculate_learning_stats(self, items: Iterable) -> LearningStats:
        """Aggregate familiarity counts and averages over items"""
        now = self.now()
        total = 0
        counts = {level: 0 for level in FamiliarityLevel}
        unlearned = 0
        due = 0
        total_ease_factor = 0.0
        total_interval = 0
        learned = 0

        for item in items:
            total += 1
            record = record_of(item)
            if record is None:
                unlearned += 1
                continue

            counts[record.familiarity_level] += 1
            if record.next_review_at is not None and record.next_review_at <= now:
                due += 1
            total_ease_factor += record.ease_factor
            total_interval += record.interval_days
            learned += 1

        return LearningStats(
            total=total,
            mastered=counts[FamiliarityLevel.MASTERED],
            familiar=counts[FamiliarityLevel.FAMILIAR],
            unfamiliar=counts[FamiliarityLevel.UNFAMILIAR],
            unlearned=unlearned,
            average_ease_factor=total_ease_factor / learned if learned else 0,
            average_interval=total_interval / learned if learned else 0,
            next_review_count=due,
        )

    @staticmethod
    def predict_learning_progress(
        stats: LearningStats,
        target_mastery_rate: float = 0.8
    ) -> ProgressPrediction:
        """
        Rough projection of days and reviews left until `target_mastery_rate`.

        Heuristic only: remaining items times the average interval (7 days if
        unknown) weighted by 0.3, and three reviews per remaining item.
        """
        if stats.mastery_rate >= target_mastery_rate:
            return ProgressPrediction(days_to_target=0, estimated_reviews=0, confidence="high")

        remaining = stats.total - stats.mastered
        average_interval = stats.average_interval or DEFAULT_AVERAGE_INTERVAL

        if stats.total < 10:
            confidence = "low"
        elif stats.total > 100 and stats.average_ease_factor > 2.0:
            confidence = "high"
        else:
            confidence = "medium"

        return ProgressPrediction(
            days_to_target=math.ceil(remaining * average_interval * INTERVAL_WEIGHT),
            estimated_reviews=math.ceil(remaining * REVIEWS_PER_ITEM),
            confidence=confidence,
        )

    @staticmethod
    def generate_learning_advice(stats: LearningStats) -> List[str]:
        """Rule-based study advice, in a fixed order"""
        advice = []
        mastery_rate = stats.mastery_rate

        if mastery_rate < 0.3:
            advice.extend(ADVICE_LOW_MASTERY)
        elif mastery_rate < 0.6:
            advice.extend(ADVICE_MEDIUM_MASTERY)
        else:
            advice.extend(ADVICE_HIGH_MASTERY)

        if stats.next_review_count > BACKLOG_THRESHOLD:
            advice.append(ADVICE_BACKLOG)

        if stats.average_ease_factor < HARD_EASE_THRESHOLD:
            advice.append(ADVICE_HARD_MATERIAL)

        return advice
