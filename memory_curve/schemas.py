from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional
from datetime import datetime
from enum import Enum

from memory_curve.clock import ensure_utc


class LearningType(str, Enum):
    """What kind of recall a record tracks. Never affects scheduling math."""
    SENTENCE_TRANSLATION = "sentence_translation"
    WORD_LEARNING = "word_learning"
    PRONUNCIATION = "pronunciation"


class FamiliarityLevel(str, Enum):
    """Self-reported recall strength; also the set of valid review responses."""
    UNFAMILIAR = "unfamiliar"
    FAMILIAR = "familiar"
    MASTERED = "mastered"


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase interchange names; both accepted on input"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LearningRecord(CamelModel):
    """Per-item spaced repetition state.

    Ease factor and interval are deliberately not range-checked here: a
    corrupted record loaded from storage is accepted and brought back into
    range by the next review.
    """
    model_config = ConfigDict(frozen=True)

    item_id: str = Field(min_length=1)
    learning_type: LearningType
    familiarity_level: FamiliarityLevel = FamiliarityLevel.UNFAMILIAR
    review_count: int = Field(default=0, ge=0)
    ease_factor: float = 2.5
    interval_days: int = 1
    last_reviewed_at: Optional[datetime] = None
    next_review_at: Optional[datetime] = None

    @field_validator("item_id", mode="before")
    @classmethod
    def coerce_item_id(cls, v):
        # store ids are integers
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("last_reviewed_at", "next_review_at")
    @classmethod
    def normalize_timestamp(cls, v):
        if v is None:
            return v
        return ensure_utc(v)


class ReviewResult(CamelModel):
    """Outcome of scheduling one review response"""
    new_interval: int
    new_ease_factor: float
    next_review_date: datetime
    should_review: bool = True


class ReviewItem(CamelModel):
    """A learnable item as handed to the corpus queries"""
    item_id: str
    content: str = ""
    translation: Optional[str] = None
    learning_record: Optional[LearningRecord] = None


class LearningStats(CamelModel):
    """Aggregate counts over a set of review items"""
    total: int = 0
    mastered: int = 0
    familiar: int = 0
    unfamiliar: int = 0
    unlearned: int = 0
    average_ease_factor: float = 0
    average_interval: float = 0
    next_review_count: int = 0

    @property
    def mastery_rate(self) -> float:
        return self.mastered / self.total if self.total > 0 else 0


class ProgressPrediction(CamelModel):
    """Order-of-magnitude estimate of the effort left to reach a mastery rate"""
    days_to_target: int
    estimated_reviews: int
    confidence: str  # "low", "medium" or "high"


class SentenceCreate(BaseModel):
    """Schema for adding a sentence to the store"""
    content: str = Field(min_length=1)
    translation: Optional[str] = None
    source: Optional[str] = None  # book title or import label


class ExportedItem(CamelModel):
    """One entry of a learning-data backup"""
    item_id: Optional[str] = None
    learning_record: Optional[LearningRecord] = None


class ExportBundle(CamelModel):
    """Top-level shape of a backup file"""
    exported_at: datetime
    items: List[ExportedItem]
