from sqlalchemy.orm import Session
from memory_curve.models import LearningHistory, ReviewLog, Sentence
from memory_curve.schemas import LearningRecord, LearningType, ReviewItem, FamiliarityLevel
from memory_curve.sm2 import MemoryCurveScheduler, parse_learning_type, parse_response
from memory_curve.clock import ensure_utc
from memory_curve.crud.sentence import get_sentence
from memory_curve.errors import ItemNotFoundError
from typing import List, Optional, Union
import structlog

logger = structlog.get_logger(__name__)

def to_record(lh: LearningHistory) -> LearningRecord:
    """Convert a stored row into a LearningRecord"""
    return LearningRecord(
        item_id=str(lh.sentence_id),
        learning_type=lh.learning_type,
        familiarity_level=lh.familiarity_level,
        review_count=lh.review_count,
        ease_factor=lh.ease_factor,
        interval_days=lh.interval_days,
        last_reviewed_at=ensure_utc(lh.last_reviewed_at) if lh.last_reviewed_at else None,
        next_review_at=ensure_utc(lh.next_review_at) if lh.next_review_at else None,
    )

def _apply_record(lh: LearningHistory, record: LearningRecord) -> None:
    lh.familiarity_level = record.familiarity_level.value
    lh.review_count = record.review_count
    lh.ease_factor = record.ease_factor
    lh.interval_days = record.interval_days
    lh.last_reviewed_at = record.last_reviewed_at
    lh.next_review_at = record.next_review_at

def _find_row(db: Session, sentence_id: int, learning_type: LearningType) -> Optional[LearningHistory]:
    return db.query(LearningHistory).filter(
        LearningHistory.sentence_id == sentence_id,
        LearningHistory.learning_type == learning_type.value
    ).first()

def get_learning_record(
    db: Session,
    sentence_id: int,
    learning_type: Union[LearningType, str] = LearningType.SENTENCE_TRANSLATION
) -> Optional[LearningRecord]:
    """Get the learning record of a sentence, or None if never reviewed"""
    lh = _find_row(db, sentence_id, parse_learning_type(learning_type))
    return to_record(lh) if lh else None

def save_learning_record(db: Session, record: LearningRecord) -> LearningHistory:
    """Insert or replace the stored record for (item_id, learning_type)"""
    try:
        sentence_id = int(record.item_id)
    except ValueError:
        raise ItemNotFoundError("Sentence", record.item_id) from None
    get_sentence(db, sentence_id)

    lh = _find_row(db, sentence_id, record.learning_type)
    if lh is None:
        lh = LearningHistory(sentence_id=sentence_id, learning_type=record.learning_type.value)
        db.add(lh)
    _apply_record(lh, record)
    db.commit()
    db.refresh(lh)
    return lh

def review_sentence(
    db: Session,
    scheduler: MemoryCurveScheduler,
    sentence_id: int,
    response: Union[FamiliarityLevel, str],
    learning_type: Union[LearningType, str] = LearningType.SENTENCE_TRANSLATION
) -> LearningRecord:
    """
    Record a review response and update SM-2 parameters.

    A sentence reviewed for the first time gets a fresh record before the
    response is applied. The updated record and a ReviewLog row are written
    in the same transaction.
    """
    response = parse_response(response)
    learning_type = parse_learning_type(learning_type)
    get_sentence(db, sentence_id)

    lh = _find_row(db, sentence_id, learning_type)
    if lh is None:
        current = scheduler.create_learning_record(str(sentence_id), learning_type)
        lh = LearningHistory(sentence_id=sentence_id, learning_type=learning_type.value)
        db.add(lh)
    else:
        current = to_record(lh)

    updated = scheduler.update_learning_record(current, response)
    _apply_record(lh, updated)
    lh.review_logs.append(ReviewLog(
        response=response.value,
        reviewed_at=updated.last_reviewed_at,
        interval_days=updated.interval_days,
        ease_factor=updated.ease_factor,
        next_review_at=updated.next_review_at
    ))
    db.commit()

    logger.info(
        "sentence_reviewed",
        sentence_id=sentence_id,
        learning_type=learning_type.value,
        response=response.value,
        interval_days=updated.interval_days,
        next_review_at=updated.next_review_at.isoformat()
    )
    return updated

def get_review_items(
    db: Session,
    learning_type: Union[LearningType, str] = LearningType.SENTENCE_TRANSLATION,
    source: Optional[str] = None
) -> List[ReviewItem]:
    """All sentences paired with their record for one learning type"""
    learning_type = parse_learning_type(learning_type)
    query = db.query(Sentence, LearningHistory).outerjoin(
        LearningHistory,
        (LearningHistory.sentence_id == Sentence.id)
        & (LearningHistory.learning_type == learning_type.value)
    )
    if source:
        query = query.filter(Sentence.source == source)

    return [
        ReviewItem(
            item_id=str(sentence.id),
            content=sentence.content,
            translation=sentence.translation,
            learning_record=to_record(lh) if lh else None
        )
        for sentence, lh in query.order_by(Sentence.id).all()
    ]

def get_due_sentences(
    db: Session,
    scheduler: MemoryCurveScheduler,
    learning_type: Union[LearningType, str] = LearningType.SENTENCE_TRANSLATION,
    source: Optional[str] = None
) -> List[ReviewItem]:
    """Sentences due for review, in insertion order"""
    return scheduler.get_sentences_for_review(get_review_items(db, learning_type, source))

def get_review_logs(db: Session, sentence_id: int, limit: int = 10) -> List[ReviewLog]:
    """Most recent review events for a sentence, newest first"""
    return db.query(ReviewLog).join(LearningHistory).filter(
        LearningHistory.sentence_id == sentence_id
    ).order_by(ReviewLog.reviewed_at.desc(), ReviewLog.id.desc()).limit(limit).all()
