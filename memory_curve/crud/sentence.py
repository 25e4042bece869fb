from sqlalchemy.orm import Session
from memory_curve.models import Sentence
from memory_curve.schemas import SentenceCreate
from memory_curve.errors import ItemNotFoundError
from typing import List, Optional
import structlog

logger = structlog.get_logger(__name__)

def create_sentence(db: Session, sentence: SentenceCreate) -> Sentence:
    """Add a new sentence to the store"""
    db_sentence = Sentence(**sentence.model_dump())
    db.add(db_sentence)
    db.commit()
    db.refresh(db_sentence)
    logger.info("sentence_created", sentence_id=db_sentence.id, source=db_sentence.source)
    return db_sentence

def get_sentence(db: Session, sentence_id: int) -> Sentence:
    """Get sentence by ID, raising ItemNotFoundError when absent"""
    sentence = db.query(Sentence).filter(Sentence.id == sentence_id).first()
    if sentence is None:
        raise ItemNotFoundError("Sentence", sentence_id)
    return sentence

def list_sentences(db: Session, source: Optional[str] = None) -> List[Sentence]:
    """All sentences in insertion order, optionally limited to one source"""
    query = db.query(Sentence)
    if source:
        query = query.filter(Sentence.source == source)
    return query.order_by(Sentence.id).all()

def delete_sentence(db: Session, sentence_id: int) -> None:
    """Delete a sentence together with its learning history"""
    sentence = get_sentence(db, sentence_id)
    db.delete(sentence)
    db.commit()
    logger.info("sentence_deleted", sentence_id=sentence_id)
