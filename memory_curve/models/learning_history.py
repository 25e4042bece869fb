from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from memory_curve.database import Base

class LearningHistory(Base):
    """SM-2 spaced repetition state per sentence and learning type"""
    __tablename__ = "learning_history"
    __table_args__ = (
        UniqueConstraint("sentence_id", "learning_type", name="uq_learning_history_sentence_type"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    sentence_id = Column(Integer, ForeignKey("sentences.id", ondelete="CASCADE"), nullable=False)
    learning_type = Column(String, nullable=False)  # sentence_translation, word_learning, pronunciation
    familiarity_level = Column(String, nullable=False, default="unfamiliar")
    
    # SM-2 algorithm fields
    ease_factor = Column(Float, default=2.5)  # growth multiplier for the interval
    interval_days = Column(Integer, default=1)  # days until next review
    review_count = Column(Integer, default=0)  # completed reviews
    
    last_reviewed_at = Column(DateTime(timezone=True))
    next_review_at = Column(DateTime(timezone=True), index=True)
    
    sentence = relationship("Sentence", back_populates="learning_history")
    review_logs = relationship(
        "ReviewLog", back_populates="learning_history", cascade="all, delete-orphan"
    )
