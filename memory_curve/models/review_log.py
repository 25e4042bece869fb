from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from memory_curve.database import Base

class ReviewLog(Base):
    """One review event and the schedule it produced"""
    __tablename__ = "review_logs"
    
    id = Column(Integer, primary_key=True, index=True)
    learning_history_id = Column(
        Integer, ForeignKey("learning_history.id", ondelete="CASCADE"), nullable=False
    )
    
    response = Column(String, nullable=False)  # unfamiliar, familiar, mastered
    reviewed_at = Column(DateTime(timezone=True), nullable=False)
    interval_days = Column(Integer, nullable=False)
    ease_factor = Column(Float, nullable=False)
    next_review_at = Column(DateTime(timezone=True), nullable=False)
    
    learning_history = relationship("LearningHistory", back_populates="review_logs")
