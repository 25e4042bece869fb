from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from memory_curve.database import Base

class Sentence(Base):
    """A learnable sentence (or word / phrase) imported by the user"""
    __tablename__ = "sentences"
    
    id = Column(Integer, primary_key=True, index=True)
    content = Column(Text, nullable=False)
    translation = Column(Text)
    source = Column(String)  # book title or import label
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    
    learning_history = relationship(
        "LearningHistory", back_populates="sentence", cascade="all, delete-orphan"
    )
