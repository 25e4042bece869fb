from memory_curve.models.sentence import Sentence
from memory_curve.models.learning_history import LearningHistory
from memory_curve.models.review_log import ReviewLog

__all__ = [
    "Sentence",
    "LearningHistory",
    "ReviewLog"
]
