from memory_curve.crud.sentence import (
    create_sentence,
    get_sentence,
    list_sentences,
    delete_sentence
)
from memory_curve.crud.learning_history import (
    get_learning_record,
    save_learning_record,
    review_sentence,
    get_review_items,
    get_due_sentences,
    get_review_logs
)

__all__ = [
    "create_sentence",
    "get_sentence",
    "list_sentences",
    "delete_sentence",
    "get_learning_record",
    "save_learning_record",
    "review_sentence",
    "get_review_items",
    "get_due_sentences",
    "get_review_logs",
]
