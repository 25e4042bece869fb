"""Export and import of learning records for backup or migration.

Records are written in their camelCase interchange form with ISO-8601
timestamps; items that were never reviewed export ``learningRecord: null``.
"""
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog
from pydantic import ValidationError

from memory_curve.errors import InvalidArgumentError
from memory_curve.schemas import ExportBundle, ExportedItem, LearningRecord
from memory_curve.sm2 import record_of

logger = structlog.get_logger(__name__)


def _item_id_of(item, record: Optional[LearningRecord]) -> Optional[str]:
    if record is not None:
        return record.item_id
    if isinstance(item, Mapping):
        value = item.get("item_id", item.get("itemId"))
    else:
        value = getattr(item, "item_id", None)
    return str(value) if value is not None else None


def _exported_items(items: Iterable) -> List[ExportedItem]:
    exported = []
    for item in items:
        record = record_of(item)
        exported.append(ExportedItem(item_id=_item_id_of(item, record), learning_record=record))
    return exported


def export_learning_data(items: Iterable) -> List[Dict[str, Any]]:
    """Serialize the learning record of every item, in input order"""
    return [entry.model_dump(mode="json", by_alias=True) for entry in _exported_items(items)]


def import_learning_data(data: Iterable[Mapping]) -> List[Tuple[Optional[str], Optional[LearningRecord]]]:
    """
    Parse exported entries back into records.

    Returns:
        List of (item_id, record) pairs; record is None for never-reviewed items

    Raises:
        InvalidArgumentError: naming the index of the first malformed entry
    """
    parsed = []
    for index, entry in enumerate(data):
        if not isinstance(entry, Mapping):
            raise InvalidArgumentError(f"Entry {index} is not an object")
        try:
            item = ExportedItem.model_validate(entry)
        except ValidationError as e:
            raise InvalidArgumentError(f"Entry {index} is malformed: {e}") from e
        item_id = item.item_id
        if item.learning_record is not None:
            item_id = item_id or item.learning_record.item_id
        parsed.append((item_id, item.learning_record))

    logger.info("learning_data_parsed", entries=len(parsed))
    return parsed


def build_bundle(items: Iterable, exported_at) -> Dict[str, Any]:
    """Wrap exported entries with the export timestamp, ready for json.dump"""
    bundle = ExportBundle(
        exported_at=exported_at,
        items=_exported_items(items),
    )
    return bundle.model_dump(mode="json", by_alias=True)


def read_bundle(payload) -> List[Tuple[Optional[str], Optional[LearningRecord]]]:
    """Accept either a full bundle or a bare list of exported entries"""
    if isinstance(payload, Mapping):
        if "items" not in payload:
            raise InvalidArgumentError("Backup is missing the 'items' list")
        payload = payload["items"]
    if not isinstance(payload, list):
        raise InvalidArgumentError(
            f"Backup entries must be a list, got {type(payload).__name__}"
        )
    return import_learning_data(payload)
