class InvalidArgumentError(ValueError):
    """Raised when a caller passes a value outside the accepted domain
    (unknown response level, unknown learning type, malformed import entry)."""


class ItemNotFoundError(LookupError):
    """Raised by the item store when a sentence or learning record id is unknown."""

    def __init__(self, kind: str, item_id):
        super().__init__(f"{kind} {item_id} not found")
        self.kind = kind
        self.item_id = item_id
