"""Domain exceptions raised by the store and the state container."""


class RecordNotFoundError(LookupError):
    """Raised when a delete or lookup targets an id that does not exist."""

    def __init__(self, kind: str, record_id: int):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} with ID {record_id} not found.")


class ReentrantUpdateError(RuntimeError):
    """Raised when a transform or a listener calls update() on its own container."""
