class ValidationError(ValueError):
    """Raised before any mutation when input fails validation.

    Collects every violation so the caller sees all of them at once.
    """

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(f"Validation failed: {', '.join(self.errors)}")


class NotFoundError(LookupError):
    """The id does not exist for the calling owner."""

    def __init__(self, what: str, item_id: int):
        self.item_id = item_id
        super().__init__(f"{what} not found")


class ConcurrentModificationError(RuntimeError):
    """A conditional write found the row changed since it was read."""
