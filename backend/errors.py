"""Error types raised by the analytics and reporting core."""


class TaskPulseError(Exception):
    """Base class for errors surfaced to callers."""


class ValidationError(TaskPulseError):
    """Malformed query or filter parameters.

    errors is a list of {"field": ..., "message": ...} dicts, one per problem.
    """

    def __init__(self, errors: list[dict]):
        self.errors = errors
        super().__init__("; ".join(f"{e['field']}: {e['message']}" for e in errors))

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([{"field": field, "message": message}])


class NotFoundError(TaskPulseError):
    """A single task lookup found nothing for the owner."""


class StoreError(TaskPulseError):
    """The task store failed to answer a query."""
