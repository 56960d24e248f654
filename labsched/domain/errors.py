"""Exceptions raised inside the scheduling core."""


class StepNotFoundError(Exception):
    """Raised when a step id does not exist in the store."""

    def __init__(self, step_id: str) -> None:
        super().__init__(f"Test step {step_id!r} not found")
        self.step_id = step_id


# Mapping of typed rejection kinds to HTTP status codes
REJECTION_STATUS_CODES = {
    "invalid_interval": 422,
    "incomplete_draft": 422,
    "conflict": 409,
    "not_found": 404,
}
