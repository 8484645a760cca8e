"""
Exceptions raised inside the grading pipeline.

None of these escape `evaluate`: input errors become an error-shaped
result, and malformed targets are skipped.
"""


class GradingError(ValueError):
    """Base class for grading pipeline errors."""


class InputError(GradingError):
    """Raised when a program document is absent or has no usable targets."""


class MalformedGraphError(GradingError):
    """Raised when a target's block graph loops or exceeds the indexer caps."""

    def __init__(self, message: str, target_name: str = "", block_id: str | None = None) -> None:
        super().__init__(message)
        self.target_name = target_name
        self.block_id = block_id
