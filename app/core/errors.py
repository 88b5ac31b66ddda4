"""
Error types for CareBoard.

Every error carries the user-facing message that the page surfaces as an
alert; none of them is retried.
"""


class CareBoardError(Exception):
    """Base class for locally terminated workflow failures."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class InvalidUploadError(CareBoardError):
    """Raised when a selected file is not an acceptable image."""


class AnalysisError(CareBoardError):
    """Raised when a call to the generative model fails."""


class BoardParseError(CareBoardError):
    """Raised when the board response is not valid JSON."""


class RecordNotFoundError(CareBoardError):
    """Raised when a record or profile does not exist."""
