"""Google Drive API exceptions."""


class DriveError(Exception):
    """Raised when a Drive API request fails."""

    def __init__(self, message: str, status: int | None = None):
        self.status = status
        super().__init__(message)
