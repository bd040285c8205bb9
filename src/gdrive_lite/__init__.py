"""gdrive-lite: a small Google Drive client with OAuth token management."""

from gdrive_lite.drive import DriveClient, DriveError, DriveFile
from gdrive_lite.google import GoogleOAuth, LocalServerReceiver, ManualPasteReceiver

__version__ = "0.1.0"

__all__ = [
    "DriveClient",
    "DriveError",
    "DriveFile",
    "GoogleOAuth",
    "LocalServerReceiver",
    "ManualPasteReceiver",
]
