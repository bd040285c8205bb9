"""Google Drive API client with OAuth authentication.

Manage Google Drive files programmatically with OAuth 2.0 authentication.

Usage:
    from gdrive_lite.drive import DriveClient

    # Initialize (requires OAuth authorization)
    client = DriveClient()

    # List files
    files = client.list_files()

    # Upload a file
    file = client.upload_file("/path/to/document.pdf")

    # Download a file
    client.download_file(file.open_url, "/path/to/download.pdf")

OAuth Setup:
    1. Download OAuth credentials from Google Cloud Console
    2. Import: gdrive-lite auth import ~/Downloads/credentials.json
    3. Authorize: gdrive-lite auth login
"""

from __future__ import annotations

from gdrive_lite.drive.client import DriveClient, DriveFile, file_id_from_url
from gdrive_lite.drive.exceptions import DriveError

__all__ = ["DriveClient", "DriveFile", "DriveError", "file_id_from_url"]
