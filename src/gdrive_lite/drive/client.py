"""Google Drive API client implementation."""

from __future__ import annotations

import contextlib
import logging
import mimetypes
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlsplit

from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload, MediaIoBaseDownload

from gdrive_lite.drive.exceptions import DriveError
from gdrive_lite.google import GoogleOAuth

logger = logging.getLogger(__name__)


@dataclass
class DriveFile:
    """Represents a Google Drive file."""

    id: str
    name: str
    mime_type: str
    size: int | None = None
    created_time: datetime | None = None
    modified_time: datetime | None = None
    parents: list[str] | None = None
    web_view_link: str | None = None
    is_folder: bool = False

    @property
    def extension(self) -> str | None:
        """Get file extension from name."""
        if "." in self.name:
            return self.name.rsplit(".", 1)[-1].lower()
        return None

    @property
    def open_url(self) -> str:
        """Shareable ``drive.google.com/open`` URL for this file."""
        return f"https://drive.google.com/open?id={self.id}"


# Common MIME types
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
GOOGLE_DOC_MIME_TYPE = "application/vnd.google-apps.document"
GOOGLE_SHEET_MIME_TYPE = "application/vnd.google-apps.spreadsheet"
GOOGLE_SLIDES_MIME_TYPE = "application/vnd.google-apps.presentation"

EXPORT_MIME_TYPES = {
    GOOGLE_DOC_MIME_TYPE: "application/pdf",
    GOOGLE_SHEET_MIME_TYPE: "text/csv",
    GOOGLE_SLIDES_MIME_TYPE: "application/pdf",
}

FILE_FIELDS = "id, name, mimeType, size, createdTime, modifiedTime, parents, webViewLink"

_PATH_ID_PATTERNS = (
    re.compile(r"/d/([\w-]+)"),
    re.compile(r"/folders/([\w-]+)"),
)


def file_id_from_url(ref: str) -> str:
    """Resolve a file reference to a Drive file ID.

    Accepts a bare file ID or a Drive URL such as
    ``https://drive.google.com/open?id=<id>`` or
    ``https://drive.google.com/file/d/<id>/view``.

    Raises:
        ValueError: If the reference is empty or the URL carries no file ID.
    """
    ref = ref.strip()
    if not ref:
        raise ValueError("Empty file reference")

    if "://" not in ref:
        return ref

    parts = urlsplit(ref)
    query = parse_qs(parts.query)
    if query.get("id"):
        return query["id"][0]

    for pattern in _PATH_ID_PATTERNS:
        match = pattern.search(parts.path)
        if match:
            return match.group(1)

    raise ValueError(f"No file id in URL: {ref}")


class DriveClient:
    """Google Drive API client with OAuth authentication.

    Every call asks the OAuth layer for a valid access token first, so an
    expired token is refreshed (or consent requested) before the request
    goes out. Authentication errors abort the operation.

    Usage:
        client = DriveClient()

        # List files
        files = client.list_files()

        # Upload a file
        file = client.upload_file("/path/to/document.pdf")
        print(file.open_url)

        # Download a file by URL or ID
        client.download_file(file.open_url, "/path/to/downloads/")

    Note:
        Requires OAuth authorization. Run `gdrive-lite auth login` to authorize.
    """

    def __init__(
        self,
        auth: GoogleOAuth | None = None,
        scopes: list[str] | None = None,
    ) -> None:
        """Initialize Drive client.

        Args:
            auth: OAuth manager to take tokens from. Created on first use
                if not provided.
            scopes: OAuth scopes for a lazily created manager. Defaults to ["drive"].
        """
        self._scopes = scopes or ["drive"]
        self._auth = auth
        self._service: Any = None
        self._service_token: str | None = None

    @property
    def auth(self) -> GoogleOAuth:
        if self._auth is None:
            self._auth = GoogleOAuth(scopes=self._scopes)
        return self._auth

    def _get_service(self) -> Any:
        """Get a Drive API service bound to a valid access token."""
        access_token = self.auth.ensure_valid_token()
        if self._service is None or access_token != self._service_token:
            self._service = self.auth.build_service("drive", "v3")
            self._service_token = access_token
        return self._service

    @staticmethod
    def _execute(request: Any) -> Any:
        try:
            return request.execute()
        except HttpError as e:
            raise DriveError(f"Drive API request failed: {e}", status=e.resp.status) from e

    def authorize(self) -> bool:
        """Perform interactive OAuth authorization.

        Returns:
            True if authorization successful.

        Raises:
            AuthorizationRequired: If the OAuth manager has no code receiver.
            ConsentError: If authorization fails.
        """
        self.auth.authorize()
        self._service = None  # Force service recreation
        return True

    def is_authorized(self) -> bool:
        """Check if client is authorized."""
        return self.auth.is_authorized()

    # =========================================================================
    # Files
    # =========================================================================

    def list_files(
        self,
        max_results: int = 100,
        query: str | None = None,
        folder_id: str | None = None,
        include_folders: bool = True,
        order_by: str = "modifiedTime desc",
    ) -> list[DriveFile]:
        """List files in Drive.

        Only the first page of results is returned.

        Args:
            max_results: Maximum number of files to return.
            query: Search query (Drive query syntax).
            folder_id: Only list files in this folder.
            include_folders: Include folders in results.
            order_by: Sort order (e.g., "name", "modifiedTime desc").

        Returns:
            List of DriveFile objects.
        """
        service = self._get_service()

        query_parts = []
        if query:
            query_parts.append(query)
        if folder_id:
            query_parts.append(f"'{folder_id}' in parents")
        if not include_folders:
            query_parts.append(f"mimeType != '{FOLDER_MIME_TYPE}'")

        # Don't include trashed files
        query_parts.append("trashed = false")

        kwargs: dict[str, Any] = {
            "pageSize": max_results,
            "fields": f"files({FILE_FIELDS})",
            "orderBy": order_by,
            "q": " and ".join(query_parts),
        }

        results = self._execute(service.files().list(**kwargs))
        items = results.get("files", [])

        return [self._parse_file(item) for item in items]

    def get_file(self, file_ref: str) -> DriveFile | None:
        """Get a specific file by URL or ID.

        Returns:
            DriveFile or None if not found.
        """
        file_id = file_id_from_url(file_ref)
        service = self._get_service()
        try:
            result = self._execute(service.files().get(fileId=file_id, fields=FILE_FIELDS))
        except DriveError as e:
            if e.status == 404:
                return None
            raise
        return self._parse_file(result)

    def file_metadata(self, file_ref: str) -> dict[str, Any]:
        """Get all metadata fields of a file as returned by the API."""
        file_id = file_id_from_url(file_ref)
        service = self._get_service()
        return self._execute(service.files().get(fileId=file_id, fields="*"))

    def download_file(self, file_ref: str, output_path: str | Path) -> Path:
        """Download a file from Drive.

        Google Docs, Sheets and Slides are exported (PDF, CSV, PDF).

        Args:
            file_ref: Drive URL or file ID.
            output_path: Local file path, or a directory to save into under
                the file's Drive name.

        Returns:
            Path the file was written to.
        """
        file_id = file_id_from_url(file_ref)
        service = self._get_service()
        output_path = Path(output_path)

        file_meta = self._execute(service.files().get(fileId=file_id, fields="name, mimeType"))
        mime_type = file_meta.get("mimeType", "")

        if mime_type == FOLDER_MIME_TYPE:
            raise DriveError(f"{file_id} is a folder and cannot be downloaded")

        if output_path.is_dir():
            output_path = output_path / file_meta["name"]

        if mime_type.startswith("application/vnd.google-apps."):
            export_mime = EXPORT_MIME_TYPES.get(mime_type, "application/pdf")
            request = service.files().export_media(fileId=file_id, mimeType=export_mime)
        else:
            request = service.files().get_media(fileId=file_id)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        # Written beside the target and moved into place only once complete
        partial_path = output_path.with_name(output_path.name + ".part")
        try:
            with open(partial_path, "wb") as fh:
                downloader = MediaIoBaseDownload(fh, request)
                done = False
                while not done:
                    _, done = downloader.next_chunk()
            partial_path.replace(output_path)
        except HttpError as e:
            raise DriveError(f"Download failed: {e}", status=e.resp.status) from e
        finally:
            partial_path.unlink(missing_ok=True)

        logger.info(f"Downloaded {file_id} to {output_path}")
        return output_path

    def upload_file(
        self,
        file_path: str | Path,
        name: str | None = None,
        folder_id: str | None = None,
        mime_type: str | None = None,
    ) -> DriveFile:
        """Upload a file to Drive.

        Args:
            file_path: Local path to the file to upload.
            name: Name for the file in Drive. Defaults to the local file name.
            folder_id: Parent folder ID (optional).
            mime_type: MIME type (auto-detected if not provided).

        Returns:
            Created DriveFile.
        """
        file_path = Path(file_path)
        service = self._get_service()

        metadata: dict[str, Any] = {"name": name or file_path.name}
        if folder_id:
            metadata["parents"] = [folder_id]

        media = MediaFileUpload(
            str(file_path), mimetype=mime_type or _guess_mime_type(file_path), resumable=True
        )

        result = self._execute(
            service.files().create(body=metadata, media_body=media, fields=FILE_FIELDS)
        )

        logger.info(f"Uploaded {file_path} as {result['id']}")
        return self._parse_file(result)

    def update_file(
        self,
        file_ref: str,
        file_path: str | Path,
        mime_type: str | None = None,
    ) -> DriveFile:
        """Replace the content of an existing Drive file with a local file.

        Args:
            file_ref: Drive URL or file ID.
            file_path: Local path to the new content.
            mime_type: MIME type (auto-detected if not provided).

        Returns:
            Updated DriveFile.
        """
        file_id = file_id_from_url(file_ref)
        file_path = Path(file_path)
        service = self._get_service()

        media = MediaFileUpload(
            str(file_path), mimetype=mime_type or _guess_mime_type(file_path), resumable=True
        )

        result = self._execute(
            service.files().update(fileId=file_id, media_body=media, fields=FILE_FIELDS)
        )

        logger.info(f"Updated {file_id} from {file_path}")
        return self._parse_file(result)

    def delete_file(self, file_ref: str) -> None:
        """Permanently delete a file from Drive."""
        file_id = file_id_from_url(file_ref)
        service = self._get_service()
        self._execute(service.files().delete(fileId=file_id))
        logger.info(f"Deleted {file_id}")

    # =========================================================================
    # Folders
    # =========================================================================

    def create_folder(self, name: str, parent_id: str | None = None) -> DriveFile:
        """Create a new folder.

        Args:
            name: Folder name.
            parent_id: Parent folder ID (optional).

        Returns:
            Created folder as DriveFile.
        """
        service = self._get_service()

        metadata: dict[str, Any] = {
            "name": name,
            "mimeType": FOLDER_MIME_TYPE,
        }
        if parent_id:
            metadata["parents"] = [parent_id]

        result = self._execute(service.files().create(body=metadata, fields=FILE_FIELDS))
        return self._parse_file(result)

    def list_folders(self, parent_id: str | None = None, max_results: int = 100) -> list[DriveFile]:
        """List folders in Drive, optionally within a parent folder."""
        query = f"mimeType = '{FOLDER_MIME_TYPE}'"
        return self.list_files(
            max_results=max_results,
            query=query,
            folder_id=parent_id,
            include_folders=True,
        )

    def _parse_file(self, data: dict) -> DriveFile:
        """Parse file from API response."""
        created_time = None
        if data.get("createdTime"):
            with contextlib.suppress(ValueError):
                created_time = datetime.fromisoformat(data["createdTime"].replace("Z", "+00:00"))

        modified_time = None
        if data.get("modifiedTime"):
            with contextlib.suppress(ValueError):
                modified_time = datetime.fromisoformat(data["modifiedTime"].replace("Z", "+00:00"))

        size = None
        if data.get("size"):
            with contextlib.suppress(ValueError):
                size = int(data["size"])

        mime_type = data.get("mimeType", "")

        return DriveFile(
            id=data["id"],
            name=data.get("name", ""),
            mime_type=mime_type,
            size=size,
            created_time=created_time,
            modified_time=modified_time,
            parents=data.get("parents"),
            web_view_link=data.get("webViewLink"),
            is_folder=mime_type == FOLDER_MIME_TYPE,
        )


def _guess_mime_type(file_path: Path) -> str:
    mime_type, _ = mimetypes.guess_type(str(file_path))
    return mime_type or "application/octet-stream"
