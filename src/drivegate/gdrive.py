# gdrive.py
import logging
import mimetypes
import tempfile
from typing import BinaryIO, List, Optional

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload, MediaIoBaseUpload

from .exceptions import StorageError
from .oauth import authorization_url, build_flow, exchange_code
from .storage.base import StorageClient
from .storage.dto import FileMetadata, TokenInfo

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
# Docs, Sheets, Slides... have no binary content to download
WORKSPACE_MIME_PREFIX = "application/vnd.google-apps."
DEFAULT_MIME_TYPE = "application/octet-stream"

# Everything the Drive client raises when the provider or the network fails
PROVIDER_ERRORS = (HttpError, GoogleAuthError, httplib2.HttpLib2Error, OSError)

# Downloads larger than this spill over from memory to a temporary file
SPOOL_MAX_SIZE = 8 * 1024 * 1024


def split_path(file_path: str) -> List[str]:
    return [part for part in file_path.strip("/").split("/") if part]


def _escape(name: str) -> str:
    """Escapes a file name for use inside a quoted Drive query string."""
    return name.replace("\\", "\\\\").replace("'", "\\'")


def _to_storage_error(e: Exception, action: str) -> StorageError:
    if isinstance(e, HttpError):
        if e.resp.status == 404:
            return StorageError("not found")
        reason = getattr(e, "reason", None)
        return StorageError(f"Failed to {action}: {reason or e}")
    return StorageError(f"Failed to {action}: {e}")


class GoogleDriveClient(StorageClient):
    """
    Client for interacting with the Google Drive API, implementing the StorageClient interface.

    Paths are resolved by name from the user's "My Drive" root. Every call
    builds its own Drive service from the caller's access token.
    """

    def __init__(self, client_config: dict, redirect_uri: str):
        if not client_config:
            raise ValueError("A Google OAuth client configuration is required.")
        self.client_config = client_config
        self.redirect_uri = redirect_uri
        logging.info("Google Drive client initialized successfully.")

    def _service(self, token: str):
        creds = Credentials(token=token)
        return build("drive", "v3", credentials=creds, cache_discovery=False)

    def _find_child(self, service, name: str, parent_id: str) -> Optional[FileMetadata]:
        """
        Retrieves a file or folder by its name within a parent folder.
        """
        query = f"name='{_escape(name)}' and '{parent_id}' in parents and trashed=false"
        response = (
            service.files()
            .list(q=query, fields="files(id, name, mimeType)", pageSize=1)
            .execute()
        )
        files = response.get("files", [])
        if not files:
            return None
        item = files[0]
        return FileMetadata(
            id=item["id"],
            name=item["name"],
            mime_type=item.get("mimeType", DEFAULT_MIME_TYPE),
            folder_id=parent_id,
        )

    def _resolve(self, service, file_path: str) -> FileMetadata:
        """
        Walks the path from the root folder and returns the metadata of the last segment.

        Raises:
            StorageError: If any segment of the path does not exist.
        """
        entry = FileMetadata(id="root", name="", mime_type=FOLDER_MIME_TYPE)
        for part in split_path(file_path):
            child = self._find_child(service, part, entry.id)
            if child is None:
                logging.info(f"Path '{file_path}' not found in Google Drive (missing '{part}').")
                raise StorageError("not found")
            entry = child
        return entry

    def _ensure_folder_path(self, service, parts: List[str]) -> str:
        """
        Finds or creates a folder path and returns the final folder's ID.
        """
        current_parent_id = "root"
        for part in parts:
            folder = self._find_child(service, part, current_parent_id)
            if folder is not None and folder.mime_type != FOLDER_MIME_TYPE:
                raise StorageError(f"'{part}' exists but is not a folder")

            if folder is None:
                folder_metadata = {
                    "name": part,
                    "mimeType": FOLDER_MIME_TYPE,
                    "parents": [current_parent_id],
                }
                created = (
                    service.files().create(body=folder_metadata, fields="id").execute()
                )
                current_parent_id = created.get("id")
                logging.info(f"Created folder '{part}' with ID: {current_parent_id}")
            else:
                current_parent_id = folder.id
        return current_parent_id

    def add(self, token: str, stream: BinaryIO, file_path: str) -> None:
        """
        Uploads a stream to the given path, creating missing parent folders.
        An existing file with the same name is replaced.
        """
        parts = split_path(file_path)
        if not parts:
            raise StorageError("A file name is required")
        *folders, filename = parts

        try:
            service = self._service(token)
            folder_id = self._ensure_folder_path(service, folders)

            existing = self._find_child(service, filename, folder_id)
            if existing is not None and existing.mime_type == FOLDER_MIME_TYPE:
                raise StorageError(f"'{file_path}' is a folder")

            mimetype = mimetypes.guess_type(filename)[0] or DEFAULT_MIME_TYPE
            media = MediaIoBaseUpload(stream, mimetype=mimetype, resumable=True)

            if existing is not None:
                # The old content stays in place until the new upload completes
                logging.info(
                    f"File '{filename}' already exists in folder {folder_id}. Replacing its content."
                )
                service.files().update(
                    fileId=existing.id, media_body=media, fields="id"
                ).execute()
            else:
                file_metadata = {"name": filename, "parents": [folder_id]}
                logging.info(f"Uploading '{file_path}' to folder ID {folder_id}...")
                service.files().create(
                    body=file_metadata, media_body=media, fields="id"
                ).execute()
            logging.info(f"Successfully uploaded '{file_path}'.")
        except PROVIDER_ERRORS as e:
            logging.error(f"Failed to upload '{file_path}': {e}")
            raise _to_storage_error(e, f"upload '{file_path}'") from e

    def auth_url(self, state: str) -> str:
        return authorization_url(build_flow(self.client_config, self.redirect_uri), state)

    def browse(self, token: str, folder_path: str) -> List[str]:
        """
        Lists the names of all entries in a folder, ordered by name.
        """
        try:
            service = self._service(token)
            folder = self._resolve(service, folder_path)
            if folder.mime_type != FOLDER_MIME_TYPE:
                raise StorageError(f"'{folder_path}' is not a folder")

            logging.info(f"Listing files in Google Drive folder ID: '{folder.id}'")
            names = []
            page_token = None
            while True:
                response = (
                    service.files()
                    .list(
                        q=f"'{folder.id}' in parents and trashed=false",
                        fields="nextPageToken, files(name)",
                        orderBy="name",
                        pageToken=page_token,
                    )
                    .execute()
                )
                names.extend(item["name"] for item in response.get("files", []))
                page_token = response.get("nextPageToken")
                if not page_token:
                    break
            return names
        except PROVIDER_ERRORS as e:
            logging.error(f"Failed to list files in '{folder_path}': {e}")
            raise _to_storage_error(e, f"list '{folder_path}'") from e

    def delete(self, token: str, file_path: str) -> None:
        try:
            service = self._service(token)
            entry = self._resolve(service, file_path)
            if entry.id == "root":
                raise StorageError("The root folder cannot be deleted")

            logging.info(f"Deleting file with ID '{entry.id}' ('{file_path}')...")
            service.files().delete(fileId=entry.id).execute()
        except PROVIDER_ERRORS as e:
            logging.error(f"Failed to delete '{file_path}': {e}")
            raise _to_storage_error(e, f"delete '{file_path}'") from e

    def publish(self, token: str, file_path: str) -> str:
        """
        Grants read access to anyone with the link and returns that link.
        """
        try:
            service = self._service(token)
            entry = self._resolve(service, file_path)
            if entry.id == "root":
                raise StorageError("The root folder cannot be published")

            service.permissions().create(
                fileId=entry.id, body={"role": "reader", "type": "anyone"}, fields="id"
            ).execute()
            file = service.files().get(fileId=entry.id, fields="webViewLink").execute()
        except PROVIDER_ERRORS as e:
            logging.error(f"Failed to publish '{file_path}': {e}")
            raise _to_storage_error(e, f"publish '{file_path}'") from e

        link = file.get("webViewLink")
        if not link:
            raise StorageError(f"No public link available for '{file_path}'")
        logging.info(f"Published '{file_path}' at {link}")
        return link

    def read(self, token: str, file_path: str) -> Optional[BinaryIO]:
        """
        Downloads a file into a spooled temporary file and returns it rewound.
        Google Workspace documents have no binary content and yield None.
        """
        try:
            service = self._service(token)
            entry = self._resolve(service, file_path)
        except PROVIDER_ERRORS as e:
            logging.error(f"Failed to resolve '{file_path}': {e}")
            raise _to_storage_error(e, f"read '{file_path}'") from e

        if entry.mime_type == FOLDER_MIME_TYPE:
            raise StorageError(f"'{file_path}' is a folder")
        if entry.mime_type.startswith(WORKSPACE_MIME_PREFIX):
            logging.info(f"'{file_path}' is a {entry.mime_type} document without binary content.")
            return None

        buffer = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE)
        try:
            logging.info(f"Downloading file with ID '{entry.id}' ('{file_path}')...")
            request = service.files().get_media(fileId=entry.id)
            downloader = MediaIoBaseDownload(buffer, request)
            done = False
            while not done:
                _, done = downloader.next_chunk()
        except PROVIDER_ERRORS as e:
            buffer.close()
            logging.error(f"Failed to download '{file_path}': {e}")
            raise _to_storage_error(e, f"read '{file_path}'") from e
        except BaseException:
            buffer.close()
            raise

        buffer.seek(0)
        return buffer

    def validate(self, code: str) -> TokenInfo:
        return exchange_code(build_flow(self.client_config, self.redirect_uri), code)
