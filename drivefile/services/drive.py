import io
import logging

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from drivefile.auth import get_drive_credentials
from drivefile.exceptions import AuthenticationError, UpstreamError
from drivefile.formatting import CHARACTER_LIMIT, truncate_text
from drivefile.models.drive import (
    DeletedFile,
    DriveFile,
    FileListResult,
    OpenFileResult,
    SearchPredicate,
)
from drivefile.query import build_search_query

logger = logging.getLogger(__name__)

FIELDS = "id, name, mimeType, size, createdTime, modifiedTime, webViewLink, parents, description, starred"
CREATED_FIELDS = "id, name, mimeType, webViewLink, createdTime"
UPDATED_FIELDS = "id, name, mimeType, modifiedTime, webViewLink"

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"

# Workspace-native formats have no binary body and must be exported
EXPORT_MIME_TYPES = {
    "application/vnd.google-apps.document": "text/plain",
    "application/vnd.google-apps.spreadsheet": "text/csv",
    "application/vnd.google-apps.presentation": "text/plain",
}


def _get_drive_service():
    try:
        creds = get_drive_credentials()
    except AuthenticationError:
        raise
    except Exception as e:
        raise AuthenticationError(f"Failed to obtain Drive credentials: {e}") from e
    return build("drive", "v3", credentials=creds, cache_discovery=False)


def _handle_api_error(e: HttpError):
    raise UpstreamError(e.resp.status, str(e.reason)) from e


def _parse_file(f: dict) -> DriveFile:
    return DriveFile(
        id=f["id"],
        name=f.get("name", ""),
        mime_type=f.get("mimeType", ""),
        created_time=f.get("createdTime"),
        modified_time=f.get("modifiedTime"),
        size=f.get("size"),
        web_view_link=f.get("webViewLink"),
        parents=f.get("parents"),
        description=f.get("description") or None,
        starred=f.get("starred") or None,
    )


def _is_text(mime_type: str) -> bool:
    return mime_type.startswith("text/") or "json" in mime_type


def _decode(content) -> str:
    return content.decode("utf-8", errors="replace") if isinstance(content, bytes) else str(content)


def _list(predicate: SearchPredicate, page_size: int, page_token: str | None, order_by: str | None) -> FileListResult:
    service = _get_drive_service()
    params = {
        "q": build_search_query(predicate),
        "pageSize": page_size,
        "fields": f"nextPageToken, files({FIELDS})",
    }
    if page_token:
        params["pageToken"] = page_token
    if order_by:
        params["orderBy"] = order_by
    try:
        results = service.files().list(**params).execute()
    except HttpError as e:
        _handle_api_error(e)
    files = [_parse_file(f) for f in results.get("files", [])]
    next_page_token = results.get("nextPageToken") or None
    return FileListResult(
        total=len(files),
        count=len(files),
        files=files,
        has_more=next_page_token is not None,
        next_page_token=next_page_token,
    )


def list_files(
    parent_id: str | None = None,
    page_size: int = 20,
    page_token: str | None = None,
    order_by: str | None = None,
) -> FileListResult:
    """List files this app can see, optionally inside one folder."""
    return _list(SearchPredicate(parent_id=parent_id, trashed=False), page_size, page_token, order_by)


def search_files(
    query: str,
    mime_type: str | None = None,
    parent_id: str | None = None,
    page_size: int = 20,
    page_token: str | None = None,
) -> FileListResult:
    """Search visible files by name, with optional MIME type and folder filters."""
    predicate = SearchPredicate(query=query, mime_type=mime_type, parent_id=parent_id, trashed=False)
    return _list(predicate, page_size, page_token, None)


def get_file(file_id: str, include_content: bool = False, character_limit: int = CHARACTER_LIMIT) -> DriveFile:
    """Get file metadata, plus text content for Workspace docs and text files when asked."""
    service = _get_drive_service()
    try:
        f = service.files().get(fileId=file_id, fields=FIELDS).execute()
        file = _parse_file(f)
        if not include_content:
            return file

        content = None
        if file.mime_type in EXPORT_MIME_TYPES:
            exported = service.files().export(fileId=file_id, mimeType=EXPORT_MIME_TYPES[file.mime_type]).execute()
            content = _decode(exported)
        elif _is_text(file.mime_type):
            content = _decode(service.files().get_media(fileId=file_id).execute())
    except HttpError as e:
        _handle_api_error(e)

    if content:
        file.content = truncate_text(content, character_limit)
    return file


def create_file(
    name: str,
    mime_type: str = "text/plain",
    parent_id: str | None = None,
    content: str | None = None,
) -> DriveFile:
    """Create a file; the body is uploaded only when content is given."""
    service = _get_drive_service()
    metadata: dict = {"name": name, "mimeType": mime_type}
    if parent_id:
        metadata["parents"] = [parent_id]

    params = {"body": metadata, "fields": CREATED_FIELDS}
    if content:
        params["media_body"] = MediaIoBaseUpload(io.BytesIO(content.encode("utf-8")), mimetype=mime_type)
    try:
        f = service.files().create(**params).execute()
        return _parse_file(f)
    except HttpError as e:
        _handle_api_error(e)


def create_folder(name: str, parent_id: str | None = None) -> DriveFile:
    """Create a folder in Drive."""
    service = _get_drive_service()
    metadata: dict = {"name": name, "mimeType": FOLDER_MIME_TYPE}
    if parent_id:
        metadata["parents"] = [parent_id]
    try:
        f = service.files().create(body=metadata, fields=CREATED_FIELDS).execute()
        return _parse_file(f)
    except HttpError as e:
        _handle_api_error(e)


def update_file(
    file_id: str,
    name: str | None = None,
    content: str | None = None,
    add_parents: list[str] | None = None,
    remove_parents: list[str] | None = None,
) -> DriveFile:
    """Rename, replace text content, or move a file between folders."""
    service = _get_drive_service()
    metadata: dict = {}
    if name:
        metadata["name"] = name

    params = {"fileId": file_id, "body": metadata, "fields": UPDATED_FIELDS}
    if content:
        params["media_body"] = MediaIoBaseUpload(io.BytesIO(content.encode("utf-8")), mimetype="text/plain")
    if add_parents:
        params["addParents"] = ",".join(add_parents)
    if remove_parents:
        params["removeParents"] = ",".join(remove_parents)
    try:
        f = service.files().update(**params).execute()
        return _parse_file(f)
    except HttpError as e:
        _handle_api_error(e)


def delete_file(file_id: str) -> DeletedFile:
    """Permanently delete a file. The name is fetched first to confirm what was removed."""
    service = _get_drive_service()
    try:
        meta = service.files().get(fileId=file_id, fields="name").execute()
        service.files().delete(fileId=file_id).execute()
    except HttpError as e:
        _handle_api_error(e)
    return DeletedFile(id=file_id, name=meta.get("name", ""))


def copy_file(file_id: str, name: str | None = None, parent_id: str | None = None) -> DriveFile:
    service = _get_drive_service()
    metadata: dict = {}
    if name:
        metadata["name"] = name
    if parent_id:
        metadata["parents"] = [parent_id]
    try:
        f = service.files().copy(fileId=file_id, body=metadata, fields=CREATED_FIELDS).execute()
        return _parse_file(f)
    except HttpError as e:
        _handle_api_error(e)


def open_files(file_ids: list[str]) -> list[OpenFileResult]:
    """Fetch metadata for each picked file; the first access registers the drive.file grant."""
    service = _get_drive_service()
    results = []
    for file_id in file_ids:
        try:
            f = service.files().get(fileId=file_id, fields="id, name, mimeType", supportsAllDrives=True).execute()
        except HttpError as e:
            logger.warning("Failed to open file %s: HTTP %s - %s", file_id, e.resp.status, e.reason)
            results.append(OpenFileResult(file_id=file_id, success=False, error=str(e.reason)))
            continue
        logger.info("Opened file: %s (%s)", f.get("name"), file_id)
        results.append(OpenFileResult(file_id=file_id, success=True, name=f.get("name")))
    return results
