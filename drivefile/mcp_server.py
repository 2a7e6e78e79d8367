from fastmcp import FastMCP
from pydantic import BaseModel, ValidationError

from drivefile.auth import get_credential_store
from drivefile.config import get_settings
from drivefile.exceptions import AuthenticationError, AuthExchangeError, UpstreamError
from drivefile.formatting import describe_failure, format_error, format_file_list_markdown, format_file_markdown
from drivefile.models.common import UnknownFailure
from drivefile.models.drive import (
    CopyFileRequest,
    CreateFileRequest,
    CreateFolderRequest,
    DeleteFileRequest,
    FileListResult,
    GetFileRequest,
    ListFilesRequest,
    ResponseFormat,
    SearchFilesRequest,
    SetCredentialsRequest,
    UpdateFileRequest,
)
from drivefile.services import drive as drive_service

mcp = FastMCP("drivefile")


def _handle_mcp_error(e: Exception) -> dict:
    """Convert exceptions to agent-friendly error dicts. The "error" key is the error flag."""
    if isinstance(e, ValidationError):
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}" for err in e.errors()
        )
        return {"error": "validation_error", "message": f"Invalid input: {problems}"}
    if isinstance(e, AuthExchangeError):
        return {"error": "auth_exchange_failed", "message": format_error(e)}
    if isinstance(e, AuthenticationError):
        return {
            "error": "auth_required",
            "message": format_error(e),
            "action": "Relay the instructions to the user and wait for them to sign in",
        }
    if isinstance(e, UpstreamError):
        return {"error": "upstream_error", "code": e.code, "message": format_error(e, get_settings().base_url)}
    kind = "unknown_error" if isinstance(describe_failure(e), UnknownFailure) else "error"
    return {"error": kind, "message": format_error(e)}


def _render_list(result: FileListResult, response_format: ResponseFormat) -> str | dict:
    if response_format == ResponseFormat.JSON:
        return result.model_dump(exclude_none=True)
    return format_file_list_markdown(result)


def _with_message(message: str, result: BaseModel) -> dict:
    """Confirmation text plus the affected file's fields."""
    return {"message": message, **result.model_dump(exclude_none=True)}


def _mode_error(message: str) -> dict:
    return {"error": "unsupported_mode", "message": f"Error: {message}"}


# --- Authentication tools ---

@mcp.tool
def gdrive_authenticate() -> str | dict:
    """Start OAuth2 sign-in for Google Drive. Returns a URL or instructions that need HUMAN action:
    relay them to the user and wait. In HTTP mode the user opens the local page and the browser
    callback completes sign-in. In stdio mode the user authorises via the Google URL, copies the
    code from the redirect URL, and you pass it to gdrive_set_credentials.
    Don't use when already authenticated; other tools will simply succeed."""
    settings = get_settings()
    try:
        if settings.is_http:
            return (
                f"Ask the user to open this URL in their browser to sign in:\n\n{settings.base_url}\n\n"
                "They will be redirected back automatically after authorising. No code entry needed."
            )
        auth_url = get_credential_store().authorization_url()
        return (
            f"Ask the user to open this URL in their browser:\n\n{auth_url}\n\n"
            "After authorising, they should copy the authorization code from the redirect URL and provide it. "
            "Then call gdrive_set_credentials with that code."
        )
    except Exception as e:
        return _handle_mcp_error(e)


@mcp.tool
def gdrive_set_credentials(code: str) -> str | dict:
    """Complete OAuth2 sign-in by exchanging the authorization code from the redirect URL for tokens.
    stdio mode only: in HTTP mode the browser callback does this automatically."""
    if get_settings().is_http:
        return _mode_error(
            "gdrive_set_credentials is only available in stdio mode. In HTTP mode, sign-in completes "
            "through the browser callback; use gdrive_authenticate instead."
        )
    try:
        request = SetCredentialsRequest(code=code)
        get_credential_store().exchange_code(request.code)
        return "Successfully authenticated with Google Drive! You can now use other Google Drive tools."
    except Exception as e:
        return _handle_mcp_error(e)


# --- File tools ---

@mcp.tool
def gdrive_list_files(
    parent_id: str | None = None,
    page_size: int = 20,
    page_token: str | None = None,
    order_by: str | None = None,
    response_format: str = "markdown",
) -> str | dict:
    """List files and folders accessible to this app. Under the drive.file scope only files the app
    created or the user selected in the Picker are returned, so this is not a full Drive listing.
    page_size is 1-100. Pass next_page_token from a previous response as page_token for the next page.
    order_by examples: "name", "modifiedTime desc". response_format is "markdown" or "json".
    To search by name use gdrive_search_files instead."""
    try:
        request = ListFilesRequest(
            parent_id=parent_id,
            page_size=page_size,
            page_token=page_token,
            order_by=order_by,
            response_format=response_format,
        )
        result = drive_service.list_files(
            request.parent_id, request.page_size, request.page_token, request.order_by
        )
        return _render_list(result, request.response_format)
    except Exception as e:
        return _handle_mcp_error(e)


@mcp.tool
def gdrive_search_files(
    query: str,
    mime_type: str | None = None,
    parent_id: str | None = None,
    page_size: int = 20,
    page_token: str | None = None,
    response_format: str = "markdown",
) -> str | dict:
    """Search accessible files by name (partial match), optionally filtered by MIME type
    (e.g. "application/vnd.google-apps.folder") or parent folder ID. Results are limited to files
    this app created or the user selected in the Picker."""
    try:
        request = SearchFilesRequest(
            query=query,
            mime_type=mime_type,
            parent_id=parent_id,
            page_size=page_size,
            page_token=page_token,
            response_format=response_format,
        )
        result = drive_service.search_files(
            request.query, request.mime_type, request.parent_id, request.page_size, request.page_token
        )
        return _render_list(result, request.response_format)
    except Exception as e:
        return _handle_mcp_error(e)


@mcp.tool
def gdrive_get_file(file_id: str, include_content: bool = False, response_format: str = "markdown") -> str | dict:
    """Get metadata and optionally the text content of a file. Docs export as plain text, Sheets as CSV,
    Slides as plain text; text and JSON files are downloaded; other binaries return metadata only.
    A 404 usually means the file was never selected in the Picker: use gdrive_open_picker first."""
    try:
        request = GetFileRequest(file_id=file_id, include_content=include_content, response_format=response_format)
        file = drive_service.get_file(request.file_id, request.include_content, get_settings().character_limit)
        if request.response_format == ResponseFormat.JSON:
            return file.model_dump(exclude_none=True)
        text = format_file_markdown(file)
        if file.content:
            text += f"\n\n## Content\n\n{file.content}"
        return text
    except Exception as e:
        return _handle_mcp_error(e)


@mcp.tool
def gdrive_create_file(
    name: str,
    mime_type: str = "text/plain",
    parent_id: str | None = None,
    content: str | None = None,
) -> dict:
    """Create a new file (name 1-255 characters), optionally with text content and inside a folder.
    The new file is accessible under the drive.file scope right away.
    Use gdrive_update_file for existing files and gdrive_create_folder for folders."""
    try:
        request = CreateFileRequest(name=name, mime_type=mime_type, parent_id=parent_id, content=content)
        file = drive_service.create_file(request.name, request.mime_type, request.parent_id, request.content)
        message = f"Successfully created file: {file.name}\nID: {file.id}\nLink: {file.web_view_link or 'N/A'}"
        return _with_message(message, file)
    except Exception as e:
        return _handle_mcp_error(e)


@mcp.tool
def gdrive_create_folder(name: str, parent_id: str | None = None) -> dict:
    """Create a new folder (name 1-255 characters), optionally inside another folder."""
    try:
        request = CreateFolderRequest(name=name, parent_id=parent_id)
        folder = drive_service.create_folder(request.name, request.parent_id)
        message = f"Successfully created folder: {folder.name}\nID: {folder.id}\nLink: {folder.web_view_link or 'N/A'}"
        return _with_message(message, folder)
    except Exception as e:
        return _handle_mcp_error(e)


@mcp.tool
def gdrive_update_file(
    file_id: str,
    name: str | None = None,
    content: str | None = None,
    add_parents: list[str] | None = None,
    remove_parents: list[str] | None = None,
) -> dict:
    """Rename a file, replace its text content entirely, or move it with add_parents/remove_parents
    (lists of folder IDs)."""
    try:
        request = UpdateFileRequest(
            file_id=file_id,
            name=name,
            content=content,
            add_parents=add_parents,
            remove_parents=remove_parents,
        )
        file = drive_service.update_file(
            request.file_id, request.name, request.content, request.add_parents, request.remove_parents
        )
        return _with_message(f"Successfully updated file: {file.name}\nID: {file.id}", file)
    except Exception as e:
        return _handle_mcp_error(e)


@mcp.tool
def gdrive_delete_file(file_id: str) -> dict:
    """Permanently delete a file or folder. This cannot be undone; double-check the ID."""
    try:
        request = DeleteFileRequest(file_id=file_id)
        deleted = drive_service.delete_file(request.file_id)
        return _with_message(f'Successfully deleted "{deleted.name}" (ID: {deleted.id})', deleted)
    except Exception as e:
        return _handle_mcp_error(e)


@mcp.tool
def gdrive_copy_file(file_id: str, name: str | None = None, parent_id: str | None = None) -> dict:
    """Copy a file, optionally renaming it (default "Copy of <name>") or placing it in a folder.
    To move a file use gdrive_update_file with add_parents/remove_parents."""
    try:
        request = CopyFileRequest(file_id=file_id, name=name, parent_id=parent_id)
        file = drive_service.copy_file(request.file_id, request.name, request.parent_id)
        message = f"Successfully copied file: {file.name}\nNew ID: {file.id}\nLink: {file.web_view_link or 'N/A'}"
        return _with_message(message, file)
    except Exception as e:
        return _handle_mcp_error(e)


# --- Picker tool ---

@mcp.tool
def gdrive_open_picker() -> str | dict:
    """Return the URL of the Picker page where the user selects files to grant this app access.
    HTTP mode only, and it needs HUMAN action: relay the URL to the user."""
    settings = get_settings()
    if not settings.is_http:
        return _mode_error(
            "The Google Picker is only available in HTTP mode (TRANSPORT=http). In stdio mode, files can "
            "only be accessed if they were created by this app."
        )
    try:
        get_credential_store().ensure_authenticated()
        return (
            f"Ask the user to open this URL in their browser to select files:\n\n{settings.base_url}\n\n"
            "After they select files and see the confirmation, those files will be accessible via "
            "gdrive_get_file, gdrive_search_files, and other tools."
        )
    except Exception as e:
        return _handle_mcp_error(e)

