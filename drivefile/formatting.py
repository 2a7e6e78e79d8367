"""Markdown rendering, content truncation and error messages for tool output."""

from datetime import datetime

from googleapiclient.errors import HttpError

from drivefile.exceptions import UpstreamError
from drivefile.models.common import Failure, GenericFailure, UnknownFailure, UpstreamFailure
from drivefile.models.drive import DriveFile, FileListResult

CHARACTER_LIMIT = 50000
DEFAULT_PICKER_URL = "http://localhost:3000"

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]


def format_file_size(size: int) -> str:
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{round(value, 2):g} {_SIZE_UNITS[unit]}"


def _local_time(timestamp: str) -> str:
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return timestamp
    return parsed.astimezone().strftime("%Y-%m-%d %H:%M:%S %Z")


def format_file_markdown(file: DriveFile) -> str:
    parts = [
        f"**{file.name}**",
        f"- ID: `{file.id}`",
        f"- Type: {file.mime_type}",
    ]
    if file.size:
        try:
            parts.append(f"- Size: {format_file_size(int(file.size))}")
        except ValueError:
            parts.append(f"- Size: {file.size}")
    if file.created_time:
        parts.append(f"- Created: {_local_time(file.created_time)}")
    if file.modified_time:
        parts.append(f"- Modified: {_local_time(file.modified_time)}")
    if file.web_view_link:
        parts.append(f"- Link: {file.web_view_link}")
    if file.description:
        parts.append(f"- Description: {file.description}")
    return "\n".join(parts)


def format_file_list_markdown(result: FileListResult) -> str:
    parts = [f"# Files ({result.count} of {result.total})\n"]
    for file in result.files:
        parts.append(format_file_markdown(file))
        parts.append("")
    if result.has_more:
        parts.append(
            f"\n*More results available. Use next_page_token: `{result.next_page_token}` "
            "to fetch the next page.*"
        )
    return "\n".join(parts)


def truncate_text(text: str, limit: int = CHARACTER_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return (
        text[:limit]
        + f"\n\n[... Content truncated. Total length: {len(text)} characters, showing first {limit}]"
    )


def describe_failure(error: object) -> Failure:
    """Classify a caught value as an upstream, generic or unknown failure."""
    if isinstance(error, UpstreamError):
        return UpstreamFailure(code=error.code, message=error.message)
    if isinstance(error, HttpError):
        return UpstreamFailure(code=error.resp.status, message=str(error.reason))
    if isinstance(error, Exception) and str(error):
        return GenericFailure(message=str(error))
    return UnknownFailure(raw=str(error) if not isinstance(error, Exception) else repr(error))


def format_error(error: object, picker_url: str = DEFAULT_PICKER_URL) -> str:
    """Turn a caught failure into guidance an agent can relay to the user."""
    failure = describe_failure(error)

    if isinstance(failure, UpstreamFailure):
        code, message = failure.code, failure.message
        if code == 401:
            return "Authentication failed. Please check your credentials and ensure they are still valid."
        if code == 403:
            return (
                f"Access forbidden: {message}. You may not have permission to access this file "
                "with the drive.file scope."
            )
        # Every 404 is reported as a missing Picker grant, including mistyped ids
        if code == 404:
            return (
                f"File not found: {message}. With drive.file scope, the server can only access files "
                "it created or files the user has explicitly selected via the Picker. "
                f"Ask the user to open the Picker ({picker_url}), select the file, then retry."
            )
        if code == 429:
            return "Rate limit exceeded. Please try again in a few moments."
        return f"Google Drive API error ({code}): {message}"

    if isinstance(failure, GenericFailure):
        return f"Error: {failure.message}"

    return f"Unknown error: {failure.raw}"
