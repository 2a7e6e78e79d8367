from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class ResponseFormat(str, Enum):
    MARKDOWN = "markdown"
    JSON = "json"


class DriveFile(BaseModel):
    id: str
    name: str
    mime_type: str
    created_time: str | None = None
    modified_time: str | None = None
    size: str | None = None
    web_view_link: str | None = None
    parents: list[str] | None = None
    description: str | None = None
    starred: bool | None = None
    content: str | None = None


class FileListResult(BaseModel):
    total: int
    count: int
    files: list[DriveFile]
    has_more: bool
    # Opaque cursor; pass back verbatim as page_token
    next_page_token: str | None = None


class DeletedFile(BaseModel):
    id: str
    name: str


class SearchPredicate(BaseModel):
    query: str | None = None
    mime_type: str | None = None
    parent_id: str | None = None
    trashed: bool | None = None


# --- Tool inputs ---


class _ToolInput(BaseModel):
    model_config = ConfigDict(extra="forbid")


class SetCredentialsRequest(_ToolInput):
    code: str = Field(min_length=1)


class ListFilesRequest(_ToolInput):
    parent_id: str | None = None
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    page_token: str | None = None
    order_by: str | None = None
    response_format: ResponseFormat = ResponseFormat.MARKDOWN


class SearchFilesRequest(_ToolInput):
    query: str = Field(min_length=1)
    mime_type: str | None = None
    parent_id: str | None = None
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    page_token: str | None = None
    response_format: ResponseFormat = ResponseFormat.MARKDOWN


class GetFileRequest(_ToolInput):
    file_id: str = Field(min_length=1)
    include_content: bool = False
    response_format: ResponseFormat = ResponseFormat.MARKDOWN


class CreateFileRequest(_ToolInput):
    name: str = Field(min_length=1, max_length=255)
    mime_type: str = "text/plain"
    parent_id: str | None = None
    content: str | None = None


class CreateFolderRequest(_ToolInput):
    name: str = Field(min_length=1, max_length=255)
    parent_id: str | None = None


class UpdateFileRequest(_ToolInput):
    file_id: str = Field(min_length=1)
    name: str | None = Field(default=None, min_length=1, max_length=255)
    content: str | None = None
    add_parents: list[str] | None = None
    remove_parents: list[str] | None = None


class DeleteFileRequest(_ToolInput):
    file_id: str = Field(min_length=1)


class CopyFileRequest(_ToolInput):
    file_id: str = Field(min_length=1)
    name: str | None = None
    parent_id: str | None = None


# --- Picker grants ---


class OpenFilesRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_ids: list[str] = Field(default_factory=list, alias="fileIds")


class OpenFileResult(BaseModel):
    file_id: str
    success: bool
    name: str | None = None
    error: str | None = None


class OpenFilesResponse(BaseModel):
    success: bool
    results: list[OpenFileResult] = []
    message: str | None = None
    error: str | None = None
