import re

import pytest

from drivefile.exceptions import AuthenticationError, UpstreamError
from drivefile.formatting import (
    CHARACTER_LIMIT,
    describe_failure,
    format_error,
    format_file_list_markdown,
    format_file_markdown,
    format_file_size,
    truncate_text,
)
from drivefile.models.common import GenericFailure, UnknownFailure, UpstreamFailure
from drivefile.models.drive import DriveFile, FileListResult
from conftest import make_http_error

SAMPLE_FILE = DriveFile(
    id="file123", name="report.txt", mime_type="text/plain",
    size="1536", created_time="2025-01-01T00:00:00Z",
    modified_time="2025-01-02T00:00:00Z",
    web_view_link="https://drive.google.com/file/d/file123/view",
    description="Quarterly report",
)


class TestFormatFileSize:
    @pytest.mark.parametrize("size, expected", [
        (0, "0 Bytes"),
        (512, "512 Bytes"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (1024 ** 2, "1 MB"),
        (1024 ** 3, "1 GB"),
        (5 * 1024 ** 4, "5 TB"),
        (1234567, "1.18 MB"),
    ])
    def test_human_units(self, size, expected):
        assert format_file_size(size) == expected


class TestFormatFileMarkdown:
    def test_renders_fields_in_order(self):
        text = format_file_markdown(SAMPLE_FILE)
        lines = text.splitlines()
        assert lines[0] == "**report.txt**"
        assert lines[1] == "- ID: `file123`"
        assert lines[2] == "- Type: text/plain"
        assert lines[3] == "- Size: 1.5 KB"
        assert re.match(r"- Created: \d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", lines[4])
        assert re.match(r"- Modified: \d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", lines[5])
        assert lines[6] == "- Link: https://drive.google.com/file/d/file123/view"
        assert lines[7] == "- Description: Quarterly report"

    def test_only_present_fields(self):
        text = format_file_markdown(DriveFile(id="f1", name="a.txt", mime_type="text/plain"))
        assert text == "**a.txt**\n- ID: `f1`\n- Type: text/plain"

    def test_unparseable_values_shown_raw(self):
        file = DriveFile(id="f1", name="a", mime_type="x", size="big", created_time="yesterday")
        text = format_file_markdown(file)
        assert "- Size: big" in text
        assert "- Created: yesterday" in text


class TestFormatFileListMarkdown:
    def test_header_and_entries(self):
        result = FileListResult(total=2, count=2, files=[SAMPLE_FILE, SAMPLE_FILE], has_more=False)
        text = format_file_list_markdown(result)
        assert text.startswith("# Files (2 of 2)\n")
        assert text.count("**report.txt**") == 2
        assert "next_page_token" not in text

    def test_pagination_hint_names_cursor(self):
        result = FileListResult(
            total=1, count=1, files=[SAMPLE_FILE], has_more=True, next_page_token="opaque-cursor-abc"
        )
        text = format_file_list_markdown(result)
        assert "`opaque-cursor-abc`" in text
        assert "More results available" in text

    def test_empty_list(self):
        text = format_file_list_markdown(FileListResult(total=0, count=0, files=[], has_more=False))
        assert "# Files (0 of 0)" in text


class TestTruncateText:
    def test_short_text_unchanged(self):
        assert truncate_text("hello world", 100) == "hello world"

    def test_text_at_limit_unchanged(self):
        text = "x" * 100
        assert truncate_text(text, 100) == text

    def test_truncates_long_text(self):
        result = truncate_text("a" * 200, 100)
        assert result.startswith("a" * 100)
        assert not result.startswith("a" * 101)
        assert len(result) > 100
        assert "truncated" in result
        assert "Total length: 200 characters, showing first 100" in result

    def test_reapplying_keeps_payload(self):
        once = truncate_text("b" * 300, 100)
        again = truncate_text(once[:100], 100)
        assert again == "b" * 100

    def test_default_limit(self):
        assert truncate_text("hello") == "hello"
        assert truncate_text("z" * (CHARACTER_LIMIT + 1)).startswith("z" * CHARACTER_LIMIT)


class TestDescribeFailure:
    def test_upstream_error(self):
        failure = describe_failure(UpstreamError(404, "File not found: abc."))
        assert failure == UpstreamFailure(code=404, message="File not found: abc.")

    def test_http_error(self):
        failure = describe_failure(make_http_error(403, "Insufficient permissions"))
        assert isinstance(failure, UpstreamFailure)
        assert failure.code == 403
        assert failure.message == "Insufficient permissions"

    def test_plain_exception(self):
        assert describe_failure(ValueError("bad")) == GenericFailure(message="bad")

    def test_non_exception(self):
        assert describe_failure("oops") == UnknownFailure(raw="oops")

    def test_exception_without_message(self):
        assert isinstance(describe_failure(RuntimeError()), UnknownFailure)


class TestFormatError:
    def test_401(self):
        assert "Authentication failed" in format_error(UpstreamError(401, "Unauthorized"))

    def test_403_names_scope(self):
        msg = format_error(UpstreamError(403, "Forbidden"))
        assert "Access forbidden" in msg
        assert "drive.file" in msg

    def test_404_mentions_picker(self):
        msg = format_error(UpstreamError(404, "Not Found"), picker_url="http://localhost:4000")
        assert "File not found" in msg
        assert "picker" in msg.lower()
        assert "http://localhost:4000" in msg
        assert "retry" in msg

    def test_429(self):
        assert "Rate limit" in format_error(UpstreamError(429, "Too Many Requests"))

    def test_other_code(self):
        assert format_error(UpstreamError(500, "Backend Error")) == "Google Drive API error (500): Backend Error"

    def test_http_error_is_translated(self):
        assert "Rate limit" in format_error(make_http_error(429))

    def test_generic_exception(self):
        assert format_error(AuthenticationError("something broke")) == "Error: something broke"

    def test_unknown_value(self):
        result = format_error("oops")
        assert "Unknown error" in result
        assert "oops" in result
