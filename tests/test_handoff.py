"""Tests for the CUPS-to-app hand-off."""

import json
import os
import time
from pathlib import Path

import pytest

from ottos_pdf.core import handoff
from ottos_pdf.core.handoff import (
    HandoffError,
    PrintJob,
    build_handoff_url,
    handoff_path,
    parse_handoff_url,
    pending_job_ids,
    read_handoff,
    write_handoff,
)


class TestHandoffUrl:
    """Tests for building and parsing ottospdf:// URLs."""

    def test_build(self):
        assert build_handoff_url("42") == "ottospdf://handle-pdf?job=42"

    def test_parse_roundtrip_with_awkward_id(self):
        assert parse_handoff_url(build_handoff_url("a b&c")) == "a b&c"

    @pytest.mark.parametrize(
        "url",
        [
            "http://handle-pdf?job=1",
            "ottospdf://other?job=1",
            "ottospdf://handle-pdf",
            "ottospdf://handle-pdf?job=",
            "ottospdf://handle-pdf?id=1",
            "not a url",
        ],
    )
    def test_foreign_urls_are_ignored(self, url):
        assert parse_handoff_url(url) is None

    def test_first_job_item_wins(self):
        assert parse_handoff_url("ottospdf://handle-pdf?x=1&job=7&job=8") == "7"


class TestHandoffFile:
    """Tests for the JSON hand-off file."""

    def test_path_format(self, tmp_path):
        assert handoff_path("12", tmp_path) == tmp_path / "ottos-pdf-12.json"

    @pytest.mark.parametrize("job_id", ["", "..", "../etc/passwd"])
    def test_path_rejects_traversal(self, tmp_path, job_id):
        with pytest.raises(HandoffError):
            handoff_path(job_id, tmp_path)

    def test_write_then_read_removes_file(self, tmp_path):
        pdf = tmp_path / "doc.pdf"
        path = write_handoff("5", pdf, tmp_path, title="Report", user="otto")

        assert json.loads(path.read_text()) == {
            "path": str(pdf),
            "title": "Report",
            "user": "otto",
        }

        job = read_handoff("5", tmp_path)

        assert job.job_id == "5"
        assert job.file_path == pdf
        assert job.title == "Report"
        assert job.user == "otto"
        assert not path.exists()

    def test_read_missing_file(self, tmp_path):
        with pytest.raises(HandoffError, match="No hand-off file"):
            read_handoff("404", tmp_path)

    def test_read_incomplete_json_keeps_file(self, tmp_path):
        path = handoff_path("9", tmp_path)
        path.write_text('{"path": "/a.p')

        with pytest.raises(HandoffError, match="Unreadable"):
            read_handoff("9", tmp_path)
        assert path.exists()

        path.write_text('{"path": "/a.pdf"}')
        assert read_handoff("9", tmp_path).file_path == Path("/a.pdf")

    def test_read_file_of_another_user(self, tmp_path, monkeypatch):
        path = write_handoff("77", "/a.pdf", tmp_path)

        def denied(*args, **kwargs):
            raise PermissionError(1, "Operation not permitted")

        monkeypatch.setattr(handoff, "open", denied, raising=False)
        monkeypatch.setattr(Path, "unlink", denied)

        with pytest.raises(HandoffError, match="Unreadable"):
            read_handoff("77", tmp_path)
        assert path.exists()

    def test_read_file_that_cannot_be_removed(self, tmp_path, monkeypatch):
        path = write_handoff("78", "/a.pdf", tmp_path)

        def denied(self, missing_ok=False):
            raise PermissionError(1, "Operation not permitted")

        monkeypatch.setattr(Path, "unlink", denied)

        with pytest.raises(HandoffError, match="Cannot claim"):
            read_handoff("78", tmp_path)
        assert path.exists()

    def test_write_leaves_only_the_final_file(self, tmp_path):
        path = write_handoff("6", "/a.pdf", tmp_path)

        assert list(tmp_path.iterdir()) == [path]

    def test_write_replaces_stale_file(self, tmp_path):
        write_handoff("6", "/old.pdf", tmp_path)
        write_handoff("6", "/new.pdf", tmp_path)

        assert read_handoff("6", tmp_path).file_path == Path("/new.pdf")

    def test_read_requires_path(self, tmp_path):
        handoff_path("3", tmp_path).write_text(json.dumps({"title": "x"}))

        with pytest.raises(HandoffError, match="no PDF path"):
            read_handoff("3", tmp_path)

    def test_read_requires_string_values(self, tmp_path):
        handoff_path("4", tmp_path).write_text(json.dumps({"path": "/a.pdf", "copies": 2}))

        with pytest.raises(HandoffError, match="string map"):
            read_handoff("4", tmp_path)

    def test_pending_job_ids_oldest_first(self, tmp_path):
        old = write_handoff("1", "/a.pdf", tmp_path)
        write_handoff("2", "/b.pdf", tmp_path)
        (tmp_path / "unrelated.json").write_text("{}")
        (tmp_path / ".ottos-pdf-3.json.tmp").write_text("{")
        past = time.time() - 60
        os.utime(old, (past, past))

        assert pending_job_ids(tmp_path) == ["1", "2"]

    def test_pending_job_ids_missing_directory(self, tmp_path):
        assert pending_job_ids(tmp_path / "nope") == []


class TestPrintJob:
    """Tests for PrintJob helpers."""

    def test_suggested_filename_from_title(self, tmp_path):
        job = PrintJob("1", tmp_path / "job_1-x.pdf", title="Q3: Report/Final")
        assert job.suggested_filename == "Q3_ Report_Final.pdf"

    def test_suggested_filename_keeps_pdf_extension(self, tmp_path):
        job = PrintJob("1", tmp_path / "job_1-x.pdf", title="scan.PDF")
        assert job.suggested_filename == "scan.PDF"

    def test_suggested_filename_falls_back_to_spool_name(self, tmp_path):
        job = PrintJob("1", tmp_path / "job_1-untitled.pdf", title="")
        assert job.suggested_filename == "job_1-untitled.pdf"
