import json

import pytest

from papraIngest.config import config
from papraIngest.errors import IngestError, NoValidTagsError, PapraRequestError
from papraIngest.ingest import (
    PapraIngest,
    find_pdf_files,
    is_pdf_file,
    validate_ocr_languages,
)


class TrackingClient:
    def __init__(self, fail_uploads=()):
        self.calls = []
        self.fail_uploads = set(fail_uploads)
        self._next_id = 0

    def existing_tag_names(self):
        self.calls.append("existing_tag_names")
        return ["Finance"]

    def ensure_tags_exist(self, names):
        self.calls.append(("ensure_tags_exist", list(names)))
        return [{"id": f"tag-{n}", "name": n} for n in names]

    def upload_document(self, path, ocr_languages=()):
        self.calls.append(("upload", path.rsplit("/", 1)[-1], list(ocr_languages)))
        if path.rsplit("/", 1)[-1] in self.fail_uploads:
            raise PapraRequestError(500, "boom")
        self._next_id += 1
        return {"id": f"doc-{self._next_id}"}

    def attach_tag_to_document(self, document_id, tag_id):
        self.calls.append(("attach", document_id, tag_id))

    def attach_tags_to_document(self, document_id, names):
        self.calls.append(("attach_names", document_id, list(names)))
        return len(names)


def _pdfs(tmp_path, *names):
    paths = []
    for name in names:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"%PDF-1.4\n%EOF\n")
        paths.append(str(path))
    return paths


def test_find_pdf_files_recursive_and_sorted(tmp_path):
    _pdfs(tmp_path, "b.pdf", "sub/a.PDF", "sub/deeper/c.pdf")
    (tmp_path / "notes.txt").write_text("x")

    found = [p.replace(str(tmp_path), "") for p in find_pdf_files(str(tmp_path))]
    assert found == ["/b.pdf", "/sub/a.PDF", "/sub/deeper/c.pdf"]


def test_is_pdf_file():
    assert is_pdf_file("x/Report.Pdf")
    assert not is_pdf_file("x/report.txt")


def test_validate_ocr_languages():
    assert validate_ocr_languages(["eng", "deu"]) == (True, [])
    assert validate_ocr_languages(["eng", "xx"]) == (False, ["xx"])
    assert validate_ocr_languages("eng") == (False, [])


def test_collect_files_errors(tmp_path):
    ingest = PapraIngest(TrackingClient(), tagger=lambda *a, **k: [])
    with pytest.raises(IngestError):
        ingest.collect_files(str(tmp_path / "missing"))
    (tmp_path / "notes.txt").write_text("x")
    with pytest.raises(IngestError):
        ingest.collect_files(str(tmp_path / "notes.txt"))
    empty = tmp_path / "empty"
    empty.mkdir()
    with pytest.raises(IngestError):
        ingest.collect_files(str(empty))


def test_manual_tags_prepared_once_and_attached(tmp_path):
    _pdfs(tmp_path, "a.pdf", "b.pdf")
    client = TrackingClient()

    summary = PapraIngest(client).upload_pdfs(str(tmp_path), ocr_languages=["eng"], tags=["Bills"])

    assert summary.total == 2 and summary.failed == 0
    assert client.calls.count(("ensure_tags_exist", ["Bills"])) == 1
    assert ("upload", "a.pdf", ["eng"]) in client.calls
    assert ("attach", "doc-1", "tag-Bills") in client.calls
    assert ("attach", "doc-2", "tag-Bills") in client.calls
    assert summary.results[0].tags == ["Bills"]


def test_autotag_attaches_generated_tags(tmp_path):
    (path,) = _pdfs(tmp_path, "invoice.pdf")
    client = TrackingClient()
    seen = {}

    def tagger(file_path, fetch_existing_tags=None):
        seen["vocabulary"] = fetch_existing_tags()
        return ["finance", "bills"]

    summary = PapraIngest(client, tagger=tagger).upload_pdfs(path, tags=["Bills"], autotag=True)

    result = summary.results[0]
    assert seen["vocabulary"] == ["Finance"]
    assert result.success
    assert result.tags == ["Bills", "finance"]
    assert ("attach_names", "doc-1", ["finance"]) in client.calls
    assert result.tags_attached == 2


def test_autotag_failure_falls_back_to_manual_tags(tmp_path, caplog):
    (path,) = _pdfs(tmp_path, "scan.pdf")
    client = TrackingClient()

    def tagger(file_path, fetch_existing_tags=None):
        raise NoValidTagsError("No valid tags generated by LLM")

    caplog.set_level("WARNING")
    summary = PapraIngest(client, tagger=tagger).upload_pdfs(path, tags=["Inbox"], autotag=True)

    result = summary.results[0]
    assert result.success
    assert result.tag_error == "No valid tags generated by LLM"
    assert result.tags == ["Inbox"]
    assert ("attach", "doc-1", "tag-Inbox") in client.calls
    assert any("Auto-tagging failed" in rec.message for rec in caplog.records)


def test_failed_upload_does_not_stop_batch(tmp_path):
    _pdfs(tmp_path, "a.pdf", "b.pdf", "c.pdf")
    client = TrackingClient(fail_uploads={"b.pdf"})

    summary = PapraIngest(client, tagger=lambda *a, **k: ["x"]).upload_pdfs(str(tmp_path), autotag=True)

    assert (summary.total, summary.succeeded, summary.failed) == (3, 2, 1)
    failed = [r for r in summary.results if not r.success][0]
    assert failed.path.endswith("b.pdf")
    assert "500" in failed.error


def test_malformed_llm_reply_does_not_stop_batch(tmp_path, make_pdf):
    config.set("OPENROUTER", "model_name", "TEST/mock")
    folder = tmp_path / "inbox"
    page = ["INVOICE SUMMARY\nInvoice total $1,200.00 due in thirty days."]
    make_pdf("a.pdf", pages=page, folder=folder)
    make_pdf("b.pdf", pages=page, folder=folder)
    (folder / "a.autotag.json").write_text(json.dumps("[" + "1" * 5000 + "]"))
    (folder / "b.autotag.json").write_text(json.dumps(["Finance"]))
    client = TrackingClient()

    summary = PapraIngest(client).upload_pdfs(str(folder), autotag=True)

    assert (summary.total, summary.succeeded) == (2, 2)
    first, second = summary.results
    assert first.success and first.tag_error
    assert first.tags == []
    assert second.tags == ["finance"]
    assert ("attach_names", "doc-2", ["finance"]) in client.calls
