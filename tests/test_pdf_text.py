import pytest

from papraIngest.errors import ExtractionError
from papraIngest.pdf_text import ExtractedDocument, extract_pdf_text


def test_extracts_text_pages_and_title(make_pdf):
    path = make_pdf(
        "report.pdf",
        pages=["QUARTERLY REPORT\nRevenue grew", "Second page text"],
        metadata={"title": "Q3 Report", "author": "ACME Corp"},
    )

    doc = extract_pdf_text(path)

    assert doc.page_count == 2
    assert "QUARTERLY REPORT" in doc.text
    assert "Second page text" in doc.text
    assert doc.info["Title"] == "Q3 Report"
    assert doc.info["Author"] == "ACME Corp"
    assert doc.metadata["title"] == "Q3 Report"


def test_pdf_without_text_layer_is_not_an_error(make_pdf):
    path = make_pdf("scan.pdf", pages=[""])

    doc = extract_pdf_text(path)

    assert doc.page_count == 1
    assert doc.text.strip() == ""
    assert "Title" not in doc.info


def test_missing_file_raises_extraction_error(tmp_path):
    with pytest.raises(ExtractionError):
        extract_pdf_text(str(tmp_path / "missing.pdf"))


def test_garbage_file_raises_extraction_error(tmp_path):
    path = tmp_path / "broken.pdf"
    path.write_bytes(b"this is not a pdf at all")

    with pytest.raises(ExtractionError):
        extract_pdf_text(str(path))


def test_extracted_document_is_immutable():
    doc = ExtractedDocument(text="abc", page_count=1, info={"Title": "x"})
    with pytest.raises(AttributeError):
        doc.text = "changed"
    with pytest.raises(TypeError):
        doc.info["Title"] = "y"
