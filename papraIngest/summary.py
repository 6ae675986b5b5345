import logging
import re

from papraIngest.heuristics import (
    detect_document_type,
    extract_entities,
    extract_headings,
    extract_keywords,
)
from papraIngest.pdf_text import ExtractedDocument

MAX_SUMMARY_CHARS = 2000
MIN_TEXT_CHARS = 50

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]\s+")
_PDF_SUFFIX_RE = re.compile(r"\.pdf$", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


def _strip_pdf_suffix(file_name: str) -> str:
    return _PDF_SUFFIX_RE.sub("", file_name)


def _first_excerpt(text: str, chars_per_page: float) -> str:
    window = text[: int(min(chars_per_page * 1.5, 1000))]
    sentences = _SENTENCE_SPLIT_RE.split(window)[:5]
    return _WHITESPACE_RE.sub(" ", ". ".join(sentences))[:500]


def _last_excerpt(text: str, chars_per_page: float) -> str:
    start = int(max(0, len(text) - chars_per_page * 1.5))
    sentences = _SENTENCE_SPLIT_RE.split(text[start:])[-5:]
    return _WHITESPACE_RE.sub(" ", ". ".join(sentences))[:300]


def build_document_summary(pdf_data: ExtractedDocument, file_name: str) -> str:
    """Build a compact (at most 2000 chars) plain-text description of a document.

    Sections, one per line: Title, Type, Headings, Key-Entities, Keywords,
    Excerpt (first), Excerpt (last). Only Title and Type are always present.
    """
    text = pdf_data.text or ""

    if len(text.strip()) < MIN_TEXT_CHARS:
        logging.warning(
            "PDF has minimal/no text (%d chars). This may be a scanned document.", len(text))
        return (
            f"Title: {_strip_pdf_suffix(file_name)}\n"
            "Type: unknown\n"
            "Note: Document appears to be empty or scanned (no extractable text)"
        )

    title = pdf_data.info.get("Title") or _strip_pdf_suffix(file_name)
    headings = extract_headings(text)
    entities = extract_entities(text)
    keywords = extract_keywords(text)
    doc_type = detect_document_type(text, headings)

    chars_per_page = len(text) / (pdf_data.page_count or 1)
    first_excerpt = _first_excerpt(text, chars_per_page)
    last_excerpt = _last_excerpt(text, chars_per_page)

    lines = [f"Title: {title}", f"Type: {doc_type}"]
    if headings:
        lines.append("Headings: " + " | ".join(headings[:8]))
    if entities:
        lines.append("Key-Entities: " + ", ".join(entities[:10]))
    if keywords:
        lines.append("Keywords: " + ", ".join(keywords[:12]))
    if first_excerpt.strip():
        lines.append("Excerpt (first): " + first_excerpt.strip())
    if last_excerpt.strip() and last_excerpt != first_excerpt:
        lines.append("Excerpt (last): " + last_excerpt.strip())

    summary = "".join(line + "\n" for line in lines)[:MAX_SUMMARY_CHARS]
    logging.debug("Summary generated: %d chars", len(summary))
    return summary
