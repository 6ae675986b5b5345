"""
Text layer extraction for PDF files, based on PyMuPDF (fitz).

Only the embedded text layer is read. Scanned documents without a
text layer produce an ExtractedDocument with (almost) empty text,
which the summary builder handles on its own.
"""

import logging
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

import fitz

from papraIngest.errors import ExtractionError

# PyMuPDF metadata keys -> PDF Info dictionary names
_INFO_KEYS = {
    "title": "Title",
    "author": "Author",
    "subject": "Subject",
    "keywords": "Keywords",
    "creator": "Creator",
    "producer": "Producer",
    "creationDate": "CreationDate",
    "modDate": "ModDate",
}


@dataclass(frozen=True)
class ExtractedDocument:
    text: str
    page_count: int = 0
    info: Mapping[str, str] = field(default_factory=dict)
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        # freeze the mappings too
        object.__setattr__(self, "info", MappingProxyType(dict(self.info)))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))


def extract_pdf_text(path: str) -> ExtractedDocument:
    """Read the whole file into memory and extract text, page count and metadata."""
    try:
        with open(path, "rb") as handle:
            data = handle.read()
    except OSError as e:
        raise ExtractionError(f"Cannot read {path}: {e}") from e

    try:
        pdf_document = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise ExtractionError(f"{os.path.basename(path)} is not a readable PDF: {e}") from e

    try:
        page_texts = [page.get_text("text") for page in pdf_document]
        raw_metadata = dict(pdf_document.metadata or {})
        page_count = pdf_document.page_count
    except Exception as e:
        raise ExtractionError(f"Failed to extract text from {os.path.basename(path)}: {e}") from e
    finally:
        pdf_document.close()

    info = {
        pdf_key: str(raw_metadata[key]).strip()
        for key, pdf_key in _INFO_KEYS.items()
        if raw_metadata.get(key) and str(raw_metadata[key]).strip()
    }
    metadata = {k: str(v) for k, v in raw_metadata.items() if v}

    result = ExtractedDocument(
        text="\n".join(page_texts),
        page_count=max(0, int(page_count or 0)),
        info=info,
        metadata=metadata,
    )
    logging.debug("PDF extracted: %d chars, %d pages", len(result.text), result.page_count)
    return result
