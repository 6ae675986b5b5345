import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple

import httpx

from papraIngest import ai_tasks
from papraIngest.errors import IngestError, PapraIngestError
from papraIngest.logging_utils import board_state
from papraIngest.papra_client import PapraClient

# Tesseract language codes accepted by Papra's OCR
SUPPORTED_OCR_LANGUAGES = frozenset("""
afr amh ara asm aze aze_cyrl bel ben bod bos bul cat ceb ces chi_sim chi_tra chr
cym dan deu dzo ell eng enm epo est eus fas fin fra frk frm gle glg grc guj hat
heb hin hrv hun iku ind isl ita ita_old jav jpn kan kat kat_old kaz khm kir kor
kur lao lat lav lit mal mar mkd mlt msa mya nep nld nor ori pan pol por pus ron
rus san sin slk slv spa spa_old sqi srp srp_latn swa swe syr tam tel tgk tgl tha
tir tur uig ukr urd uzb uzb_cyrl vie yid
""".split())


def validate_ocr_languages(languages) -> Tuple[bool, List[str]]:
    """Return (valid, invalid_codes)."""
    if not isinstance(languages, (list, tuple)):
        return False, []
    invalid = [lang for lang in languages if lang not in SUPPORTED_OCR_LANGUAGES]
    return not invalid, invalid


def is_pdf_file(path: str) -> bool:
    return os.path.splitext(path)[1].lower() == ".pdf"


def find_pdf_files(folder: str) -> List[str]:
    pdf_files = []
    for root, _, files in os.walk(folder):
        for name in files:
            if is_pdf_file(name):
                pdf_files.append(os.path.join(root, name))
    return sorted(pdf_files)


@dataclass
class UploadResult:
    path: str
    success: bool = False
    document_id: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    tags_attached: int = 0
    tag_error: Optional[str] = None
    error: Optional[str] = None


@dataclass
class UploadSummary:
    results: List[UploadResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded


class PapraIngest:
    def __init__(self, client: PapraClient, tagger: Optional[Callable[..., List[str]]] = None):
        self.client = client
        self.tagger = tagger or ai_tasks.generate_tags_for_document

    def collect_files(self, source: str) -> List[str]:
        if not os.path.exists(source):
            raise IngestError(f"Path does not exist: {source}")
        if os.path.isdir(source):
            logging.info(f"Searching for PDF files in: {source}")
            pdf_files = find_pdf_files(source)
            if not pdf_files:
                raise IngestError("No PDF files found in the specified directory.")
            logging.info(f"Found {len(pdf_files)} PDF file(s)")
            return pdf_files
        if os.path.isfile(source):
            if not is_pdf_file(source):
                raise IngestError("The specified file is not a PDF.")
            return [source]
        raise IngestError("The specified path is neither a file nor a directory.")

    def _auto_tags(self, path: str) -> Tuple[List[str], Optional[str]]:
        try:
            return self.tagger(path, fetch_existing_tags=self.client.existing_tag_names), None
        except PapraIngestError as e:
            logging.warning("Auto-tagging failed for %s: %s", os.path.basename(path), e)
            return [], str(e)

    def upload_file(self, path: str, ocr_languages=(), manual_tags: Iterable[dict] = (), autotag=False) -> UploadResult:
        result = UploadResult(path=path)
        manual_tags = list(manual_tags or [])

        auto_tags: List[str] = []
        if autotag:
            auto_tags, result.tag_error = self._auto_tags(path)
            if result.tag_error and manual_tags:
                logging.info("Falling back to manually supplied tags")

        try:
            document = self.client.upload_document(path, ocr_languages)
        except (PapraIngestError, httpx.HTTPError, OSError) as e:
            result.error = str(e)
            logging.error("Upload failed for %s: %s", os.path.basename(path), e)
            return result
        result.success = True
        result.document_id = document.get("id")

        manual_names = [t["name"] for t in manual_tags]
        known = {name.lower() for name in manual_names}
        extra = [name for name in auto_tags if name.lower() not in known]
        result.tags = manual_names + extra

        if result.document_id and (manual_tags or extra):
            try:
                for tag in manual_tags:
                    self.client.attach_tag_to_document(result.document_id, tag["id"])
                    result.tags_attached += 1
                if extra:
                    result.tags_attached += self.client.attach_tags_to_document(result.document_id, extra)
            except (PapraIngestError, httpx.HTTPError) as e:
                result.tag_error = str(e)
                logging.warning("Tag attachment warning for %s: %s", os.path.basename(path), e)
        return result

    def upload_pdfs(self, source: str, ocr_languages=(), tags=(), autotag: bool = False) -> UploadSummary:
        """Upload one PDF or every PDF below a folder, tagging each document.

        A failure on one file (upload or tagging) never stops the batch.
        """
        pdf_files = self.collect_files(source)
        ocr_languages = list(ocr_languages or [])
        if ocr_languages:
            logging.info("OCR Languages: %s", ", ".join(ocr_languages))

        manual_tags = []
        if tags:
            logging.info("Tags: %s", ", ".join(tags))
            manual_tags = self.client.ensure_tags_exist(tags)
            logging.info("Tags ready (%d tag(s))", len(manual_tags))

        summary = UploadSummary()
        try:
            for index, path in enumerate(pdf_files, start=1):
                name = os.path.basename(path)
                board_state.update(f"[{index}/{len(pdf_files)}] Uploading: {name}")
                logging.info(f"[{index}/{len(pdf_files)}] Uploading: {name}")
                result = self.upload_file(path, ocr_languages, manual_tags, autotag)
                if result.success:
                    logging.info("Uploaded successfully (document id: %s, tags attached: %d)",
                                 result.document_id, result.tags_attached)
                summary.results.append(result)
        finally:
            board_state.clear()

        logging.info("=== Upload Summary ===")
        logging.info("Total files: %d", summary.total)
        logging.info("Successful: %d", summary.succeeded)
        logging.info("Failed: %d", summary.failed)
        return summary
