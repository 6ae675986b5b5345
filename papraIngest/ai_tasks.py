import logging
import os
from typing import Callable, Iterable, List, Optional

from papraIngest import mock_provider
from papraIngest.ai_common import (
    log_llm_request as _log_req,
    resolve_tag_candidates,
    tokenize_text as _tok_est,
    validate_and_normalize_tags,
)
from papraIngest.config import openrouter_settings
from papraIngest.errors import ConfigurationError, ExtractionError, NoValidTagsError, TaggingError
from papraIngest.llm_client import chat_api_base, run_chat
from papraIngest.pdf_text import extract_pdf_text
from papraIngest.summary import build_document_summary

AUTOTAG_TEMPERATURE = 0
AUTOTAG_MAX_TOKENS = 5000

_PROMPT_TEMPLATE = """You are a document tagging assistant. Analyze the document summary and generate relevant tags.

GUIDELINES:
1. PRIORITIZE using existing tags when applicable
2. Avoid overly specific tags
3. Focus on general categories, topics, document types, or themes
4. Keep tags concise (1–3 words)
5. Return 2–5 tags maximum
6. Return ONLY a JSON array of tag names, nothing else
7. Do NOT include any explanations or additional text
8. Start with uppercase letters for each word in tags
{existing_tags}

DOCUMENT SUMMARY
----------------
{summary}

Return ONLY a JSON array of 2–5 tag names (1–3 words each). Example: ["Finance", "Invoice", "2024"]"""


def compose_tagging_prompt(summary: str, existing_tags: Optional[Iterable[str]] = None) -> str:
    names = [str(t) for t in (existing_tags or []) if str(t).strip()]
    existing = ""
    if names:
        existing = "\n\nExisting tags in the system:\n" + ", ".join(names)
    return _PROMPT_TEMPLATE.format(existing_tags=existing, summary=summary)


def _fetch_vocabulary(fetch_existing_tags: Optional[Callable[[], List[str]]]) -> List[str]:
    if fetch_existing_tags is None:
        return []
    try:
        return list(fetch_existing_tags() or [])
    except Exception as e:
        logging.warning("Could not fetch existing tags: %s", e)
        return []


def generate_tags_for_document(
    file_path: str,
    existing_tags: Optional[Iterable[str]] = None,
    fetch_existing_tags: Optional[Callable[[], List[str]]] = None,
) -> List[str]:
    """Infer 1-5 normalized tags for a PDF with a single LLM call.

    `existing_tags` is used as is; otherwise `fetch_existing_tags` is called
    (best effort) to bias the model towards the current vocabulary.
    Raises a PapraIngestError subclass on any failure.
    """
    settings = openrouter_settings()
    if not settings["api_key"]:
        raise ConfigurationError("OpenRouter API key is not configured. Run with --setup to configure.")

    file_name = os.path.basename(file_path)
    logging.info("Extracting PDF text: %s", file_name)
    try:
        pdf_data = extract_pdf_text(file_path)
        summary = build_document_summary(pdf_data, file_name)
    except ExtractionError:
        raise
    except Exception as e:
        raise ExtractionError(f"Failed to extract PDF text: {e}") from e
    if not summary or not summary.strip():
        raise ExtractionError("Summary generation produced no content")

    vocabulary = list(existing_tags) if existing_tags is not None else _fetch_vocabulary(fetch_existing_tags)
    prompt = compose_tagging_prompt(summary, vocabulary)
    model = settings["model_name"]

    if mock_provider.is_mock_model(model):
        response, usage = mock_provider.fetch(file_path, "autotag")
    else:
        _log_req("autotag", file_name, _tok_est(prompt), AUTOTAG_MAX_TOKENS)
        logging.info("Sending summary to LLM (%s)", model)
        response, usage = run_chat(
            model,
            [{"role": "user", "content": prompt}],
            api_base=chat_api_base(settings["endpoint"]),
            api_key=settings["api_key"],
            temperature=AUTOTAG_TEMPERATURE,
            max_tokens=AUTOTAG_MAX_TOKENS,
        )
    cost = float((usage or {}).get("cost", 0.0) or 0.0)
    if cost:
        logging.info("[AI autotag cost] %s :: spent=%.4f $", file_name, cost)

    try:
        tags = validate_and_normalize_tags(resolve_tag_candidates(response))
    except TaggingError:
        raise
    except Exception as e:
        raise TaggingError(f"Failed to resolve tags from LLM response: {e}") from e
    if not tags:
        raise NoValidTagsError("No valid tags generated by LLM")
    logging.info("Generated tags for %s: %s", file_name, ", ".join(tags))
    return tags
