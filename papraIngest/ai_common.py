import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

import tiktoken

from papraIngest.errors import (
    EmptyResponseError,
    NoTagsFoundError,
    ResponseShapeError,
    UnparsableTagsError,
)

MAX_TAGS = 5
MAX_TAG_WORDS = 3

_BRACKETED_ARRAY_RE = re.compile(r"\[.*\]", re.DOTALL)
_JSON_FENCE_RE = re.compile(r"```json\s*")
_FENCE_RE = re.compile(r"```\s*")

_encoding = None


def tokenize_text(text: str) -> int:
    """Estimate token count for a string (cl100k_base, or len//4 if the encoding can't be loaded)."""
    global _encoding
    try:
        if _encoding is None:
            _encoding = tiktoken.get_encoding("cl100k_base")
        return len(_encoding.encode(text or ""))
    except Exception:
        return max(1, len(text or "") // 4)


def log_llm_request(kind: str, filename: str, prompt_tokens: int, max_tokens: int):
    logging.debug(f"[{kind} request] %s: prompt≈%d tokens, max_tokens=%d", filename, prompt_tokens, max_tokens)


@dataclass(frozen=True)
class ParseAttempt:
    """Outcome of one parsing stage; `ok` is False when the next stage should be tried."""
    stage: str
    ok: bool
    value: Any = None
    detail: str = ""


def as_response_dict(response: Any) -> Optional[dict]:
    """Accept a plain dict or a LiteLLM/OpenAI response object."""
    if response is None or isinstance(response, dict):
        return response
    dump = getattr(response, "model_dump", None)
    if callable(dump):
        return dump()
    to_dict = getattr(response, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    raise ResponseShapeError(f"Unsupported response type: {type(response).__name__}")


def _first_message(response: Any) -> dict:
    data = as_response_dict(response)
    if not data:
        raise ResponseShapeError("No response from LLM endpoint")
    choices = data.get("choices") or []
    if not choices or not choices[0]:
        raise ResponseShapeError(f"Invalid response structure: {json.dumps(data, default=str)[:500]}")
    message = choices[0].get("message")
    if not message:
        raise ResponseShapeError(f"No message in response: {json.dumps(choices[0], default=str)[:500]}")
    return message


def _reasoning_text(message: dict) -> Optional[str]:
    for key in ("reasoning", "reasoning_content"):
        value = message.get(key)
        if value:
            return str(value)
    provider_fields = message.get("provider_specific_fields") or {}
    if provider_fields.get("reasoning"):
        return str(provider_fields["reasoning"])
    return None


def candidate_text(response: Any) -> str:
    """Pick the text to parse: message content, or the JSON array found in the reasoning."""
    message = _first_message(response)
    content = message.get("content")
    if isinstance(content, str) and content.strip():
        return content.strip()

    # Reasoning models (e.g. gpt-5-nano) sometimes leave content empty
    logging.debug("Content field is empty, checking reasoning field")
    reasoning = _reasoning_text(message)
    if reasoning is None:
        raise EmptyResponseError("Empty content in LLM response and no reasoning field")
    match = _BRACKETED_ARRAY_RE.search(reasoning)
    if not match:
        raise NoTagsFoundError(
            "No content in response and no JSON array found in reasoning field. "
            f"Reasoning: {reasoning[:300]}")
    text = match.group(0).strip()
    if not text:
        raise EmptyResponseError("LLM returned empty content after trimming")
    logging.debug("Extracted from reasoning: %s", text)
    return text


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", _JSON_FENCE_RE.sub("", text)).strip()


def _parse_strict(text: str) -> ParseAttempt:
    cleaned = strip_code_fences(text)
    if not cleaned:
        return ParseAttempt("strict", False, detail="content is empty after cleaning")
    try:
        return ParseAttempt("strict", True, json.loads(cleaned))
    except (ValueError, RecursionError) as e:
        # ValueError also covers integers past the digit limit
        return ParseAttempt("strict", False, detail=str(e) or type(e).__name__)


def _parse_bracketed(text: str) -> ParseAttempt:
    match = _BRACKETED_ARRAY_RE.search(text)
    if not match:
        return ParseAttempt("bracketed", False, detail="no bracketed array in text")
    try:
        return ParseAttempt("bracketed", True, json.loads(match.group(0)))
    except (ValueError, RecursionError) as e:
        return ParseAttempt("bracketed", False, value=match.group(0), detail=str(e) or type(e).__name__)


PARSE_STAGES: Tuple[Callable[[str], ParseAttempt], ...] = (_parse_strict, _parse_bracketed)


def parse_tag_payload(text: str) -> Any:
    """Run the parse stages in order and return the first JSON value that parses."""
    trimmed = text.strip()
    attempts: List[ParseAttempt] = []
    for stage in PARSE_STAGES:
        attempt = stage(trimmed)
        attempts.append(attempt)
        if attempt.ok:
            logging.debug("Parsed tags (%s): %s", attempt.stage, attempt.value)
            return attempt.value
        logging.debug("Tag parse stage '%s' failed: %s", attempt.stage, attempt.detail)

    extracted = attempts[-1].value
    if extracted:
        raise UnparsableTagsError(f"Failed to parse extracted array: {extracted[:500]}", extracted, attempts)
    raise UnparsableTagsError(f"Failed to parse tags from LLM response: {trimmed[:500]}", trimmed, attempts)


def resolve_tag_candidates(response: Any) -> Any:
    """Turn a chat-completion reply into the candidate JSON value (unvalidated)."""
    return parse_tag_payload(candidate_text(response))


def validate_and_normalize_tags(raw_tags: Any) -> List[str]:
    """Lower-case, trim, keep 1-3 word strings, first 5, deduplicated. Never raises."""
    tags = raw_tags
    if not isinstance(tags, list) and isinstance(tags, dict) and tags.get("tags"):
        tags = tags["tags"]
    if not isinstance(tags, list):
        return []

    cleaned = [t.strip().lower() for t in tags if isinstance(t, str) and t.strip()]
    cleaned = [t for t in cleaned if 1 <= len(t.split()) <= MAX_TAG_WORDS][:MAX_TAGS]
    return list(dict.fromkeys(cleaned))
