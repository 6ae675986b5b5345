import io
import logging
from contextlib import redirect_stderr, redirect_stdout
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlsplit

import litellm
from litellm import completion

from papraIngest.errors import LLMRequestError

APP_REFERER = "https://github.com/Nyokinokonoko/papra-ingest-tool"
APP_TITLE = "Papra Ingest Tool"
CHAT_API_PATH = "/api/v1"
# LiteLLM has no "never time out" setting; this is its own default made explicit
LLM_REQUEST_TIMEOUT = 600


def openrouter_model(model_name: str) -> str:
    """LiteLLM model id for an OpenRouter model name (e.g. openai/gpt-5-nano)."""
    if model_name.startswith("openrouter/"):
        return model_name
    return f"openrouter/{model_name}"


def chat_api_base(endpoint: str) -> str:
    """API base for the chat call: the endpoint's origin plus /api/v1.

    LiteLLM appends /chat/completions, so requests always go to
    <scheme>://<host>/api/v1/chat/completions whatever path the endpoint carries.
    """
    parts = urlsplit(endpoint.strip())
    if not parts.scheme or not parts.netloc:
        return endpoint.rstrip("/")
    return f"{parts.scheme}://{parts.netloc}{CHAT_API_PATH}"


def _litellm_cost(resp: Any) -> Optional[float]:
    try:
        return float(litellm.completion_cost(completion_response=resp))
    except Exception:
        # unknown model pricing
        return None


def _usage(resp: Any) -> Dict[str, Any]:
    raw_usage = getattr(resp, "usage", None)
    if raw_usage is None and isinstance(resp, dict):
        raw_usage = resp.get("usage")
    if not raw_usage:
        return {}
    if not isinstance(raw_usage, dict):
        raw_usage = raw_usage.model_dump() if hasattr(raw_usage, "model_dump") else dict(raw_usage)
    return {k: raw_usage.get(k, 0) for k in ("prompt_tokens", "completion_tokens", "total_tokens")}


def run_chat(
    model: str,
    messages: List[Dict[str, Any]],
    api_base: str,
    api_key: str,
    temperature: float = 0,
    max_tokens: Optional[int] = None,
) -> Tuple[Any, Dict[str, Any]]:
    """Send one chat completion to an OpenRouter-compatible endpoint via LiteLLM.

    Returns (response, usage). The response is returned untouched so callers
    can look at every message field, not just `content`. No retries are made;
    transport errors and non-2xx statuses raise LLMRequestError.
    """
    kwargs: Dict[str, Any] = {
        "model": openrouter_model(model),
        "messages": messages,
        "temperature": temperature,
        "api_base": api_base,
        "api_key": api_key,
        "extra_headers": {"HTTP-Referer": APP_REFERER, "X-Title": APP_TITLE},
        "num_retries": 0,
        "timeout": LLM_REQUEST_TIMEOUT,
    }
    if max_tokens is not None:
        kwargs["max_tokens"] = max_tokens

    logging.debug("LLM chat request: %s", {k: v for k, v in kwargs.items() if k not in ("messages", "api_key")})
    # Some providers/versions print to stdout/stderr; capture to keep the progress line clean
    _buf_out, _buf_err = io.StringIO(), io.StringIO()
    try:
        with redirect_stdout(_buf_out), redirect_stderr(_buf_err):
            resp = completion(**kwargs)
    except Exception as e:
        status = getattr(e, "status_code", None)
        body = getattr(e, "message", None) or str(e)
        raise LLMRequestError(status, body) from e
    finally:
        _out_text = _buf_out.getvalue().strip()
        _err_text = _buf_err.getvalue().strip()
        if _out_text:
            logging.debug("LiteLLM stdout: %s", _out_text)
        if _err_text:
            logging.debug("LiteLLM stderr: %s", _err_text)

    usage = _usage(resp)
    cost = _litellm_cost(resp)
    usage["cost"] = cost if cost is not None else 0.0
    return resp, usage
