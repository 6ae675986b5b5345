import json
import logging
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

ResponseTuple = Tuple[Optional[dict], Dict[str, Any]]

_call_counts: Dict[Tuple[str, str], int] = defaultdict(int)


def reset() -> None:
    """Reset internal call counters (useful for tests and fresh CLI runs)."""
    _call_counts.clear()


def is_mock_model(model: str) -> bool:
    return bool(model) and model.startswith("TEST/")


def _candidate_paths(base: Path, task: str, index: int) -> Iterable[Path]:
    stem = base.stem
    yield base.with_name(f"{stem}.{task}.{index}.json")
    if index == 0:
        yield base.with_name(f"{stem}.{task}.json")


def _as_chat_completion(response: Any) -> Optional[dict]:
    """Wrap bare payloads (a tag list, a string) into a chat-completion reply."""
    if response is None:
        return None
    if isinstance(response, dict) and "choices" in response:
        return response
    content = response if isinstance(response, str) else json.dumps(response)
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def fetch(file_path: str, task: str = "autotag") -> ResponseTuple:
    """
    Load a canned reply stored next to the PDF, e.g. `invoice.autotag.json`
    or `invoice.autotag.1.json` for the second call on the same file.
    Returns (response, usage); (None, {"cost": 0.0}) if no file exists.
    """
    path = Path(file_path)
    key = (str(path.resolve()), task)
    index = _call_counts[key]
    _call_counts[key] += 1
    candidates = list(_candidate_paths(path, task, index))

    for candidate in candidates:
        if not candidate.exists():
            continue
        try:
            with candidate.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logging.warning("Failed to load mock response '%s': %s", candidate, exc)
            break

        if isinstance(payload, dict) and "response" in payload:
            response = payload["response"]
            usage = payload.get("usage", {"cost": 0.0})
        else:
            response, usage = payload, {"cost": 0.0}
        if not isinstance(usage, dict):
            usage = {"cost": float(usage)}

        logging.debug("Loaded mock response '%s' for %s (task=%s, call=%d).",
                      candidate, path.name, task, index)
        return _as_chat_completion(response), usage

    logging.info(
        "Mock response not found for %s (task=%s, call=%d). Checked %s.",
        path.name, task, index, ", ".join(str(p) for p in candidates),
    )
    return None, {"cost": 0.0}
