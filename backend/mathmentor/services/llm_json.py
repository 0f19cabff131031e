# mathmentor/services/llm_json.py
import json
from typing import Any, Optional


def strip_code_fences(text: str) -> str:
    t = (text or "").strip()
    # common model wrappers: ```json ... ``` or ``` ...
    if t.startswith("```"):
        t = t[3:]
        # model may leave 'json\n{...}'
        if t[:4].lower() == "json":
            t = t[4:]
    if t.endswith("```"):
        t = t[:-3]
    return t.strip()


def _slice_between(text: str, opener: str, closer: str) -> Optional[str]:
    start, end = text.find(opener), text.rfind(closer) + 1
    if start != -1 and end > start:
        return text[start:end]
    return None


def parse_json_object(text: str) -> Optional[dict]:
    """First {...} block of a model reply as a dict, or None when it does not decode."""
    cleaned = strip_code_fences(text)
    block = _slice_between(cleaned, "{", "}")
    if block is None:
        return None
    try:
        data = json.loads(block)
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def parse_json_array(text: str) -> Optional[list]:
    """Outermost [...] block of a model reply as a list, or None when it does not decode."""
    cleaned = strip_code_fences(text)
    block = _slice_between(cleaned, "[", "]")
    if block is None:
        return None
    try:
        data: Any = json.loads(block)
    except ValueError:
        return None
    return data if isinstance(data, list) else None
