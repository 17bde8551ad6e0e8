"""
Resilient decoding of LLM analysis output.

Decoding runs in tiers: strip code fences, repair trailing commas, attempt a
strict JSON parse, and when that fails salvage `risks`, `opportunities` and
`summary` with pattern search. Nothing else is recovered on the salvage path.
"""
import json
import re
import logging
import threading
from typing import Any, Dict, FrozenSet, List, NamedTuple, Tuple

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY = "Error analyzing contract"
UNKNOWN = "Unknown"

_FENCE_PATTERN = re.compile(r'```(?:json)?\n?|\n?```', re.IGNORECASE)
_TRAILING_COMMA_OBJECT = re.compile(r',\s*}')
_TRAILING_COMMA_ARRAY = re.compile(r',\s*]')

# JSON string body, honouring backslash escapes
_STRING_BODY = r'((?:[^"\\]|\\.)*)'

_SUMMARY_PATTERN = re.compile(r'"summary"\s*:\s*"' + _STRING_BODY + '"', re.DOTALL)


class DecodeResult(NamedTuple):
    data: Dict[str, Any]
    degraded: bool
    recovered: FrozenSet[str]


_counter_lock = threading.Lock()
degraded_decode_count = 0


def _record_degraded() -> None:
    global degraded_decode_count
    with _counter_lock:
        degraded_decode_count += 1


def strip_code_fences(text: str) -> str:
    """Remove Markdown code fences (``` or ```json) and surrounding whitespace."""
    return _FENCE_PATTERN.sub('', text).strip()


def repair_trailing_commas(text: str) -> str:
    """Remove a comma that directly precedes a closing brace or bracket."""
    text = _TRAILING_COMMA_OBJECT.sub('}', text)
    return _TRAILING_COMMA_ARRAY.sub(']', text)


def clean_model_output(text: str) -> str:
    return repair_trailing_commas(strip_code_fences(text or ""))


def attempt_strict_decode(text: str) -> Dict[str, Any]:
    """
    Parse cleaned model output as strict JSON.

    Returns:
        The parsed object, as-is.

    Raises:
        ValueError: If the text is not valid JSON or is not a JSON object.
    """
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def _unescape(raw: str) -> str:
    try:
        return json.loads(f'"{raw}"')
    except ValueError:
        return raw


def _field_pattern(key: str):
    return re.compile(r'"' + re.escape(key) + r'"\s*:\s*"' + _STRING_BODY + '"', re.DOTALL)


def _salvage_list(text: str, list_key: str, title_key: str) -> Tuple[List[Dict[str, str]], bool]:
    """
    Recover {title_key, explanation} items from a `"list_key": [ ... ]` region.

    Returns:
        (items, anchor_found)
    """
    region = re.search(r'"' + re.escape(list_key) + r'"\s*:\s*\[([\s\S]*?)\]', text)
    if not region:
        return [], False

    title_pattern = _field_pattern(title_key)
    explanation_pattern = _field_pattern("explanation")

    items = []
    for fragment in region.group(1).split('},'):
        if not fragment.strip():
            continue
        title_match = title_pattern.search(fragment)
        explanation_match = explanation_pattern.search(fragment)
        items.append({
            title_key: _unescape(title_match.group(1)) if title_match else UNKNOWN,
            "explanation": _unescape(explanation_match.group(1)) if explanation_match else UNKNOWN,
        })
    return items, True


def attempt_salvage_decode(text: str) -> Tuple[Dict[str, Any], FrozenSet[str]]:
    """
    Recover risks, opportunities and summary from malformed model output.

    Args:
        text: Cleaned model output that failed strict parsing.

    Returns:
        (partial analysis, names of the anchors that were found)
    """
    recovered = set()

    risks, found = _salvage_list(text, "risks", "risk")
    if found:
        recovered.add("risks")

    opportunities, found = _salvage_list(text, "opportunities", "opportunity")
    if found:
        recovered.add("opportunities")

    summary = DEFAULT_SUMMARY
    summary_match = _SUMMARY_PATTERN.search(text)
    if summary_match:
        summary = _unescape(summary_match.group(1))
        recovered.add("summary")

    partial = {
        "risks": risks,
        "opportunities": opportunities,
        "summary": summary,
    }
    return partial, frozenset(recovered)


def decode_analysis(raw_text: str) -> DecodeResult:
    """
    Decode raw model output into an analysis mapping.

    Strict parse is tried first on fence-stripped, comma-repaired text. On
    failure the salvage path runs and the result is flagged as degraded.

    Args:
        raw_text: Raw completion text.

    Returns:
        DecodeResult with the mapping, the degraded flag and recovered anchors.
    """
    cleaned = clean_model_output(raw_text)

    try:
        data = attempt_strict_decode(cleaned)
        return DecodeResult(data, False, frozenset(data.keys()))
    except ValueError as e:
        logger.warning(f"Strict JSON decode failed, falling back to salvage: {e}")

    data, recovered = attempt_salvage_decode(cleaned)
    _record_degraded()
    logger.warning(
        f"Degraded analysis decode: recovered={sorted(recovered)}, "
        f"risks={len(data['risks'])}, opportunities={len(data['opportunities'])}, "
        f"total_degraded={degraded_decode_count}"
    )
    return DecodeResult(data, True, recovered)
