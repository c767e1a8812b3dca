import json
import logging
import re
from enum import Enum
from typing import Any, Iterable, Iterator, List

logger = logging.getLogger(__name__)

# Runs of whitespace and punctuation collapse into a single split point
DELIMITER_PATTERN = re.compile(r'[\s,.;:()"]+')
NUMERIC_PATTERN = re.compile(r"[0-9]+")
MIN_TERM_LENGTH = 3


class JsonKind(Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"
    ARRAY = "array"
    OBJECT = "object"


def json_kind(value: Any) -> JsonKind:
    """Classify a value produced by json.loads."""
    # bool is a subclass of int, so it must be checked first
    if isinstance(value, bool):
        return JsonKind.BOOLEAN
    if isinstance(value, str):
        return JsonKind.STRING
    if isinstance(value, (int, float)):
        return JsonKind.NUMBER
    if value is None:
        return JsonKind.NULL
    if isinstance(value, list):
        return JsonKind.ARRAY
    if isinstance(value, dict):
        return JsonKind.OBJECT
    raise TypeError(f"Not a JSON value: {type(value).__name__}")


def split_raw_tokens(text: str) -> List[str]:
    return DELIMITER_PATTERN.split(text)


def iter_json_strings(value: Any) -> Iterator[str]:
    """
    Yield every string leaf of a parsed JSON document in document order.

    Object keys are never yielded; numbers, booleans and nulls are skipped.
    """
    stack = [value]
    while stack:
        current = stack.pop()
        kind = json_kind(current)
        if kind is JsonKind.STRING:
            yield current
        elif kind is JsonKind.OBJECT:
            stack.extend(reversed(list(current.values())))
        elif kind is JsonKind.ARRAY:
            stack.extend(reversed(current))


def is_term(token: str) -> bool:
    return len(token) >= MIN_TERM_LENGTH and not NUMERIC_PATTERN.fullmatch(token)


def normalize_terms(raw_tokens: Iterable[str]) -> List[str]:
    """Trim, filter short and purely numeric tokens, dedupe and sort."""
    terms = set()
    for token in raw_tokens:
        token = token.strip()
        if is_term(token):
            terms.add(token)
    return sorted(terms)


def _json_tokens(text: str) -> List[str]:
    data = json.loads(text)
    tokens: List[str] = []
    for leaf in iter_json_strings(data):
        tokens.extend(split_raw_tokens(leaf))
    return tokens


def tokenize(text: str, file_type: str = "") -> List[str]:
    """
    Extract the sorted, de-duplicated candidate terms of a document.

    JSON content contributes only its string values; anything that fails to
    parse as JSON is tokenized as flat text. Never raises.

    Args:
        text (str): Decoded document text
        file_type (str): Declared MIME type of the original upload

    Returns:
        List[str]: Unique terms in ascending code-point order
    """
    text = text or ""
    if "json" in (file_type or "").lower():
        try:
            return normalize_terms(_json_tokens(text))
        except (ValueError, RecursionError) as e:
            logger.warning("JSON parse failed, tokenizing as plain text: %s", e)
    return normalize_terms(split_raw_tokens(text))


def parse_manual_terms(manual_text: str) -> List[str]:
    """Comma-separated user input -> trimmed, non-blank terms, first occurrence kept."""
    if not manual_text:
        return []
    terms = (t.strip() for t in manual_text.split(","))
    return list(dict.fromkeys(t for t in terms if t))


def working_terms(selected: Iterable[str], manual_text: str = "") -> List[str]:
    """
    Union of the selected master terms and the manually typed terms.

    Recomputed from its two sources on every call; blank entries are dropped
    and duplicates keep their first position (selected terms come first).
    """
    chosen = (t.strip() for t in selected or [])
    combined = [t for t in chosen if t] + parse_manual_terms(manual_text)
    return list(dict.fromkeys(combined))
