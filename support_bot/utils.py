"""Shared utilities used across the support bot."""

import json
import re
from typing import Any, Optional


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("608 66 77 49")
        '608667749'
        >>> normalize_phone("+34 (608) 667-749")
        '+34608667749'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def normalize_order_number(value: str) -> str:
    """Strip whitespace and any leading '#' from a customer-typed order number.

    Examples:
        >>> normalize_order_number(" #1234 ")
        '1234'
    """
    return value.strip().lstrip("#").strip()


def emails_match(left: Optional[str], right: Optional[str]) -> bool:
    """Case-insensitive email comparison; empty values never match."""
    if not left or not right:
        return False
    return left.strip().lower() == right.strip().lower()


def extract_json_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` substring of ``text``, or None.

    Braces inside JSON string literals are ignored so values such as
    ``"note": "use {curly}"`` do not end the object early.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:index + 1]
        start = text.find("{", start + 1)
    return None


def parse_json_object(text: str) -> Optional[dict[str, Any]]:
    """Parse a JSON object out of possibly noisy LLM output.

    Tries the whole text first, then the first balanced ``{...}`` block.
    Returns None when neither yields a JSON object.
    """
    if not text:
        return None
    try:
        parsed = json.loads(text)
    except (ValueError, TypeError):
        parsed = None
    if isinstance(parsed, dict):
        return parsed

    block = extract_json_object(text)
    if block is None:
        return None
    try:
        parsed = json.loads(block)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None
