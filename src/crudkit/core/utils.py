"""
Utility functions for crudkit.

Includes:
- Case conversion (camelCase <-> snake_case)
- Human readable titles for field and relation names
- Blank checks for raw request values
"""

from __future__ import annotations

import re
from typing import Any


# =============================================================================
# Case conversion utilities
# =============================================================================

# Pre-compiled regex patterns for better performance
_CAMEL_TO_SNAKE_PATTERN = re.compile(r'(?<!^)(?=[A-Z])')
_SNAKE_TO_CAMEL_PATTERN = re.compile(r'_([a-z0-9])')


def to_snake_case(name: str) -> str:
    """
    Convert camelCase to snake_case.

    Examples:
        hireDate -> hire_date
        displayName -> display_name
        HTTPResponse -> http_response
    """
    # Handle consecutive uppercase (HTTP -> http)
    result = re.sub(r'([A-Z]+)([A-Z][a-z])', r'\1_\2', name)
    # Handle standard camelCase
    result = _CAMEL_TO_SNAKE_PATTERN.sub('_', result)
    return result.lower()


def to_camel_case(name: str) -> str:
    """
    Convert snake_case to camelCase.

    Examples:
        hire_date -> hireDate
        display_name -> displayName
    """
    def replace_underscore(match):
        return match.group(1).upper()

    return _SNAKE_TO_CAMEL_PATTERN.sub(replace_underscore, name)


def humanize(name: str) -> str:
    """
    Turn an attribute name into a label.

    A trailing ``_id`` is dropped, underscores become spaces and only
    the first letter is capitalized.

    Examples:
        author_id -> Author
        hire_date -> Hire date
        book_copies -> Book copies
        displayName -> Display name
    """
    text = to_snake_case(name)
    if text.endswith("_id") and text != "_id":
        text = text[:-3]
    text = text.replace("_", " ").strip()
    return text[:1].upper() + text[1:]


# =============================================================================
# Raw value helpers
# =============================================================================


def is_blank(value: Any) -> bool:
    """True for None, whitespace-only strings and empty containers."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False
