"""Utility functions."""
from typing import Any


def to_text(value: Any) -> str:
    """Convert a cell value to trimmed text, returning "" if conversion fails."""
    try:
        return str(value).strip() if value is not None else ""
    except Exception:
        return ""
