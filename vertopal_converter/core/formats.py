"""Format name helpers."""

from __future__ import annotations

from typing import Optional


def canonicalize_format(format_name: Optional[str]) -> Optional[str]:
    """Normalize a format[-type] string to its canonical form.

    Strips whitespace, lower-cases, and removes leading dots. Empty
    input (or input that is empty after normalization) becomes None.
    Applying it twice gives the same result as applying it once.

    >>> canonicalize_format(".PDF")
    'pdf'
    >>> canonicalize_format("  HTML ")
    'html'
    >>> canonicalize_format("SVG:Font")
    'svg:font'
    >>> canonicalize_format(None) is None
    True
    """
    if not format_name:
        return None
    format_name = format_name.lower()
    stripped = format_name.strip().lstrip(".")
    while stripped != format_name:
        format_name = stripped
        stripped = format_name.strip().lstrip(".")
    return format_name or None
