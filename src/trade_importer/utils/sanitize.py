"""Sanitization of text written to CSV renderings."""

from typing import Optional

# Leading characters that make spreadsheet applications evaluate a cell
_FORMULA_CHARS = ("=", "+", "-", "@", "\t", "\r", "\n", "|")


def sanitize_for_csv(value: Optional[str]) -> Optional[str]:
    """Guard a text cell against formula injection.

    Exchange ids, notes and error messages come from outside the program;
    a value starting with a formula character is prefixed with a single
    quote so spreadsheet tools show it as text. Embedded newlines are
    flattened to spaces to keep one record per line.

    Args:
        value: Text to sanitize, or None.

    Returns:
        Sanitized text, or None if input was None.
    """
    if value is None:
        return None

    value = value.replace("\r\n", " ").replace("\n", " ").replace("\r", " ")
    if value.startswith(_FORMULA_CHARS):
        return "'" + value
    return value
