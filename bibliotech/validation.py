"""Form-boundary validation, run before any remote call."""
import re
from typing import Any, Dict

from bibliotech.errors import ValidationFailure

YEAR_PATTERN = re.compile(r"^\d{4}$")

MISSING_FIELDS_MESSAGE = "Please fill in all fields"
YEAR_MESSAGE = "Year must be 4 digits"


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def validate_author_fields(fields: Dict[str, Any]) -> Dict[str, str]:
    """
    Check and normalize author input.

    Args:
        fields: Mapping with first_name and last_name

    Returns:
        Trimmed fields ready for the remote store

    Raises:
        ValidationFailure: if either name is missing or blank
    """
    first_name = _text(fields.get("first_name"))
    last_name = _text(fields.get("last_name"))

    if not first_name or not last_name:
        raise ValidationFailure(MISSING_FIELDS_MESSAGE)

    return {"first_name": first_name, "last_name": last_name}


def validate_book_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Check and normalize book input.

    The year is accepted as an int or a string but must be exactly four
    digits in its string form, so "81" and "19999" are both rejected.

    Args:
        fields: Mapping with author_id, isbn, title and year

    Returns:
        Trimmed fields with year converted to int

    Raises:
        ValidationFailure: if a field is missing or the year is malformed
    """
    author_id = _text(fields.get("author_id"))
    isbn = _text(fields.get("isbn"))
    title = _text(fields.get("title"))
    year = _text(fields.get("year"))

    if not author_id or not isbn or not title or not year:
        raise ValidationFailure(MISSING_FIELDS_MESSAGE)

    if not YEAR_PATTERN.match(year):
        raise ValidationFailure(YEAR_MESSAGE)

    return {
        "author_id": author_id,
        "isbn": isbn,
        "title": title,
        "year": int(year)
    }
