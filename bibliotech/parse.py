"""Parse and normalize remote store rows."""
import logging
from typing import Dict, Any, List, Optional, Tuple, TypeVar

from bibliotech.models import Author, Book

logger = logging.getLogger(__name__)

T = TypeVar("T")


def parse_author(row: Dict[str, Any]) -> Optional[Author]:
    """
    Parse a single row of the authors table.

    Args:
        row: Row as returned by the remote store (snake_case columns)

    Returns:
        Author object or None if the row has no id
    """
    try:
        author_id = row.get("id")
        if not author_id:
            return None

        return Author(
            id=str(author_id),
            first_name=row.get("first_name") or "",
            last_name=row.get("last_name") or "",
            created_at=_timestamp(row.get("created_at")),
            updated_at=_timestamp(row.get("updated_at"))
        )
    except (AttributeError, TypeError) as e:
        logger.warning(f"Failed to parse author row: {e}")
        return None


def parse_book(row: Dict[str, Any]) -> Optional[Book]:
    """
    Parse a single row of the books table.

    Args:
        row: Row as returned by the remote store

    Returns:
        Book object or None if the row has no id or an unusable year
    """
    try:
        book_id = row.get("id")
        if not book_id:
            return None

        return Book(
            id=str(book_id),
            author_id=str(row.get("author_id", "")),
            isbn=row.get("isbn") or "",
            title=row.get("title") or "",
            year=int(row["year"]),
            created_at=_timestamp(row.get("created_at")),
            updated_at=_timestamp(row.get("updated_at"))
        )
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logger.warning(f"Failed to parse book row: {e}")
        return None


def parse_book_with_author(row: Dict[str, Any]) -> Optional[Tuple[Book, Optional[Author]]]:
    """
    Parse a book row that nests its author under "authors".

    The nested author only carries id and names; it is returned for
    callers that want it but the book itself never stores the names.
    """
    book = parse_book(row)
    if book is None:
        return None

    nested = row.get("authors")
    author = parse_author(nested) if isinstance(nested, dict) else None
    return book, author


def parse_authors_response(rows: List[Dict[str, Any]]) -> List[Author]:
    """Parse a list of author rows, skipping rows that fail to parse."""
    authors = []
    for row in rows:
        author = parse_author(row)
        if author:
            authors.append(author)
    return authors


def parse_books_response(rows: List[Dict[str, Any]]) -> List[Tuple[Book, Optional[Author]]]:
    """Parse a list of joined book rows, skipping rows that fail to parse."""
    books = []
    for row in rows:
        parsed = parse_book_with_author(row)
        if parsed:
            books.append(parsed)
    return books


def deduplicate(records: List[T]) -> List[T]:
    """
    Remove records with a repeated id, keeping the first occurrence.

    Args:
        records: Objects with an ``id`` attribute

    Returns:
        Deduplicated list, original order preserved
    """
    seen_ids = set()
    unique = []

    for record in records:
        if record.id not in seen_ids:
            seen_ids.add(record.id)
            unique.append(record)
        else:
            logger.warning(f"Dropping duplicate record with id {record.id}")

    return unique


def author_row(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Build the writable columns of an authors row."""
    return {
        "first_name": fields["first_name"],
        "last_name": fields["last_name"]
    }


def book_row(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Build the writable columns of a books row."""
    return {
        "author_id": fields["author_id"],
        "isbn": fields["isbn"],
        "title": fields["title"],
        "year": fields["year"]
    }


def _timestamp(value: Any) -> Optional[str]:
    if value is None:
        return None
    # psycopg2 hands back datetimes, the REST API ISO strings
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)
