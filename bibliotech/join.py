"""Join books to the current author cache."""
import logging
from typing import Iterable, List, Mapping

from bibliotech.models import Author, Book, BookView

logger = logging.getLogger(__name__)


def resolve_book(book: Book, authors: Mapping[str, Author]) -> BookView:
    """
    Build the display view of a book from the cached authors.

    An author_id with no cached author leaves the name fields as None
    rather than failing.

    Args:
        book: Cached book
        authors: Current author cache, keyed by id

    Returns:
        BookView carrying the author's current names
    """
    author = authors.get(book.author_id)
    if author is None:
        logger.debug(f"No cached author {book.author_id} for book {book.id}")

    return BookView(
        id=book.id,
        author_id=book.author_id,
        author_first_name=author.first_name if author else None,
        author_last_name=author.last_name if author else None,
        isbn=book.isbn,
        title=book.title,
        year=book.year,
        created_at=book.created_at,
        updated_at=book.updated_at
    )


def resolve_books(books: Iterable[Book], authors: Mapping[str, Author]) -> List[BookView]:
    """Resolve every book, preserving order."""
    return [resolve_book(book, authors) for book in books]
