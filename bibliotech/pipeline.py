"""Filter, sort and paginate cache snapshots for display.

Every function here is pure: it takes a list and the current control
values and returns a new list, so the view can be recomputed from scratch
whenever the cache or a control changes.
"""
import math
import unicodedata
from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Sequence, Tuple, TypeVar

from bibliotech.models import Author, BookView

T = TypeVar("T")

PAGE_SIZE = 5

ASC = "asc"
DESC = "desc"

AUTHOR_SEARCH_FIELDS = ("first_name", "last_name")
BOOK_SEARCH_FIELDS = ("author_first_name", "author_last_name", "isbn", "title", "year")

AUTHOR_SORT_FIELDS = ("last_name", "first_name")
BOOK_SORT_FIELDS = ("title", "author_last_name", "isbn", "year")

# Compared as numbers, everything else as text
NUMERIC_FIELDS = frozenset({"year"})


@dataclass
class Page(Generic[T]):
    """One page of a filtered, sorted list."""
    records: List[T]
    page: int
    page_size: int
    total_records: int
    total_pages: int


def _field_text(record: Any, field: str) -> str:
    value = getattr(record, field, None)
    if value is None:
        return ""
    return str(value)


def filter_records(records: Sequence[T], query: str, fields: Sequence[str]) -> List[T]:
    """
    Keep records where any search field contains the query.

    Matching is a case-insensitive substring test. An empty or
    whitespace-only query keeps every record in its original order.
    """
    if not query or not query.strip():
        return list(records)

    needle = query.casefold()
    return [
        record for record in records
        if any(needle in _field_text(record, field).casefold() for field in fields)
    ]


def filter_authors(authors: Sequence[Author], query: str) -> List[Author]:
    return filter_records(authors, query, AUTHOR_SEARCH_FIELDS)


def filter_books(books: Sequence[BookView], query: str) -> List[BookView]:
    return filter_records(books, query, BOOK_SEARCH_FIELDS)


def collation_key(value: str) -> Tuple[str, str]:
    """
    Case-insensitive, accent-aware key for text.

    Letters compare by their base form first, so "Émile" sorts with the
    e's ahead of "Zola"; the casefolded original only breaks ties.
    """
    folded = value.casefold()
    decomposed = unicodedata.normalize("NFKD", folded)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base, folded


def sort_key(field: str) -> Callable[[Any], Any]:
    """Key function for one sortable field."""
    if field in NUMERIC_FIELDS:
        def numeric(record):
            value = getattr(record, field, None)
            # Missing numbers sort first, ahead of every real value
            return (value is not None, value if value is not None else 0)
        return numeric

    def text(record):
        return collation_key(_field_text(record, field))
    return text


def sort_records(
    records: Sequence[T],
    field: str,
    direction: str = ASC,
    allowed_fields: Sequence[str] = ()
) -> List[T]:
    """
    Stable sort by one field.

    Records with equal keys keep their relative order in both directions,
    so paging stays reproducible across re-renders.

    Raises:
        ValueError: for an unknown direction, or a field outside allowed_fields
    """
    if direction not in (ASC, DESC):
        raise ValueError(f"Unknown sort direction: {direction}")
    if allowed_fields and field not in allowed_fields:
        raise ValueError(f"Cannot sort by {field}")

    # sorted() stays stable with reverse=True
    return sorted(records, key=sort_key(field), reverse=direction == DESC)


def total_pages(count: int, page_size: int = PAGE_SIZE) -> int:
    if page_size < 1:
        raise ValueError(f"Page size must be at least 1, got {page_size}")
    return math.ceil(count / page_size)


def paginate(records: Sequence[T], page: int, page_size: int = PAGE_SIZE) -> List[T]:
    """
    Slice out one page (1-indexed).

    Pages outside [1, total_pages] give an empty list instead of failing.
    """
    if page < 1:
        return []
    start = (page - 1) * page_size
    return list(records[start:start + page_size])


def run_pipeline(
    records: Sequence[T],
    search_fields: Sequence[str],
    search_query: str,
    sort_field: str,
    sort_direction: str = ASC,
    page: int = 1,
    page_size: int = PAGE_SIZE,
    sort_fields: Sequence[str] = ()
) -> Page[T]:
    """Filter, then sort, then paginate."""
    filtered = filter_records(records, search_query, search_fields)
    ordered = sort_records(filtered, sort_field, sort_direction, sort_fields)

    return Page(
        records=paginate(ordered, page, page_size),
        page=page,
        page_size=page_size,
        total_records=len(ordered),
        total_pages=total_pages(len(ordered), page_size)
    )
