"""Contract every remote store gateway implements.

Each method either returns its success payload or raises
:class:`bibliotech.errors.RemoteFailure` carrying a human-readable message.
"""
from typing import Any, Dict, List, Optional, Protocol, Tuple

from bibliotech.models import Author, Book

BookWithAuthor = Tuple[Book, Optional[Author]]


class RemoteStore(Protocol):
    """CRUD against the remote ``authors`` and ``books`` tables."""

    async def list_authors(self) -> List[Author]:
        """All authors, ordered by last name ascending."""
        ...

    async def list_books_with_author(self) -> List[BookWithAuthor]:
        """All books joined to their author, ordered by title ascending."""
        ...

    async def insert_author(self, fields: Dict[str, Any]) -> Author:
        ...

    async def update_author(self, author_id: str, fields: Dict[str, Any]) -> Author:
        ...

    async def delete_author(self, author_id: str) -> None:
        """Rejected by the store while books still reference the author."""
        ...

    async def insert_book(self, fields: Dict[str, Any]) -> BookWithAuthor:
        ...

    async def update_book(self, book_id: str, fields: Dict[str, Any]) -> BookWithAuthor:
        ...

    async def delete_book(self, book_id: str) -> None:
        ...

    async def close(self) -> None:
        ...
