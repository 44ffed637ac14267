"""The store object a presentation layer holds for one session."""
import asyncio
import logging
from typing import List, Optional, Tuple

from bibliotech.cache import AuthorCache, BookCache
from bibliotech.gateway import RemoteStore
from bibliotech.join import resolve_books
from bibliotech.models import Author, BookView, OperationResult
from bibliotech.notifications import Notifier
from bibliotech.view import ListControls, ListViewModel

logger = logging.getLogger(__name__)


class LibrarySession:
    """
    Owns the author and book caches for one session.

    A session starts with both caches empty and loading. ``start`` fills
    them, ``close`` discards them and releases the store. Sessions share
    nothing, so several can run side by side.
    """

    def __init__(self, store: RemoteStore, notifier: Optional[Notifier] = None):
        self.store = store
        self.notifier = notifier or Notifier()
        self.authors = AuthorCache(store, self.notifier)
        self.books = BookCache(store, self.notifier)
        self.closed = False

    async def start(self) -> Tuple[OperationResult, OperationResult]:
        """Load both caches concurrently."""
        authors, books = await asyncio.gather(self.authors.load(), self.books.load())
        return authors, books

    @property
    def is_loading(self) -> bool:
        return self.authors.is_loading or self.books.is_loading

    @property
    def books_ready(self) -> bool:
        """Both caches have finished loading; joined views may be shown."""
        return not self.authors.is_loading and not self.books.is_loading

    def book_views(self) -> List[BookView]:
        """Join every cached book to its current author; empty until ready."""
        if not self.books_ready:
            return []
        return resolve_books(self.books.records, self.authors.by_id())

    def books_by_author(self, author_id: str) -> List[BookView]:
        """The books written by one author, as views."""
        if not self.books_ready:
            return []
        return resolve_books(self.books.for_author(author_id), self.authors.by_id())

    def find_author(self, author_id: str) -> Optional[Author]:
        return self.authors.get(author_id)

    def authors_page(self, controls: ListControls) -> ListViewModel[Author]:
        return controls.render(self.authors.records, is_loading=self.authors.is_loading)

    def books_page(self, controls: ListControls) -> ListViewModel[BookView]:
        return controls.render(self.book_views(), is_loading=not self.books_ready)

    async def close(self):
        """Discard both caches and release the store."""
        if self.closed:
            return
        self.authors = AuthorCache(self.store, self.notifier)
        self.books = BookCache(self.store, self.notifier)
        await self.store.close()
        self.closed = True
        logger.info("Session closed")

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
