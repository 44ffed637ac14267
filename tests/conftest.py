"""Shared fixtures: an in-memory remote store and a session around it."""
import asyncio
import itertools
from dataclasses import replace

import pytest

from bibliotech.errors import RemoteFailure
from bibliotech.models import Author, Book
from bibliotech.notifications import Notifier
from bibliotech.session import LibrarySession

FK_MESSAGE = (
    'update or delete on table "authors" violates foreign key constraint '
    '"books_author_id_fkey" on table "books"'
)


class FakeStore:
    """
    In-memory stand-in for the remote store.

    Behaves like the real tables: assigns ids and timestamps, enforces the
    books -> authors foreign key and rejects missing rows. Tests can make
    the next call to a method fail, or hold every call at ``gate`` to
    simulate a request in flight.
    """

    def __init__(self):
        self.authors = {}
        self.books = {}
        self.calls = []
        self.failures = {}
        self.gate = None
        self.closed = False
        self._ids = itertools.count(1)
        self._clock = itertools.count(1)

    def _now(self):
        return f"2024-01-01T00:{next(self._clock):05d}"

    def fail_next(self, method, message="connection refused"):
        self.failures[method] = message

    def count(self, method):
        return self.calls.count(method)

    async def _enter(self, method):
        self.calls.append(method)
        if self.gate is not None:
            await self.gate.wait()
        if method in self.failures:
            raise RemoteFailure(self.failures.pop(method))

    def seed_author(self, first_name, last_name):
        now = self._now()
        author = Author(f"a{next(self._ids)}", first_name, last_name, now, now)
        self.authors[author.id] = author
        return replace(author)

    def seed_book(self, author_id, isbn, title, year):
        now = self._now()
        book = Book(f"b{next(self._ids)}", author_id, isbn, title, year, now, now)
        self.books[book.id] = book
        return replace(book)

    def _joined(self, book):
        author = self.authors.get(book.author_id)
        return replace(book), replace(author) if author else None

    async def list_authors(self):
        await self._enter("list_authors")
        return [replace(a) for a in sorted(self.authors.values(), key=lambda a: a.last_name)]

    async def list_books_with_author(self):
        await self._enter("list_books_with_author")
        return [self._joined(b) for b in sorted(self.books.values(), key=lambda b: b.title)]

    async def insert_author(self, fields):
        await self._enter("insert_author")
        return self.seed_author(fields["first_name"], fields["last_name"])

    async def update_author(self, author_id, fields):
        await self._enter("update_author")
        if author_id not in self.authors:
            raise RemoteFailure(f"Author {author_id} not found")
        author = replace(self.authors[author_id], updated_at=self._now(), **fields)
        self.authors[author_id] = author
        return replace(author)

    async def delete_author(self, author_id):
        await self._enter("delete_author")
        if author_id not in self.authors:
            raise RemoteFailure(f"No row with id {author_id} in authors")
        if any(b.author_id == author_id for b in self.books.values()):
            raise RemoteFailure(FK_MESSAGE)
        del self.authors[author_id]

    async def insert_book(self, fields):
        await self._enter("insert_book")
        if fields["author_id"] not in self.authors:
            raise RemoteFailure('insert or update on table "books" violates foreign key constraint')
        book = self.seed_book(fields["author_id"], fields["isbn"], fields["title"], fields["year"])
        return self._joined(book)

    async def update_book(self, book_id, fields):
        await self._enter("update_book")
        if book_id not in self.books:
            raise RemoteFailure(f"Book {book_id} not found")
        if fields["author_id"] not in self.authors:
            raise RemoteFailure('insert or update on table "books" violates foreign key constraint')
        book = replace(self.books[book_id], updated_at=self._now(), **fields)
        self.books[book_id] = book
        return self._joined(book)

    async def delete_book(self, book_id):
        await self._enter("delete_book")
        if book_id not in self.books:
            raise RemoteFailure(f"No row with id {book_id} in books")
        del self.books[book_id]

    async def close(self):
        self.closed = True


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def session(store, notifier):
    return LibrarySession(store, notifier)


@pytest.fixture
def run():
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run
