"""In-memory caches of the remote authors and books tables.

Caches are confirm-then-mutate: nothing changes locally until the remote
store has accepted the change, so a failed call never leaves a ghost or
duplicate entry behind. At most one update/remove may be in flight per id;
overlapping calls on the same id are rejected without touching the store.
"""
import logging
from typing import Any, Dict, Generic, List, Optional, Set, TypeVar

from bibliotech.errors import RemoteFailure, ValidationFailure
from bibliotech.gateway import RemoteStore
from bibliotech.models import Author, Book, OperationResult
from bibliotech.notifications import Notifier
from bibliotech.parse import deduplicate
from bibliotech.validation import validate_author_fields, validate_book_fields

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EntityCache(Generic[T]):
    """Local copy of one remote table, keyed by id."""

    entity = "record"
    plural = "records"

    def __init__(self, store: RemoteStore, notifier: Optional[Notifier] = None):
        self.store = store
        self.notifier = notifier or Notifier()
        self._records: Dict[str, T] = {}
        self._in_flight: Set[str] = set()
        self.is_loading = True
        self.loaded = False

    # Hooks for the concrete caches

    async def _fetch_all(self) -> List[T]:
        raise NotImplementedError

    async def _insert(self, fields: Dict[str, Any]) -> T:
        raise NotImplementedError

    async def _update(self, record_id: str, fields: Dict[str, Any]) -> T:
        raise NotImplementedError

    async def _delete(self, record_id: str) -> None:
        raise NotImplementedError

    def _validate(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        return dict(fields)

    def _describe(self, record: T) -> str:
        return getattr(record, "id", "")

    # Read access

    @property
    def records(self) -> List[T]:
        """Snapshot of the cached records in fetch/insert order."""
        return list(self._records.values())

    def by_id(self) -> Dict[str, T]:
        """Snapshot of the cache as an id -> record mapping."""
        return dict(self._records)

    def get(self, record_id: str) -> Optional[T]:
        return self._records.get(record_id)

    def __contains__(self, record_id: str) -> bool:
        return record_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    # Remote-backed operations

    async def load(self) -> OperationResult:
        """
        Replace the cache with the full remote collection.

        On failure the previous contents are kept. ``is_loading`` is cleared
        either way.
        """
        try:
            logger.info(f"Fetching {self.plural}...")
            records = await self._fetch_all()
            self._records = {record.id: record for record in deduplicate(records)}
            self.loaded = True
            logger.info(f"Loaded {len(self._records)} {self.plural}")
            return OperationResult(success=True)
        except RemoteFailure as e:
            self.notifier.error(f"Error fetching {self.plural}", e.message)
            return OperationResult(success=False, error=e.message)
        finally:
            self.is_loading = False

    refetch = load

    async def add(self, fields: Dict[str, Any]) -> OperationResult:
        """Create a record remotely, then append the confirmed record."""
        try:
            values = self._validate(fields)
        except ValidationFailure as e:
            return self._reject(e)

        try:
            logger.info(f"Attempting to add {self.entity}: {values}")
            record = await self._insert(values)
        except RemoteFailure as e:
            self.notifier.error(f"Error adding {self.entity}", e.message)
            return OperationResult(success=False, error=e.message)

        self._records[record.id] = record
        self.notifier.success(
            f"{self.entity.capitalize()} added",
            f"{self._describe(record)} has been added successfully."
        )
        return OperationResult(success=True, record=record)

    async def update(self, record_id: str, fields: Dict[str, Any]) -> OperationResult:
        """Update a record remotely, then swap in the full returned record."""
        try:
            values = self._validate(fields)
        except ValidationFailure as e:
            return self._reject(e)

        if not self._claim(record_id):
            return self._busy(record_id)

        try:
            logger.info(f"Attempting to update {self.entity}: {record_id} {values}")
            record = await self._update(record_id, values)
        except RemoteFailure as e:
            self.notifier.error(f"Error updating {self.entity}", e.message)
            return OperationResult(success=False, error=e.message)
        finally:
            self._in_flight.discard(record_id)

        # Only replace; a record dropped by a concurrent reload stays dropped
        if record_id in self._records:
            self._records[record_id] = record
        self.notifier.success(
            f"{self.entity.capitalize()} updated",
            f"{self._describe(record)} has been updated successfully."
        )
        return OperationResult(success=True, record=record)

    async def remove(self, record_id: str) -> OperationResult:
        """Delete a record remotely, then drop it from the cache."""
        if not self._claim(record_id):
            return self._busy(record_id)

        try:
            logger.info(f"Attempting to delete {self.entity}: {record_id}")
            await self._delete(record_id)
        except RemoteFailure as e:
            self.notifier.error(f"Error deleting {self.entity}", e.message)
            return OperationResult(success=False, error=e.message)
        finally:
            self._in_flight.discard(record_id)

        self._records.pop(record_id, None)
        self.notifier.success(
            f"{self.entity.capitalize()} deleted",
            f"{self.entity.capitalize()} has been deleted successfully."
        )
        return OperationResult(success=True)

    def is_busy(self, record_id: str) -> bool:
        return record_id in self._in_flight

    def _claim(self, record_id: str) -> bool:
        if record_id in self._in_flight:
            return False
        self._in_flight.add(record_id)
        return True

    def _busy(self, record_id: str) -> OperationResult:
        message = f"Another change to this {self.entity} is still in progress"
        logger.warning(f"Rejected overlapping change to {self.entity} {record_id}")
        self.notifier.error("Error", message)
        return OperationResult(success=False, error=message)

    def _reject(self, error: ValidationFailure) -> OperationResult:
        self.notifier.error("Error", error.message)
        return OperationResult(success=False, error=error.message)


class AuthorCache(EntityCache[Author]):
    entity = "author"
    plural = "authors"

    async def _fetch_all(self) -> List[Author]:
        return await self.store.list_authors()

    async def _insert(self, fields):
        return await self.store.insert_author(fields)

    async def _update(self, record_id, fields):
        return await self.store.update_author(record_id, fields)

    async def _delete(self, record_id):
        await self.store.delete_author(record_id)

    def _validate(self, fields):
        return validate_author_fields(fields)

    def _describe(self, record: Author) -> str:
        return record.full_name


class BookCache(EntityCache[Book]):
    """
    Books are cached without author names. The joined author the store
    returns is discarded; names come from the author cache at read time.
    """
    entity = "book"
    plural = "books"

    async def _fetch_all(self) -> List[Book]:
        return [book for book, _ in await self.store.list_books_with_author()]

    async def _insert(self, fields):
        book, _ = await self.store.insert_book(fields)
        return book

    async def _update(self, record_id, fields):
        book, _ = await self.store.update_book(record_id, fields)
        return book

    async def _delete(self, record_id):
        await self.store.delete_book(record_id)

    def _validate(self, fields):
        return validate_book_fields(fields)

    def _describe(self, record: Book) -> str:
        return f'"{record.title}"'

    def for_author(self, author_id: str) -> List[Book]:
        return [book for book in self._records.values() if book.author_id == author_id]
