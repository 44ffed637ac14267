"""Data models for authors and books."""
from dataclasses import dataclass
from typing import Optional


@dataclass
class Author:
    """Author record as stored remotely."""
    id: str
    first_name: str
    last_name: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def full_name(self) -> str:
        """Format as "First Last"."""
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class Book:
    """Book record; author_id is the only link to its author."""
    id: str
    author_id: str
    isbn: str
    title: str
    year: int
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass
class BookView:
    """Book enriched with its author's current names. Never persisted."""
    id: str
    author_id: str
    author_first_name: Optional[str]
    author_last_name: Optional[str]
    isbn: str
    title: str
    year: int
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def author_name(self) -> str:
        """Format the author as "First Last", or "Unknown" when unresolved."""
        names = [n for n in (self.author_first_name, self.author_last_name) if n]
        return " ".join(names) if names else "Unknown"


@dataclass
class OperationResult:
    """Outcome of a cache operation, for programmatic callers."""
    success: bool
    error: Optional[str] = None
    record: Optional[object] = None
