"""PostgreSQL remote store for authors and books."""
import asyncio
import logging
from typing import Any, Dict, List

import psycopg2
from psycopg2 import pool
from psycopg2.extras import RealDictCursor

from bibliotech.errors import RemoteFailure
from bibliotech.gateway import BookWithAuthor
from bibliotech.models import Author
from bibliotech.parse import (
    author_row,
    book_row,
    parse_author,
    parse_authors_response,
    parse_book_with_author,
    parse_books_response,
)

logger = logging.getLogger(__name__)

BOOK_WITH_AUTHOR_SELECT = """
    SELECT b.id, b.author_id, b.isbn, b.title, b.year, b.created_at, b.updated_at,
           a.first_name AS author_first_name, a.last_name AS author_last_name
    FROM {source} b
    JOIN authors a ON a.id = b.author_id
"""

BOOK_WITH_AUTHOR_SQL = BOOK_WITH_AUTHOR_SELECT.format(source="books")

# Writes a book and reads it back joined to its author in one statement
WRITE_BOOK_SQL = "WITH written AS ({write}) " + BOOK_WITH_AUTHOR_SELECT.format(source="written")


class Database:
    """PostgreSQL database with connection pooling."""

    def __init__(self, connection_string: str, min_conn: int = 1, max_conn: int = 10):
        """
        Initialize database connection pool.

        Args:
            connection_string: PostgreSQL connection string
            min_conn: Minimum connections in pool
            max_conn: Maximum connections in pool
        """
        self.connection_pool = psycopg2.pool.ThreadedConnectionPool(
            min_conn,
            max_conn,
            connection_string
        )

        if self.connection_pool:
            logger.info("Database connection pool created successfully")
        else:
            raise RemoteFailure("Failed to create connection pool")

    def init_schema(self):
        """Create database tables if they don't exist."""
        conn = self.connection_pool.getconn()
        try:
            with conn.cursor() as cur:
                cur.execute("""
                    CREATE TABLE IF NOT EXISTS authors (
                        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                        first_name TEXT NOT NULL,
                        last_name TEXT NOT NULL,
                        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
                        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
                    )
                """)

                # RESTRICT makes deleting an author with books fail remotely
                cur.execute("""
                    CREATE TABLE IF NOT EXISTS books (
                        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                        author_id UUID NOT NULL REFERENCES authors (id) ON DELETE RESTRICT,
                        isbn TEXT NOT NULL,
                        title TEXT NOT NULL,
                        year INTEGER NOT NULL CHECK (year BETWEEN 1000 AND 9999),
                        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
                        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
                    )
                """)

                cur.execute("""
                    CREATE INDEX IF NOT EXISTS idx_authors_last_name
                    ON authors (last_name)
                """)

                cur.execute("""
                    CREATE INDEX IF NOT EXISTS idx_books_title
                    ON books (title)
                """)

                cur.execute("""
                    CREATE INDEX IF NOT EXISTS idx_books_author
                    ON books (author_id)
                """)

                conn.commit()
                logger.info("Database schema initialized successfully")

        finally:
            self.connection_pool.putconn(conn)

    def _run(self, sql: str, params: tuple = (), fetch: str = "all") -> Any:
        """
        Execute one statement in its own transaction.

        Args:
            sql: Statement to execute
            params: Query parameters
            fetch: "all", "one" or "count"

        Returns:
            Rows as dicts, a single row, or the affected row count

        Raises:
            RemoteFailure: if the statement is rejected
        """
        conn = self.connection_pool.getconn()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(sql, params)
                if fetch == "all":
                    result = cur.fetchall()
                elif fetch == "one":
                    result = cur.fetchone()
                else:
                    result = cur.rowcount
                conn.commit()
                return result
        except psycopg2.Error as e:
            conn.rollback()
            message = (e.pgerror or str(e)).strip()
            logger.error(f"Statement failed: {message}")
            raise RemoteFailure(message) from e
        finally:
            self.connection_pool.putconn(conn)

    # Blocking operations, run on worker threads by the async wrappers below

    def _list_authors(self) -> List[Author]:
        rows = self._run("SELECT * FROM authors ORDER BY last_name ASC")
        return parse_authors_response(rows)

    def _list_books_with_author(self) -> List[BookWithAuthor]:
        rows = self._run(BOOK_WITH_AUTHOR_SQL + " ORDER BY b.title ASC")
        return parse_books_response([_nest_author(row) for row in rows])

    def _insert_author(self, fields: Dict[str, Any]) -> Author:
        values = author_row(fields)
        row = self._run(
            "INSERT INTO authors (first_name, last_name) VALUES (%s, %s) RETURNING *",
            (values["first_name"], values["last_name"]),
            fetch="one"
        )
        return parse_author(row)

    def _update_author(self, author_id: str, fields: Dict[str, Any]) -> Author:
        values = author_row(fields)
        row = self._run(
            """
            UPDATE authors SET first_name = %s, last_name = %s, updated_at = CURRENT_TIMESTAMP
            WHERE id = %s RETURNING *
            """,
            (values["first_name"], values["last_name"], author_id),
            fetch="one"
        )
        if row is None:
            raise RemoteFailure(f"Author {author_id} not found")
        return parse_author(row)

    def _delete(self, table: str, row_id: str) -> None:
        # Table names come from the fixed set below, never from input
        deleted = self._run(f"DELETE FROM {table} WHERE id = %s", (row_id,), fetch="count")
        if not deleted:
            raise RemoteFailure(f"No row with id {row_id} in {table}")

    def _insert_book(self, fields: Dict[str, Any]) -> BookWithAuthor:
        values = book_row(fields)
        row = self._run(
            WRITE_BOOK_SQL.format(
                write="INSERT INTO books (author_id, isbn, title, year) "
                      "VALUES (%s, %s, %s, %s) RETURNING *"
            ),
            (values["author_id"], values["isbn"], values["title"], values["year"]),
            fetch="one"
        )
        if row is None:
            raise RemoteFailure("Inserted book could not be read back")
        return parse_book_with_author(_nest_author(row))

    def _update_book(self, book_id: str, fields: Dict[str, Any]) -> BookWithAuthor:
        values = book_row(fields)
        row = self._run(
            WRITE_BOOK_SQL.format(
                write="UPDATE books SET author_id = %s, isbn = %s, title = %s, year = %s, "
                      "updated_at = CURRENT_TIMESTAMP WHERE id = %s RETURNING *"
            ),
            (values["author_id"], values["isbn"], values["title"], values["year"], book_id),
            fetch="one"
        )
        if row is None:
            raise RemoteFailure(f"Book {book_id} not found")
        return parse_book_with_author(_nest_author(row))

    # Gateway interface

    async def list_authors(self) -> List[Author]:
        return await asyncio.to_thread(self._list_authors)

    async def list_books_with_author(self) -> List[BookWithAuthor]:
        return await asyncio.to_thread(self._list_books_with_author)

    async def insert_author(self, fields: Dict[str, Any]) -> Author:
        return await asyncio.to_thread(self._insert_author, fields)

    async def update_author(self, author_id: str, fields: Dict[str, Any]) -> Author:
        return await asyncio.to_thread(self._update_author, author_id, fields)

    async def delete_author(self, author_id: str) -> None:
        await asyncio.to_thread(self._delete, "authors", author_id)

    async def insert_book(self, fields: Dict[str, Any]) -> BookWithAuthor:
        return await asyncio.to_thread(self._insert_book, fields)

    async def update_book(self, book_id: str, fields: Dict[str, Any]) -> BookWithAuthor:
        return await asyncio.to_thread(self._update_book, book_id, fields)

    async def delete_book(self, book_id: str) -> None:
        await asyncio.to_thread(self._delete, "books", book_id)

    async def close(self):
        """Close all connections in the pool."""
        if self.connection_pool:
            self.connection_pool.closeall()
            logger.info("Database connection pool closed")

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()


def _nest_author(row: Dict[str, Any]) -> Dict[str, Any]:
    """Reshape a flat joined row into the REST layout with a nested author."""
    row = dict(row)
    row["authors"] = {
        "id": row.get("author_id"),
        "first_name": row.pop("author_first_name", None),
        "last_name": row.pop("author_last_name", None)
    }
    return row
