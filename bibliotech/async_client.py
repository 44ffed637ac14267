"""Async HTTP gateway for a PostgREST (Supabase) remote store."""
import logging
from typing import Any, Dict, List, Optional

import httpx

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

BOOK_SELECT = "*,authors(id,first_name,last_name)"


class AsyncRestStore:
    """Async client for the authors and books tables."""

    REST_PATH = "/rest/v1"

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: int = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize async client.

        Args:
            base_url: Project URL, e.g. https://xyz.supabase.co
            api_key: Anon or service key sent with every request
            timeout: Request timeout
            transport: Optional transport override (tests use MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"

        # Create async HTTP client
        self.client = httpx.AsyncClient(
            base_url=self.base_url + self.REST_PATH,
            headers=headers,
            timeout=timeout,
            transport=transport
        )

    async def _request(
        self,
        method: str,
        table: str,
        params: Optional[Dict[str, str]] = None,
        json: Optional[Dict[str, Any]] = None,
        single: bool = False
    ) -> Any:
        """
        Send one request and return the decoded body.

        Args:
            method: HTTP method
            table: Table name
            params: PostgREST query parameters
            json: Request body
            single: Ask for exactly one row back as an object

        Returns:
            Decoded JSON body, or None for empty responses

        Raises:
            RemoteFailure: on transport errors and non-2xx responses
        """
        headers = {}
        if method in ("POST", "PATCH", "DELETE"):
            headers["Prefer"] = "return=representation"
        if single:
            headers["Accept"] = "application/vnd.pgrst.object+json"

        try:
            logger.info(f"{method} {table} params={params}")
            response = await self.client.request(
                method, f"/{table}", params=params, json=json, headers=headers
            )
        except httpx.HTTPError as e:
            logger.error(f"Request to {table} failed: {e}")
            raise RemoteFailure(str(e) or type(e).__name__) from e

        logger.debug(f"{method} {table} response: {response.status_code} {response.text}")

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(f"Status {response.status_code} for {method} {table}: {message}")
            raise RemoteFailure(message)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteFailure(f"Unreadable response from {table}") from e

    async def list_authors(self) -> List[Author]:
        rows = await self._request(
            "GET", "authors", params={"select": "*", "order": "last_name.asc"}
        )
        return parse_authors_response(rows or [])

    async def list_books_with_author(self) -> List[BookWithAuthor]:
        rows = await self._request(
            "GET", "books", params={"select": BOOK_SELECT, "order": "title.asc"}
        )
        return parse_books_response(rows or [])

    async def insert_author(self, fields: Dict[str, Any]) -> Author:
        row = await self._request(
            "POST", "authors", params={"select": "*"}, json=author_row(fields), single=True
        )
        return _require(parse_author(row or {}), "author")

    async def update_author(self, author_id: str, fields: Dict[str, Any]) -> Author:
        row = await self._request(
            "PATCH", "authors",
            params={"id": f"eq.{author_id}", "select": "*"},
            json=author_row(fields),
            single=True
        )
        return _require(parse_author(row or {}), "author")

    async def delete_author(self, author_id: str) -> None:
        await self._delete("authors", author_id)

    async def insert_book(self, fields: Dict[str, Any]) -> BookWithAuthor:
        row = await self._request(
            "POST", "books", params={"select": BOOK_SELECT}, json=book_row(fields), single=True
        )
        return _require(parse_book_with_author(row or {}), "book")

    async def update_book(self, book_id: str, fields: Dict[str, Any]) -> BookWithAuthor:
        row = await self._request(
            "PATCH", "books",
            params={"id": f"eq.{book_id}", "select": BOOK_SELECT},
            json=book_row(fields),
            single=True
        )
        return _require(parse_book_with_author(row or {}), "book")

    async def delete_book(self, book_id: str) -> None:
        await self._delete("books", book_id)

    async def _delete(self, table: str, row_id: str) -> None:
        # PostgREST answers 200 with [] when nothing matched
        rows = await self._request(
            "DELETE", table, params={"id": f"eq.{row_id}", "select": "id"}
        )
        if not rows:
            raise RemoteFailure(f"No row with id {row_id} in {table}")

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()


def _error_message(response: httpx.Response) -> str:
    """Pull the human-readable message out of a PostgREST error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"

    if isinstance(body, dict) and body.get("message"):
        return body["message"]
    return f"HTTP {response.status_code}"


def _require(parsed, kind: str):
    if parsed is None:
        raise RemoteFailure(f"Remote store returned an unreadable {kind} row")
    return parsed
