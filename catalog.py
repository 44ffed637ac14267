#!/usr/bin/env python3
"""BiblioTech CLI - manage authors and books in the remote store."""
import argparse
import asyncio
import json
import logging
import sys

from tabulate import tabulate

from bibliotech.async_client import AsyncRestStore
from bibliotech.config import Config
from bibliotech.database import Database
from bibliotech.notifications import Notification, Notifier
from bibliotech.pipeline import ASC, AUTHOR_SORT_FIELDS, BOOK_SORT_FIELDS, DESC
from bibliotech.session import LibrarySession
from bibliotech.view import ListControls, author_controls, book_controls

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def build_store(config: Config):
    """Create the remote store selected by STORE_BACKEND."""
    if config.STORE_BACKEND == "postgres":
        db = Database(config.DATABASE_URL)
        db.init_schema()
        return db

    return AsyncRestStore(
        config.SUPABASE_URL,
        api_key=config.SUPABASE_KEY,
        timeout=config.DEFAULT_TIMEOUT
    )


def print_notification(notification: Notification):
    """Show a notification on the terminal."""
    marker = "❌" if notification.is_error else "✅"
    print(f"{marker} {notification.title}: {notification.description}")


def apply_controls(controls: ListControls, args):
    """Copy list options from the command line onto the controls."""
    if args.sort:
        controls.toggle_sort(args.sort)
    # --desc sets the direction; toggle_sort only picks the field
    controls.sort_direction = DESC if args.desc else ASC
    controls.set_search_query(args.search or "")
    controls.set_page(args.page)


def display_authors(view, session: LibrarySession, format_type: str, show_books: bool):
    """Display one page of authors in the specified format."""
    if format_type == "table":
        headers = ["ID", "Last name", "First name"]
        if show_books:
            headers.append("Books")
        rows = []
        for author in view.visible_records:
            row = [author.id, author.last_name, author.first_name]
            if show_books:
                titles = [book.title for book in session.books_by_author(author.id)]
                row.append(", ".join(titles) or "-")
            rows.append(row)
        print("\n" + tabulate(rows, headers=headers, tablefmt="grid"))

    elif format_type == "json":
        authors_dict = []
        for author in view.visible_records:
            entry = {
                "id": author.id,
                "first_name": author.first_name,
                "last_name": author.last_name,
                "created_at": author.created_at,
                "updated_at": author.updated_at
            }
            if show_books:
                entry["books"] = [book.title for book in session.books_by_author(author.id)]
            authors_dict.append(entry)
        print(json.dumps(authors_dict, indent=2))

    elif format_type == "compact":
        for i, author in enumerate(view.visible_records, 1):
            print(f"{i}. {author.last_name}, {author.first_name}")

    print_page_footer(view)


def display_books(view, format_type: str):
    """Display one page of books in the specified format."""
    if format_type == "table":
        headers = ["ID", "Title", "Author", "ISBN", "Year"]
        rows = [
            [
                book.id,
                book.title[:50] + "..." if len(book.title) > 50 else book.title,
                book.author_name,
                book.isbn,
                book.year
            ]
            for book in view.visible_records
        ]
        print("\n" + tabulate(rows, headers=headers, tablefmt="grid"))

    elif format_type == "json":
        books_dict = [
            {
                "id": book.id,
                "author_id": book.author_id,
                "author_first_name": book.author_first_name,
                "author_last_name": book.author_last_name,
                "isbn": book.isbn,
                "title": book.title,
                "year": book.year
            }
            for book in view.visible_records
        ]
        print(json.dumps(books_dict, indent=2))

    elif format_type == "compact":
        for i, book in enumerate(view.visible_records, 1):
            print(f"{i}. {book.title} - {book.author_name} ({book.year})")

    print_page_footer(view)


def print_page_footer(view):
    arrow = "↑" if view.sort_direction == "asc" else "↓"
    print(
        f"\nPage {view.current_page}/{max(view.total_pages, 1)} "
        f"({view.total_records} records, sorted by {view.sort_field} {arrow})"
    )


async def run_authors(args, session: LibrarySession) -> bool:
    """Execute an authors subcommand."""
    if args.action == "list":
        controls = author_controls()
        apply_controls(controls, args)
        display_authors(session.authors_page(controls), session, args.format, args.show_books)
        return True

    if args.action == "add":
        result = await session.authors.add({"first_name": args.first_name, "last_name": args.last_name})
    elif args.action == "update":
        result = await session.authors.update(args.id, {"first_name": args.first_name, "last_name": args.last_name})
    else:
        result = await session.authors.remove(args.id)

    if result.success and result.record is not None:
        print(f"id: {result.record.id}")
    return result.success


async def run_books(args, session: LibrarySession) -> bool:
    """Execute a books subcommand."""
    if args.action == "list":
        controls = book_controls()
        apply_controls(controls, args)
        display_books(session.books_page(controls), args.format)
        return True

    if args.action == "delete":
        result = await session.books.remove(args.id)
    else:
        fields = {
            "author_id": args.author_id,
            "isbn": args.isbn,
            "title": args.title,
            "year": args.year
        }
        if args.author_id not in session.authors:
            # Only existing authors may be referenced, as in the edit form
            session.notifier.error("Error", f"Unknown author id: {args.author_id}")
            return False
        if args.action == "add":
            result = await session.books.add(fields)
        else:
            result = await session.books.update(args.id, fields)

    if result.success and result.record is not None:
        print(f"id: {result.record.id}")
    return result.success


async def run(args, config: Config) -> bool:
    """Open a session, run one command and close the session."""
    notifier = Notifier(listener=print_notification)
    store = build_store(config)

    async with LibrarySession(store, notifier) as session:
        if args.command == "authors":
            return await run_authors(args, session)
        return await run_books(args, session)


def add_list_options(parser, sort_fields):
    parser.add_argument("--search", default="", help="Case-insensitive search text")
    parser.add_argument("--sort", choices=sort_fields, help="Sort field")
    parser.add_argument("--desc", action="store_true", help="Sort descending")
    parser.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    parser.add_argument("--format", choices=["table", "json", "compact"], default="table", help="Output format")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="BiblioTech - authors and books records manager",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List authors with their books
  %(prog)s authors list --show-books

  # Search books, newest first
  %(prog)s books list --search austen --sort year --desc

  # Add a book
  %(prog)s books add <author-id> 9780141439518 "Pride and Prejudice" 1813
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Authors command
    authors_parser = subparsers.add_parser("authors", help="Manage authors")
    authors_sub = authors_parser.add_subparsers(dest="action", required=True)

    authors_list = authors_sub.add_parser("list", help="List authors")
    add_list_options(authors_list, AUTHOR_SORT_FIELDS)
    authors_list.add_argument("--show-books", action="store_true", help="Show each author's books")

    authors_add = authors_sub.add_parser("add", help="Add an author")
    authors_add.add_argument("first_name")
    authors_add.add_argument("last_name")

    authors_update = authors_sub.add_parser("update", help="Rename an author")
    authors_update.add_argument("id")
    authors_update.add_argument("first_name")
    authors_update.add_argument("last_name")

    authors_delete = authors_sub.add_parser("delete", help="Delete an author")
    authors_delete.add_argument("id")

    # Books command
    books_parser = subparsers.add_parser("books", help="Manage books")
    books_sub = books_parser.add_subparsers(dest="action", required=True)

    books_list = books_sub.add_parser("list", help="List books")
    add_list_options(books_list, BOOK_SORT_FIELDS)

    books_add = books_sub.add_parser("add", help="Add a book")
    for name in ("author_id", "isbn", "title", "year"):
        books_add.add_argument(name)

    books_update = books_sub.add_parser("update", help="Edit a book")
    for name in ("id", "author_id", "isbn", "title", "year"):
        books_update.add_argument(name)

    books_delete = books_sub.add_parser("delete", help="Delete a book")
    books_delete.add_argument("id")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = Config()

    try:
        ok = asyncio.run(run(args, config))
    except KeyboardInterrupt:
        logger.info("\n⚠️  Interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"❌ Error: {e}", exc_info=True)
        sys.exit(1)

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
