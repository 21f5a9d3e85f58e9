#!/usr/bin/env python3
"""Bookshelf CLI - search the catalog and manage reading lists."""
import argparse
import asyncio
import getpass
import json
import os
import sys
from tabulate import tabulate
from bookshelf.buckets import ALL_BUCKET, BUCKET_NAMES
from bookshelf.client import MAX_PAGE_SIZE, CatalogClient
from bookshelf.config import Config
from bookshelf.database import PostgresRowStore
from bookshelf.errors import BookshelfError
from bookshelf.library import Library
from bookshelf.models import ListName
from bookshelf.pagination import CATEGORIES
from bookshelf.reader import BookReader
import logging

logger = logging.getLogger(__name__)


def configure_logging(config: Config):
    """Configure logging once for the whole process."""
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )


def read_password(args) -> str:
    """Password from the command line, the environment, or a prompt."""
    return args.password or os.getenv("BOOKSHELF_PASSWORD") or getpass.getpass("Password: ")


async def signed_in_library(args, config: Config) -> Library:
    """Create a Library and sign in with the given email."""
    library = await Library.create(config)
    try:
        await library.auth.sign_in_with_password(args.email, read_password(args))
    except BaseException:
        await library.close()
        raise
    return library


def positive_int(value: str) -> int:
    """argparse type for 1-based page numbers."""
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be 1 or more, got {value}")
    return number


def truncate_cell(text: str, width: int) -> str:
    return text[:width] + "..." if len(text) > width else text


def display_books(books, format_type: str):
    """Display books in specified format."""
    if format_type == "table":
        headers = ["ID", "Title", "Authors", "Categories", "Published", "Pages"]
        rows = [
            [
                book.id,
                truncate_cell(book.title, 50),
                truncate_cell(book.authors_str, 30),
                truncate_cell(book.categories_str, 20),
                book.published_date or "Unknown",
                book.page_count or "N/A"
            ]
            for book in books
        ]
        print("\n" + tabulate(rows, headers=headers, tablefmt="grid"))

    elif format_type == "json":
        books_dict = [
            {
                "id": book.id,
                "title": book.title,
                "authors": book.authors,
                "published_date": book.published_date,
                "description": book.description,
                "page_count": book.page_count,
                "categories": book.categories,
                "thumbnail": book.thumbnail,
                "language": book.language
            }
            for book in books
        ]
        print(json.dumps(books_dict, indent=2))

    elif format_type == "compact":
        for i, book in enumerate(books, 1):
            print(f"{i}. {book.title} - {book.authors_str}")


def display_page(pagination, format_type: str):
    """Show the controller's current page and its position."""
    if not pagination.items:
        print("No books found.")
        return
    display_books(pagination.items, format_type)
    if pagination.show_pagination:
        print(f"\nPage {pagination.current_page} of {pagination.last_page} "
              f"({pagination.total_items} results)")
        hints = []
        if pagination.has_previous:
            hints.append(f"--page {pagination.current_page - 1} for previous")
        if pagination.has_next:
            hints.append(f"--page {pagination.current_page + 1} for next")
        print(", ".join(hints))


async def search_books(args, config: Config, query: str):
    """Search through the pagination controller."""
    library = await Library.create(config)
    try:
        await library.search(query, args.page)
        display_page(library.pagination, args.format)
    finally:
        await library.close()


def search_books_sync(args, config: Config):
    """Search for one page using the blocking client."""
    with CatalogClient(
        api_key=config.GOOGLE_BOOKS_API_KEY,
        timeout=config.DEFAULT_TIMEOUT
    ) as client:
        result = client.search(
            args.query,
            page_size=config.PAGE_SIZE,
            start_offset=(args.page - 1) * config.PAGE_SIZE
        )
    display_books(result.items, args.format)
    print(f"\n{result.total_items} results")


def show_book(args, config: Config):
    """Print a book's details page by page."""
    with CatalogClient(
        api_key=config.GOOGLE_BOOKS_API_KEY,
        timeout=config.DEFAULT_TIMEOUT
    ) as client:
        book = client.lookup(args.book_id)

    reader = BookReader(book)
    for number, page in enumerate(reader.pages, 1):
        print(f"[{number}/{len(reader.pages)}] {page}\n")


async def show_collections(args, config: Config):
    """Show the signed-in user's reading lists."""
    library = await signed_in_library(args, config)
    try:
        collections = await library.open_collections()
    finally:
        await library.close()

    counts = collections.counts()
    print("\n" + tabulate([[name, counts[name]] for name in BUCKET_NAMES],
                          headers=["List", "Books"], tablefmt="grid"))

    entries = collections.bucket(args.list)
    rows = [
        [entry.book_id, truncate_cell(entry.book.title, 50), entry.list_name.value, entry.row.created_at or ""]
        for entry in entries
    ]
    print(f"\n{args.list}:")
    print(tabulate(rows, headers=["ID", "Title", "List", "Added"], tablefmt="grid"))

    for row, reason in collections.unresolved:
        print(f"⚠️  Could not load {row.book_id}: {reason}")


async def add_book(args, config: Config):
    library = await signed_in_library(args, config)
    try:
        await library.add_to_list(args.book_id, args.list)
    finally:
        await library.close()
    print(f"✅ Added {args.book_id} to '{args.list}'")


async def move_book(args, config: Config):
    library = await signed_in_library(args, config)
    try:
        moved = await library.move(args.book_id, args.from_list, args.to_list)
    finally:
        await library.close()
    if moved:
        print(f"✅ Moved {args.book_id} from '{args.from_list}' to '{args.to_list}'")
    else:
        print(f"{args.book_id} is already in '{args.to_list}'")


async def sign_up(args, config: Config):
    library = await Library.create(config)
    try:
        pending = await library.auth.sign_up(args.email, read_password(args), redirect_to=args.redirect_to)
    finally:
        await library.close()
    if pending:
        print("✅ Account created. Check your email to confirm it.")
    else:
        print("✅ Account created and signed in.")


async def login_url(args, config: Config):
    library = await Library.create(config)
    try:
        url = await library.auth.sign_in_with_redirect(args.provider, redirect_to=args.redirect_to)
    finally:
        await library.close()
    print(url)


def init_db(args, config: Config):
    """Create the book_lists table in a self-hosted database."""
    with PostgresRowStore(config.DATABASE_URL) as store:
        store.init_schema()
    print("✅ Database schema ready")


def main():
    """Main CLI entry point."""
    list_choices = [name.value for name in ListName]

    parser = argparse.ArgumentParser(
        description="Bookshelf - search books and keep reading lists",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Search, second page
  %(prog)s search "dune" --page 2

  # Browse a category
  %(prog)s category fantasy

  # Read a book's details
  %(prog)s show zyTCAlFPjgYC

  # Reading lists
  %(prog)s add zyTCAlFPjgYC reading --email me@example.com
  %(prog)s collections --list reading --email me@example.com
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    def add_output_args(sub):
        sub.add_argument("--page", type=positive_int, default=1, help="Page number (default: 1)")
        sub.add_argument("--format", choices=["table", "json", "compact"], default="table", help="Output format")

    def add_auth_args(sub):
        sub.add_argument("--email", required=True, help="Account email")
        sub.add_argument("--password", help="Account password (default: $BOOKSHELF_PASSWORD or prompt)")

    search_parser = subparsers.add_parser("search", help="Search for books")
    search_parser.add_argument("query", help="Search query")
    add_output_args(search_parser)
    search_parser.add_argument("--sync", action="store_true", help="Use the blocking client")

    browse_parser = subparsers.add_parser("browse", help="Browse without a search term")
    add_output_args(browse_parser)

    category_parser = subparsers.add_parser("category", help="Browse a category")
    category_parser.add_argument("name", choices=sorted(CATEGORIES), help="Category")
    add_output_args(category_parser)

    show_parser = subparsers.add_parser("show", help="Show a book's details")
    show_parser.add_argument("book_id", help="Volume id")

    collections_parser = subparsers.add_parser("collections", help="Show your reading lists")
    collections_parser.add_argument("--list", choices=BUCKET_NAMES, default=ALL_BUCKET, help="List to show")
    add_auth_args(collections_parser)

    add_parser = subparsers.add_parser("add", help="Add a book to a list")
    add_parser.add_argument("book_id", help="Volume id")
    add_parser.add_argument("list", help=f"One of: {', '.join(list_choices)}")
    add_auth_args(add_parser)

    move_parser = subparsers.add_parser("move", help="Move a book to another list")
    move_parser.add_argument("book_id", help="Volume id")
    move_parser.add_argument("from_list", help="Current list")
    move_parser.add_argument("to_list", help="New list")
    add_auth_args(move_parser)

    signup_parser = subparsers.add_parser("signup", help="Create an account")
    add_auth_args(signup_parser)
    signup_parser.add_argument("--redirect-to", help="URL opened from the confirmation email")

    login_parser = subparsers.add_parser("login-url", help="Print an OAuth sign-in URL")
    login_parser.add_argument("--provider", default="google", help="OAuth provider (default: google)")
    login_parser.add_argument("--redirect-to", help="URL to return to after sign-in")

    subparsers.add_parser("init-db", help="Create tables in a self-hosted database")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = Config()
    configure_logging(config)

    if not 0 < config.PAGE_SIZE <= MAX_PAGE_SIZE:
        parser.error(f"PAGE_SIZE must be between 1 and {MAX_PAGE_SIZE}, got {config.PAGE_SIZE}")

    try:
        if args.command == "search":
            if args.sync:
                search_books_sync(args, config)
            else:
                asyncio.run(search_books(args, config, args.query))

        elif args.command == "browse":
            asyncio.run(search_books(args, config, CATEGORIES["all"]))

        elif args.command == "category":
            asyncio.run(search_books(args, config, CATEGORIES[args.name]))

        elif args.command == "show":
            show_book(args, config)

        elif args.command == "collections":
            asyncio.run(show_collections(args, config))

        elif args.command == "add":
            asyncio.run(add_book(args, config))

        elif args.command == "move":
            asyncio.run(move_book(args, config))

        elif args.command == "signup":
            asyncio.run(sign_up(args, config))

        elif args.command == "login-url":
            asyncio.run(login_url(args, config))

        elif args.command == "init-db":
            init_db(args, config)

    except KeyboardInterrupt:
        logger.info("\n⚠️  Interrupted by user")
        sys.exit(0)
    except BookshelfError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.error(f"❌ Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
