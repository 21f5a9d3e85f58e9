"""Tests for models and configuration helpers."""
from types import SimpleNamespace

import pytest

from bookshelf.config import Config, _optional_int
from bookshelf.errors import InvalidListName
from bookshelf.models import Book, ListName, MembershipRow, Session


def test_list_name_parse():
    assert ListName.parse("want-to-read") is ListName.WANT_TO_READ
    assert ListName.parse(ListName.FINISHED) is ListName.FINISHED

    with pytest.raises(InvalidListName):
        ListName.parse("all")
    with pytest.raises(InvalidListName):
        ListName.parse(None)


def test_membership_row_from_record():
    row = MembershipRow.from_record({
        "id": 3,
        "user_id": "u1",
        "book_id": "b1",
        "list_name": "reading",
        "created_at": "2024-01-01T00:00:00+00:00",
    })

    assert row.id == "3"
    assert row.list_name is ListName.READING
    assert row.to_record() == {"user_id": "u1", "book_id": "b1", "list_name": "reading"}


def test_session_from_auth():
    raw = SimpleNamespace(user=SimpleNamespace(id="u1", email="a@example.com"), access_token="tok")

    assert Session.from_auth(raw) == Session("u1", "a@example.com", "tok")
    assert Session.from_auth(None) is None
    assert Session.from_auth(SimpleNamespace(user=None)) is None


@pytest.mark.parametrize("raw,expected", [(None, None), ("", None), ("0", None), ("8", 8)])
def test_optional_int(raw, expected):
    assert _optional_int(raw) == expected


def test_database_url():
    config = Config()
    config.DB_USER = "reader"
    config.DB_PASSWORD = "pw"
    config.DB_HOST = "db"
    config.DB_PORT = "5433"
    config.DB_NAME = "shelf"

    assert config.DATABASE_URL == "postgresql://reader:pw@db:5433/shelf"


def test_book_display_strings():
    book = Book("b1", "Dune", ["Frank Herbert", "Brian Herbert"], None, None, None,
                ["Fiction", "Science Fiction"], None, "en")
    bare = Book("b2", "Untitled", [], None, None, None, [], None, "en")

    assert book.authors_str == "Frank Herbert, Brian Herbert"
    assert book.categories_str == "Fiction, Science Fiction"
    assert bare.authors_str == "Unknown"
    assert bare.categories_str == "None"
