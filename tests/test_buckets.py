"""Tests for Collections bucket views."""
import pytest

from bookshelf.buckets import Collections
from bookshelf.errors import InvalidListName
from bookshelf.models import ListName, MembershipRow
from conftest import make_book


def build(*pairs):
    collections = Collections()
    for book_id, list_name in pairs:
        collections.add(MembershipRow("u1", book_id, ListName(list_name)), make_book(book_id))
    return collections


def ids(entries):
    return [e.book_id for e in entries]


def test_named_buckets_and_all():
    collections = build(("a", "reading"), ("b", "finished"), ("c", "reading"))

    assert ids(collections.bucket("reading")) == ["a", "c"]
    assert ids(collections.bucket(ListName.FINISHED)) == ["b"]
    assert ids(collections.bucket("want-to-read")) == []
    assert ids(collections.bucket("all")) == ["a", "b", "c"]


def test_move_appends_to_target_and_keeps_all_order():
    collections = build(("a", "reading"), ("b", "finished"), ("c", "reading"))

    entry = collections.move("a", ListName.READING, ListName.FINISHED)

    assert entry.row.list_name == ListName.FINISHED
    assert ids(collections.bucket("reading")) == ["c"]
    assert ids(collections.bucket("finished")) == ["b", "a"]
    assert ids(collections.bucket("all")) == ["a", "b", "c"]
    assert collections.bucket("all")[0].list_name == ListName.FINISHED


def test_move_round_trip_restores_partition():
    collections = build(("a", "reading"), ("b", "want-to-read"))
    before = {name: set(ids(collections.bucket(name))) for name in ("want-to-read", "reading", "finished", "all")}
    all_before = ids(collections.bucket("all"))

    collections.move("a", ListName.READING, ListName.FINISHED)
    collections.move("a", ListName.FINISHED, ListName.READING)

    after = {name: set(ids(collections.bucket(name))) for name in before}
    assert after == before
    assert ids(collections.bucket("all")) == all_before


def test_move_ignores_entry_not_in_source_list():
    collections = build(("a", "reading"))

    assert collections.move("a", ListName.FINISHED, ListName.WANT_TO_READ) is None
    assert collections.move("missing", ListName.READING, ListName.FINISHED) is None
    assert ids(collections.bucket("reading")) == ["a"]


def test_unknown_bucket_name():
    with pytest.raises(InvalidListName):
        Collections().bucket("later")
