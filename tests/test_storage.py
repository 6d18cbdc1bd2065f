"""Tests for core/storage.py: CSV result files."""

import pytest

from core.models import ResultRow
from core.storage import ResultStore, ResultStoreError


def _rows(query_id, *items):
    return [ResultRow(query_id, (item, "100", "Seller")) for item in items]


@pytest.fixture
def store(tmp_path):
    s = ResultStore(str(tmp_path / "results.csv"), "test results")
    s.reset()
    return s


def test_reset_writes_only_header(store):
    with open(store.path, encoding="utf-8") as f:
        assert f.read() == "QueryID,Item,Price,Seller\n"
    assert store.read_rows() == []


def test_reset_truncates_previous_rows(store):
    store.append(_rows("q1", "Shard"))
    store.reset()
    assert store.read_rows() == []


def test_append_keeps_order(store):
    assert store.append(_rows("q1", "A", "B")) == 2
    store.append(_rows("q2", "C"))
    assert [(r.query_id, r.item) for r in store.read_rows()] == [("q1", "A"), ("q1", "B"), ("q2", "C")]


def test_fields_with_commas_are_quoted(store):
    store.append([ResultRow("q1", ("Shard, Velium", "1,000", "Bob"))])
    row = store.read_rows()[0]
    assert row.item == "Shard, Velium"
    assert row.price == "1,000"
    assert row.seller == "Bob"


def test_delete_query_only_touches_that_id(store):
    store.append(_rows("q1", "A", "B"))
    store.append(_rows("q2", "C"))
    store.append(_rows("q1", "D"))

    assert store.delete_query("q1") == 3
    assert [(r.query_id, r.item) for r in store.read_rows()] == [("q2", "C")]
    with open(store.path, encoding="utf-8") as f:
        assert f.readline() == "QueryID,Item,Price,Seller\n"


def test_delete_unknown_id_is_noop(store):
    store.append(_rows("q1", "A"))
    assert store.delete_query("zzz") == 0
    assert len(store.read_rows()) == 1


def test_delete_then_append_replaces_rows(store):
    store.append(_rows("keep", "X"))
    store.append(_rows("q1", "Old"))
    store.delete_query("q1")
    store.append(_rows("q1", "New1", "New2"))
    assert [(r.query_id, r.item) for r in store.read_rows()] == [
        ("keep", "X"), ("q1", "New1"), ("q1", "New2"),
    ]


def test_missing_file_is_fatal(tmp_path):
    store = ResultStore(str(tmp_path / "never-created.csv"))
    with pytest.raises(ResultStoreError):
        store.delete_query("q1")


def test_undecodable_file_is_fatal(store):
    with open(store.path, "ab") as f:
        f.write(b"q1,\xff\xfe broken,1,Bob\n")
    with pytest.raises(ResultStoreError):
        store.read_rows()
    with pytest.raises(ResultStoreError):
        store.delete_query("q1")


def test_unwritable_location_is_fatal(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    store = ResultStore(str(blocker / "results.csv"))
    with pytest.raises(ResultStoreError):
        store.reset()
