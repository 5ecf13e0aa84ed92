"""Unit tests for the SQLite state repository."""

from __future__ import annotations

import sqlite3

import pytest

from commsync.storage import StateRepository


def test_repository_initialize_and_round_trip(tmp_path, make_message) -> None:
    db_path = tmp_path / "state.sqlite3"
    repo = StateRepository(db_path)
    repo.initialize()

    written = repo.upsert_messages([make_message("m1", subject="First"), make_message("m2")])
    repo.upsert_messages([make_message("m1", subject="Updated")])

    messages = repo.load_messages()
    assert written == 2
    assert repo.count_messages() == 2
    assert [m.id for m in messages] == ["m1", "m2"]
    assert messages[0].subject == "Updated"


def test_initialize_is_repeatable(tmp_path) -> None:
    repo = StateRepository(tmp_path / "nested" / "state.sqlite3")
    repo.initialize()
    repo.initialize()

    assert repo.count_messages() == 0


def test_unsupported_schema_version(tmp_path) -> None:
    db_path = tmp_path / "state.sqlite3"
    StateRepository(db_path).initialize()
    with sqlite3.connect(db_path) as conn:
        conn.execute("UPDATE _schema_meta SET value = '99' WHERE key = 'schema_version'")

    with pytest.raises(RuntimeError):
        StateRepository(db_path).initialize()


def test_unreadable_rows_are_skipped(tmp_path, make_message) -> None:
    db_path = tmp_path / "state.sqlite3"
    repo = StateRepository(db_path)
    repo.initialize()
    repo.upsert_messages([make_message("good")])
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            "INSERT INTO messages (channel, account_id, message_id, timestamp_iso, payload_json) "
            "VALUES ('gmail', '', 'bad', '', '{not json')"
        )

    assert [m.id for m in repo.load_messages()] == ["good"]


def test_key_value_state(tmp_path) -> None:
    repo = StateRepository(tmp_path / "state.sqlite3")
    repo.initialize()

    assert repo.get_value("empty_load_count") is None
    repo.set_value("empty_load_count", "2")
    repo.set_value("empty_load_count", "3")

    assert repo.get_value("empty_load_count") == "3"
