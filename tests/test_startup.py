"""
test_startup.py — Tests for leadflow/startup.py

Covers: TESTING short-circuit, ORM schema sync on a non-PostgreSQL engine,
and that CHECK constraints are only attempted once.

Called by: pytest
Depends on: leadflow/startup.py
"""

from unittest.mock import MagicMock, patch

from sqlalchemy import create_engine, inspect

from leadflow import startup


def test_skipped_in_testing_mode():
    with patch.object(startup, "engine") as mock_engine:
        startup.run_startup_migrations()
    mock_engine.connect.assert_not_called()


def test_schema_sync_on_sqlite(monkeypatch, tmp_path):
    monkeypatch.delenv("TESTING", raising=False)
    eng = create_engine(f"sqlite:///{tmp_path / 'startup.db'}")
    try:
        monkeypatch.setattr(startup, "engine", eng)
        startup.run_startup_migrations()
        assert "inbound_events" in inspect(eng).get_table_names()
    finally:
        eng.dispose()


def test_existing_constraints_are_skipped():
    conn = MagicMock()
    conn.execute.return_value.first.return_value = (1,)
    startup._add_check_constraints(conn)
    assert conn.execute.call_count == len(startup._CHECK_CONSTRAINTS)
    conn.commit.assert_not_called()


def test_missing_constraint_is_added():
    conn = MagicMock()
    conn.execute.return_value.first.return_value = None
    startup._add_check_constraints(conn)
    ddl = [str(c.args[0]) for c in conn.execute.call_args_list if "ALTER TABLE" in str(c.args[0])]
    assert len(ddl) == len(startup._CHECK_CONSTRAINTS)
    assert any("ck_inbound_events_status" in s for s in ddl)
