from __future__ import annotations

from pathlib import Path

from tutoring_ledger.database.bootstrap import _strip_create_db_and_use, iter_sql_statements

SCHEMA = Path(__file__).resolve().parents[1] / "database" / "schema.sql"


def test_splits_on_semicolons_outside_quotes_and_comments():
    sql = "CREATE TABLE a (x INT); -- note; not a statement\nINSERT INTO a VALUES ('a;b');\n"
    assert list(iter_sql_statements(sql)) == [
        "CREATE TABLE a (x INT)",
        "INSERT INTO a VALUES ('a;b')",
    ]


def test_schema_file_has_the_three_tables():
    sql = _strip_create_db_and_use(SCHEMA.read_text(encoding="utf-8"))
    statements = list(iter_sql_statements(sql))

    assert len(statements) == 3
    assert all(s.upper().startswith("CREATE TABLE IF NOT EXISTS") for s in statements)
    assert "uq_reservation_active_slot" in statements[1]
