"""
Fixtures for SQLite-specific integration tests.
"""
import dataaccess as db
import pytest

CREATE_TABLE = """
CREATE TABLE test_table (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    value INTEGER
)
"""

INSERT_DATA = """
INSERT INTO test_table (name, value) VALUES
('Alice', 10),
('Bob', 20),
('Charlie', NULL)
"""


@pytest.fixture
def sqlite_options(tmp_path):
    return db.DatabaseOptions(drivername='sqlite', database=str(tmp_path / 'test.db'))


@pytest.fixture
def sqlite_file_conn(sqlite_options):
    """File-based SQLite connection with a populated test_table."""
    conn = db.connect(sqlite_options)

    db.execute_non_query(conn, CREATE_TABLE, db.CommandType.TEXT)
    db.execute_non_query(conn, INSERT_DATA, db.CommandType.TEXT)

    yield conn

    conn.close()
