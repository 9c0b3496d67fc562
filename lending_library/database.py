import sqlite3


def get_db_connection(db_file: str) -> sqlite3.Connection:
    """Open a connection to the SQLite snapshot database."""
    conn = sqlite3.connect(db_file)
    conn.row_factory = sqlite3.Row
    return conn


def create_tables(db_file: str) -> None:
    """Create the key-value snapshot table if it does not exist yet."""
    conn = get_db_connection(db_file)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS catalog_snapshots (
                key TEXT PRIMARY KEY,
                payload TEXT NOT NULL,
                saved_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        conn.commit()
    finally:
        conn.close()


def write_snapshot(db_file: str, key: str, payload: str) -> None:
    """Replace the snapshot stored under ``key`` in one transaction."""
    conn = get_db_connection(db_file)
    try:
        with conn:
            conn.execute(
                "INSERT OR REPLACE INTO catalog_snapshots (key, payload, saved_at) "
                "VALUES (?, ?, CURRENT_TIMESTAMP)",
                (key, payload),
            )
    finally:
        conn.close()


def read_snapshot(db_file: str, key: str) -> str | None:
    conn = get_db_connection(db_file)
    try:
        row = conn.execute(
            "SELECT payload FROM catalog_snapshots WHERE key = ?", (key,)
        ).fetchone()
        return row["payload"] if row else None
    finally:
        conn.close()
