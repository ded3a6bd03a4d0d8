"""Database initialization and connection management."""
import sqlite3
from pathlib import Path

DATA_DIR = Path.home() / ".memoryflow"
DEFAULT_DB_PATH = str(DATA_DIR / "memoryflow.db")
DEFAULT_CONTENT_DIR = str(DATA_DIR / "topics")

SCHEMA = """
CREATE TABLE IF NOT EXISTS topics (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    file_path TEXT NOT NULL,
    created_at TEXT NOT NULL,
    current_stage INTEGER DEFAULT 0,
    next_review_date TEXT NOT NULL,
    last_reviewed_at TEXT,
    review_count INTEGER DEFAULT 0,
    tags TEXT DEFAULT '[]',
    is_favorite INTEGER DEFAULT 0,
    use_custom_schedule INTEGER DEFAULT 0,
    custom_review_datetime TEXT,
    mastered INTEGER DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_next_review_date ON topics(next_review_date);
CREATE INDEX IF NOT EXISTS idx_current_stage ON topics(current_stage);

CREATE TABLE IF NOT EXISTS review_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    topic_id TEXT NOT NULL,
    stage_before INTEGER NOT NULL,
    stage_after INTEGER NOT NULL,
    reviewed_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS user_settings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL UNIQUE,
    value TEXT
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory and foreign keys enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()
