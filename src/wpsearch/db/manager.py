import sqlite3
import psycopg2
from psycopg2.extras import RealDictCursor
from urllib.parse import urlparse

class DatabaseManager:
    def __init__(self, db_url: str):
        self.db_url = db_url
        self.parsed_url = urlparse(db_url)
        self.db_type = self.parsed_url.scheme

    @property
    def placeholder(self) -> str:
        return '?' if self.db_type == 'sqlite' else '%s'

    def get_connection(self):
        """Get a raw database connection."""
        if self.db_type == 'sqlite':
            # Remove 'sqlite:///' or 'sqlite://' prefix
            path = self.db_url.replace('sqlite:///', '').replace('sqlite://', '')
            conn = sqlite3.connect(path)
            conn.row_factory = sqlite3.Row  # Access columns by name
            return conn
        elif self.db_type == 'postgresql' or self.db_type == 'postgres':
            return psycopg2.connect(self.db_url, cursor_factory=RealDictCursor)
        else:
            raise ValueError(f"Unsupported database type: {self.db_type}")

    def execute_script(self, script: str):
        """Execute a raw SQL script."""
        conn = self.get_connection()
        try:
            cursor = conn.cursor()
            cursor.executescript(script) if self.db_type == 'sqlite' else cursor.execute(script)
            conn.commit()
        finally:
            conn.close()

    def init_db(self):
        """Create the key/value tables if they do not exist yet."""
        # option_name/option_value mirror the host's transient store layout
        self.execute_script(
            """
            CREATE TABLE IF NOT EXISTS transients (
                option_name TEXT PRIMARY KEY,
                option_value TEXT NOT NULL,
                expires_at BIGINT NOT NULL
            );
            """
        )
