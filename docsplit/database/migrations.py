from pathlib import Path
from typing import Any

import psycopg

from docsplit.logging.logger import Log

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


def load_schema(path: Path | None = None) -> str:
    """Read the schema DDL. Raises FileNotFoundError if it is missing."""
    schema_path = path if path is not None else SCHEMA_PATH
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema file not found: {schema_path}")
    return schema_path.read_text(encoding="utf-8")


def apply_schema(conn: psycopg.Connection[Any], path: Path | None = None) -> None:
    """Create the splits/documents/pages tables if they do not exist yet."""
    ddl = load_schema(path)
    Log.info(f"Applying schema from {path or SCHEMA_PATH}")
    conn.execute(ddl)
    conn.commit()
