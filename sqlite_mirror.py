"""Secondary SQLite copy of slides and annotations, kept for ad-hoc inspection.

The ``input`` table receives one row per persisted slide and the ``output``
table one row per annotated slide. Nothing here is authoritative; the primary
store wins whenever the two disagree.
"""

import json
import logging
import os
import sqlite3
from contextlib import closing
from typing import Any, Dict, List, Optional


class SQLiteMirror:
    def __init__(self, db_path: str):
        self.db_path = db_path
        directory = os.path.dirname(os.path.abspath(db_path))
        os.makedirs(directory, exist_ok=True)
        self._init_tables()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_tables(self):
        with closing(self._connect()) as conn, conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS input (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    presentation_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    slide_id TEXT NOT NULL,
                    slide_number INTEGER NOT NULL,
                    image TEXT
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS output (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    presentation_id TEXT NOT NULL,
                    slide_id TEXT NOT NULL,
                    tags TEXT NOT NULL
                )
                """
            )
        logging.info(f"SQLite mirror initialized at {self.db_path}")

    def insert_slide(self, presentation_id: str, name: str, slide_id: str, slide_number: int,
                     image: Optional[str] = None) -> int:
        with closing(self._connect()) as conn, conn:
            cursor = conn.execute(
                "INSERT INTO input (presentation_id, name, slide_id, slide_number, image) "
                "VALUES (?, ?, ?, ?, ?)",
                (presentation_id, name, slide_id, slide_number, image or "BLOB"),
            )
            return cursor.lastrowid

    def upsert_annotations(self, presentation_id: str, slide_id: str, tags: List[Dict[str, str]]) -> int:
        """Writes the full tag list for a slide, replacing any previous row."""
        tags_json = json.dumps(tags)
        with closing(self._connect()) as conn, conn:
            existing = conn.execute(
                "SELECT id FROM output WHERE presentation_id = ? AND slide_id = ?",
                (presentation_id, slide_id),
            ).fetchone()
            if existing:
                conn.execute(
                    "UPDATE output SET tags = ? WHERE presentation_id = ? AND slide_id = ?",
                    (tags_json, presentation_id, slide_id),
                )
                return existing["id"]
            cursor = conn.execute(
                "INSERT INTO output (presentation_id, slide_id, tags) VALUES (?, ?, ?)",
                (presentation_id, slide_id, tags_json),
            )
            return cursor.lastrowid

    def get_slides(self, presentation_id: str) -> List[Dict[str, Any]]:
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT * FROM input WHERE presentation_id = ? ORDER BY slide_number ASC",
                (presentation_id,),
            ).fetchall()
        return [dict(row) for row in rows]

    def get_annotations(self, presentation_id: str) -> List[Dict[str, Any]]:
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT slide_id, tags FROM output WHERE presentation_id = ?",
                (presentation_id,),
            ).fetchall()
        return [{"slideId": row["slide_id"], "tags": json.loads(row["tags"])} for row in rows]
