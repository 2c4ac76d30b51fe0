from __future__ import annotations

import json
import os
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Sequence

from backstory.common.models import Backstory
from backstory.common.paths import data_dir

DB_PATH = Path(os.getenv("BACKSTORY_DB_PATH", str(data_dir() / "backstory.db")))


def _connect() -> sqlite3.Connection:
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def init_db() -> None:
    with _connect() as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS backstories (
                id TEXT PRIMARY KEY,
                image_url TEXT,
                labels TEXT NOT NULL,
                prompt TEXT NOT NULL,
                text TEXT NOT NULL,
                created_at TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_backstories_created_at
                ON backstories (created_at);
            """
        )


def _row_to_backstory(row: sqlite3.Row) -> Backstory:
    try:
        labels = json.loads(row["labels"] or "[]")
    except ValueError:
        labels = []
    return Backstory(
        id=row["id"],
        image_url=row["image_url"],
        labels=list(labels),
        prompt=row["prompt"],
        text=row["text"],
        created_at=row["created_at"],
    )


def create_backstory(
    *,
    prompt: str,
    text: str,
    labels: Sequence[str] = (),
    image_url: Optional[str] = None,
) -> Backstory:
    if not (text or "").strip():
        raise ValueError("Backstory text cannot be empty.")
    backstory = Backstory(
        id=f"bs_{uuid.uuid4().hex[:8]}",
        image_url=image_url,
        labels=list(labels),
        prompt=prompt,
        text=text,
        created_at=datetime.now(timezone.utc).isoformat(),
    )
    with _connect() as conn:
        conn.execute(
            "INSERT INTO backstories (id, image_url, labels, prompt, text, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                backstory.id,
                backstory.image_url,
                json.dumps(backstory.labels, ensure_ascii=False),
                backstory.prompt,
                backstory.text,
                backstory.created_at,
            ),
        )
    return backstory


def get_backstory(backstory_id: str) -> Optional[Backstory]:
    with _connect() as conn:
        row = conn.execute(
            "SELECT * FROM backstories WHERE id = ?",
            (backstory_id,),
        ).fetchone()
    return _row_to_backstory(row) if row else None


def list_backstories(limit: int = 20) -> List[Backstory]:
    with _connect() as conn:
        rows = conn.execute(
            "SELECT * FROM backstories ORDER BY created_at DESC, rowid DESC LIMIT ?",
            (max(1, int(limit)),),
        ).fetchall()
    return [_row_to_backstory(r) for r in rows]


def latest_backstory() -> Optional[Backstory]:
    rows = list_backstories(limit=1)
    return rows[0] if rows else None


def delete_backstory(backstory_id: str) -> bool:
    with _connect() as conn:
        cur = conn.execute("DELETE FROM backstories WHERE id = ?", (backstory_id,))
        return cur.rowcount > 0
