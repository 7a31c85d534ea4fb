"""Persistent story storage using SQLite.

One row per project and one row per story element. Elements keep their full
JSON body in `data`; the columns the store filters or updates on (kind,
position, timestamps) are stored alongside it. `last_referenced_at` lives
only in its column so `mark_referenced` never rewrites the body.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

from pydantic import ValidationError

from storyforge.context.models import (
    ELEMENT_MODELS,
    Chapter,
    Character,
    ElementKind,
    PlotPoint,
    ProjectRecord,
    Setting,
    StoryBible,
    StoryElement,
)
from storyforge.exceptions import ProjectNotFoundError, StorageError

logger = logging.getLogger("storyforge.storage")


def _iso(ts: datetime | None) -> str | None:
    return ts.isoformat() if ts is not None else None


class StoryStore:
    """Persists story bibles and serves them as a StoryDataSource.

    The connection is shared by the assembler's fetch threads, so every
    statement runs under one lock.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._create_tables()
        return self._conn

    def _create_tables(self) -> None:
        conn = self._get_conn()
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS projects (
                project_id TEXT PRIMARY KEY,
                title TEXT NOT NULL DEFAULT '',
                genre TEXT NOT NULL DEFAULT '',
                target_audience TEXT NOT NULL DEFAULT '',
                tone TEXT NOT NULL DEFAULT '',
                style TEXT NOT NULL DEFAULT '',
                description TEXT NOT NULL DEFAULT ''
            );

            -- Element ids are unique within a project
            CREATE TABLE IF NOT EXISTS elements (
                project_id TEXT NOT NULL REFERENCES projects(project_id),
                element_id TEXT NOT NULL,
                kind TEXT NOT NULL,              -- ElementKind value
                position INTEGER NOT NULL,       -- order within its kind
                updated_at TEXT,
                last_referenced_at TEXT,
                data TEXT NOT NULL,              -- full element JSON
                PRIMARY KEY (project_id, element_id)
            );

            CREATE TABLE IF NOT EXISTS metadata (
                key TEXT PRIMARY KEY,
                value TEXT
            );

            CREATE INDEX IF NOT EXISTS idx_elements_kind ON elements(project_id, kind);
        """)
        conn.commit()

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        with self._lock:
            try:
                return self._get_conn().execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StorageError(f"Story store query failed: {e}") from e

    # ------------------------------------------------------------------
    # Save / Load
    # ------------------------------------------------------------------

    def save_bible(self, bible: StoryBible) -> int:
        """Replace everything stored for the bible's project. Returns element count."""
        project = bible.project
        rows: list[tuple] = []
        seen: set[str] = set()
        for kind in ElementKind:
            for position, element in enumerate(bible.elements(kind)):
                if element.id in seen:
                    raise StorageError(
                        f"Duplicate element id '{element.id}' in project '{project.id}'"
                    )
                seen.add(element.id)
                body = element.model_dump(mode="json", exclude={"last_referenced_at"})
                rows.append((
                    project.id,
                    element.id,
                    kind.value,
                    position,
                    _iso(element.updated_at),
                    _iso(element.last_referenced_at),
                    json.dumps(body),
                ))

        with self._lock:
            conn = self._get_conn()
            try:
                conn.execute("DELETE FROM elements WHERE project_id = ?", (project.id,))
                conn.execute(
                    """INSERT OR REPLACE INTO projects
                       (project_id, title, genre, target_audience, tone, style, description)
                       VALUES (?, ?, ?, ?, ?, ?, ?)""",
                    (
                        project.id, project.title, project.genre,
                        project.target_audience, project.tone, project.style,
                        project.description,
                    ),
                )
                conn.executemany(
                    """INSERT INTO elements
                       (project_id, element_id, kind, position, updated_at,
                        last_referenced_at, data)
                       VALUES (?, ?, ?, ?, ?, ?, ?)""",
                    rows,
                )
                conn.commit()
            except sqlite3.Error as e:
                conn.rollback()
                raise StorageError(f"Could not save project '{project.id}': {e}") from e

        logger.info("Saved project %s with %d elements", project.id, len(rows))
        return len(rows)

    def load_bible(self, project_id: str) -> StoryBible:
        """Load a project and all of its elements."""
        return StoryBible(
            project=self.get_project(project_id),
            characters=self.list_characters(project_id),
            settings=self.list_settings(project_id),
            plot_points=self.list_plot_points(project_id),
            chapters=self.list_chapters(project_id),
        )

    def delete_project(self, project_id: str) -> None:
        with self._lock:
            conn = self._get_conn()
            conn.execute("DELETE FROM elements WHERE project_id = ?", (project_id,))
            conn.execute("DELETE FROM projects WHERE project_id = ?", (project_id,))
            conn.commit()

    # ------------------------------------------------------------------
    # StoryDataSource
    # ------------------------------------------------------------------

    def get_project(self, project_id: str) -> ProjectRecord:
        rows = self._execute(
            "SELECT * FROM projects WHERE project_id = ?", (project_id,)
        )
        if not rows:
            raise ProjectNotFoundError(project_id)
        row = rows[0]
        return ProjectRecord(
            id=row["project_id"],
            title=row["title"],
            genre=row["genre"],
            target_audience=row["target_audience"],
            tone=row["tone"],
            style=row["style"],
            description=row["description"],
        )

    def _list(self, project_id: str, kind: ElementKind) -> list[StoryElement]:
        rows = self._execute(
            """SELECT element_id, data, last_referenced_at FROM elements
               WHERE project_id = ? AND kind = ? ORDER BY position""",
            (project_id, kind.value),
        )
        model = ELEMENT_MODELS[kind]
        elements: list[StoryElement] = []
        for row in rows:
            data = json.loads(row["data"])
            data["last_referenced_at"] = row["last_referenced_at"]
            try:
                elements.append(model.model_validate(data))
            except ValidationError as e:
                raise StorageError(
                    f"Corrupt {kind.value} '{row['element_id']}' in project "
                    f"'{project_id}': {e}"
                ) from e
        return elements

    def list_characters(self, project_id: str, ids: Sequence[str] = ()) -> list[Character]:
        return self._list(project_id, ElementKind.CHARACTER)

    def list_settings(self, project_id: str, ids: Sequence[str] = ()) -> list[Setting]:
        return self._list(project_id, ElementKind.SETTING)

    def list_plot_points(self, project_id: str, ids: Sequence[str] = ()) -> list[PlotPoint]:
        return self._list(project_id, ElementKind.PLOT_POINT)

    def list_chapters(self, project_id: str, ids: Sequence[str] = ()) -> list[Chapter]:
        return self._list(project_id, ElementKind.CHAPTER)

    # ------------------------------------------------------------------
    # Queries and updates
    # ------------------------------------------------------------------

    def list_projects(self) -> list[ProjectRecord]:
        rows = self._execute("SELECT project_id FROM projects ORDER BY project_id")
        return [self.get_project(row["project_id"]) for row in rows]

    def element_counts(self, project_id: str) -> dict[ElementKind, int]:
        rows = self._execute(
            """SELECT kind, COUNT(*) AS n FROM elements
               WHERE project_id = ? GROUP BY kind""",
            (project_id,),
        )
        counts = {kind: 0 for kind in ElementKind}
        for row in rows:
            counts[ElementKind(row["kind"])] = row["n"]
        return counts

    def mark_referenced(
        self,
        project_id: str,
        element_ids: Sequence[str],
        when: datetime | None = None,
    ) -> int:
        """Record that elements were used or mentioned. Returns rows updated.

        Only `last_referenced_at` changes; `updated_at` is left alone.
        """
        if not element_ids:
            return 0
        stamp = _iso(when or datetime.now(timezone.utc))
        placeholders = ",".join("?" * len(element_ids))
        with self._lock:
            conn = self._get_conn()
            cursor = conn.execute(
                f"""UPDATE elements SET last_referenced_at = ?
                    WHERE project_id = ? AND element_id IN ({placeholders})""",  # noqa: S608
                [stamp, project_id, *element_ids],
            )
            conn.commit()
            return cursor.rowcount

    def get_metadata(self, key: str) -> Any:
        """Get a metadata value."""
        rows = self._execute("SELECT value FROM metadata WHERE key = ?", (key,))
        if rows:
            return json.loads(rows[0]["value"])
        return None

    def set_metadata(self, key: str, value: Any) -> None:
        """Set a single metadata value."""
        with self._lock:
            conn = self._get_conn()
            conn.execute(
                "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
                (key, json.dumps(value)),
            )
            conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None
