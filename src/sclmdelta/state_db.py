from __future__ import annotations

import json
import sqlite3
import tomllib
from functools import lru_cache
from importlib import metadata
from pathlib import Path

from .models import FileState, format_timestamp, parse_edit_type, parse_timestamp
from .reconcile import Revision


def _connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


@lru_cache(maxsize=1)
def _project_version() -> str:
    try:
        return metadata.version("sclmdelta")
    except metadata.PackageNotFoundError:
        pass
    pyproject = Path(__file__).resolve().parents[2] / "pyproject.toml"
    data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
    version = str(data["project"]["version"]).strip()
    if not version:
        raise RuntimeError("project.version in pyproject.toml is empty")
    return version


def _drop_all_user_objects(conn: sqlite3.Connection) -> None:
    rows = conn.execute(
        """
        SELECT type, name
        FROM sqlite_master
        WHERE name NOT LIKE 'sqlite_%'
        ORDER BY CASE type WHEN 'index' THEN 0 WHEN 'table' THEN 1 ELSE 2 END
        """
    ).fetchall()
    for row in rows:
        obj_type = str(row["type"])
        quoted = f'"{row["name"]}"'
        if obj_type == "table":
            conn.execute(f"DROP TABLE IF EXISTS {quoted}")
        elif obj_type == "index":
            conn.execute(f"DROP INDEX IF EXISTS {quoted}")


def _ensure_versioned_db(conn: sqlite3.Connection) -> None:
    expected_version = _project_version()
    try:
        row = conn.execute(
            "SELECT value FROM sclmdelta WHERE key = 'version'"
        ).fetchone()
    except sqlite3.Error:
        row = None
    if row is None or str(row["value"]) != expected_version:
        _drop_all_user_objects(conn)
        conn.execute(
            """
            CREATE TABLE sclmdelta (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )
        conn.execute(
            "INSERT INTO sclmdelta(key, value) VALUES ('version', ?)",
            (expected_version,),
        )


def _init_schema(conn: sqlite3.Connection) -> None:
    conn.execute("PRAGMA journal_mode=WAL")
    _ensure_versioned_db(conn)

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS revisions (
            library_key TEXT PRIMARY KEY,
            types_json TEXT NOT NULL,
            updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS revision_files (
            library_key TEXT NOT NULL,
            path TEXT NOT NULL,
            project TEXT NOT NULL,
            alternate TEXT NOT NULL,
            sclm_group TEXT NOT NULL,
            member_type TEXT NOT NULL,
            name TEXT NOT NULL,
            version INTEGER NOT NULL,
            change_date TEXT NOT NULL,
            change_user_id TEXT NOT NULL,
            change_group TEXT NOT NULL,
            edit_type TEXT NOT NULL,
            PRIMARY KEY (library_key, path)
        )
        """
    )
    conn.commit()


def save_revision(db_path: Path, library_key: str, revision: Revision) -> None:
    conn = _connect(db_path)
    try:
        _init_schema(conn)
        with conn:
            conn.execute(
                """
                INSERT INTO revisions (library_key, types_json, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(library_key) DO UPDATE SET
                    types_json = excluded.types_json,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (library_key, json.dumps(list(revision.types), ensure_ascii=True)),
            )
            conn.execute(
                "DELETE FROM revision_files WHERE library_key = ?", (library_key,)
            )
            conn.executemany(
                """
                INSERT OR REPLACE INTO revision_files (
                    library_key,
                    path,
                    project,
                    alternate,
                    sclm_group,
                    member_type,
                    name,
                    version,
                    change_date,
                    change_user_id,
                    change_group,
                    edit_type
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        library_key,
                        f.identity_path,
                        f.project,
                        f.alternate,
                        f.group,
                        f.type,
                        f.name,
                        f.version,
                        format_timestamp(f.change_date),
                        f.change_user_id,
                        f.change_group,
                        f.edit_type.value if f.edit_type is not None else "",
                    )
                    for f in revision.files
                ],
            )
    finally:
        conn.close()


def load_revision(db_path: Path, library_key: str) -> Revision | None:
    conn = _connect(db_path)
    try:
        _init_schema(conn)
        meta = conn.execute(
            "SELECT types_json FROM revisions WHERE library_key = ?",
            (library_key,),
        ).fetchone()
        if meta is None:
            return None
        rows = conn.execute(
            """
            SELECT project, alternate, sclm_group, member_type, name, version,
                   change_date, change_user_id, change_group, edit_type
            FROM revision_files
            WHERE library_key = ?
            """,
            (library_key,),
        ).fetchall()
        files = [
            FileState(
                project=str(row["project"]),
                alternate=str(row["alternate"]),
                group=str(row["sclm_group"]),
                type=str(row["member_type"]),
                name=str(row["name"]),
                version=int(row["version"]),
                change_date=parse_timestamp(str(row["change_date"])),
                change_user_id=str(row["change_user_id"]),
                change_group=str(row["change_group"]),
                edit_type=parse_edit_type(str(row["edit_type"])),
            )
            for row in rows
        ]
        return Revision.restore(files, json.loads(meta["types_json"]))
    finally:
        conn.close()


def list_libraries(db_path: Path) -> list[str]:
    conn = _connect(db_path)
    try:
        _init_schema(conn)
        rows = conn.execute(
            "SELECT library_key FROM revisions ORDER BY library_key"
        ).fetchall()
        return [str(row["library_key"]) for row in rows]
    finally:
        conn.close()
