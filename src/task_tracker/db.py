from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generator, List, Mapping, Optional

from .errors import DuplicateUsername
from .models import TaskEntity, UserEntity
from .repositories import TaskRepository, UserRepository, new_id, utcnow


@dataclass(frozen=True)
class _TaskCols:
    table: str = "tasks"
    id: str = "id"
    title: str = "title"
    complete: str = "complete"
    owner_id: str = "owner_id"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


@dataclass(frozen=True)
class _UserCols:
    table: str = "users"
    id: str = "id"
    username: str = "username"
    password_hash: str = "password_hash"
    created_at: str = "created_at"


_T = _TaskCols()
_U = _UserCols()


def _dt_to_text(value: datetime) -> str:
    # Fixed precision keeps lexical order equal to chronological order.
    return value.isoformat(timespec="microseconds")


class SQLiteDatabase:
    """
    Owns the database file and hands out short-lived connections; both SQLite
    repositories share one instance.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path

    @property
    def path(self) -> str:
        return self._db_path

    @contextmanager
    def connect(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_schema(self) -> None:
        with self.connect() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_U.table} (
                    {_U.id} TEXT PRIMARY KEY,
                    {_U.username} TEXT NOT NULL UNIQUE,
                    {_U.password_hash} TEXT NOT NULL,
                    {_U.created_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_T.table} (
                    {_T.id} TEXT PRIMARY KEY,
                    {_T.title} TEXT NOT NULL,
                    {_T.complete} INTEGER NOT NULL DEFAULT 0,
                    {_T.owner_id} TEXT NOT NULL REFERENCES {_U.table}({_U.id}),
                    {_T.created_at} TEXT NOT NULL,
                    {_T.updated_at} TEXT NOT NULL
                )
                """
            )
            conn.execute(
                f"CREATE INDEX IF NOT EXISTS idx_{_T.table}_owner_created "
                f"ON {_T.table}({_T.owner_id}, {_T.created_at})"
            )


# PUBLIC_INTERFACE
def connect_database(db_path: str) -> SQLiteDatabase:
    """Open (creating if needed) the sqlite file at ``db_path`` and ensure the schema exists."""
    database = SQLiteDatabase(db_path)
    database.init_schema()
    return database


class SQLiteTaskRepository(TaskRepository):
    """
    Lightweight SQLite task repository. Ownership is part of every WHERE clause.
    """

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def _row_to_entity(self, row: sqlite3.Row) -> TaskEntity:
        return {
            "id": str(row[_T.id]),
            "title": str(row[_T.title]),
            "complete": bool(row[_T.complete]),
            "owner_id": str(row[_T.owner_id]),
            "created_at": datetime.fromisoformat(row[_T.created_at]),
            "updated_at": datetime.fromisoformat(row[_T.updated_at]),
        }

    def _select_owned(self, conn: sqlite3.Connection, task_id: str, owner_id: str) -> Optional[sqlite3.Row]:
        return conn.execute(
            f"SELECT * FROM {_T.table} WHERE {_T.id} = ? AND {_T.owner_id} = ?",
            (task_id, owner_id),
        ).fetchone()

    def create(self, owner_id: str, title: str, complete: bool = False) -> TaskEntity:
        now = _dt_to_text(utcnow())
        task_id = new_id()
        with self._db.connect() as conn:
            conn.execute(
                f"""
                INSERT INTO {_T.table} ({_T.id}, {_T.title}, {_T.complete}, {_T.owner_id},
                    {_T.created_at}, {_T.updated_at})
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (task_id, title, 1 if complete else 0, owner_id, now, now),
            )
            row = self._select_owned(conn, task_id, owner_id)
            if row is None:
                raise sqlite3.DatabaseError(f"inserted task {task_id} could not be read back")
            return self._row_to_entity(row)

    def list_for_owner(self, owner_id: str) -> List[TaskEntity]:
        with self._db.connect() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM {_T.table}
                WHERE {_T.owner_id} = ?
                ORDER BY {_T.created_at} DESC, rowid DESC
                """,
                (owner_id,),
            ).fetchall()
            return [self._row_to_entity(r) for r in rows]

    def get_owned(self, task_id: str, owner_id: str) -> Optional[TaskEntity]:
        with self._db.connect() as conn:
            row = self._select_owned(conn, task_id, owner_id)
            return self._row_to_entity(row) if row else None

    def update_owned(self, task_id: str, owner_id: str, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        assignments = [f"{_T.updated_at} = ?"]
        params: list = [_dt_to_text(utcnow())]
        if "title" in changes:
            assignments.append(f"{_T.title} = ?")
            params.append(changes["title"])
        if "complete" in changes:
            assignments.append(f"{_T.complete} = ?")
            params.append(1 if changes["complete"] else 0)

        with self._db.connect() as conn:
            cur = conn.execute(
                f"""
                UPDATE {_T.table}
                SET {', '.join(assignments)}
                WHERE {_T.id} = ? AND {_T.owner_id} = ?
                """,
                [*params, task_id, owner_id],
            )
            if cur.rowcount == 0:
                return None
            row = self._select_owned(conn, task_id, owner_id)
            return self._row_to_entity(row) if row else None

    def delete_owned(self, task_id: str, owner_id: str) -> bool:
        with self._db.connect() as conn:
            cur = conn.execute(
                f"DELETE FROM {_T.table} WHERE {_T.id} = ? AND {_T.owner_id} = ?",
                (task_id, owner_id),
            )
            return cur.rowcount > 0


class SQLiteUserRepository(UserRepository):
    """
    SQLite credential store; the UNIQUE constraint on username is authoritative.
    """

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def _row_to_entity(self, row: sqlite3.Row) -> UserEntity:
        return {
            "id": str(row[_U.id]),
            "username": str(row[_U.username]),
            "password_hash": str(row[_U.password_hash]),
            "created_at": datetime.fromisoformat(row[_U.created_at]),
        }

    def create(self, username: str, password_hash: str) -> UserEntity:
        user: UserEntity = {
            "id": new_id(),
            "username": username,
            "password_hash": password_hash,
            "created_at": utcnow(),
        }
        try:
            with self._db.connect() as conn:
                conn.execute(
                    f"""
                    INSERT INTO {_U.table} ({_U.id}, {_U.username}, {_U.password_hash}, {_U.created_at})
                    VALUES (?, ?, ?, ?)
                    """,
                    (user["id"], username, password_hash, _dt_to_text(user["created_at"])),
                )
        except sqlite3.IntegrityError as exc:
            raise DuplicateUsername(username) from exc
        return user

    def get_by_username(self, username: str) -> Optional[UserEntity]:
        with self._db.connect() as conn:
            row = conn.execute(
                f"SELECT * FROM {_U.table} WHERE {_U.username} = ?", (username,)
            ).fetchone()
            return self._row_to_entity(row) if row else None
