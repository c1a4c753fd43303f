"""SQLite-backed structured state storage.

This module stores only structured gateway records:
- users, their API token hash and saved RCON target
- audit log of mutating gateway operations
- chat log of broadcasts and private messages
- player session join times derived from ``list`` polls
"""

from __future__ import annotations

import hashlib
import sqlite3
import time
from pathlib import Path


ROLE_ADMIN = "admin"
ROLE_USER = "user"
ROLES = (ROLE_ADMIN, ROLE_USER)


def hash_api_token(token):
    return hashlib.sha256(str(token or "").encode("utf-8")).hexdigest()


def _now_ms():
    return int(time.time() * 1000)


def _connect(db_path):
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path), timeout=5.0)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA synchronous=NORMAL")
    return conn


def _create_tables(conn):
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            role TEXT NOT NULL DEFAULT 'user',
            token_hash TEXT UNIQUE,
            server_host TEXT,
            server_port INTEGER,
            server_password TEXT,
            updated_at TEXT NOT NULL DEFAULT (datetime('now'))
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS audit_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            action TEXT NOT NULL,
            target TEXT,
            detail TEXT,
            ts INTEGER NOT NULL
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS chat_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id TEXT NOT NULL,
            type TEXT NOT NULL,
            player TEXT,
            message TEXT NOT NULL,
            ts INTEGER NOT NULL
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS player_sessions (
            user_id TEXT NOT NULL,
            player_name TEXT NOT NULL,
            joined_at INTEGER NOT NULL,
            PRIMARY KEY (user_id, player_name)
        )
        """
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_audit_log_ts ON audit_log(ts)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_chat_log_user_ts ON chat_log(user_id, ts)")


def initialize_state_db(
    *,
    db_path,
    log_exception=None,
):
    """Create SQLite schema."""
    try:
        with _connect(db_path) as conn:
            _create_tables(conn)
            conn.commit()
        return True
    except Exception as exc:
        if callable(log_exception):
            try:
                log_exception("initialize_state_db", exc)
            except Exception:
                pass
        return False


def _user_from_row(row):
    if row is None:
        return None
    server = None
    if row["server_host"]:
        server = {
            "host": row["server_host"],
            "port": int(row["server_port"] or 0),
            "password": row["server_password"] or "",
        }
    return {"id": row["id"], "role": row["role"], "server": server}


class StateStore:
    """Explicit handle over one SQLite file; pass it to whatever needs storage."""

    def __init__(self, db_path):
        self.db_path = Path(db_path)

    def initialize(self, log_exception=None):
        return initialize_state_db(db_path=self.db_path, log_exception=log_exception)

    def _conn(self):
        conn = _connect(self.db_path)
        _create_tables(conn)
        return conn

    # ----------------------------
    # Users and saved RCON targets
    # ----------------------------
    def upsert_user(self, user_id, role=ROLE_USER, api_token=None):
        """Create or update a user; ``api_token`` is stored hashed only."""
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        token_hash = hash_api_token(api_token) if api_token else None
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO users (id, role, token_hash, updated_at)
                VALUES (?, ?, ?, datetime('now'))
                ON CONFLICT(id) DO UPDATE SET
                    role = excluded.role,
                    token_hash = COALESCE(excluded.token_hash, users.token_hash),
                    updated_at = datetime('now')
                """,
                (str(user_id), role, token_hash),
            )
            conn.commit()

    def get_user(self, user_id):
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ? LIMIT 1", (str(user_id),)).fetchone()
        return _user_from_row(row)

    def find_user_by_token(self, api_token):
        if not api_token:
            return None
        with self._conn() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE token_hash = ? LIMIT 1",
                (hash_api_token(api_token),),
            ).fetchone()
        return _user_from_row(row)

    def save_server(self, user_id, host, port, password):
        with self._conn() as conn:
            conn.execute(
                """
                UPDATE users
                SET server_host = ?, server_port = ?, server_password = ?, updated_at = datetime('now')
                WHERE id = ?
                """,
                (host, int(port), password, str(user_id)),
            )
            conn.commit()

    def clear_server(self, user_id):
        with self._conn() as conn:
            conn.execute(
                """
                UPDATE users
                SET server_host = NULL, server_port = NULL, server_password = NULL, updated_at = datetime('now')
                WHERE id = ?
                """,
                (str(user_id),),
            )
            conn.commit()

    # ----------------------------
    # Audit and chat logs
    # ----------------------------
    def append_audit(self, user_id, action, target=None, detail=None):
        with self._conn() as conn:
            conn.execute(
                "INSERT INTO audit_log (user_id, action, target, detail, ts) VALUES (?, ?, ?, ?, ?)",
                (str(user_id), action, target, detail, _now_ms()),
            )
            conn.commit()

    def list_audit(self, limit=100):
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT id, user_id, action, target, detail, ts FROM audit_log ORDER BY id DESC LIMIT ?",
                (int(limit),),
            ).fetchall()
        return [dict(row) for row in rows]

    def append_chat(self, user_id, kind, message, player=None):
        with self._conn() as conn:
            conn.execute(
                "INSERT INTO chat_log (user_id, type, player, message, ts) VALUES (?, ?, ?, ?, ?)",
                (str(user_id), kind, player, message, _now_ms()),
            )
            conn.commit()

    def list_chat(self, user_id, since=0, limit=200):
        with self._conn() as conn:
            rows = conn.execute(
                """
                SELECT id, type, player, message, ts FROM chat_log
                WHERE user_id = ? AND ts > ?
                ORDER BY ts ASC, id ASC
                LIMIT ?
                """,
                (str(user_id), int(since), int(limit)),
            ).fetchall()
        return [dict(row) for row in rows]

    # ----------------------------
    # Player session join times
    # ----------------------------
    def sync_player_sessions(self, user_id, online_names):
        """Keep join times for players still online and return name -> joined_at (ms)."""
        names = list(dict.fromkeys(online_names))
        user_key = str(user_id)
        with self._conn() as conn:
            if not names:
                conn.execute("DELETE FROM player_sessions WHERE user_id = ?", (user_key,))
                conn.commit()
                return {}
            now = _now_ms()
            conn.executemany(
                "INSERT OR IGNORE INTO player_sessions (user_id, player_name, joined_at) VALUES (?, ?, ?)",
                [(user_key, name, now) for name in names],
            )
            placeholders = ", ".join("?" for _name in names)
            conn.execute(
                f"DELETE FROM player_sessions WHERE user_id = ? AND player_name NOT IN ({placeholders})",
                (user_key, *names),
            )
            rows = conn.execute(
                "SELECT player_name, joined_at FROM player_sessions WHERE user_id = ?",
                (user_key,),
            ).fetchall()
            conn.commit()
        return {row["player_name"]: int(row["joined_at"]) for row in rows}
