from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from helpdesk_copilot.core.settings import Settings, ensure_directories


def connect(settings: Settings) -> sqlite3.Connection:
    ensure_directories(settings)

    conn = sqlite3.connect(str(settings.db_file), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def transaction(settings: Settings) -> Iterator[sqlite3.Connection]:
    """Yield one connection whose writes commit together or not at all."""
    conn = connect(settings)
    try:
        with conn:
            yield conn
    finally:
        conn.close()


@contextmanager
def use_connection(settings: Settings, conn: sqlite3.Connection | None) -> Iterator[sqlite3.Connection]:
    if conn is not None:
        yield conn
        return
    with transaction(settings) as owned:
        yield owned


def row_to_dict(row: sqlite3.Row | None) -> dict[str, Any] | None:
    if row is None:
        return None
    return dict(row)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def dump_json(value: Any) -> str:
    return json.dumps(value)


def load_json(raw: Any, default: Any) -> Any:
    if raw is None or raw == "":
        return default
    try:
        return json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        return default


def init_db(settings: Settings) -> None:
    with transaction(settings) as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS tickets (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                thread_id TEXT UNIQUE NOT NULL,
                customer_email TEXT NOT NULL,
                customer_name TEXT,
                subject TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'open',
                priority TEXT,
                assignee_id TEXT,
                tags TEXT NOT NULL DEFAULT '[]',
                last_customer_reply_at TEXT,
                last_agent_reply_at TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS ticket_notes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                ticket_id INTEGER NOT NULL REFERENCES tickets(id),
                user_id TEXT NOT NULL,
                content TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS mail_messages (
                id TEXT PRIMARY KEY,
                thread_id TEXT NOT NULL,
                subject TEXT NOT NULL DEFAULT '',
                from_address TEXT NOT NULL DEFAULT '',
                to_address TEXT NOT NULL DEFAULT '',
                body TEXT NOT NULL DEFAULT '',
                direction TEXT NOT NULL DEFAULT 'inbound',
                sent_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS mail_messages_thread_idx
            ON mail_messages (thread_id, sent_at);

            CREATE TABLE IF NOT EXISTS drafts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                email_id TEXT NOT NULL,
                owner_scope TEXT NOT NULL,
                thread_id TEXT,
                ticket_id INTEGER,
                subject TEXT NOT NULL DEFAULT '',
                from_address TEXT NOT NULL DEFAULT '',
                to_address TEXT NOT NULL DEFAULT '',
                original_body TEXT NOT NULL DEFAULT '',
                draft_text TEXT NOT NULL,
                generated_text TEXT NOT NULL,
                source_user_id TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                UNIQUE (email_id, owner_scope)
            );

            CREATE TABLE IF NOT EXISTS style_exemplars (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                message_id TEXT UNIQUE NOT NULL,
                thread_id TEXT,
                subject TEXT NOT NULL DEFAULT '',
                body TEXT NOT NULL,
                from_address TEXT NOT NULL DEFAULT '',
                to_address TEXT NOT NULL DEFAULT '',
                is_reply INTEGER NOT NULL DEFAULT 0,
                has_embedding INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS knowledge_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                body TEXT NOT NULL,
                tags TEXT NOT NULL DEFAULT '[]',
                can_paraphrase INTEGER NOT NULL DEFAULT 1,
                status TEXT NOT NULL DEFAULT 'pending',
                version INTEGER NOT NULL DEFAULT 0,
                pending_changes TEXT,
                published_at TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS guardrails (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                active TEXT NOT NULL,
                draft TEXT,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS ai_usage_events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                action TEXT NOT NULL,
                draft_id INTEGER,
                ticket_id INTEGER,
                user_id TEXT,
                was_edited INTEGER NOT NULL DEFAULT 0,
                was_sent INTEGER NOT NULL DEFAULT 0,
                response_latency_ms INTEGER,
                knowledge_item_ids TEXT NOT NULL DEFAULT '[]',
                exemplar_ids TEXT NOT NULL DEFAULT '[]',
                guardrail_applied INTEGER NOT NULL DEFAULT 0,
                guardrail_blocked INTEGER NOT NULL DEFAULT 0,
                fallback_used INTEGER NOT NULL DEFAULT 0,
                draft_length INTEGER,
                created_at TEXT NOT NULL
            );
            """
        )
