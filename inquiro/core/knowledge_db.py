"""
SQLite store for the email knowledge base.

Tables: users, threads, messages, knowledge_pairs, knowledge_pair_sources,
knowledge_edges. Knowledge pair ids double as vector ids in Milvus, so the
query pipeline can map search matches back to rows here.
"""

import logging
import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from inquiro.core.errors import KnowledgePairNotFoundError

logger = logging.getLogger(__name__)

RELATIONSHIP_TYPES = frozenset({"CLARIFIES", "EXPANDS_ON", "IS_FOLLOW_UP_TO"})

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE
);
CREATE TABLE IF NOT EXISTS threads (
    id TEXT PRIMARY KEY,
    subject TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS messages (
    id TEXT PRIMARY KEY,
    original_message_id TEXT NOT NULL UNIQUE,
    content TEXT NOT NULL,
    sent_at TEXT NOT NULL,
    author_id TEXT NOT NULL REFERENCES users(id),
    thread_id TEXT NOT NULL REFERENCES threads(id)
);
CREATE TABLE IF NOT EXISTS knowledge_pairs (
    id TEXT PRIMARY KEY,
    question TEXT NOT NULL,
    answer TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS knowledge_pair_sources (
    knowledge_pair_id TEXT NOT NULL REFERENCES knowledge_pairs(id),
    message_id TEXT NOT NULL REFERENCES messages(id),
    PRIMARY KEY (knowledge_pair_id, message_id)
);
CREATE TABLE IF NOT EXISTS knowledge_edges (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    source_pair_id TEXT NOT NULL REFERENCES knowledge_pairs(id),
    target_pair_id TEXT NOT NULL REFERENCES knowledge_pairs(id),
    relationship_type TEXT NOT NULL
);
"""

# Children first so foreign keys never dangle mid-clear
_CLEAR_ORDER = (
    "knowledge_edges",
    "knowledge_pair_sources",
    "knowledge_pairs",
    "messages",
    "threads",
    "users",
)


@dataclass
class KnowledgePair:
    id: str
    question: str
    answer: str

    def to_source(self) -> dict[str, str]:
        """Citation shape returned to the chat UI."""
        return {"question": self.question, "answer": self.answer, "id": self.id}


@dataclass
class ThreadMessage:
    original_message_id: str
    author_email: str
    sent_at: str
    content: str


@dataclass
class SourceThread:
    id: str
    subject: str
    messages: list[ThreadMessage] = field(default_factory=list)


def _new_id() -> str:
    return uuid.uuid4().hex


class KnowledgeDB:
    """Thin repository over one SQLite file. A connection is opened per operation."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)

    def _get_conn(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def init_db(self) -> None:
        """Create all tables if they do not exist."""
        conn = self._get_conn()
        try:
            conn.executescript(_SCHEMA)
            conn.commit()
        finally:
            conn.close()

    def clear_all(self) -> None:
        """Delete every row from every table (schema is kept)."""
        self.init_db()
        conn = self._get_conn()
        try:
            for table in _CLEAR_ORDER:
                conn.execute(f"DELETE FROM {table}")
            conn.commit()
            logger.info("[knowledge_db] cleared all tables")
        finally:
            conn.close()

    # --- Raw email data ---

    def add_users(self, emails: list[str]) -> dict[str, str]:
        """Insert users by email (duplicates ignored). Returns email -> user id for all given emails."""
        if not emails:
            return {}
        self.init_db()
        conn = self._get_conn()
        try:
            for email in emails:
                conn.execute(
                    "INSERT OR IGNORE INTO users (id, email) VALUES (?, ?)",
                    (_new_id(), email),
                )
            conn.commit()
            placeholders = ",".join("?" for _ in emails)
            rows = conn.execute(
                f"SELECT id, email FROM users WHERE email IN ({placeholders})", list(emails)
            ).fetchall()
            return {row["email"]: row["id"] for row in rows}
        finally:
            conn.close()

    def add_thread(self, thread_id: str, subject: str) -> None:
        self.init_db()
        conn = self._get_conn()
        try:
            conn.execute("INSERT INTO threads (id, subject) VALUES (?, ?)", (thread_id, subject))
            conn.commit()
        finally:
            conn.close()

    def add_message(
        self,
        original_message_id: str,
        content: str,
        sent_at: str,
        author_id: str,
        thread_id: str,
    ) -> str:
        """Insert one message and return its database id."""
        message_id = _new_id()
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO messages (id, original_message_id, content, sent_at, author_id, thread_id)"
                " VALUES (?, ?, ?, ?, ?, ?)",
                (message_id, original_message_id, content, sent_at, author_id, thread_id),
            )
            conn.commit()
        finally:
            conn.close()
        return message_id

    def get_message_id_map(self) -> dict[str, str]:
        """Map original (email) message id -> database message id."""
        self.init_db()
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT id, original_message_id FROM messages").fetchall()
            return {row["original_message_id"]: row["id"] for row in rows}
        finally:
            conn.close()

    # --- Knowledge ---

    def add_knowledge_pair(self, question: str, answer: str) -> str:
        """Insert a knowledge pair and return its id."""
        self.init_db()
        pair_id = _new_id()
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO knowledge_pairs (id, question, answer, created_at) VALUES (?, ?, ?, ?)",
                (pair_id, question, answer, datetime.now(timezone.utc).isoformat()),
            )
            conn.commit()
        finally:
            conn.close()
        return pair_id

    def add_pair_source(self, pair_id: str, message_id: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT OR IGNORE INTO knowledge_pair_sources (knowledge_pair_id, message_id) VALUES (?, ?)",
                (pair_id, message_id),
            )
            conn.commit()
        finally:
            conn.close()

    def add_edge(self, source_pair_id: str, target_pair_id: str, relationship_type: str) -> None:
        if relationship_type not in RELATIONSHIP_TYPES:
            raise ValueError(f"Unknown relationship type: {relationship_type!r}")
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO knowledge_edges (source_pair_id, target_pair_id, relationship_type)"
                " VALUES (?, ?, ?)",
                (source_pair_id, target_pair_id, relationship_type),
            )
            conn.commit()
        finally:
            conn.close()

    def list_knowledge_pairs(self) -> list[KnowledgePair]:
        """All knowledge pairs, oldest first."""
        self.init_db()
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT id, question, answer FROM knowledge_pairs ORDER BY created_at ASC, rowid ASC"
            ).fetchall()
            return [KnowledgePair(row["id"], row["question"], row["answer"]) for row in rows]
        finally:
            conn.close()

    def get_knowledge_pairs(self, pair_ids: list[str]) -> list[KnowledgePair]:
        """Fetch pairs by id, in the order given. Unknown ids are dropped."""
        if not pair_ids:
            return []
        self.init_db()
        conn = self._get_conn()
        try:
            placeholders = ",".join("?" for _ in pair_ids)
            rows = conn.execute(
                f"SELECT id, question, answer FROM knowledge_pairs WHERE id IN ({placeholders})",
                list(pair_ids),
            ).fetchall()
        finally:
            conn.close()
        by_id = {row["id"]: KnowledgePair(row["id"], row["question"], row["answer"]) for row in rows}
        return [by_id[pid] for pid in dict.fromkeys(pair_ids) if pid in by_id]

    def get_knowledge_pair(self, pair_id: str) -> KnowledgePair | None:
        pairs = self.get_knowledge_pairs([pair_id])
        return pairs[0] if pairs else None

    def require_knowledge_pair(self, pair_id: str) -> KnowledgePair:
        """Like get_knowledge_pair, but raises KnowledgePairNotFoundError for unknown ids."""
        pair = self.get_knowledge_pair(pair_id)
        if pair is None:
            raise KnowledgePairNotFoundError(pair_id)
        return pair

    def list_edges(self) -> list[dict[str, str]]:
        self.init_db()
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT source_pair_id, target_pair_id, relationship_type FROM knowledge_edges ORDER BY id ASC"
            ).fetchall()
            return [dict(row) for row in rows]
        finally:
            conn.close()

    def get_source_threads(self, pair_id: str) -> list[SourceThread]:
        """
        Every thread containing at least one source message of the pair, with all
        of its messages (not just the sources) ordered by send time.
        """
        self.init_db()
        conn = self._get_conn()
        try:
            thread_rows = conn.execute(
                """
                SELECT DISTINCT t.id, t.subject
                FROM knowledge_pair_sources s
                JOIN messages m ON m.id = s.message_id
                JOIN threads t ON t.id = m.thread_id
                WHERE s.knowledge_pair_id = ?
                ORDER BY t.id
                """,
                (pair_id,),
            ).fetchall()
            threads: list[SourceThread] = []
            for row in thread_rows:
                message_rows = conn.execute(
                    """
                    SELECT m.original_message_id, u.email, m.sent_at, m.content
                    FROM messages m
                    JOIN users u ON u.id = m.author_id
                    WHERE m.thread_id = ?
                    ORDER BY m.sent_at ASC
                    """,
                    (row["id"],),
                ).fetchall()
                threads.append(SourceThread(
                    id=row["id"],
                    subject=row["subject"],
                    messages=[ThreadMessage(*tuple(m)) for m in message_rows],
                ))
            return threads
        finally:
            conn.close()
