"""
Seeding pipeline: email threads → LLM extraction → SQLite → embeddings → Milvus.

Responsibility: rebuild the whole knowledge base from emails.json. Hosted-API
calls are made one at a time with a fixed delay to stay inside free-tier quotas.
No HTTP or FastAPI here; scripts/seed.py is the entry point.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Callable, TypeVar

from inquiro.core.knowledge_db import KnowledgeDB
from inquiro.schemas.knowledge import RAW_THREADS, ExtractionResult, RawThread
from inquiro.services.extraction import MOCK_EXTRACTIONS, KnowledgeExtractor
from inquiro.services.vector_store import HFEmbedder, MilvusKnowledgeIndex

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class SeedReport:
    threads_read: int = 0
    extractions: int = 0
    knowledge_pairs: int = 0
    edges: int = 0
    vectors: int = 0


def process_with_rate_limit(
    items: list[T],
    processor: Callable[[T, int], R],
    delay_seconds: float = 4.0,
    sleep: Callable[[float], None] = time.sleep,
) -> list[R | None]:
    """
    Run processor over items sequentially, sleeping between calls (not after
    the last). A failing item yields None so callers can filter it out.
    """
    results: list[R | None] = []
    for index, item in enumerate(items):
        try:
            results.append(processor(item, index))
        except Exception as e:
            logger.error("Failed to process item %d: %s", index, e)
            results.append(None)
        if index < len(items) - 1:
            sleep(delay_seconds)
    return results


def load_threads(path: str | Path) -> list[RawThread]:
    return RAW_THREADS.validate_json(Path(path).read_bytes())


def normalize_sent_at(value: str) -> str:
    """ISO-8601 UTC timestamp from an ISO or RFC 2822 date; unparseable input is kept as-is."""
    value = (value or "").strip()
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        try:
            dt = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            logger.warning("Unparseable message date %r, storing as-is", value)
            return value
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def embedding_text(question: str, answer: str) -> str:
    return f"Question: {question}\nAnswer: {answer}"


class KnowledgeSeeder:
    def __init__(
        self,
        db: KnowledgeDB,
        extractor: KnowledgeExtractor | None,
        embedder: HFEmbedder | None,
        index: MilvusKnowledgeIndex | None,
        delay_seconds: float = 4.0,
        upsert_batch_size: int = 100,
        index_ready_attempts: int = 12,
        index_ready_interval: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.db = db
        self.extractor = extractor
        self.embedder = embedder
        self.index = index
        self.delay_seconds = delay_seconds
        self.upsert_batch_size = upsert_batch_size
        self.index_ready_attempts = index_ready_attempts
        self.index_ready_interval = index_ready_interval
        self.sleep = sleep

    def run(
        self,
        emails_path: str | Path,
        max_threads: int = 5,
        skip_api_calls: bool = False,
        skip_vector_store: bool = False,
    ) -> SeedReport:
        logger.info("Starting the seeding process...")
        report = SeedReport()

        threads = load_threads(emails_path)
        report.threads_read = len(threads)
        logger.info("Read %d threads from %s", len(threads), emails_path)

        if skip_api_calls:
            logger.info("Skipping API calls - using %d mock extractions", len(MOCK_EXTRACTIONS))
            extractions = list(MOCK_EXTRACTIONS)
            threads_for_db = threads[:1]
        else:
            threads_for_db = threads[:max_threads]
            extractions = self.extract_all(threads_for_db)
        report.extractions = len(extractions)

        report.knowledge_pairs, report.edges = self.populate_database(threads_for_db, extractions)

        if skip_vector_store:
            logger.info("Skipping vector store operations")
        else:
            report.vectors = self.populate_vector_index()

        logger.info("Seeding process finished: %s", report)
        return report

    def extract_all(self, threads: list[RawThread]) -> list[ExtractionResult]:
        if self.extractor is None:
            raise ValueError("An extractor is required unless API calls are skipped")
        logger.info("Extracting knowledge from %d threads", len(threads))
        results = process_with_rate_limit(
            threads,
            lambda thread, _index: self.extractor.extract(thread),
            delay_seconds=self.delay_seconds,
            sleep=self.sleep,
        )
        extractions = [r for r in results if r is not None]
        logger.info("Extracted knowledge from %d/%d threads", len(extractions), len(threads))
        return extractions

    def populate_database(
        self, threads: list[RawThread], extractions: list[ExtractionResult]
    ) -> tuple[int, int]:
        """Replace all relational data. Returns (knowledge pairs, edges) created."""
        db = self.db
        logger.info("Clearing old data...")
        db.clear_all()

        emails = list(dict.fromkeys(
            email for t in threads for m in t.messages for email in (m.sender, m.recipient)
        ))
        user_ids = db.add_users(emails)

        for thread in threads:
            db.add_thread(thread.id, thread.subject)
            for message in thread.messages:
                db.add_message(
                    original_message_id=message.id,
                    content=message.content,
                    sent_at=normalize_sent_at(message.date),
                    author_id=user_ids[message.sender],
                    thread_id=thread.id,
                )
        message_ids = db.get_message_id_map()

        pair_count = 0
        edge_count = 0
        for extraction in extractions:
            # Temporary ids ("kp_1") restart in every extraction
            temp_to_db: dict[str, str] = {}
            for kp in extraction.knowledge_pairs:
                pair_id = db.add_knowledge_pair(kp.question, kp.answer)
                temp_to_db[kp.id] = pair_id
                pair_count += 1
                for source_id in kp.source_message_ids:
                    message_id = message_ids.get(source_id)
                    if message_id:
                        db.add_pair_source(pair_id, message_id)
                    else:
                        logger.info("Source message %s not in DB, skipping link", source_id)
            for edge in extraction.knowledge_edges:
                source = temp_to_db.get(edge.source_pair_id)
                target = temp_to_db.get(edge.target_pair_id)
                if not source or not target:
                    logger.warning(
                        "Skipping edge %s -> %s: unknown pair id", edge.source_pair_id, edge.target_pair_id
                    )
                    continue
                db.add_edge(source, target, edge.relationship_type)
                edge_count += 1

        logger.info("Database populated: users=%d threads=%d pairs=%d edges=%d",
                    len(user_ids), len(threads), pair_count, edge_count)
        return pair_count, edge_count

    def populate_vector_index(self) -> int:
        """Rebuild the Milvus collection from the knowledge pairs in SQLite. Returns vectors upserted."""
        if self.embedder is None or self.index is None:
            raise ValueError("An embedder and index are required unless the vector store is skipped")
        # Pair ids change on every seed
        self.index.drop()
        self.index.ensure_collection(
            attempts=self.index_ready_attempts,
            interval=self.index_ready_interval,
            sleep=self.sleep,
        )

        pairs = self.db.list_knowledge_pairs()
        texts = [embedding_text(kp.question, kp.answer) for kp in pairs]
        logger.info("Creating embeddings for %d knowledge pairs", len(texts))
        embeddings = process_with_rate_limit(
            texts,
            lambda text, _index: self.embedder.embed_query(text),
            delay_seconds=self.delay_seconds,
            sleep=self.sleep,
        )

        vectors = [
            {"id": kp.id, "vector": emb, "question": kp.question}
            for kp, emb in zip(pairs, embeddings)
            if emb is not None
        ]
        if len(vectors) < len(pairs):
            logger.warning("%d knowledge pairs could not be embedded", len(pairs) - len(vectors))
        return self.index.upsert(vectors, batch_size=self.upsert_batch_size)
