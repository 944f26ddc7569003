#!/usr/bin/env python3
"""
Seed the knowledge base from raw email threads.

Reads data/emails.json, extracts Q&A pairs with the LLM (one thread every few
seconds), rebuilds the SQLite DB, then embeds every pair into Milvus.

Run from project root:

    python scripts/seed.py
    python scripts/seed.py --skip-api-calls --skip-vector-store
    python scripts/seed.py --data path/to/emails.json --max-threads 10

SKIP_API_CALLS=true / SKIP_VECTOR_STORE=true in .env work like the flags.
"""

import argparse
import logging
import sys
from pathlib import Path

# Project root on path so "inquiro" resolves
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from inquiro.api.deps import build_embedder, build_index, build_llm
from inquiro.core import config
from inquiro.core.knowledge_db import KnowledgeDB
from inquiro.services.extraction import KnowledgeExtractor
from inquiro.services.seeding import KnowledgeSeeder

logger = logging.getLogger("seed")


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed the knowledge base from email threads.")
    parser.add_argument("--data", default=config.EMAILS_PATH, help="Path to emails.json.")
    parser.add_argument("--max-threads", type=int, default=config.SEED_MAX_THREADS,
                        help="Number of threads to extract (quota management).")
    parser.add_argument("--delay", type=float, default=config.SEED_DELAY_SECONDS,
                        help="Seconds to wait between hosted-API requests.")
    parser.add_argument("--skip-api-calls", action="store_true", default=config.SKIP_API_CALLS,
                        help="Use built-in mock extractions instead of calling the LLM.")
    parser.add_argument("--skip-vector-store", action="store_true", default=config.SKIP_VECTOR_STORE,
                        help="Do not embed or write to Milvus.")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)

    seeder = KnowledgeSeeder(
        db=KnowledgeDB(config.DB_PATH),
        extractor=KnowledgeExtractor(build_llm(), max_tokens=config.EXTRACTION_MAX_TOKENS),
        embedder=build_embedder(),
        index=build_index(),
        delay_seconds=args.delay,
        upsert_batch_size=config.UPSERT_BATCH_SIZE,
        index_ready_attempts=config.INDEX_READY_ATTEMPTS,
        index_ready_interval=config.INDEX_READY_INTERVAL,
    )
    try:
        report = seeder.run(
            args.data,
            max_threads=args.max_threads,
            skip_api_calls=args.skip_api_calls,
            skip_vector_store=args.skip_vector_store,
        )
    except Exception:
        logger.exception("An error occurred during the seeding process")
        return 1

    print(
        f"Done. threads={report.threads_read} extractions={report.extractions} "
        f"pairs={report.knowledge_pairs} edges={report.edges} vectors={report.vectors}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
