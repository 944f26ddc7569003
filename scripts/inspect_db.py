#!/usr/bin/env python3
"""
Print the knowledge pairs currently stored in the SQLite DB.

Run from project root:

    python scripts/inspect_db.py
    python scripts/inspect_db.py --db data/other.db
"""

import argparse
import sys
from pathlib import Path

# Project root on path so "inquiro" resolves
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from inquiro.core import config
from inquiro.core.knowledge_db import KnowledgeDB


def main() -> None:
    parser = argparse.ArgumentParser(description="List knowledge pairs in the DB.")
    parser.add_argument("--db", default=config.DB_PATH, help="Path to the SQLite file.")
    args = parser.parse_args()

    pairs = KnowledgeDB(args.db).list_knowledge_pairs()
    print(f"Total knowledge pairs: {len(pairs)}")
    print("\nKnowledge pairs:")
    for index, kp in enumerate(pairs, start=1):
        print(f"{index}. Q: {kp.question}")
        print(f"   A: {kp.answer[:100]}...")
        print("")


if __name__ == "__main__":
    main()
