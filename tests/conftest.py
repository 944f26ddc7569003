"""
Shared fixtures: a temporary SQLite knowledge base, empty or pre-populated.
"""

import pytest

from inquiro.core.knowledge_db import KnowledgeDB


@pytest.fixture
def db(tmp_path) -> KnowledgeDB:
    knowledge_db = KnowledgeDB(tmp_path / "inquiro.db")
    knowledge_db.init_db()
    return knowledge_db


@pytest.fixture
def seeded_db(db: KnowledgeDB) -> dict:
    """One thread with two messages and two knowledge pairs sourced from it."""
    users = db.add_users(["client@example.com", "advisor@firm.example.com"])
    db.add_thread("thread_1", "Espresso machine")
    q_id = db.add_message("msg_1", "Can I deduct the espresso machine?", "2024-03-06T08:40:00+00:00",
                          users["client@example.com"], "thread_1")
    a_id = db.add_message("msg_2", "Yes, keep the receipt.", "2024-03-06T11:25:00+00:00",
                          users["advisor@firm.example.com"], "thread_1")
    espresso = db.add_knowledge_pair(
        "Is an office espresso machine deductible?",
        "Yes, an office espresso machine is generally a fully deductible business expense.",
    )
    records = db.add_knowledge_pair(
        "What documentation do I need for deductions?",
        "Receipts, invoices and proof of business purpose, kept for at least 3 years.",
    )
    db.add_pair_source(espresso, a_id)
    db.add_pair_source(records, q_id)
    db.add_edge(espresso, records, "CLARIFIES")
    return {"db": db, "espresso": espresso, "records": records}
