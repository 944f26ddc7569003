"""
Tests for the SQLite knowledge store, each against a fresh temporary file.
"""

import pytest

from inquiro.core.errors import KnowledgePairNotFoundError
from inquiro.core.knowledge_db import KnowledgeDB


def test_add_users_ignores_duplicates(db: KnowledgeDB) -> None:
    first = db.add_users(["a@example.com", "b@example.com"])
    second = db.add_users(["a@example.com"])
    assert set(first) == {"a@example.com", "b@example.com"}
    assert second["a@example.com"] == first["a@example.com"]


def test_add_users_empty(db: KnowledgeDB) -> None:
    assert db.add_users([]) == {}


def test_get_knowledge_pairs_keeps_requested_order_and_drops_unknown(db: KnowledgeDB) -> None:
    a = db.add_knowledge_pair("Qa", "Aa")
    b = db.add_knowledge_pair("Qb", "Ab")
    pairs = db.get_knowledge_pairs([b, "missing", a, b])
    assert [p.id for p in pairs] == [b, a]


def test_get_knowledge_pairs_empty_ids(db: KnowledgeDB) -> None:
    assert db.get_knowledge_pairs([]) == []


def test_require_knowledge_pair_raises_for_unknown(db: KnowledgeDB) -> None:
    with pytest.raises(KnowledgePairNotFoundError) as exc:
        db.require_knowledge_pair("nope")
    assert exc.value.pair_id == "nope"


def test_list_knowledge_pairs_oldest_first(db: KnowledgeDB) -> None:
    db.add_knowledge_pair("first", "1")
    db.add_knowledge_pair("second", "2")
    assert [p.question for p in db.list_knowledge_pairs()] == ["first", "second"]


def test_to_source_shape(db: KnowledgeDB) -> None:
    pair_id = db.add_knowledge_pair("Q", "A")
    assert db.require_knowledge_pair(pair_id).to_source() == {"question": "Q", "answer": "A", "id": pair_id}


def test_add_edge_rejects_unknown_relationship(seeded_db) -> None:
    db = seeded_db["db"]
    with pytest.raises(ValueError):
        db.add_edge(seeded_db["espresso"], seeded_db["records"], "CONTRADICTS")


def test_list_edges(seeded_db) -> None:
    assert seeded_db["db"].list_edges() == [{
        "source_pair_id": seeded_db["espresso"],
        "target_pair_id": seeded_db["records"],
        "relationship_type": "CLARIFIES",
    }]


def test_source_threads_include_every_message_of_the_thread(seeded_db) -> None:
    threads = seeded_db["db"].get_source_threads(seeded_db["espresso"])
    assert len(threads) == 1
    thread = threads[0]
    assert thread.subject == "Espresso machine"
    assert [m.original_message_id for m in thread.messages] == ["msg_1", "msg_2"]
    assert thread.messages[0].author_email == "client@example.com"


def test_source_threads_for_pair_without_sources(db: KnowledgeDB) -> None:
    pair_id = db.add_knowledge_pair("Q", "A")
    assert db.get_source_threads(pair_id) == []


def test_message_id_map(seeded_db) -> None:
    mapping = seeded_db["db"].get_message_id_map()
    assert set(mapping) == {"msg_1", "msg_2"}


def test_clear_all_empties_every_table(seeded_db) -> None:
    db = seeded_db["db"]
    db.clear_all()
    assert db.list_knowledge_pairs() == []
    assert db.list_edges() == []
    assert db.get_message_id_map() == {}
    # Users table is empty too: re-adding gives fresh ids without conflict
    assert set(db.add_users(["client@example.com"])) == {"client@example.com"}


def test_database_file_is_created_in_missing_directory(tmp_path) -> None:
    db = KnowledgeDB(tmp_path / "nested" / "dir" / "kb.db")
    db.init_db()
    assert (tmp_path / "nested" / "dir" / "kb.db").exists()
