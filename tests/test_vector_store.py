"""
Tests for the embedding client and the Milvus knowledge index.

Milvus is replaced by a MagicMock through client_factory; HTTP calls are patched.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from inquiro.core.errors import ServiceUnavailableError
from inquiro.services.vector_store import HFEmbedder, MilvusKnowledgeIndex


def _index(client: MagicMock, uri: str = "https://milvus.example.com", token: str = "tok") -> MilvusKnowledgeIndex:
    return MilvusKnowledgeIndex(uri, token, "knowledge_base", 384, client_factory=lambda **kwargs: client)


def _loaded(name: str) -> dict:
    return {"state": SimpleNamespace(name=name)}


class TestMilvusKnowledgeIndex:
    def test_missing_credentials_raise(self) -> None:
        index = MilvusKnowledgeIndex("", "", "knowledge_base", 384, client_factory=MagicMock())
        with pytest.raises(ServiceUnavailableError):
            index.query([0.1, 0.2])

    def test_client_created_once(self) -> None:
        factory = MagicMock(return_value=MagicMock())
        index = MilvusKnowledgeIndex("https://milvus.example.com", "tok", "kb", 384, client_factory=factory)
        index.drop()
        index.drop()
        factory.assert_called_once_with(uri="https://milvus.example.com", token="tok")

    def test_ensure_collection_creates_with_string_ids(self) -> None:
        client = MagicMock()
        client.has_collection.return_value = False
        client.get_load_state.return_value = _loaded("Loaded")
        sleeps: list[float] = []

        _index(client).ensure_collection(sleep=sleeps.append)

        kwargs = client.create_collection.call_args.kwargs
        assert kwargs["collection_name"] == "knowledge_base"
        assert kwargs["dimension"] == 384
        assert kwargs["id_type"] == "string"
        assert kwargs["metric_type"] == "COSINE"
        assert kwargs["auto_id"] is False
        assert sleeps == []

    def test_ensure_collection_waits_until_loaded(self) -> None:
        client = MagicMock()
        client.has_collection.return_value = True
        client.get_load_state.side_effect = [_loaded("Loading"), _loaded("Loading"), _loaded("Loaded")]
        sleeps: list[float] = []

        _index(client).ensure_collection(attempts=5, interval=2.0, sleep=sleeps.append)

        client.create_collection.assert_not_called()
        assert sleeps == [2.0, 2.0]

    def test_ensure_collection_proceeds_after_attempts(self) -> None:
        client = MagicMock()
        client.has_collection.return_value = True
        client.get_load_state.return_value = _loaded("Loading")
        sleeps: list[float] = []

        _index(client).ensure_collection(attempts=3, interval=1.0, sleep=sleeps.append)

        assert sleeps == [1.0, 1.0, 1.0]

    def test_upsert_in_batches(self) -> None:
        client = MagicMock()
        rows = [{"id": str(i), "vector": [0.0], "question": "q"} for i in range(250)]

        assert _index(client).upsert(rows, batch_size=100) == 250

        sizes = [len(c.kwargs["data"]) for c in client.upsert.call_args_list]
        assert sizes == [100, 100, 50]

    def test_upsert_empty_does_not_connect(self) -> None:
        factory = MagicMock()
        index = MilvusKnowledgeIndex("https://milvus.example.com", "tok", "kb", 384, client_factory=factory)
        assert index.upsert([]) == 0
        factory.assert_not_called()

    def test_query_parses_hits(self) -> None:
        client = MagicMock()
        client.search.return_value = [[
            {"id": "pair-a", "distance": 0.92, "entity": {"question": "Qa?"}},
            {"id": "pair-b", "distance": 0.81, "entity": {"question": "Qb?"}},
        ]]

        matches = _index(client).query([0.6, 0.8], top_k=2)

        assert matches == [
            {"id": "pair-a", "score": 0.92, "question": "Qa?"},
            {"id": "pair-b", "score": 0.81, "question": "Qb?"},
        ]
        assert client.search.call_args.kwargs["limit"] == 2

    def test_query_no_results(self) -> None:
        client = MagicMock()
        client.search.return_value = []
        assert _index(client).query([1.0]) == []

    def test_drop_only_existing_collection(self) -> None:
        client = MagicMock()
        client.has_collection.return_value = False
        _index(client).drop()
        client.drop_collection.assert_not_called()


class TestHFEmbedder:
    def test_missing_key_raises(self) -> None:
        with pytest.raises(ServiceUnavailableError):
            HFEmbedder(api_key="", model="sentence-transformers/all-MiniLM-L6-v2").embed_texts(["hello"])

    def test_empty_input_returns_empty(self) -> None:
        assert HFEmbedder(api_key="", model="m").embed_texts([]) == []

    def test_vectors_are_normalized_and_batched(self) -> None:
        def post(url, json, headers):
            return MagicMock(status_code=200, json=MagicMock(return_value=[[3.0, 4.0] for _ in json["inputs"]]))

        http = MagicMock()
        http.post.side_effect = post
        with patch("inquiro.services.vector_store.httpx.Client") as client_cls:
            client_cls.return_value.__enter__.return_value = http
            vectors = HFEmbedder(api_key="hf_x", model="m", batch_size=2).embed_texts(["a", "b", "c"])

        assert vectors == [[0.6, 0.8]] * 3
        assert http.post.call_count == 2

    def test_router_403_falls_back_to_standard_endpoint(self) -> None:
        http = MagicMock()
        http.post.side_effect = [
            MagicMock(status_code=403, text="forbidden"),
            MagicMock(status_code=200, json=MagicMock(return_value=[0.0, 2.0])),
        ]
        embedder = HFEmbedder(api_key="hf_x", model="m")
        with patch("inquiro.services.vector_store.httpx.Client") as client_cls:
            client_cls.return_value.__enter__.return_value = http
            vector = embedder.embed_query("hello")

        assert vector == [0.0, 1.0]
        assert http.post.call_args_list[1].args[0] == embedder.standard_url

    def test_invalid_key_is_service_unavailable(self) -> None:
        http = MagicMock()
        http.post.return_value = MagicMock(status_code=401, text="unauthorized")
        with patch("inquiro.services.vector_store.httpx.Client") as client_cls:
            client_cls.return_value.__enter__.return_value = http
            with pytest.raises(ServiceUnavailableError):
                HFEmbedder(api_key="hf_bad", model="m").embed_query("hello")
