"""
Vector store client: embeddings (HF Inference API) and the Milvus knowledge index.

Responsibility: embed knowledge pairs / user queries via all-MiniLM-L6-v2 and
store or search one vector per knowledge pair. Vector ids are knowledge pair ids.
"""

import logging
import time
from typing import Any, Callable

import httpx

from inquiro.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)

ID_MAX_LENGTH = 64


class HFEmbedder:
    """Batch embeddings through the Hugging Face Inference API."""

    def __init__(
        self,
        api_key: str,
        model: str,
        timeout: float = 30.0,
        batch_size: int = 32,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.batch_size = batch_size
        self.router_url = (
            f"https://router.huggingface.co/hf-inference/models/{model}/pipeline/feature-extraction"
        )
        self.standard_url = f"https://api-inference.huggingface.co/models/{model}"

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """
        Embed texts in batches. Returns one unit-length vector per text
        (normalized for Milvus COSINE).
        """
        if not texts:
            return []
        if not self.api_key:
            raise ServiceUnavailableError(
                "HF_API_KEY must be set in .env. Get a token from https://huggingface.co/settings/tokens"
            )

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        all_embeddings: list[list[float]] = []

        with httpx.Client(timeout=self.timeout) as client:
            for i in range(0, len(texts), self.batch_size):
                batch = texts[i : i + self.batch_size]
                payload = {"inputs": batch, "options": {"wait_for_model": True}}
                response = self._post_with_fallback(client, payload, headers)
                all_embeddings.extend(_normalize(vec) for vec in _as_vectors(response.json()))

        logger.info("[vector_store:embed_texts] OUT embedded=%d", len(all_embeddings))
        return all_embeddings

    def embed_query(self, text: str) -> list[float]:
        vectors = self.embed_texts([text])
        if not vectors:
            raise ServiceUnavailableError("Embedding service returned no vector for the query")
        return vectors[0]

    def _post_with_fallback(
        self, client: httpx.Client, payload: dict, headers: dict
    ) -> httpx.Response:
        # Router first; some tokens get 403 there but work on the standard endpoint
        api_urls = [self.router_url, self.standard_url]
        response = None
        last_error: str | None = None
        for api_url in api_urls:
            try:
                response = client.post(api_url, json=payload, headers=headers)
                if response.status_code == 200:
                    return response
                if response.status_code == 403 and api_url == self.router_url:
                    last_error = response.text
                    continue
                break
            except httpx.HTTPError as e:
                last_error = str(e)
                if api_url == api_urls[-1]:
                    raise
                continue

        msg = response.text if response is not None else last_error
        status = response.status_code if response is not None else None
        if status == 503:
            raise ServiceUnavailableError(f"HF model is loading. Retry later. {msg}")
        if status == 401:
            raise ServiceUnavailableError(
                "Invalid HF API key. Check HF_API_KEY at https://huggingface.co/settings/tokens"
            )
        if status == 403:
            raise ServiceUnavailableError(
                f"HF token lacks Inference API permission. Create a token with read access. {msg}"
            )
        raise RuntimeError(f"HF API error: {msg}")


def _as_vectors(result: Any) -> list[list[float]]:
    if isinstance(result, list) and result and isinstance(result[0], list):
        return result
    # A single input may come back as one flat vector
    if isinstance(result, list) and result and all(isinstance(x, (int, float)) for x in result):
        return [result]
    return [
        item if isinstance(item, list) else [item]
        for item in (result if isinstance(result, list) else [result])
    ]


def _normalize(vec: list[float]) -> list[float]:
    norm = sum(x * x for x in vec) ** 0.5
    if norm == 0:
        norm = 1.0
    return [x / norm for x in vec]


class MilvusKnowledgeIndex:
    """
    One Milvus collection holding a vector per knowledge pair
    (primary key = pair id, dynamic field "question").
    """

    def __init__(
        self,
        uri: str,
        token: str,
        collection_name: str,
        dimension: int,
        client_factory: Callable[..., Any] | None = None,
    ) -> None:
        self.uri = uri
        self.token = token
        self.collection_name = collection_name
        self.dimension = dimension
        self._client_factory = client_factory
        self._client: Any = None

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client
        if not self.uri or not self.token:
            raise ServiceUnavailableError("MILVUS_URI and MILVUS_TOKEN must be set in .env")
        factory = self._client_factory
        if factory is None:
            from pymilvus import MilvusClient

            factory = MilvusClient
        self._client = factory(uri=self.uri, token=self.token)
        logger.info("Milvus connection established")
        return self._client

    def ensure_collection(
        self,
        attempts: int = 12,
        interval: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Create the collection if missing, then wait until it is loaded.
        After `attempts` polls, proceed anyway with a warning.
        """
        client = self._get_client()
        if client.has_collection(self.collection_name):
            logger.info("Collection %s already exists", self.collection_name)
        else:
            logger.info("Collection %s does not exist, creating it", self.collection_name)
            client.create_collection(
                collection_name=self.collection_name,
                dimension=self.dimension,
                primary_field_name="id",
                id_type="string",
                max_length=ID_MAX_LENGTH,
                vector_field_name="vector",
                metric_type="COSINE",
                auto_id=False,
            )
            logger.info("Collection %s created (dim=%s)", self.collection_name, self.dimension)

        for attempt in range(attempts):
            if self.is_ready():
                logger.info("Collection %s is ready", self.collection_name)
                return
            logger.info("Waiting for collection %s... (%d/%d)", self.collection_name, attempt + 1, attempts)
            sleep(interval)
        logger.warning(
            "Collection %s is taking longer than expected to load, proceeding anyway",
            self.collection_name,
        )

    def is_ready(self) -> bool:
        client = self._get_client()
        state = client.get_load_state(collection_name=self.collection_name).get("state")
        return getattr(state, "name", str(state)) == "Loaded"

    def upsert(self, vectors: list[dict], batch_size: int = 100) -> int:
        """Upsert rows of {"id", "vector", "question"} in batches. Returns rows written."""
        if not vectors:
            return 0
        client = self._get_client()
        for i in range(0, len(vectors), batch_size):
            batch = vectors[i : i + batch_size]
            client.upsert(collection_name=self.collection_name, data=batch)
        logger.info("Upserted %d vectors into %s", len(vectors), self.collection_name)
        return len(vectors)

    def query(self, vector: list[float], top_k: int = 5) -> list[dict]:
        """Nearest knowledge pairs: [{"id", "score", "question"}], best first."""
        client = self._get_client()
        results = client.search(
            collection_name=self.collection_name,
            data=[vector],
            limit=top_k,
            output_fields=["question"],
        )
        # results: list of list of hits (one list per query vector)
        hits = results[0] if results else []
        matches = []
        for h in hits:
            entity = h.get("entity") or {}
            matches.append({
                "id": str(h.get("id", entity.get("id", ""))),
                "score": float(h.get("distance", h.get("score", 0.0))),
                "question": entity.get("question", ""),
            })
        logger.info(
            "[vector_store:query] OUT matches=%d first_scores=%s",
            len(matches), [round(m["score"], 4) for m in matches[:5]],
        )
        return matches

    def drop(self) -> None:
        client = self._get_client()
        if client.has_collection(self.collection_name):
            client.drop_collection(collection_name=self.collection_name)
            logger.info("Knowledge index cleared: collection %s dropped", self.collection_name)
