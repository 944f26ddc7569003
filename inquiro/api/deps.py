"""
Service wiring: build the clients once from config and hand them to routes via Depends.

Tests build their own Services with fakes and pass them to create_app().
"""

from dataclasses import dataclass

from fastapi import Request

from inquiro.core import config
from inquiro.core.knowledge_db import KnowledgeDB
from inquiro.llm.client import LLMClient
from inquiro.services.response_gating import load_gating_rules
from inquiro.services.search_service import SearchService
from inquiro.services.vector_store import HFEmbedder, MilvusKnowledgeIndex


@dataclass
class Services:
    db: KnowledgeDB
    search: SearchService


def build_embedder() -> HFEmbedder:
    return HFEmbedder(
        api_key=config.HF_API_KEY,
        model=config.HF_EMBED_MODEL,
        timeout=config.EMBED_API_TIMEOUT,
        batch_size=config.EMBED_BATCH_SIZE,
    )


def build_index() -> MilvusKnowledgeIndex:
    return MilvusKnowledgeIndex(
        uri=config.MILVUS_URI,
        token=config.MILVUS_TOKEN,
        collection_name=config.COLLECTION_NAME,
        dimension=config.VECTOR_DIM,
    )


def build_llm() -> LLMClient:
    return LLMClient(
        openai_api_key=config.OPENAI_API_KEY,
        openai_model=config.OPENAI_LLM_MODEL,
        hf_api_key=config.HF_API_KEY,
        hf_model=config.HF_LLM_MODEL,
        hf_chat_url=config.HF_CHAT_URL,
        timeout=config.LLM_API_TIMEOUT,
    )


def build_services() -> Services:
    """Construct every collaborator from config. No network calls happen here."""
    db = KnowledgeDB(config.DB_PATH)
    search = SearchService(
        db=db,
        index=build_index(),
        embedder=build_embedder(),
        llm=build_llm(),
        rules=load_gating_rules(config.GATING_RULES_PATH),
        top_k=config.SEARCH_TOP_K,
        max_tokens=config.ANSWER_MAX_TOKENS,
    )
    return Services(db=db, search=search)


def get_search_service(request: Request) -> SearchService:
    return request.app.state.services.search


def get_knowledge_db(request: Request) -> KnowledgeDB:
    return request.app.state.services.db
