"""
Application configuration (env, settings, constants).

Responsibility: Centralize config loading, environment variables, and app-wide
constants. Services receive these values through their constructors, so the
rest of the app stays decoupled from how config is sourced.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() == "true"


# Relational store (SQLite) and raw email threads
DB_PATH: str = os.getenv("INQUIRO_DB_PATH", "data/inquiro.db").strip() or "data/inquiro.db"
EMAILS_PATH: str = os.getenv("INQUIRO_EMAILS_PATH", "data/emails.json").strip() or "data/emails.json"

# Milvus Cloud (from env)
MILVUS_URI: str = os.getenv("MILVUS_URI", "").strip()
MILVUS_TOKEN: str = os.getenv("MILVUS_TOKEN", "").strip()
COLLECTION_NAME: str = "knowledge_base"

# Hugging Face (embeddings / fallback chat)
HF_API_KEY: str = os.getenv("HF_API_KEY", "").strip()
HF_EMBED_MODEL: str = "sentence-transformers/all-MiniLM-L6-v2"
HF_CHAT_URL: str = "https://router.huggingface.co/v1/chat/completions"
HF_LLM_MODEL: str = (
    os.getenv("HF_LLM_MODEL", "meta-llama/Llama-3.2-3B-Instruct").strip()
    or "meta-llama/Llama-3.2-3B-Instruct"
)

# Vector collection dim (all-MiniLM-L6-v2 = 384)
VECTOR_DIM: int = 384
EMBED_BATCH_SIZE: int = 32
SEARCH_TOP_K: int = 5

# OpenAI (primary LLM). When unset, Hugging Face chat is used.
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_LLM_MODEL: str = (
    os.getenv("OPENAI_LLM_MODEL", "gpt-4o-mini").strip() or "gpt-4o-mini"
)

# Token budgets
ANSWER_MAX_TOKENS: int = 512
EXTRACTION_MAX_TOKENS: int = 2048

# API timeouts (seconds)
EMBED_API_TIMEOUT: float = 30.0
LLM_API_TIMEOUT: float = 60.0

# Seeding: free-tier quotas allow ~15 requests/minute, hence one every 4s
SEED_MAX_THREADS: int = 5
SEED_DELAY_SECONDS: float = 4.0
UPSERT_BATCH_SIZE: int = 100
INDEX_READY_ATTEMPTS: int = 12
INDEX_READY_INTERVAL: float = 10.0
SKIP_API_CALLS: bool = _env_flag("SKIP_API_CALLS")
SKIP_VECTOR_STORE: bool = _env_flag("SKIP_VECTOR_STORE")

# Optional JSON file replacing the built-in response-gating phrase tables
GATING_RULES_PATH: str = os.getenv("GATING_RULES_PATH", "").strip()
