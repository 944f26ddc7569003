"""
Query pipeline (LangGraph): embed query → vector search → fetch pairs → generate → gate sources.

Orchestration only; embeddings, similarity search and generation are hosted
services. The collaborators are passed in so tests can substitute fakes.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Literal, TypedDict

from langgraph.graph import END, StateGraph

from inquiro.core.knowledge_db import KnowledgeDB, KnowledgePair
from inquiro.llm.client import LLMClient
from inquiro.services.response_gating import DEFAULT_RULES, GatingRules, classify_exchange
from inquiro.services.vector_store import HFEmbedder, MilvusKnowledgeIndex

logger = logging.getLogger(__name__)

ANSWER_INSTRUCTIONS = """
You are Inquiro, an expert AI assistant. Your task is to provide a direct, synthesized answer to the user's question based *only* on the provided context from a knowledge base.
- Do not use any outside knowledge.
- If the context does not contain the answer, state that you don't have enough information.
- Be concise and helpful.
- After providing the answer, ask if you can help with anything else.
- If the user says no, say goodbye.
- If the user says yes, ask them what else you can help with.
""".strip()


class SearchState(TypedDict, total=False):
    query: str
    history: list  # earlier turns: {"role": "user"|"assistant", "content": str}
    query_vector: list
    matches: list
    context: list  # KnowledgePair, in match order
    reply: str
    is_question: bool
    is_substantive_answer: bool
    sources: list


@dataclass
class SearchResult:
    text: str
    sources: list[dict[str, str]] = field(default_factory=list)


def format_context(pairs: list[KnowledgePair]) -> str:
    return "\n\n---\n\n".join(f"Question: {kp.question}\nAnswer: {kp.answer}" for kp in pairs)


def _format_history(history: list, max_messages: int = 6) -> str:
    """Format last N earlier messages so follow-ups ("no thanks", "what about X?") make sense."""
    if not history:
        return ""
    lines = []
    for m in history[-max_messages:]:
        content = (m.get("content") or "").strip()
        if not content:
            continue
        label = "User" if (m.get("role") or "user").strip().lower() == "user" else "Assistant"
        lines.append(f"{label}: {content}")
    if not lines:
        return ""
    return "RECENT CONVERSATION:\n" + "\n".join(lines) + "\n\n"


def build_answer_prompt(query: str, context: list[KnowledgePair], history: list | None = None) -> str:
    return (
        f"{ANSWER_INSTRUCTIONS}\n\n"
        f"{_format_history(history or [])}"
        f"CONTEXT:\n{format_context(context)}\n\n"
        f"USER'S QUESTION:\n{query}"
    )


class SearchService:
    def __init__(
        self,
        db: KnowledgeDB,
        index: MilvusKnowledgeIndex,
        embedder: HFEmbedder,
        llm: LLMClient,
        rules: GatingRules = DEFAULT_RULES,
        top_k: int = 5,
        max_tokens: int = 512,
    ) -> None:
        self.db = db
        self.index = index
        self.embedder = embedder
        self.llm = llm
        self.rules = rules
        self.top_k = top_k
        self.max_tokens = max_tokens
        self._graph = self._build_graph()

    # --- Nodes ---

    def _embed_query(self, state: SearchState) -> dict:
        query = (state.get("query") or "").strip()
        logger.info("[search:embed_query] IN  query=%r", query)
        if not query:
            return {"query_vector": []}
        return {"query_vector": self.embedder.embed_query(query)}

    def _route_after_embed(self, state: SearchState) -> Literal["vector_search", "generate_reply"]:
        return "vector_search" if state.get("query_vector") else "generate_reply"

    def _vector_search(self, state: SearchState) -> dict:
        matches = self.index.query(state["query_vector"], top_k=self.top_k)
        logger.info("[search:vector_search] OUT matches=%d ids=%s", len(matches), [m["id"] for m in matches])
        return {"matches": matches}

    def _fetch_context(self, state: SearchState) -> dict:
        ids = [m["id"] for m in state.get("matches") or []]
        context = self.db.get_knowledge_pairs(ids)
        if len(context) < len(ids):
            logger.warning("[search:fetch_context] %d matched ids missing from DB", len(ids) - len(context))
        return {"context": context}

    def _generate_reply(self, state: SearchState) -> dict:
        context = state.get("context") or []
        prompt = build_answer_prompt(state.get("query") or "", context, state.get("history"))
        logger.info("[search:generate_reply] IN  context_pairs=%d prompt_len=%d", len(context), len(prompt))
        reply = self.llm.generate(prompt, max_tokens=self.max_tokens)
        logger.info("[search:generate_reply] OUT reply_len=%d", len(reply))
        return {"reply": reply}

    def _gate_sources(self, state: SearchState) -> dict:
        result = classify_exchange(state.get("query") or "", state.get("reply") or "", self.rules)
        context = state.get("context") or []
        sources = [kp.to_source() for kp in context] if result.attach_sources else []
        logger.info(
            "[search:gate_sources] is_question=%s is_substantive_answer=%s attach=%s sources=%d",
            result.is_question, result.is_substantive_answer, result.attach_sources, len(sources),
        )
        return {
            "is_question": result.is_question,
            "is_substantive_answer": result.is_substantive_answer,
            "sources": sources,
        }

    def _build_graph(self):
        graph = StateGraph(SearchState)
        graph.add_node("embed_query", self._embed_query)
        graph.add_node("vector_search", self._vector_search)
        graph.add_node("fetch_context", self._fetch_context)
        graph.add_node("generate_reply", self._generate_reply)
        graph.add_node("gate_sources", self._gate_sources)

        graph.set_entry_point("embed_query")
        graph.add_conditional_edges("embed_query", self._route_after_embed)
        graph.add_edge("vector_search", "fetch_context")
        graph.add_edge("fetch_context", "generate_reply")
        graph.add_edge("generate_reply", "gate_sources")
        graph.add_edge("gate_sources", END)
        return graph.compile()

    def answer(self, messages: list[dict[str, Any]]) -> SearchResult:
        """
        Answer the last message of a chat transcript.

        Raises:
            ValueError: empty transcript.
            ServiceUnavailableError: embeddings, vector index or LLM not configured/available.
        """
        if not messages:
            raise ValueError("At least one message is required")
        query = messages[-1].get("content") or ""
        final = self._graph.invoke({"query": query, "history": list(messages[:-1])})
        return SearchResult(text=final.get("reply", ""), sources=final.get("sources") or [])
