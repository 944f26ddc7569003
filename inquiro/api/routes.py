"""
API routes: register endpoints and map service results/errors to HTTP.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse, PlainTextResponse

from inquiro.api.deps import get_knowledge_db, get_search_service
from inquiro.api.source_page import render_source_page
from inquiro.core.errors import KnowledgePairNotFoundError, ServiceUnavailableError
from inquiro.core.knowledge_db import KnowledgeDB
from inquiro.schemas.search import SearchRequest, SearchResponse
from inquiro.services.search_service import SearchService

logger = logging.getLogger(__name__)
router = APIRouter()

SEARCH_ERROR_MESSAGE = "An error occurred. Please try again."
SOURCE_ERROR_MESSAGE = "An error occurred while fetching the source."


# --- System ---

@router.get("/", tags=["system"])
def root():
    return {"status": "Inquiro backend running"}


@router.get("/health", tags=["system"])
def health():
    return {"ok": True}


# --- Search ---

@router.post(
    "/api/search",
    response_model=SearchResponse,
    tags=["search"],
    summary="Answer the latest chat message from the knowledge base",
    description=(
        "Embeds the last message, retrieves the closest knowledge pairs, and generates a reply "
        "from them. Sources are attached only when the user asked a question and the reply "
        "answers it. 503 when a hosted dependency is unavailable, 500 on other failures."
    ),
)
def post_search(
    body: SearchRequest,
    search: SearchService = Depends(get_search_service),
) -> SearchResponse:
    query = body.messages[-1].content
    logger.info("[api:post_search] IN  query=%r messages=%d", query, len(body.messages))
    try:
        result = search.answer([m.model_dump() for m in body.messages])
    except ServiceUnavailableError as e:
        logger.warning("[api:post_search] service unavailable: %s", e.message)
        raise HTTPException(status_code=503, detail=e.message) from e
    except Exception as e:
        logger.exception("[SEARCH API ERROR]")
        raise HTTPException(status_code=500, detail=SEARCH_ERROR_MESSAGE) from e
    logger.info("[api:post_search] OUT text_len=%d sources=%d", len(result.text), len(result.sources))
    return SearchResponse(text=result.text, sources=result.sources)


# --- Sources ---

@router.get(
    "/api/source/{pair_id}",
    response_class=HTMLResponse,
    tags=["sources"],
    summary="Original email thread(s) behind a knowledge pair",
    responses={404: {"description": "Knowledge pair not found"}},
)
def get_source(pair_id: str, db: KnowledgeDB = Depends(get_knowledge_db)):
    try:
        pair = db.require_knowledge_pair(pair_id)
        threads = db.get_source_threads(pair_id)
    except KnowledgePairNotFoundError:
        return PlainTextResponse("Knowledge pair not found", status_code=404)
    except Exception:
        logger.exception("[SOURCE API ERROR]")
        return PlainTextResponse(SOURCE_ERROR_MESSAGE, status_code=500)
    logger.info("[api:get_source] pair_id=%s threads=%d", pair_id, len(threads))
    return HTMLResponse(render_source_page(pair, threads))
