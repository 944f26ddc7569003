"""Schemas for raw email threads and LLM knowledge extractions."""

from typing import Literal

from pydantic import BaseModel, Field, TypeAdapter

RelationshipType = Literal["CLARIFIES", "EXPANDS_ON", "IS_FOLLOW_UP_TO"]


class RawMessage(BaseModel):
    """One email as found in emails.json."""

    id: str
    sender: str
    recipient: str
    date: str
    content: str


class RawThread(BaseModel):
    id: str
    subject: str
    messages: list[RawMessage] = Field(default_factory=list)


RAW_THREADS = TypeAdapter(list[RawThread])


class ExtractedPair(BaseModel):
    """A question/answer pair. `id` is temporary (e.g. "kp_1") and only links edges within one extraction."""

    id: str
    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    source_message_ids: list[str] = Field(default_factory=list)


class ExtractedEdge(BaseModel):
    source_pair_id: str = Field(..., alias="sourcePairId")
    target_pair_id: str = Field(..., alias="targetPairId")
    relationship_type: RelationshipType = Field(..., alias="relationshipType")

    model_config = {"populate_by_name": True}


class ExtractionResult(BaseModel):
    """JSON object the extraction model is asked to return for one thread."""

    knowledge_pairs: list[ExtractedPair] = Field(default_factory=list, alias="knowledgePairs")
    knowledge_edges: list[ExtractedEdge] = Field(default_factory=list, alias="knowledgeEdges")

    model_config = {"populate_by_name": True}
