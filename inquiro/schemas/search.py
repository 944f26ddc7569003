"""Schemas for the search endpoint."""

from typing import Literal

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"] = Field(..., description="Who wrote the message.")
    content: str = Field(..., description="Message text (markdown for assistant turns).")


class SearchRequest(BaseModel):
    """Request body for POST /api/search. The last message is the question being asked."""

    messages: list[ChatMessage] = Field(..., min_length=1, description="Chat transcript, oldest first.")


class Source(BaseModel):
    """A knowledge pair cited as evidence for the reply."""

    question: str
    answer: str
    id: str


class SearchResponse(BaseModel):
    """Response for POST /api/search."""

    text: str = Field(..., description="Generated reply.")
    sources: list[Source] = Field(
        default_factory=list,
        description="Cited knowledge pairs. Empty unless the user asked a question and the reply answers it.",
    )

    model_config = {
        "json_schema_extra": {
            "examples": [{
                "text": "Yes, an espresso machine for employee use is generally deductible.",
                "sources": [{
                    "question": "Is an office espresso machine a deductible business expense?",
                    "answer": "Yes, it is generally a fully deductible business expense.",
                    "id": "3f2c9a0e5b7d4c1e8a6f0b2d4e6c8a1f",
                }],
            }]
        }
    }
