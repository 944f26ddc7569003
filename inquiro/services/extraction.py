"""
Knowledge extraction: turn one email thread into knowledge pairs and edges with the LLM.

The model is asked for a single JSON object; it often wraps it in markdown
fences or adds a sentence around it, so the outermost {...} span is parsed.
"""

import json
import logging
import re

from pydantic import ValidationError

from inquiro.core.errors import ExtractionError
from inquiro.llm.client import LLMClient
from inquiro.schemas.knowledge import ExtractionResult, RawThread
from inquiro.services.text_processing import clean_email_body

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

EXTRACTION_INSTRUCTIONS = """
You are an expert data analyst. Your task is to analyze an email thread and extract structured knowledge.
Extract all distinct Question-Answer pairs. Also, identify relationships between these pairs.
- The question should be a concise, well-phrased version of the client's query.
- The answer should be a clear, synthesized answer from the firm.
- Be aware that the person who answers may not be the original recipient.
- A single thread can contain multiple, unrelated Q&A pairs.
- Identify if one Q&A pair clarifies, expands on, or is a follow-up to another pair within the same thread.

Respond with a single, valid JSON object matching this structure:
{
  "knowledgePairs": [
    { "id": "kp_1", "question": "...", "answer": "...", "source_message_ids": ["msg_id_1"] }
  ],
  "knowledgeEdges": [
    { "sourcePairId": "kp_1", "targetPairId": "kp_2", "relationshipType": "CLARIFIES" }
  ]
}
relationshipType must be one of CLARIFIES, EXPANDS_ON, IS_FOLLOW_UP_TO.
""".strip()


def format_thread(thread: RawThread) -> str:
    return "\n\n---\n\n".join(
        f"From: {m.sender}\nTo: {m.recipient}\nDate: {m.date}\nMessage ID: {m.id}\n\n{clean_email_body(m.content)}"
        for m in thread.messages
    )


def parse_extraction(text: str) -> ExtractionResult:
    """
    Parse model output into an ExtractionResult.

    Raises:
        ExtractionError: no JSON object in the text, or it does not match the schema.
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise ExtractionError("No JSON object found in model response")
    try:
        return ExtractionResult.model_validate(json.loads(match.group(0)))
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Invalid JSON in model response: {e}") from e
    except ValidationError as e:
        raise ExtractionError(f"Extraction does not match schema: {e.error_count()} error(s)") from e


class KnowledgeExtractor:
    def __init__(self, llm: LLMClient, max_tokens: int = 2048) -> None:
        self.llm = llm
        self.max_tokens = max_tokens

    def extract(self, thread: RawThread) -> ExtractionResult:
        prompt = f"{EXTRACTION_INSTRUCTIONS}\n\nEMAIL THREAD:\n{format_thread(thread)}"
        logger.info("[extraction] IN  thread=%s messages=%d prompt_len=%d", thread.id, len(thread.messages), len(prompt))
        result = parse_extraction(self.llm.generate(prompt, max_tokens=self.max_tokens))
        logger.info(
            "[extraction] OUT thread=%s pairs=%d edges=%d",
            thread.id, len(result.knowledge_pairs), len(result.knowledge_edges),
        )
        return result


# Used instead of live extraction when API calls are skipped (tests, offline demos)
MOCK_EXTRACTIONS: list[ExtractionResult] = [
    ExtractionResult.model_validate({
        "knowledgePairs": [
            {
                "id": "kp_1",
                "question": "What are the tax implications of remote work?",
                "answer": "Remote work may affect state tax obligations depending on where you work and live.",
                "source_message_ids": ["msg_1"],
            },
            {
                "id": "kp_2",
                "question": "How do I file for a business license?",
                "answer": "Contact your local city hall or county clerk's office for business license requirements.",
                "source_message_ids": ["msg_2"],
            },
            {
                "id": "kp_3",
                "question": "Is the cost of a new office espresso machine for employee use a deductible business expense?",
                "answer": (
                    "Yes, an office espresso machine used to boost employee morale and productivity is generally "
                    "a fully deductible business expense. Keep the receipt for your records."
                ),
                "source_message_ids": ["msg_3"],
            },
            {
                "id": "kp_4",
                "question": "What documentation do I need for business expense deductions?",
                "answer": (
                    "You need receipts, invoices, and proof of business purpose for all deductible expenses. "
                    "Keep organized records for at least 3 years."
                ),
                "source_message_ids": ["msg_4"],
            },
        ],
        "knowledgeEdges": [
            {"sourcePairId": "kp_1", "targetPairId": "kp_2", "relationshipType": "EXPANDS_ON"},
            {"sourcePairId": "kp_3", "targetPairId": "kp_4", "relationshipType": "CLARIFIES"},
        ],
    })
]
