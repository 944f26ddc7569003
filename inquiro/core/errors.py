"""
Application errors for clean API error handling.

Use ServiceUnavailableError when a dependency (vector store, embeddings, LLM)
is misconfigured or unreachable so the API can return 503 with a user-facing message.
"""


class ServiceUnavailableError(Exception):
    """Raised when a required service (e.g. vector store, embeddings API) is unavailable or misconfigured."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class KnowledgePairNotFoundError(Exception):
    """Raised when a knowledge pair id does not exist in the relational store."""

    def __init__(self, pair_id: str) -> None:
        self.pair_id = pair_id
        super().__init__(f"Knowledge pair not found: {pair_id}")


class ExtractionError(Exception):
    """Raised when LLM output cannot be parsed into an extraction result."""
