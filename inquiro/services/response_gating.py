"""
Response gating: decide whether retrieved sources are shown with a reply.

Two independent heuristics:
- question detection keeps citations off small-talk turns ("no thanks", "bye");
- non-answer detection keeps citations off replies that did not substantiate
  anything (farewells, "anything else?" offers, "I don't have enough information").

Citations are attached only when the user asked a question AND the reply is a
real answer. Phrase lists live in GatingRules so they can be swapped from a
JSON file (GATING_RULES_PATH) without code changes.
"""

import json
import re
from dataclasses import dataclass, fields, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, NamedTuple


@dataclass(frozen=True)
class GatingRules:
    """Phrase tables driving both classifiers. All phrases are lower-case."""

    # Whole-string: the user is closing or declining, not asking
    closing_phrases: tuple[str, ...] = (
        "nah", "no", "nope", "not really", "i'm good", "that's all", "thanks",
        "thank you", "bye", "goodbye", "see you", "that's it",
        "no thanks", "no thank you", "i don't think so", "not right now", "maybe later",
        "that's all i need", "i'm done", "that's everything", "nothing else",
    )
    # May wrap a closing phrase: "thanks, that's all", "that's it, thanks"
    courtesy_words: tuple[str, ...] = (
        "ok", "okay", "alright", "great", "cool", "perfect", "thanks", "thank you",
    )
    question_prefixes: tuple[str, ...] = (
        "what", "how", "why", "when", "where", "who", "which", "can you", "could you",
        "would you", "do you", "does", "is", "are", "was", "were", "will", "should",
        "might", "may",
    )
    request_prefixes: tuple[str, ...] = (
        "tell me", "explain", "describe", "show me", "help me", "i need",
        "i want to know", "i'm looking for",
    )
    # Whole-string: the reply only says goodbye
    farewell_phrases: tuple[str, ...] = (
        "goodbye", "bye", "see you", "take care", "have a great day", "thanks for chatting",
    )
    # Whole-string: the reply only offers more help
    follow_up_phrases: tuple[str, ...] = (
        "is there anything else i can help you with?",
        "can i help you with anything else?",
        "what else can i help you with?",
        "let me know if you need anything else",
        "feel free to ask if you have more questions",
        "i'm here if you need anything else",
        "just let me know if you have other questions",
    )
    # Substring: the reply admits the context did not cover the question
    insufficient_info_phrases: tuple[str, ...] = (
        "i don't have enough information",
        "i don't have sufficient information",
        "i don't have the information needed",
        "i don't have enough context",
        "i don't have enough data",
        "the context doesn't contain the answer",
        "the provided context doesn't include",
        "the information isn't available in the context",
    )

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "GatingRules":
        """Build rules from a mapping of table name -> list of phrases; missing tables keep defaults."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown gating tables: {', '.join(unknown)}")
        overrides: dict[str, tuple[str, ...]] = {}
        for name, phrases in data.items():
            if not isinstance(phrases, list) or not all(isinstance(p, str) for p in phrases):
                raise ValueError(f"Gating table {name!r} must be a list of strings")
            overrides[name] = tuple(_normalize(p) for p in phrases if p.strip())
        return replace(cls(), **overrides)


DEFAULT_RULES = GatingRules()


def load_gating_rules(path: str | Path | None) -> GatingRules:
    """Load rules from a JSON file. Empty path returns the built-in tables."""
    if not path:
        return DEFAULT_RULES
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Gating rules file must contain a JSON object")
    return GatingRules.from_mapping(data)


class _CompiledRules(NamedTuple):
    closing: re.Pattern[str]
    question_start: re.Pattern[str]
    whole_non_answer: re.Pattern[str]
    insufficient_info: tuple[str, ...]


def _normalize(text: str | None) -> str:
    return (text or "").replace("’", "'").lower().strip()


def _alternation(phrases: tuple[str, ...]) -> str:
    if not phrases:
        return "(?!)"
    # Longest first so "no thanks" wins over "no"
    ordered = sorted(set(phrases), key=len, reverse=True)
    return "|".join(re.escape(p) for p in ordered)


@lru_cache(maxsize=8)
def _compile(rules: GatingRules) -> _CompiledRules:
    courtesy = _alternation(rules.courtesy_words)
    closing = _alternation(rules.closing_phrases)
    # "?" is not tolerated here: "no?" is a question
    closing_re = re.compile(
        rf"^(?:(?:{courtesy})[\s,.!]+)?(?:{closing})(?:[\s,.!]+(?:{courtesy}))?[\s,.!]*$"
    )
    question_re = re.compile(
        rf"^(?:{_alternation(rules.question_prefixes + rules.request_prefixes)})\b"
    )
    whole = tuple(
        p.rstrip(" .!?") for p in rules.farewell_phrases + rules.follow_up_phrases
    )
    whole_re = re.compile(rf"^(?:{_alternation(whole)})[\s.!?]*$")
    return _CompiledRules(closing_re, question_re, whole_re, rules.insufficient_info_phrases)


def classify_utterance_as_question(text: str, rules: GatingRules = DEFAULT_RULES) -> bool:
    """
    True when the user's latest message should be treated as a question.

    Closing phrases ("no thanks", "that's all") override everything. A trailing
    "?", an interrogative opener or a request opener ("tell me", "explain")
    count as questions. Anything else defaults to True: better to show sources
    than hide them.
    """
    query = _normalize(text)
    compiled = _compile(rules)
    if compiled.closing.match(query):
        return False
    if query.endswith("?") or compiled.question_start.match(query):
        return True
    return True


def classify_reply_as_non_answer(text: str, rules: GatingRules = DEFAULT_RULES) -> bool:
    """True when the generated reply says goodbye, only offers more help, or admits missing information."""
    reply = _normalize(text)
    compiled = _compile(rules)
    if compiled.whole_non_answer.match(reply):
        return True
    return any(phrase in reply for phrase in compiled.insufficient_info)


@dataclass(frozen=True)
class ClassificationResult:
    """Per-request gating flags. Never stored."""

    is_question: bool
    is_substantive_answer: bool

    @property
    def attach_sources(self) -> bool:
        return self.is_question and self.is_substantive_answer


def classify_exchange(
    user_query: str, model_reply: str, rules: GatingRules = DEFAULT_RULES
) -> ClassificationResult:
    return ClassificationResult(
        is_question=classify_utterance_as_question(user_query, rules),
        is_substantive_answer=not classify_reply_as_non_answer(model_reply, rules),
    )


def should_attach_sources(
    user_query: str, model_reply: str, rules: GatingRules = DEFAULT_RULES
) -> bool:
    return classify_exchange(user_query, model_reply, rules).attach_sources
