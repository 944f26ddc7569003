"""
Text processing for email bodies before they are sent to the extraction model.

Quoted replies repeat earlier messages of the same thread, which the model
already sees, so they are dropped. Whitespace and unicode are normalized so
the prompt stays short and consistent.
"""

import re
import unicodedata

_REPLY_HEADER = re.compile(r"^on .+ wrote:$", re.IGNORECASE)


def clean_text(text: str) -> str:
    """
    Normalize raw message text: NFKC unicode, stripped lines, consecutive
    duplicate lines removed, runs of blank lines collapsed to one.
    """
    if not text or not text.strip():
        return ""
    text = unicodedata.normalize("NFKC", text)
    lines = [line.strip() for line in text.splitlines()]
    deduped: list[str] = []
    for line in lines:
        if deduped and deduped[-1] == line:
            continue
        deduped.append(line)
    result: list[str] = []
    for line in deduped:
        if line == "":
            if result and result[-1] != "":
                result.append("")
        else:
            result.append(line)
    return "\n".join(result).strip()


def strip_quoted_reply(text: str) -> str:
    """Drop "> quoted" lines and the "On <date>, <who> wrote:" header that introduces them."""
    if not text:
        return ""
    kept = [
        line for line in text.splitlines()
        if not line.lstrip().startswith(">") and not _REPLY_HEADER.match(line.strip())
    ]
    return "\n".join(kept)


def clean_email_body(text: str) -> str:
    return clean_text(strip_quoted_reply(text))
