"""Reflow a flat transcript into readable paragraphs.

Engines emit one long run of text. This module splits it into sentences and
greedily packs them into paragraphs of roughly ``TARGET_WORDS`` words, while
never letting a paragraph hold more than ``MAX_SIGNIFICANT_SENTENCES``
sentences of ``MIN_SIGNIFICANT_WORDS`` words or more. Short interjections
("Yes.", "Okay.") do not count against that limit.

Everything here is pure and deterministic.
"""

from __future__ import annotations

import re
from typing import Final

TARGET_WORDS: Final = 50
MAX_SIGNIFICANT_SENTENCES: Final = 4
MIN_SIGNIFICANT_WORDS: Final = 4

PARAGRAPH_SEPARATOR: Final = "\n\n"

_WHITESPACE_RE: Final = re.compile(r"\s+")
# Candidate boundaries: a space right after terminal punctuation. Whether the
# next character is uppercase is checked in split_sentences (str.isupper is
# Unicode aware, [A-Z] is not).
_BOUNDARY_RE: Final = re.compile(r"(?<=[.!?]) ")
_SPACE_BEFORE_PUNCT_RE: Final = re.compile(r" +([,.!?])")
_REPEATED_PUNCT_RE: Final = re.compile(r"([.!?])\1+")


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def count_words(text: str) -> int:
    return len(text.split())


def split_sentences(text: str) -> list[str]:
    """Split normalized text into sentences.

    A boundary is one or more of ``.!?`` followed by whitespace and an
    uppercase letter. The punctuation stays with the sentence before it.
    Text without any boundary comes back as a single sentence.
    """
    normalized = normalize_whitespace(text)
    if not normalized:
        return []

    sentences: list[str] = []
    start = 0
    for match in _BOUNDARY_RE.finditer(normalized):
        following = normalized[match.end() : match.end() + 1]
        if following.isupper():
            sentences.append(normalized[start : match.start()])
            start = match.end()
    sentences.append(normalized[start:])
    return sentences


def clean_paragraph(text: str) -> str:
    """Tidy a joined paragraph: no space before ``,.!?`` and no doubled terminal marks."""
    text = normalize_whitespace(text)
    text = _SPACE_BEFORE_PUNCT_RE.sub(r"\1", text)
    text = _REPEATED_PUNCT_RE.sub(r"\1", text)
    return text.strip()


def _limit_significant(
    candidate: list[str],
    max_significant: int,
    min_significant_words: int,
) -> list[str]:
    """Cut the candidate right after its ``max_significant``-th significant sentence."""
    significant_flags = [count_words(sentence) >= min_significant_words for sentence in candidate]
    if sum(significant_flags) <= max_significant:
        return candidate

    kept: list[str] = []
    seen = 0
    for sentence, significant in zip(candidate, significant_flags):
        kept.append(sentence)
        if significant:
            seen += 1
            if seen >= max_significant:
                break
    return kept


def reflow_paragraphs(
    text: str,
    *,
    target_words: int = TARGET_WORDS,
    max_significant: int = MAX_SIGNIFICANT_SENTENCES,
    min_significant_words: int = MIN_SIGNIFICANT_WORDS,
) -> list[str]:
    """Return the transcript as a list of paragraphs."""
    sentences = split_sentences(text)
    paragraphs: list[str] = []
    cursor = 0

    while cursor < len(sentences):
        candidate: list[str] = []
        word_total = 0
        for sentence in sentences[cursor:]:
            candidate.append(sentence)
            word_total += count_words(sentence)
            if word_total >= target_words:
                break

        if not candidate:
            break

        kept = _limit_significant(candidate, max_significant, min_significant_words)
        paragraphs.append(clean_paragraph(" ".join(kept)))
        cursor += len(kept)

    return paragraphs


def reflow_text(
    text: str,
    *,
    target_words: int = TARGET_WORDS,
    max_significant: int = MAX_SIGNIFICANT_SENTENCES,
    min_significant_words: int = MIN_SIGNIFICANT_WORDS,
) -> str:
    """Reflow ``text`` into paragraphs separated by a blank line.

    Empty or whitespace-only input gives an empty string.

    Example:
        >>> reflow_text("hi.")
        'hi.'
    """
    paragraphs = reflow_paragraphs(
        text,
        target_words=target_words,
        max_significant=max_significant,
        min_significant_words=min_significant_words,
    )
    return PARAGRAPH_SEPARATOR.join(paragraphs)
