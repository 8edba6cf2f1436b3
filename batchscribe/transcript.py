"""Turn raw engine output into the transcript document written to disk."""

from __future__ import annotations

import re
from typing import Final

from batchscribe import __version__
from batchscribe.reflow import PARAGRAPH_SEPARATOR, count_words, normalize_whitespace, reflow_paragraphs
from batchscribe.types import TranscriptOutput

GENERATOR_NAME: Final = "batchscribe"

# Matches "[00:00:01.000 --> 00:00:04.500]" and the short "[00:01.000 --> 00:04.500]" form.
_TIMESTAMP_RE: Final = re.compile(
    r"^\[\s*\d{1,2}:\d{2}(?::\d{2})?[.,]\d{1,3}\s*-->\s*\d{1,2}:\d{2}(?::\d{2})?[.,]\d{1,3}\s*\]\s*(?P<text>.*)$"
)
# Engine log/header lines such as "main: processing ..." or "whisper_print_timings: ..."
_LOG_LINE_RE: Final = re.compile(r"^[a-z0-9_]+(?:\.[a-z0-9_]+)*:\s")


def parse_engine_output(raw_output: str) -> str:
    """Extract the spoken text from an engine's textual output.

    Lines before the first timestamped line are header material and dropped.
    Timestamped lines contribute the text after their marker. Later lines
    without a marker are kept as continuation text unless they look like log
    lines. The pieces are joined with single spaces.

    If nothing survives, the raw output is returned unchanged so a format
    change in the engine degrades the transcript instead of failing the job.
    """
    pieces: list[str] = []
    in_transcript = False

    for line in raw_output.splitlines():
        line = line.strip()
        if not line:
            continue

        match = _TIMESTAMP_RE.match(line)
        if match:
            in_transcript = True
            text = match.group("text").strip()
            if text:
                pieces.append(text)
            continue

        if not in_transcript or _LOG_LINE_RE.match(line) or line.startswith("["):
            continue
        pieces.append(line)

    transcript = normalize_whitespace(" ".join(pieces))
    return transcript or raw_output


def render_header(source_name: str, model: str, version: str) -> str:
    return f"# Transcription of: {source_name}\n# Model: {model}\n# Generated with {GENERATOR_NAME} v{version}\n"


def render_transcript(transcript: str, *, source_name: str, model: str) -> TranscriptOutput:
    """Reflow ``transcript`` and prepend the three-line header.

    Layout: header, a blank line, paragraphs separated by blank lines, and a
    trailing newline.
    """
    paragraphs = reflow_paragraphs(transcript)
    body = PARAGRAPH_SEPARATOR.join(paragraphs)
    text = f"{render_header(source_name, model, __version__)}\n{body}\n"
    return TranscriptOutput(
        text=text,
        word_count=count_words(transcript),
        paragraph_count=len(paragraphs),
    )
