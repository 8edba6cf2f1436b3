"""Unit tests for engine output parsing and transcript rendering."""

from batchscribe import __version__
from batchscribe.transcript import parse_engine_output, render_header, render_transcript

SAMPLE_ENGINE_OUTPUT = (
    "engine: faster-whisper language=en probability=0.99 duration=4.0s\n"
    "[00:00:00.000 --> 00:00:02.000]  Hello there, this is a test.\n"
    "[00:00:02.000 --> 00:00:04.000]  It has two sentences.\n"
)


class TestParseEngineOutput:
    def test_takes_text_after_timestamps(self) -> None:
        assert parse_engine_output(SAMPLE_ENGINE_OUTPUT) == "Hello there, this is a test. It has two sentences."

    def test_drops_header_and_log_lines(self) -> None:
        raw = (
            "whisper_init_from_file: loading model\n"
            "system_info: n_threads = 4\n"
            "\n"
            "[00:00.000 --> 00:01.500]   First part\n"
            "whisper_print_timings: total time = 100 ms\n"
            "[00:01.500 --> 00:03.000]   second part.\n"
        )
        assert parse_engine_output(raw) == "First part second part."

    def test_keeps_continuation_lines(self) -> None:
        raw = "[00:00:00.000 --> 00:00:02.000]  A line that\ncontinues here.\n"
        assert parse_engine_output(raw) == "A line that continues here."

    def test_falls_back_to_raw_output_when_nothing_parses(self) -> None:
        raw = "plain text without any markers\n"
        assert parse_engine_output(raw) == raw

    def test_empty_timestamps_fall_back(self) -> None:
        raw = "[00:00:00.000 --> 00:00:02.000]\n"
        assert parse_engine_output(raw) == raw


def test_render_header() -> None:
    header = render_header("talk.mp3", "tiny", "1.2.3")
    assert header == "# Transcription of: talk.mp3\n# Model: tiny\n# Generated with batchscribe v1.2.3\n"


class TestRenderTranscript:
    def test_layout(self) -> None:
        output = render_transcript("Hello there. General Kenobi.", source_name="talk.mp3", model="tiny")

        lines = output.text.split("\n")
        assert lines[0] == "# Transcription of: talk.mp3"
        assert lines[1] == "# Model: tiny"
        assert lines[2] == f"# Generated with batchscribe v{__version__}"
        assert lines[3] == ""
        assert lines[4] == "Hello there. General Kenobi."
        assert output.text.endswith("Kenobi.\n")

    def test_counts(self) -> None:
        text = " ".join(f"Sentence number {word} has words." for word in ("one", "two", "three", "four", "five"))

        output = render_transcript(text, source_name="a.wav", model="base")

        assert output.word_count == 25
        assert output.paragraph_count == 2
        assert "\n\nSentence number five has words.\n" in output.text
