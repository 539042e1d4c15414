"""Tests for server-sent event frame parsing."""

import json

from loreweaver.llm.streaming import SSEFrameParser, parse_frame


def frame(content: str) -> str:
    return "data: " + json.dumps({"choices": [{"delta": {"content": content}}]}) + "\n\n"


def contents(events) -> list[str]:
    return [e.content for e in events if not e.done]


class TestSSEFrameParser:
    """Incremental parsing across transport chunks."""

    def test_whole_frames(self):
        parser = SSEFrameParser()
        events = parser.feed(frame("Hi") + frame(" there") + "data: [DONE]\n\n")
        assert contents(events) == ["Hi", " there"]
        assert events[-1].done
        assert parser.done

    def test_frame_split_across_chunks(self):
        """A frame cut mid-JSON is held until its newline arrives."""
        raw = frame("Hello")
        parser = SSEFrameParser()
        assert parser.feed(raw[:15]) == []
        assert contents(parser.feed(raw[15:])) == ["Hello"]

    def test_nothing_after_done(self):
        parser = SSEFrameParser()
        parser.feed("data: [DONE]\n")
        assert parser.feed(frame("late")) == []
        assert parser.flush() == []

    def test_bad_frame_dropped(self):
        """An unparsable frame is skipped; the stream continues."""
        parser = SSEFrameParser()
        events = parser.feed("data: {not json\n" + frame("ok"))
        assert contents(events) == ["ok"]

    def test_prefix_without_space(self):
        parser = SSEFrameParser()
        payload = json.dumps({"choices": [{"delta": {"content": "x"}}]})
        assert contents(parser.feed(f"data:{payload}\n")) == ["x"]

    def test_flush_trailing_line(self):
        """A final frame without a newline is parsed on flush."""
        parser = SSEFrameParser()
        assert parser.feed(frame("a").rstrip("\n")) == []
        assert contents(parser.flush()) == ["a"]


class TestParseFrame:
    def test_empty_delta_ignored(self):
        assert parse_frame(json.dumps({"choices": [{"delta": {}}]})) is None
        assert parse_frame(json.dumps({"choices": [{"delta": {"content": ""}}]})) is None

    def test_missing_choices_ignored(self):
        assert parse_frame(json.dumps({"id": "x"})) is None
