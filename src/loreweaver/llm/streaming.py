"""
Server-sent event framing for streamed completions.

The backend sends `data: <json>` lines and ends with `data: [DONE]`.
Transport chunks do not respect line boundaries, so partial lines are
held until the rest arrives.
"""

import json
import logging
from dataclasses import dataclass


logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


@dataclass
class StreamEvent:
    """One parsed frame: a content delta or the terminal marker."""
    content: str = ""
    done: bool = False


class SSEFrameParser:
    """Incremental parser for `data:` frames."""

    def __init__(self):
        self._buffer = ""
        self.done = False

    def feed(self, chunk: str) -> list[StreamEvent]:
        """
        Consume a transport chunk and return the events it completes.

        Nothing is returned once the terminal frame has been seen.
        """
        if self.done:
            return []
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split("\n")
        return self._parse_lines(lines)

    def flush(self) -> list[StreamEvent]:
        """Parse whatever is left when the stream closes."""
        if self.done or not self._buffer:
            return []
        remaining, self._buffer = self._buffer, ""
        return self._parse_lines([remaining])

    def _parse_lines(self, lines: list[str]) -> list[StreamEvent]:
        events: list[StreamEvent] = []
        for line in lines:
            line = line.strip()
            if not line:
                continue
            if line.startswith(DATA_PREFIX):
                payload = line[len(DATA_PREFIX):]
            elif line.startswith("data:"):
                payload = line[5:].strip()
            else:
                payload = line

            if payload == DONE_SENTINEL:
                self.done = True
                events.append(StreamEvent(done=True))
                break

            event = parse_frame(payload)
            if event is not None:
                events.append(event)
        return events


def parse_frame(payload: str) -> StreamEvent | None:
    """Extract choices[0].delta.content from one frame payload."""
    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        logger.warning(f"Dropping unparsable stream frame: {payload[:80]}")
        return None

    try:
        content = data["choices"][0]["delta"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError):
        return None
    if not content:
        return None
    return StreamEvent(content=content)
