"""
Incremental decoders for upstream streaming formats.

Both decoders take text as it arrives from the network, buffer incomplete
lines/frames, and return the text increments found in completed ones.
Malformed JSON is skipped, never raised.
"""

import json
from typing import Any, Iterable, List, Optional

OUTPUT_TEXT_DELTA = "response.output_text.delta"


def _loads(raw: str) -> Optional[Any]:
    try:
        return json.loads(raw)
    except ValueError:
        return None


class NdjsonDecoder:
    """Newline-delimited JSON as emitted by Ollama's /api/chat."""

    def __init__(self):
        self._buffer = ""

    def feed(self, text: str) -> List[str]:
        self._buffer += text
        *lines, self._buffer = self._buffer.split("\n")
        return self._decode(lines)

    def flush(self) -> List[str]:
        rest, self._buffer = self._buffer, ""
        return self._decode([rest])

    def _decode(self, lines: Iterable[str]) -> List[str]:
        out = []
        for line in lines:
            line = line.strip()
            if not line:
                continue
            event = _loads(line)
            if not isinstance(event, dict):
                continue
            message = event.get("message")
            content = message.get("content") if isinstance(message, dict) else None
            if isinstance(content, str) and content:
                out.append(content)
        return out


class SseDecoder:
    """Server-sent events from the Responses API; `[DONE]` ends decoding."""

    def __init__(self):
        self._buffer = ""
        self.done = False

    def feed(self, text: str) -> List[str]:
        if self.done:
            return []
        self._buffer = (self._buffer + text).replace("\r\n", "\n")
        *frames, self._buffer = self._buffer.split("\n\n")
        return self._decode(frames)

    def flush(self) -> List[str]:
        rest, self._buffer = self._buffer, ""
        if self.done or not rest.strip():
            return []
        return self._decode([rest])

    def _decode(self, frames: Iterable[str]) -> List[str]:
        out = []
        for frame in frames:
            for line in frame.split("\n"):
                if not line.startswith("data:"):
                    continue
                payload = line[5:].strip()
                if not payload:
                    continue
                if payload == "[DONE]":
                    self.done = True
                    return out
                event = _loads(payload)
                if not isinstance(event, dict) or event.get("type") != OUTPUT_TEXT_DELTA:
                    continue
                delta = event.get("delta")
                if isinstance(delta, str) and delta:
                    out.append(delta)
        return out
