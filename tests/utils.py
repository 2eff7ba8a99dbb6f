import json
import os
from typing import Iterable, Union

import httpx
import requests
from tenacity import retry, stop_after_delay, wait_fixed


def wait_until_healthy(base_url: str, timeout: int | None = None) -> None:
    t = int(os.getenv("WAIT_HEALTH_SECS", "30" if os.getenv("CI") else "60"))
    if timeout is not None: t = timeout
    @retry(stop=stop_after_delay(t), wait=wait_fixed(2), reraise=True)
    def _probe():
        r = requests.get(f"{base_url}/health", timeout=3)
        if r.status_code != 200:
            raise RuntimeError(f"health status {r.status_code}")
    _probe()


class ChunkedBody(httpx.AsyncByteStream):
    """Response body delivered as separate network reads."""

    def __init__(self, chunks: Iterable[Union[str, bytes]], error: Exception | None = None):
        self._chunks = [c.encode("utf-8") if isinstance(c, str) else c for c in chunks]
        self._error = error

    async def __aiter__(self):
        for chunk in self._chunks:
            yield chunk
        if self._error is not None:
            raise self._error


def ollama_lines(*parts: str) -> str:
    """NDJSON body the way Ollama streams /api/chat."""
    lines = [json.dumps({"message": {"role": "assistant", "content": p}, "done": False}) for p in parts]
    lines.append(json.dumps({"message": {"role": "assistant", "content": ""}, "done": True}))
    return "\n".join(lines) + "\n"


def sse_frames(*deltas: str) -> str:
    """SSE body the way the Responses API streams output text."""
    frames = ['event: response.created\ndata: {"type":"response.created"}']
    for d in deltas:
        payload = json.dumps({"type": "response.output_text.delta", "delta": d})
        frames.append(f"event: response.output_text.delta\ndata: {payload}")
    frames.append('event: response.completed\ndata: {"type":"response.completed"}')
    frames.append("data: [DONE]")
    return "\n\n".join(frames) + "\n\n"
