"""Decoder for server-sent-event chat-completion streams."""

import codecs
import json
import logging
from typing import Callable, Iterable, List, Optional

from .transport import CancelToken

logger = logging.getLogger(__name__)

DONE_MARKER = "[DONE]"


class SSEDecoder:
    """
    Incremental decoder for `data: <json>` lines.

    Bytes are decoded with an incremental UTF-8 decoder so multi-byte
    characters split across reads survive. The trailing partial line is
    buffered until the next read.
    """

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.done = False

    def feed(self, chunk: bytes) -> List[str]:
        """Consume raw bytes and return the text deltas completed by them."""
        if self.done:
            return []
        self._buffer += self._decoder.decode(chunk)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return self._process(lines)

    def close(self) -> List[str]:
        """Flush the decoder at end of stream."""
        if self.done:
            return []
        self._buffer += self._decoder.decode(b"", final=True)
        remaining, self._buffer = self._buffer, ""
        deltas = self._process([remaining])
        self.done = True
        return deltas

    def _process(self, lines: List[str]) -> List[str]:
        deltas = []
        for line in lines:
            payload = self._payload(line)
            if payload is None:
                continue
            if payload == DONE_MARKER:
                self.done = True
                break
            delta = self._delta(payload)
            if delta:
                deltas.append(delta)
        return deltas

    @staticmethod
    def _payload(line: str) -> Optional[str]:
        trimmed = line.strip()
        if not trimmed.startswith("data:"):
            return None
        payload = trimmed[5:]
        if payload.startswith(" "):
            payload = payload[1:]
        return payload

    @staticmethod
    def _delta(payload: str) -> Optional[str]:
        try:
            parsed = json.loads(payload)
        except ValueError:
            logger.debug(f"Skipping malformed stream payload: {payload[:80]}")
            return None

        # choices[0].delta.content, each step may be missing
        if not isinstance(parsed, dict):
            return None
        choices = parsed.get("choices")
        if not isinstance(choices, list) or not choices:
            return None
        first = choices[0]
        if not isinstance(first, dict):
            return None
        delta = first.get("delta")
        if not isinstance(delta, dict):
            return None
        content = delta.get("content")
        return content if isinstance(content, str) else None


def decode_stream(
    chunks: Iterable[bytes],
    on_delta: Callable[[str], None],
    cancel_token: Optional[CancelToken] = None,
) -> None:
    """
    Feed a byte stream through SSEDecoder, calling on_delta per text delta.

    Returns when the terminal marker is seen or the stream ends.
    """
    decoder = SSEDecoder()
    iterator = iter(chunks)
    try:
        for chunk in iterator:
            for delta in decoder.feed(chunk):
                if cancel_token:
                    cancel_token.raise_if_cancelled()
                on_delta(delta)
            if decoder.done:
                return
        for delta in decoder.close():
            if cancel_token:
                cancel_token.raise_if_cancelled()
            on_delta(delta)
    finally:
        close = getattr(iterator, "close", None)
        if close:
            close()
