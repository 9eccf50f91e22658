import asyncio
import json
from typing import Iterable, List, Optional


def sse(event_type: str, **payload) -> bytes:
    """One Anthropic-style server-sent event."""
    data = json.dumps({"type": event_type, **payload}, ensure_ascii=False)
    return f"event: {event_type}\ndata: {data}\n\n".encode("utf-8")


def anthropic_stream(
    deltas: Iterable[str],
    input_tokens: int = 1,
    output_tokens: int = 3,
    stop: bool = True,
) -> List[bytes]:
    """Frames of a typical streaming Messages response."""
    frames = [
        sse("message_start", message={"id": "msg_1", "usage": {"input_tokens": input_tokens, "output_tokens": 1}}),
        sse("content_block_start", index=0, content_block={"type": "text", "text": ""}),
        sse("ping"),
    ]
    for text in deltas:
        frames.append(sse("content_block_delta", index=0, delta={"type": "text_delta", "text": text}))
    if stop:
        frames.append(sse("content_block_stop", index=0))
        frames.append(sse("message_delta", delta={"stop_reason": "end_turn"}, usage={"output_tokens": output_tokens}))
        frames.append(sse("message_stop"))
    return frames


class FakeClock:
    """Settable clock for TTL tests."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedTransport:
    """
    Streaming transport replaying scripted responses.

    Each script is a list of items: bytes are yielded, exceptions raised,
    asyncio.Events awaited (to hold a stream open). Scripts are used in
    order; the last one repeats.
    """

    def __init__(self, *scripts: list):
        self.scripts = list(scripts)
        self.calls: List[tuple] = []
        self.closed = False

    async def stream(self, text: str, model: str):
        self.calls.append((text, model))
        script = self.scripts.pop(0) if len(self.scripts) > 1 else self.scripts[0]
        for item in script:
            if isinstance(item, BaseException):
                raise item
            if isinstance(item, asyncio.Event):
                await item.wait()
                continue
            yield item

    async def aclose(self) -> None:
        self.closed = True


async def collect(stream) -> list:
    """Drain a TranslationStream into a list of bare events."""
    return [tagged.event async for tagged in stream]


def event_names(events: list) -> List[str]:
    return [type(e).__name__ for e in events]
