"""Shared fixtures: a scripted transport and canned API responses."""

import asyncio
import copy
import json
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any

import pytest

from gemini_client import Gemini

SAFETY_RATINGS = [
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "probability": "NEGLIGIBLE"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "probability": "NEGLIGIBLE"},
    {"category": "HARM_CATEGORY_HARASSMENT", "probability": "NEGLIGIBLE"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "probability": "NEGLIGIBLE"},
]


def make_response(text: str = "Hi!", *, block_reason: str | None = None) -> dict[str, Any]:
    """A generateContent response with one candidate."""
    feedback: dict[str, Any] = {"safetyRatings": SAFETY_RATINGS}
    if block_reason:
        return {"promptFeedback": {"blockReason": block_reason, **feedback}}
    return {
        "candidates": [
            {
                "content": {"parts": [{"text": text}], "role": "model"},
                "finishReason": "STOP",
                "index": 0,
                "safetyRatings": SAFETY_RATINGS,
            }
        ],
        "promptFeedback": feedback,
    }


def stream_chunks(*fragments: dict[str, Any]) -> list[bytes]:
    """Encode fragments the way streamGenerateContent sends them, one chunk each."""
    chunks = []
    for i, fragment in enumerate(fragments):
        prefix = "[" if i == 0 else ",\r\n"
        chunks.append((prefix + json.dumps(fragment, ensure_ascii=False)).encode())
    chunks.append(b"]")
    return chunks


class FakeResponse:
    """Scripted ``TransportResponse``."""

    def __init__(
        self,
        *,
        status: int = 200,
        payload: Any = None,
        chunks: list[bytes] | None = None,
        text: str = "",
        gate: asyncio.Event | None = None,
    ) -> None:
        self.status = status
        self.payload = payload
        self.chunks = chunks or []
        self.body_text = text
        self.gate = gate
        self.chunks_read = 0

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    async def json(self) -> Any:
        if self.gate is not None:
            await self.gate.wait()
        return copy.deepcopy(self.payload)

    async def text(self) -> str:
        return self.body_text

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        for chunk in self.chunks:
            if self.gate is not None:
                await self.gate.wait()
            self.chunks_read += 1
            yield chunk


class FakeTransport:
    """Hands out queued responses and records every request."""

    def __init__(self, *responses: FakeResponse) -> None:
        self.responses = list(responses)
        self.requests: list[tuple[str, str, dict[str, Any]]] = []

    def queue(self, response: FakeResponse) -> FakeResponse:
        self.responses.append(response)
        return response

    @asynccontextmanager
    async def send(self, model: str, command: str, body: Mapping[str, Any]) -> AsyncIterator[FakeResponse]:
        self.requests.append((model, command, copy.deepcopy(dict(body))))
        if not self.responses:
            msg = f"No scripted response left for {command}"
            raise AssertionError(msg)
        yield self.responses.pop(0)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def gemini(transport: FakeTransport) -> Gemini:
    return Gemini(transport)
