"""Async client for the Gemini generative-language API.

Transport in, typed results out. Streaming-native.

Basic usage::

    from gemini_client import create_gemini

    gemini = create_gemini("your-api-key")

    # Generate text
    text = await gemini.ask("Explain quantum computing simply")

    # Stream, receiving each partial answer as it arrives
    text = await gemini.ask("Write a haiku", on_chunk=print)

    # Multi-turn conversation
    chat = gemini.create_chat()
    await chat.ask("Hi")
    await chat.ask("Tell me a joke")

Requires ``httpx`` for the default transport.
"""

from gemini_client.chat import Chat
from gemini_client.client import Gemini, create_gemini
from gemini_client.config import ClientConfig, GenerationConfig
from gemini_client.decoder import Snapshot, StreamDecoder
from gemini_client.errors import (
    BlockedPromptError,
    ConfigurationError,
    EmptyStreamError,
    GeminiError,
    InvalidMessagePairError,
    InvalidOutputShapeError,
    MalformedResponseError,
    TransportError,
    TurnViolationError,
    UnknownFileTypeError,
)
from gemini_client.mime import sniff_mime_type
from gemini_client.transport import HttpxTransport, Transport, TransportResponse
from gemini_client.types import GenerateResponse, Message, OutputShape, Part, Role

__all__ = [
    "BlockedPromptError",
    "Chat",
    "ClientConfig",
    "ConfigurationError",
    "EmptyStreamError",
    "Gemini",
    "GeminiError",
    "GenerateResponse",
    "GenerationConfig",
    "HttpxTransport",
    "InvalidMessagePairError",
    "InvalidOutputShapeError",
    "MalformedResponseError",
    "Message",
    "OutputShape",
    "Part",
    "Role",
    "Snapshot",
    "StreamDecoder",
    "Transport",
    "TransportError",
    "TransportResponse",
    "TurnViolationError",
    "UnknownFileTypeError",
    "create_gemini",
    "sniff_mime_type",
]
