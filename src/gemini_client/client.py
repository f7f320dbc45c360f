"""Gemini: typed async access to the generative-language API.

The ``Gemini`` class wraps the REST commands (``generateContent``,
``streamGenerateContent``, ``countTokens``, ``embedContent``) behind one
interface. Text and JSON output shapes are supported for both complete
and streamed answers.

The transport is injected::

    gemini = Gemini(HttpxTransport(api_key))

or built from an API key (``GEMINI_API_KEY`` if omitted)::

    gemini = create_gemini()
    text = await gemini.ask("Explain quantum computing simply")
"""

import base64
import logging
import os
from collections.abc import AsyncIterator, Iterable, Mapping, Sequence
from contextlib import AbstractAsyncContextManager, aclosing, asynccontextmanager
from typing import Any

import httpx

from gemini_client._invoke import invoke_callback
from gemini_client._messages import (
    TextAccumulator,
    check_output_shape,
    format_response,
    pairs_to_messages,
    raise_if_blocked,
    user_message,
)
from gemini_client.chat import Chat
from gemini_client.config import (
    API_KEY_ENV,
    DEFAULT_MODEL,
    EMBEDDING_MODEL,
    VISION_MODEL,
    ClientConfig,
    GenerationConfig,
)
from gemini_client.decoder import Snapshot, StreamDecoder
from gemini_client.errors import ConfigurationError, EmptyStreamError, MalformedResponseError, TransportError
from gemini_client.mime import sniff_mime_type
from gemini_client.transport import HttpxTransport, Transport, TransportResponse
from gemini_client.types import ChunkCallback, Message, MessagePair, OutputShape

logger = logging.getLogger("gemini_client.client")


class Gemini:
    """Typed async client for the generative-language API.

    Usage::

        gemini = Gemini(transport)

        # Text
        text = await gemini.ask("Hello!")

        # Full response dict
        response = await gemini.ask("Hello!", output=Gemini.JSON)

        # Streaming, callback receives each snapshot in the requested shape
        text = await gemini.ask("Write a poem", on_chunk=print)

        # Multi-turn
        chat = gemini.create_chat()
        await chat.ask("Hi")
    """

    TEXT: OutputShape = "text"
    JSON: OutputShape = "json"

    __slots__ = ("_generation", "_transport")

    def __init__(self, transport: Transport, /, *, generation: GenerationConfig | None = None) -> None:
        if transport is None:
            msg = (
                "Gemini requires a transport. Pass an HttpxTransport (or any object "
                "implementing Transport), or use create_gemini(api_key)."
            )
            raise ConfigurationError(msg)
        self._transport = transport
        self._generation = generation or GenerationConfig()

    @property
    def generation(self) -> GenerationConfig:
        """Default sampling parameters for ``ask()`` and new chats."""
        return self._generation

    format_response = staticmethod(format_response)

    # -- Raw commands --

    @asynccontextmanager
    async def _query(
        self, model: str, command: str, body: Mapping[str, Any]
    ) -> AsyncIterator[TransportResponse]:
        logger.debug("Dispatching %s to %s", command, model)
        async with self._transport.send(model, command, body) as response:
            if not response.ok:
                detail = await response.text()
                logger.warning("%s on %s failed with status %d", command, model, response.status)
                raise TransportError(response.status, detail)
            yield response

    def query(
        self, model: str, command: str, body: Mapping[str, Any]
    ) -> AbstractAsyncContextManager[TransportResponse]:
        """Open a response for ``model:command``.

        Raises ``TransportError`` if the status is not a success.
        """
        return self._query(model, command, body)

    async def query_json(self, model: str, command: str, body: Mapping[str, Any]) -> dict[str, Any]:
        """Send one request and return the parsed JSON body."""
        async with self.query(model, command, body) as response:
            return await response.json()

    async def query_stream(
        self, model: str, command: str, body: Mapping[str, Any]
    ) -> AsyncIterator[Snapshot]:
        """Send one request and yield decoded snapshots as the body arrives."""
        async with self.query(model, command, body) as response:
            decoder = StreamDecoder()
            async with aclosing(decoder.decode_stream(response.aiter_bytes())) as snapshots:
                async for snapshot in snapshots:
                    yield snapshot

    # -- Generation --

    async def generate(
        self,
        model: str,
        contents: Sequence[Message],
        *,
        generation: GenerationConfig | None = None,
        output: OutputShape = "text",
        on_chunk: ChunkCallback | None = None,
    ) -> dict[str, Any]:
        """Run ``contents`` through the model and return the final response dict.

        Without ``on_chunk`` this is a single ``generateContent`` call. With
        it, ``streamGenerateContent`` is decoded incrementally and each
        snapshot is passed to ``on_chunk`` reshaped per ``output``. The
        returned response then holds the full accumulated reply text.

        Raises ``BlockedPromptError`` as soon as a block signal is seen.
        """
        body = {
            "contents": list(contents),
            "generationConfig": (generation or self._generation).to_payload(),
        }

        if on_chunk is None:
            response = await self.query_json(model, "generateContent", body)
            raise_if_blocked(response)
            return response

        accumulator = TextAccumulator()
        merged: dict[str, Any] | None = None
        async with aclosing(self.query_stream(model, "streamGenerateContent", body)) as snapshots:
            async for snapshot in snapshots:
                for fragment in snapshot.fragments:
                    raise_if_blocked(fragment)
                raise_if_blocked(snapshot.merged)
                accumulator.add(snapshot.fragments)
                merged = snapshot.merged
                await invoke_callback(on_chunk, format_response(output, snapshot.merged))

        if merged is None:
            msg = "Stream ended without a complete response fragment"
            raise EmptyStreamError(msg)
        return accumulator.final_response(merged)

    async def ask(
        self,
        message: str,
        /,
        *,
        output: OutputShape = "text",
        history: Iterable[MessagePair] = (),
        attachments: Sequence[bytes] = (),
        model: str | None = None,
        temperature: float | None = None,
        top_p: float | None = None,
        top_k: int | None = None,
        max_output_tokens: int | None = None,
        on_chunk: ChunkCallback | None = None,
    ) -> Any:
        """Ask a one-off question, optionally with prior turns and images.

        ``history`` is a sequence of ``(user, model)`` text pairs placed
        before the question. Each attachment is sniffed (PNG, GIF, JPEG)
        and sent inline; attachments switch the default model to the
        vision model.
        """
        check_output_shape(output)

        contents = pairs_to_messages(history)
        question = user_message(message)
        for data in attachments:
            question["parts"].append(
                {
                    "inline_data": {
                        "mime_type": sniff_mime_type(data),
                        "data": base64.b64encode(data).decode("ascii"),
                    }
                }
            )
        contents.append(question)

        generation = self._generation.override(
            temperature=temperature,
            top_p=top_p,
            top_k=top_k,
            max_output_tokens=max_output_tokens,
        )
        response = await self.generate(
            model or (VISION_MODEL if attachments else DEFAULT_MODEL),
            contents,
            generation=generation,
            output=output,
            on_chunk=on_chunk,
        )
        return format_response(output, response)

    # -- Utilities --

    async def count(self, message: str, /, *, model: str = DEFAULT_MODEL) -> int:
        """Return the number of tokens ``message`` uses."""
        response = await self.query_json(model, "countTokens", {"contents": [user_message(message)]})
        try:
            return response["totalTokens"]
        except KeyError:
            msg = "countTokens response has no totalTokens"
            raise MalformedResponseError(msg) from None

    async def embed(self, message: str, /, *, model: str = EMBEDDING_MODEL) -> list[float]:
        """Return the embedding vector for ``message``."""
        response = await self.query_json(
            model,
            "embedContent",
            {"model": f"models/{model}", "content": user_message(message)},
        )
        try:
            return response["embedding"]["values"]
        except (KeyError, TypeError):
            msg = "embedContent response has no embedding values"
            raise MalformedResponseError(msg) from None

    def create_chat(
        self,
        *,
        history: Iterable[MessagePair] = (),
        model: str | None = None,
        generation: GenerationConfig | None = None,
    ) -> Chat:
        """Start a multi-turn conversation bound to this client."""
        return Chat(
            self,
            history=history,
            model=model or DEFAULT_MODEL,
            generation=generation or self._generation,
        )


def create_gemini(
    api_key: str | None = None,
    /,
    *,
    config: ClientConfig | None = None,
    client: httpx.AsyncClient | None = None,
    generation: GenerationConfig | None = None,
) -> Gemini:
    """Build a ``Gemini`` over ``HttpxTransport``.

    API keys are resolved in order:
        1. Explicit ``api_key`` parameter
        2. ``GEMINI_API_KEY`` environment variable
    """
    key = api_key or os.environ.get(API_KEY_ENV, "")
    if not key:
        msg = f"Missing API key. Pass api_key or set {API_KEY_ENV}."
        raise ConfigurationError(msg)
    return Gemini(HttpxTransport(key, config=config, client=client), generation=generation)

