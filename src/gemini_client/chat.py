"""Chat: a multi-turn conversation with strict turn alternation.

History is a flat list of messages alternating ``user`` and ``model``.
Each ``ask()`` appends the user message before the request goes out
and either completes the pair with the model's reply or removes the
user message again if anything fails. A chat therefore moves between
two states:

    Idle              last message is ``model`` (or history is empty)
    AwaitingResponse  last message is the pending ``user`` turn

Calling ``ask()`` while awaiting a response raises
``TurnViolationError``. Nothing is queued.
"""

import copy
import logging
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any

from gemini_client._messages import (
    check_output_shape,
    first_content,
    format_response,
    pairs_to_messages,
    user_message,
)
from gemini_client.config import DEFAULT_MODEL, GenerationConfig
from gemini_client.errors import TurnViolationError
from gemini_client.types import ChunkCallback, Message, MessagePair, OutputShape

if TYPE_CHECKING:
    from gemini_client.client import Gemini

logger = logging.getLogger("gemini_client.chat")


class Chat:
    """One ongoing conversation bound to a ``Gemini`` client.

    Usage::

        chat = gemini.create_chat(history=[("Hi", "Hello! How can I help?")])
        answer = await chat.ask("What's the capital of France?")
        follow_up = await chat.ask("And its population?", on_chunk=print)

    ``history`` returns a copy; the conversation itself is only changed
    by ``ask()``.
    """

    __slots__ = ("_client", "_generation", "_messages", "_model")

    def __init__(
        self,
        client: "Gemini",
        /,
        *,
        history: Iterable[MessagePair] = (),
        model: str = DEFAULT_MODEL,
        generation: GenerationConfig | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._generation = generation or GenerationConfig()
        self._messages: list[Message] = pairs_to_messages(history)

    @property
    def model(self) -> str:
        return self._model

    @property
    def history(self) -> tuple[Message, ...]:
        """Committed messages, oldest first. A detached copy."""
        return tuple(copy.deepcopy(self._messages))

    @property
    def awaiting_response(self) -> bool:
        """True while a user turn is outstanding."""
        return bool(self._messages) and self._messages[-1]["role"] == "user"

    async def ask(
        self,
        message: str,
        /,
        *,
        output: OutputShape = "text",
        temperature: float | None = None,
        top_p: float | None = None,
        top_k: int | None = None,
        max_output_tokens: int | None = None,
        attachments: Sequence[bytes] = (),
        on_chunk: ChunkCallback | None = None,
    ) -> Any:
        """Send ``message`` as the next user turn and return the reply.

        With ``on_chunk`` the answer is streamed and ``on_chunk`` receives
        each snapshot shaped per ``output``. On any error, including a
        block signal or cancellation, the user turn is removed before the
        exception propagates.
        """
        check_output_shape(output)
        if self.awaiting_response:
            msg = (
                "This chat is still waiting for a reply. Await each ask() before "
                "sending the next message, or use Gemini.ask() for parallel prompts."
            )
            raise TurnViolationError(msg)

        if attachments:
            logger.warning(
                "Chat does not support non-text data; ignoring %d attachment(s)",
                len(attachments),
            )

        generation = self._generation.override(
            temperature=temperature,
            top_p=top_p,
            top_k=top_k,
            max_output_tokens=max_output_tokens,
        )

        pending = len(self._messages)
        self._messages.append(user_message(message))
        try:
            response = await self._client.generate(
                self._model,
                copy.deepcopy(self._messages),
                generation=generation,
                output=output,
                on_chunk=on_chunk,
            )
            result = format_response(output, response)
            reply = first_content(response)
        except BaseException:
            del self._messages[pending:]
            raise

        self._messages.append({"role": "model", "parts": copy.deepcopy(reply.get("parts", []))})
        return result
