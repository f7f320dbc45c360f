"""Message construction and response inspection shared by Gemini and Chat."""

import copy
from collections.abc import Iterable, Sequence
from typing import Any

from gemini_client.errors import (
    BlockedPromptError,
    InvalidMessagePairError,
    InvalidOutputShapeError,
    MalformedResponseError,
)
from gemini_client.types import Message, MessagePair

OUTPUT_SHAPES = frozenset({"text", "json"})


def user_message(text: str) -> Message:
    return {"role": "user", "parts": [{"text": text}]}


def model_message(text: str) -> Message:
    return {"role": "model", "parts": [{"text": text}]}


def pairs_to_messages(pairs: Iterable[Sequence[str]]) -> list[Message]:
    """Expand ``(user, model)`` pairs into a flat alternating history."""
    messages: list[Message] = []
    for pair in pairs:
        if isinstance(pair, str) or len(pair) != 2 or not all(isinstance(p, str) for p in pair):
            msg = "History must be a sequence of (user, model) string pairs."
            raise InvalidMessagePairError(msg)
        user, model = pair
        messages.append(user_message(user))
        messages.append(model_message(model))
    return messages


def check_output_shape(output: str) -> None:
    if output not in OUTPUT_SHAPES:
        raise InvalidOutputShapeError(output)


def raise_if_blocked(response: dict[str, Any]) -> None:
    """Raise ``BlockedPromptError`` when the response carries a block signal."""
    feedback = response.get("promptFeedback") or {}
    if feedback.get("blockReason"):
        raise BlockedPromptError(feedback)


def first_content(response: dict[str, Any]) -> Message:
    """Return the first candidate's content."""
    try:
        return response["candidates"][0]["content"]
    except (KeyError, IndexError, TypeError):
        msg = "Response has no candidate content"
        raise MalformedResponseError(msg) from None


def format_response(output: str, response: dict[str, Any]) -> Any:
    """Reshape a decoded response for the caller.

    ``"text"`` returns the first candidate's first text part, ``"json"``
    returns the response dict unchanged.
    """
    if output == "text":
        parts = first_content(response).get("parts") or []
        if not parts or "text" not in parts[0]:
            msg = "First candidate has no text part"
            raise MalformedResponseError(msg)
        return parts[0]["text"]
    if output == "json":
        return response
    raise InvalidOutputShapeError(output)


class TextAccumulator:
    """Joins the first candidate's text across streamed fragments.

    Each streamed fragment carries only the newest slice of text; the
    full reply is their concatenation.
    """

    __slots__ = ("_pieces", "_seen_candidate")

    def __init__(self) -> None:
        self._pieces: list[str] = []
        self._seen_candidate = False

    def add(self, fragments: Iterable[dict[str, Any]]) -> None:
        for fragment in fragments:
            candidates = fragment.get("candidates") or []
            if not candidates:
                continue
            self._seen_candidate = True
            content = candidates[0].get("content") or {}
            for part in content.get("parts") or []:
                if "text" in part:
                    self._pieces.append(part["text"])

    @property
    def text(self) -> str:
        return "".join(self._pieces)

    def reply(self) -> Message:
        if not self._seen_candidate:
            msg = "Stream produced no candidates"
            raise MalformedResponseError(msg)
        return model_message(self.text)

    def final_response(self, merged: dict[str, Any]) -> dict[str, Any]:
        """Return ``merged`` with the first candidate's content replaced by the full reply."""
        final = copy.deepcopy(merged)
        reply = self.reply()
        candidates = final.get("candidates") or [{}]
        candidates[0] = {**candidates[0], "content": reply}
        final["candidates"] = candidates
        return final
