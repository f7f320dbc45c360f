"""gemini_client exception hierarchy.

Shared across the client, the chat conversation, and the transport so
every module raises and catches the same types. Each error carries its
payload as attributes (status codes, feedback dicts) rather than only
a formatted message.
"""

import json
from typing import Any


class GeminiError(Exception):
    """Base for all gemini_client errors."""


class ConfigurationError(GeminiError):
    """Raised when the client is constructed without what it needs.

    Typically a missing transport or API key, caught at construction
    time rather than on the first request.
    """


class TransportError(GeminiError):
    """Raised when the API returns a non-success status or cannot be reached.

    ``status`` is ``None`` when no response arrived (connection failure,
    timeout).
    """

    def __init__(self, status: int | None, detail: str = "") -> None:
        self.status = status
        self.detail = detail
        if status is None:
            super().__init__(f"Gemini request failed: {detail}")
        elif detail:
            super().__init__(f"Gemini returned {status}: {detail}")
        else:
            super().__init__(f"Gemini returned {status}")


class BlockedPromptError(GeminiError):
    """Raised when the API flags the prompt via ``promptFeedback.blockReason``.

    The full feedback payload is kept on ``feedback`` for diagnostics.
    """

    def __init__(self, feedback: dict[str, Any]) -> None:
        self.feedback = feedback
        self.block_reason: str | None = feedback.get("blockReason")
        super().__init__(
            f"Prompt was blocked ({self.block_reason}). Feedback:\n"
            f"{json.dumps(feedback, indent=4)}"
        )


class TurnViolationError(GeminiError):
    """Raised when ``Chat.ask()`` is called while a turn is still outstanding.

    A chat holds at most one unanswered user message. Use ``Gemini.ask()``
    for independent parallel prompts.
    """


class InvalidOutputShapeError(GeminiError, ValueError):
    """Raised when an unknown output shape is requested."""

    def __init__(self, output: object) -> None:
        self.output = output
        super().__init__(f"{output!r} is not a valid output shape. Use 'text' or 'json'.")


class InvalidMessagePairError(GeminiError, ValueError):
    """Raised when seed history is not a sequence of ``(user, model)`` pairs."""


class UnknownFileTypeError(GeminiError, ValueError):
    """Raised when attachment bytes are not a PNG, GIF, or JPEG image."""


class MalformedResponseError(GeminiError):
    """Raised when a response lacks the fields needed to build a result."""


class EmptyStreamError(MalformedResponseError):
    """Raised when a stream ended without a single parseable fragment."""
