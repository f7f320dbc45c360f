"""Wire shapes for the generative-language API.

These are ``TypedDict`` views of the JSON the API sends and receives.
Values stay plain dicts so they serialize without conversion.
"""

from collections.abc import Awaitable, Callable
from typing import Any, Literal, NotRequired, TypeAlias, TypedDict

Role: TypeAlias = Literal["user", "model"]
FileType: TypeAlias = Literal["image/png", "image/gif", "image/jpeg"]
Command: TypeAlias = Literal["countTokens", "embedContent", "generateContent", "streamGenerateContent"]

# "text" -> first candidate's first text part, "json" -> the whole response
OutputShape: TypeAlias = Literal["text", "json"]


class TextPart(TypedDict):
    text: str


class InlineData(TypedDict):
    mime_type: FileType
    data: str  # base64


class FilePart(TypedDict):
    inline_data: InlineData


Part: TypeAlias = TextPart | FilePart


class Message(TypedDict):
    role: Role
    parts: list[Part]


class SafetyRating(TypedDict):
    category: str
    probability: str


class PromptFeedback(TypedDict):
    blockReason: NotRequired[str]
    safetyRatings: list[SafetyRating]


class Candidate(TypedDict):
    content: Message
    finishReason: str
    index: int
    safetyRatings: list[SafetyRating]


class GenerateResponse(TypedDict, total=False):
    candidates: list[Candidate]
    promptFeedback: PromptFeedback


# A (user_text, model_text) pair used to seed history
MessagePair: TypeAlias = tuple[str, str]

# Per-chunk stream callback; may be sync or async
ChunkCallback: TypeAlias = Callable[[Any], Awaitable[None] | None]
