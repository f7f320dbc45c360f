"""Client and generation configuration.

Both are frozen dataclasses: immutable after creation, IDE-autocompletable,
no string-key dict lookups. Per-call overrides go through
``GenerationConfig.override()``, which returns a new instance.
"""

from dataclasses import dataclass, replace
from typing import Any

DEFAULT_MODEL = "gemini-pro"
VISION_MODEL = "gemini-pro-vision"
EMBEDDING_MODEL = "embedding-001"

API_KEY_ENV = "GEMINI_API_KEY"


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Where and how requests are sent. Immutable after creation.

    Override what you need::

        config = ClientConfig(api_version="v1", timeout=30.0)
    """

    base_url: str = "https://generativelanguage.googleapis.com"
    api_version: str = "v1beta"
    timeout: float = 120.0  # seconds, applied by the transport

    def endpoint(self, model: str, command: str) -> str:
        """Return the full URL for ``model:command``."""
        return f"{self.base_url.rstrip('/')}/{self.api_version}/models/{model}:{command}"


@dataclass(frozen=True, slots=True)
class GenerationConfig:
    """Sampling parameters sent as ``generationConfig``."""

    temperature: float = 1.0
    top_p: float = 0.8
    top_k: int = 10
    max_output_tokens: int = 800

    def override(
        self,
        *,
        temperature: float | None = None,
        top_p: float | None = None,
        top_k: int | None = None,
        max_output_tokens: int | None = None,
    ) -> "GenerationConfig":
        """Return a copy with every non-``None`` argument applied."""
        changes = {
            "temperature": temperature,
            "top_p": top_p,
            "top_k": top_k,
            "max_output_tokens": max_output_tokens,
        }
        changes = {k: v for k, v in changes.items() if v is not None}
        if not changes:
            return self
        return replace(self, **changes)

    def to_payload(self) -> dict[str, Any]:
        """Render in the API's camelCase form."""
        return {
            "temperature": self.temperature,
            "topP": self.top_p,
            "topK": self.top_k,
            "maxOutputTokens": self.max_output_tokens,
        }
