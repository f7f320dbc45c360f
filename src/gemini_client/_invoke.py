"""Call sync or async stream callbacks uniformly.

``on_chunk`` may be a plain function or a coroutine function. The
sync/async check lives here so the client and chat share it.
"""

import inspect
from typing import Any

from gemini_client.types import ChunkCallback


async def invoke_callback(callback: ChunkCallback, value: Any) -> None:
    """Call ``callback(value)`` and await the result if it's awaitable."""
    result = callback(value)
    if inspect.isawaitable(result):
        await result
