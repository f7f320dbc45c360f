"""Transport: the "send a request, get a response" capability.

The client never talks to the network directly. It is handed a
``Transport`` at construction and opens one response per call::

    async with transport.send("gemini-pro", "generateContent", body) as response:
        if response.ok:
            data = await response.json()

``HttpxTransport`` is the default implementation, using raw HTTP via
httpx (no provider SDK). Tests and alternative stacks supply their own
object satisfying the protocol.
"""

import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any, Protocol, runtime_checkable

import httpx

from gemini_client.config import ClientConfig
from gemini_client.errors import TransportError

logger = logging.getLogger("gemini_client.transport")


@runtime_checkable
class TransportResponse(Protocol):
    """An open response. Valid only inside the ``send()`` context."""

    @property
    def ok(self) -> bool: ...

    @property
    def status(self) -> int: ...

    async def json(self) -> Any: ...

    async def text(self) -> str: ...

    def aiter_bytes(self) -> AsyncIterator[bytes]: ...


@runtime_checkable
class Transport(Protocol):
    """Issues one POST of ``body`` to ``models/{model}:{command}``."""

    def send(
        self, model: str, command: str, body: Mapping[str, Any]
    ) -> AbstractAsyncContextManager[TransportResponse]: ...


class HttpxResponse:
    """``TransportResponse`` over a streaming ``httpx.Response``."""

    __slots__ = ("_response",)

    def __init__(self, response: httpx.Response) -> None:
        self._response = response

    @property
    def ok(self) -> bool:
        return self._response.is_success

    @property
    def status(self) -> int:
        return self._response.status_code

    async def json(self) -> Any:
        await self._response.aread()
        return self._response.json()

    async def text(self) -> str:
        await self._response.aread()
        return self._response.text

    def aiter_bytes(self) -> AsyncIterator[bytes]:
        return self._response.aiter_bytes()


class HttpxTransport:
    """Default transport backed by ``httpx.AsyncClient``.

    The API key travels as the ``key`` query parameter. Pass ``client``
    to share a connection pool (or an ``httpx.MockTransport`` in tests);
    otherwise the transport creates and owns one.
    """

    __slots__ = ("_api_key", "_client", "_config", "_owns_client")

    def __init__(
        self,
        api_key: str,
        /,
        *,
        config: ClientConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._config = config or ClientConfig()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()

    @property
    def config(self) -> ClientConfig:
        return self._config

    @asynccontextmanager
    async def _open(
        self, model: str, command: str, body: Mapping[str, Any]
    ) -> AsyncIterator[TransportResponse]:
        url = self._config.endpoint(model, command)
        logger.debug("POST %s", url)
        try:
            async with self._client.stream(
                "POST",
                url,
                params={"key": self._api_key},
                json=dict(body),
                headers={"Content-Type": "application/json"},
                timeout=self._config.timeout,
            ) as response:
                yield HttpxResponse(response)
        except httpx.HTTPError as exc:
            # Connection failures, timeouts, and broken reads mid-stream
            logger.warning("%s on %s failed: %s", command, model, exc)
            raise TransportError(None, f"{type(exc).__name__}: {exc}") from exc

    def send(
        self, model: str, command: str, body: Mapping[str, Any]
    ) -> AbstractAsyncContextManager[TransportResponse]:
        return self._open(model, command, body)

    async def aclose(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
