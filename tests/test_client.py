"""Tests for gemini_client.client: one-off asks, count, embed, construction."""

import base64

import pytest
from conftest import FakeResponse, FakeTransport, make_response, stream_chunks

from gemini_client import (
    BlockedPromptError,
    ConfigurationError,
    Gemini,
    HttpxTransport,
    InvalidOutputShapeError,
    MalformedResponseError,
    TransportError,
    UnknownFileTypeError,
    create_gemini,
)

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 8


class TestConstruction:
    def test_missing_transport_fails_fast(self) -> None:
        with pytest.raises(ConfigurationError, match="transport"):
            Gemini(None)  # type: ignore[arg-type]

    def test_create_gemini_requires_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with pytest.raises(ConfigurationError, match="GEMINI_API_KEY"):
            create_gemini()

    def test_create_gemini_reads_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GEMINI_API_KEY", "env-key")
        gemini = create_gemini()
        assert isinstance(gemini, Gemini)

    def test_create_gemini_explicit_key(self) -> None:
        gemini = create_gemini("demo-key")
        assert gemini.generation.temperature == 1.0

    def test_httpx_transport_satisfies_protocol(self) -> None:
        from gemini_client.transport import Transport

        assert isinstance(HttpxTransport("k"), Transport)

    def test_create_chat_defaults_model(self, gemini: Gemini) -> None:
        assert gemini.create_chat().model == "gemini-pro"
        assert gemini.create_chat(model=None).model == "gemini-pro"
        assert gemini.create_chat(model="gemini-1.5-pro").model == "gemini-1.5-pro"


class TestAsk:
    @pytest.mark.asyncio
    async def test_text(self, gemini: Gemini, transport: FakeTransport) -> None:
        transport.queue(FakeResponse(payload=make_response("Hi!")))
        assert await gemini.ask("Hello!") == "Hi!"

        model, command, body = transport.requests[0]
        assert (model, command) == ("gemini-pro", "generateContent")
        assert body["contents"] == [{"role": "user", "parts": [{"text": "Hello!"}]}]

    @pytest.mark.asyncio
    async def test_json(self, gemini: Gemini, transport: FakeTransport) -> None:
        transport.queue(FakeResponse(payload=make_response("Hi!")))
        assert await gemini.ask("Hello!", output=Gemini.JSON) == make_response("Hi!")

    @pytest.mark.asyncio
    async def test_previous_messages(self, gemini: Gemini, transport: FakeTransport) -> None:
        transport.queue(FakeResponse(payload=make_response("It's a cat")))
        await gemini.ask("And now?", history=[("What's this?", "A picture")])

        contents = transport.requests[0][2]["contents"]
        assert [m["role"] for m in contents] == ["user", "model", "user"]

    @pytest.mark.asyncio
    async def test_attachments_use_vision_model(self, gemini: Gemini, transport: FakeTransport) -> None:
        transport.queue(FakeResponse(payload=make_response("A square")))
        await gemini.ask("What does this show?", attachments=[PNG])

        model, _, body = transport.requests[0]
        assert model == "gemini-pro-vision"
        parts = body["contents"][-1]["parts"]
        assert parts[0] == {"text": "What does this show?"}
        assert parts[1] == {
            "inline_data": {"mime_type": "image/png", "data": base64.b64encode(PNG).decode()}
        }

    @pytest.mark.asyncio
    async def test_explicit_model_wins(self, gemini: Gemini, transport: FakeTransport) -> None:
        transport.queue(FakeResponse(payload=make_response()))
        await gemini.ask("Hi", attachments=[PNG], model="gemini-1.5-flash")
        assert transport.requests[0][0] == "gemini-1.5-flash"

    @pytest.mark.asyncio
    async def test_unknown_attachment_fails_before_request(
        self, gemini: Gemini, transport: FakeTransport
    ) -> None:
        with pytest.raises(UnknownFileTypeError):
            await gemini.ask("What is this?", attachments=[b"%PDF-1.7"])
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_generation_overrides(self, gemini: Gemini, transport: FakeTransport) -> None:
        transport.queue(FakeResponse(payload=make_response()))
        await gemini.ask("Hi", top_k=3, top_p=0.5)
        config = transport.requests[0][2]["generationConfig"]
        assert config["topK"] == 3
        assert config["topP"] == 0.5
        assert config["temperature"] == 1.0

    @pytest.mark.asyncio
    async def test_blocked(self, gemini: Gemini, transport: FakeTransport) -> None:
        transport.queue(FakeResponse(payload=make_response(block_reason="OTHER")))
        with pytest.raises(BlockedPromptError) as exc_info:
            await gemini.ask("Hi")
        assert exc_info.value.block_reason == "OTHER"

    @pytest.mark.asyncio
    async def test_http_error(self, gemini: Gemini, transport: FakeTransport) -> None:
        transport.queue(FakeResponse(status=400, text='{"error": "bad key"}'))
        with pytest.raises(TransportError) as exc_info:
            await gemini.ask("Hi")
        assert exc_info.value.status == 400
        assert "bad key" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_invalid_output(self, gemini: Gemini, transport: FakeTransport) -> None:
        with pytest.raises(InvalidOutputShapeError):
            await gemini.ask("Hi", output="xml")  # type: ignore[arg-type]
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_missing_candidates(self, gemini: Gemini, transport: FakeTransport) -> None:
        transport.queue(FakeResponse(payload={"promptFeedback": {"safetyRatings": []}}))
        with pytest.raises(MalformedResponseError):
            await gemini.ask("Hi")

    @pytest.mark.asyncio
    async def test_stream(self, gemini: Gemini, transport: FakeTransport) -> None:
        deltas = [make_response("Hel"), make_response("lo"), make_response("!")]
        transport.queue(FakeResponse(chunks=stream_chunks(*deltas)))
        seen: list[str] = []

        assert await gemini.ask("Hi", on_chunk=seen.append) == "Hello!"
        assert seen == ["Hel", "lo", "!"]
        assert transport.requests[0][1] == "streamGenerateContent"


class TestFormatResponse:
    def test_text(self) -> None:
        assert Gemini.format_response("text", make_response("yo")) == "yo"

    def test_json(self) -> None:
        response = make_response("yo")
        assert Gemini.format_response("json", response) is response

    def test_invalid(self) -> None:
        with pytest.raises(InvalidOutputShapeError) as exc_info:
            Gemini.format_response("markdown", make_response())
        assert exc_info.value.output == "markdown"


class TestCountAndEmbed:
    @pytest.mark.asyncio
    async def test_count(self, gemini: Gemini, transport: FakeTransport) -> None:
        transport.queue(FakeResponse(payload={"totalTokens": 2}))
        assert await gemini.count("Hello!") == 2
        model, command, body = transport.requests[0]
        assert (model, command) == ("gemini-pro", "countTokens")
        assert body == {"contents": [{"role": "user", "parts": [{"text": "Hello!"}]}]}

    @pytest.mark.asyncio
    async def test_embed(self, gemini: Gemini, transport: FakeTransport) -> None:
        transport.queue(FakeResponse(payload={"embedding": {"values": [0.1, -0.2, 0.3]}}))
        assert await gemini.embed("Hello!") == [0.1, -0.2, 0.3]
        model, command, body = transport.requests[0]
        assert (model, command) == ("embedding-001", "embedContent")
        assert body["model"] == "models/embedding-001"
        assert body["content"] == {"role": "user", "parts": [{"text": "Hello!"}]}

    @pytest.mark.asyncio
    async def test_count_malformed(self, gemini: Gemini, transport: FakeTransport) -> None:
        transport.queue(FakeResponse(payload={}))
        with pytest.raises(MalformedResponseError):
            await gemini.count("Hello!")

    @pytest.mark.asyncio
    async def test_embed_malformed(self, gemini: Gemini, transport: FakeTransport) -> None:
        transport.queue(FakeResponse(payload={"embedding": None}))
        with pytest.raises(MalformedResponseError):
            await gemini.embed("Hello!")
