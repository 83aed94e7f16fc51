"""Tests for transport envelope decoding."""

from __future__ import annotations

from design_stream.envelopes import Chunk, Done, Error, Usage, decode_envelopes, encode_envelope
from design_stream.models import DEFAULT_MODEL, DEFAULT_PROVIDER, UsageData


class TestDecodeEnvelopes:
    """Tests for decode_envelopes()."""

    def test_chunk(self) -> None:
        assert decode_envelopes({"chunk": "<div>"}) == [Chunk(text="<div>")]

    def test_empty_chunk_ignored(self) -> None:
        assert decode_envelopes({"chunk": ""}) == []

    def test_non_string_chunk_ignored(self) -> None:
        assert decode_envelopes({"chunk": 42}) == []

    def test_usage(self) -> None:
        (envelope,) = decode_envelopes(
            {
                "usage": {
                    "inputTokens": 1200,
                    "outputTokens": 3400,
                    "cachedTokens": 800,
                    "model": "gemini-3-flash-preview",
                    "provider": "gemini",
                }
            }
        )
        assert isinstance(envelope, Usage)
        assert envelope.usage == UsageData(
            input_tokens=1200,
            output_tokens=3400,
            cached_tokens=800,
            total_tokens=4600,
            model="gemini-3-flash-preview",
            provider="gemini",
        )

    def test_usage_defaults(self) -> None:
        (envelope,) = decode_envelopes({"usage": {}})
        assert isinstance(envelope, Usage)
        assert envelope.usage.input_tokens == 0
        assert envelope.usage.model == DEFAULT_MODEL
        assert envelope.usage.provider == DEFAULT_PROVIDER

    def test_done(self) -> None:
        assert decode_envelopes({"done": True}) == [Done()]

    def test_done_with_remaining(self) -> None:
        assert decode_envelopes({"done": True, "messagesRemaining": 3}) == [
            Done(messages_remaining=3)
        ]

    def test_done_false_ignored(self) -> None:
        assert decode_envelopes({"done": False}) == []

    def test_error_wins(self) -> None:
        assert decode_envelopes({"error": "boom", "chunk": "x", "done": True}) == [
            Error(message="boom")
        ]

    def test_chunk_before_done(self) -> None:
        assert decode_envelopes({"done": True, "chunk": "last"}) == [
            Chunk(text="last"),
            Done(),
        ]

    def test_unknown_keys(self) -> None:
        assert decode_envelopes({"ping": 1}) == []


class TestEncodeEnvelope:
    """Tests for encode_envelope()."""

    def test_done_omits_missing_remaining(self) -> None:
        assert encode_envelope(Done()) == {"done": True}

    def test_done_with_remaining(self) -> None:
        assert encode_envelope(Done(messages_remaining=0)) == {"done": True, "messagesRemaining": 0}

    def test_usage_shape(self) -> None:
        data = encode_envelope(Usage(usage=UsageData(input_tokens=1, output_tokens=2, total_tokens=3)))
        assert data["usage"]["inputTokens"] == 1
        assert data["usage"]["totalTokens"] == 3

    def test_error_decodes_back(self) -> None:
        assert decode_envelopes(encode_envelope(Error(message="bad"))) == [Error(message="bad")]
