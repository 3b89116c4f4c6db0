"""Tests for the Google Speech, backend and LLM clients.

HOW: The HTTP clients run against httpx.MockTransport handlers that
record each request; the LLM client gets a MagicMock in place of
openai.AsyncOpenAI. Nothing touches the network.
"""

from __future__ import annotations

import asyncio
import base64
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from meet_assistant.api.backend import BackendClient, BackendError
from meet_assistant.api.llm import LLMError, MeetingLLM, build_summary_prompt
from meet_assistant.api.speech import GoogleSpeechClient, SpeechAPIError, build_recognition_config
from meet_assistant.config import DEFAULT_PARTICIPANT, load_google_api_key, load_openai_api_key


def _recording_transport(response: httpx.Response, requests: list) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return response

    return httpx.MockTransport(handler)


# ---------------------------------------------------------------------------
# Google Speech
# ---------------------------------------------------------------------------


class TestRecognitionConfig:

    def test_diarization_pinned_to_speaker_count(self):
        config = build_recognition_config(3)
        assert config["diarizationConfig"] == {
            "enableSpeakerDiarization": True,
            "minSpeakerCount": 3,
            "maxSpeakerCount": 3,
        }
        assert config["languageCode"] == "fa-IR"
        assert config["encoding"] == "WEBM_OPUS"
        assert config["model"] == "latest_long"

    def test_speaker_count_at_least_one(self):
        assert build_recognition_config(0)["diarizationConfig"]["minSpeakerCount"] == 1


class TestGoogleSpeechClient:

    def test_recognize_posts_base64_audio(self, diarized_google_response):
        requests = []
        transport = _recording_transport(httpx.Response(200, json=diarized_google_response), requests)

        async def scenario():
            async with GoogleSpeechClient(api_key="test-key", transport=transport) as client:
                return await client.recognize(b"abc", speaker_count=3)

        response = asyncio.run(scenario())
        assert [w.text for w in response.words] == ["سلام", "خوبم", "من"]

        request = requests[0]
        assert request.method == "POST"
        assert request.url.path == "/v1/speech:recognize"
        assert request.url.params["key"] == "test-key"
        body = json.loads(request.content)
        assert body["audio"]["content"] == base64.b64encode(b"abc").decode("ascii")
        assert body["config"]["diarizationConfig"]["maxSpeakerCount"] == 3

    def test_error_status_raises(self):
        transport = _recording_transport(httpx.Response(403, text="API key not valid"), [])

        async def scenario():
            async with GoogleSpeechClient(api_key="bad", transport=transport) as client:
                await client.recognize(b"abc")

        with pytest.raises(SpeechAPIError) as exc_info:
            asyncio.run(scenario())
        assert exc_info.value.status_code == 403

    def test_requires_context_manager(self):
        client = GoogleSpeechClient(api_key="k")
        with pytest.raises(RuntimeError):
            asyncio.run(client.recognize(b"abc"))


# ---------------------------------------------------------------------------
# Backend client
# ---------------------------------------------------------------------------


class TestBackendClient:

    def test_transcribe_multipart(self):
        requests = []
        payload = {
            "transcription": [{"speakerTag": 2, "transcript": "سلام", "startTime": 0.0, "endTime": 1.0}],
            "confidence": 0.5,
        }
        transport = _recording_transport(httpx.Response(200, json=payload), requests)

        async def scenario():
            async with BackendClient("http://backend.test", transport=transport) as backend:
                return await backend.transcribe(b"clip-bytes", 0)

        result = asyncio.run(scenario())
        assert result.segments[0].speaker_tag == 2
        assert result.confidence == 0.5

        request = requests[0]
        assert request.url.path == "/api/transcribe"
        content = request.content
        assert b'name="audio"; filename="recording.webm"' in content
        assert b"clip-bytes" in content
        assert b'name="speakerCount"' in content
        assert b"\r\n\r\n1\r\n" in content

    def test_non_ok_status_raises_backend_error(self):
        transport = _recording_transport(httpx.Response(500, json={"detail": "Transcription failed"}), [])

        async def scenario():
            async with BackendClient("http://backend.test", transport=transport) as backend:
                await backend.transcribe(b"clip", 2)

        with pytest.raises(BackendError) as exc_info:
            asyncio.run(scenario())
        assert exc_info.value.status_code == 500

    def test_connection_error_raises_backend_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async def scenario():
            async with BackendClient("http://backend.test", transport=httpx.MockTransport(handler)) as backend:
                await backend.generate_summary([], ["علی"])

        with pytest.raises(BackendError):
            asyncio.run(scenario())

    def test_check_health(self):
        ok = _recording_transport(httpx.Response(200, json={"status": "OK"}), [])

        def refused(request):
            raise httpx.ConnectError("connection refused", request=request)

        async def scenario(transport):
            async with BackendClient("http://backend.test", transport=transport) as backend:
                return await backend.check_health()

        assert asyncio.run(scenario(ok)) is True
        assert asyncio.run(scenario(httpx.MockTransport(refused))) is False

    def test_generate_summary_payload(self, sample_entries):
        requests = []
        transport = _recording_transport(httpx.Response(200, json={"summary": "خلاصه"}), requests)

        async def scenario():
            async with BackendClient("http://backend.test", transport=transport) as backend:
                return await backend.generate_summary(sample_entries, [])

        assert asyncio.run(scenario()) == "خلاصه"
        body = json.loads(requests[0].content)
        assert body["speakerNames"] == [DEFAULT_PARTICIPANT]
        assert body["transcript"][1]["isQuestion"] is True
        assert len(body["transcript"]) == 3

    def test_ask(self, sample_entries):
        requests = []
        transport = _recording_transport(httpx.Response(200, json={"response": "پاسخ"}), requests)

        async def scenario():
            async with BackendClient("http://backend.test", transport=transport) as backend:
                return await backend.ask("چه شد؟", sample_entries, ["علی"])

        assert asyncio.run(scenario()) == "پاسخ"
        assert requests[0].url.path == "/api/ask-ai"
        assert json.loads(requests[0].content)["question"] == "چه شد؟"


# ---------------------------------------------------------------------------
# LLM client
# ---------------------------------------------------------------------------


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _openai_mock(result=None, error=None):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=result, side_effect=error)
    return client


class TestMeetingLLM:

    def test_summarize(self, sample_entries):
        client = _openai_mock(_completion("  خلاصه جلسه  "))
        llm = MeetingLLM(client=client, model="test-model")

        assert asyncio.run(llm.summarize(sample_entries, ["علی", "سارا"])) == "خلاصه جلسه"
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["max_tokens"] == 800
        assert kwargs["temperature"] == 0.5
        assert kwargs["messages"][0]["role"] == "system"
        assert "سارا: گزارش فروش این ماه کجاست؟" in kwargs["messages"][1]["content"]

    def test_ask_settings(self, sample_entries):
        client = _openai_mock(_completion("پاسخ"))
        llm = MeetingLLM(client=client)

        assert asyncio.run(llm.ask("چه شد؟", sample_entries, ["علی"])) == "پاسخ"
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["max_tokens"] == 500
        assert kwargs["temperature"] == 0.7
        assert "سوال: چه شد؟" in kwargs["messages"][1]["content"]

    def test_empty_completion_is_error(self, sample_entries):
        llm = MeetingLLM(client=_openai_mock(_completion("")))
        with pytest.raises(LLMError):
            asyncio.run(llm.summarize(sample_entries, ["علی"]))

    def test_sdk_error_is_wrapped(self, sample_entries):
        llm = MeetingLLM(client=_openai_mock(error=openai.OpenAIError("quota exceeded")))
        with pytest.raises(LLMError, match="quota exceeded"):
            asyncio.run(llm.summarize(sample_entries, ["علی"]))

    def test_summary_prompt_lists_participants(self, sample_entries):
        prompt = build_summary_prompt(sample_entries, ["علی", "سارا"])
        assert "شرکت‌کنندگان: علی, سارا" in prompt


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestApiKeys:

    def test_missing_google_key(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_SPEECH_API_KEY", raising=False)
        with pytest.raises(ValueError, match="GOOGLE_SPEECH_API_KEY"):
            load_google_api_key()

    def test_google_key_is_stripped(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_SPEECH_API_KEY", "  abc  ")
        assert load_google_api_key() == "abc"

    def test_missing_openai_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            load_openai_api_key()
