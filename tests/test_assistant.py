"""Tests for the query assistant HTTP client."""

import json

import httpx
import pytest

from queryjam.ai.assistant import QueryAssistant
from queryjam.core.errors import UpstreamUnavailableError, ValidationError


def completion(content, status_code=200):
    """Mock transport answering every request with one chat completion."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if status_code != 200:
            return httpx.Response(status_code, text="upstream broke")
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

    return httpx.MockTransport(handler), calls


def make_assistant(content, status_code=200):
    transport, calls = completion(content, status_code)
    assistant = QueryAssistant(api_key="sk-test", base_url="https://ai.test/v1/", transport=transport)
    return assistant, calls


class TestGenerate:

    @pytest.mark.asyncio
    async def test_returns_query_text(self):
        assistant, calls = make_assistant('{"filter": {"age": {"$gt": 25}}}')
        columns = [{"name": "age", "type": "number"}]

        text = await assistant.generate("people older than 25", columns)

        assert json.loads(text) == {"filter": {"age": {"$gt": 25}}}
        request = calls[0]
        assert str(request.url) == "https://ai.test/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        body = json.loads(request.content)
        assert body["messages"][1] == {"role": "user", "content": "people older than 25"}
        assert '"age"' in body["messages"][0]["content"]
        await assistant.close()

    @pytest.mark.asyncio
    async def test_strips_code_fences(self):
        assistant, _ = make_assistant('```json\n{"filter": {"city": "Oslo"}}\n```')
        text = await assistant.generate("people in Oslo")
        assert json.loads(text) == {"filter": {"city": "Oslo"}}

    @pytest.mark.asyncio
    async def test_denylisted_reply_rejected(self):
        assistant, _ = make_assistant('{"filter": {"$where": "this.age > 1"}}')
        with pytest.raises(ValidationError) as exc:
            await assistant.generate("anything")
        assert "$where" in exc.value.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", ["Sure! Here you go", "[1, 2]", ""])
    async def test_non_object_reply_rejected(self, reply):
        assistant, _ = make_assistant(reply)
        with pytest.raises(ValidationError):
            await assistant.generate("anything")


class TestUnavailable:

    @pytest.mark.asyncio
    async def test_no_api_key(self):
        assistant = QueryAssistant(api_key=None)
        assert not assistant.enabled
        with pytest.raises(UpstreamUnavailableError) as exc:
            await assistant.explain("{}")
        assert exc.value.status_code == 503

    @pytest.mark.asyncio
    async def test_upstream_error_status(self):
        assistant, _ = make_assistant("", status_code=500)
        with pytest.raises(UpstreamUnavailableError) as exc:
            await assistant.suggest("{}")
        assert "500" in exc.value.message

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        assistant = QueryAssistant(api_key="sk-test", transport=httpx.MockTransport(handler))
        with pytest.raises(UpstreamUnavailableError):
            await assistant.explain("{}")

    @pytest.mark.asyncio
    async def test_explain_error_falls_back_to_message(self):
        assistant = QueryAssistant(api_key=None)
        assert await assistant.explain_error("Dataset not found") == "Dataset not found"


class TestExplainAndSuggest:

    @pytest.mark.asyncio
    async def test_explain(self):
        assistant, _ = make_assistant("Finds everyone older than 25.")
        assert await assistant.explain('{"filter": {"age": {"$gt": 25}}}') == "Finds everyone older than 25."

    @pytest.mark.asyncio
    async def test_suggest_json_list(self):
        assistant, _ = make_assistant('["Add a limit", "Project only needed fields"]')
        assert await assistant.suggest("{}") == ["Add a limit", "Project only needed fields"]

    @pytest.mark.asyncio
    async def test_suggest_plain_text(self):
        assistant, _ = make_assistant("Add an index on age")
        assert await assistant.suggest("{}") == ["Add an index on age"]

    @pytest.mark.asyncio
    async def test_explain_error(self):
        assistant, _ = make_assistant("The dataset was deleted; pick another one.")
        assert await assistant.explain_error("Dataset not found") == "The dataset was deleted; pick another one."
