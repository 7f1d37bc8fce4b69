"""Tests for the advisory suggestion client."""

from __future__ import annotations

import json

import httpx
import pytest

from resume_tailor.agents import HttpSuggestionService, NoopSuggestionService, SuggestionRequest
from resume_tailor.agents.suggestions import parse_suggestions
from resume_tailor.errors import DependencyUnavailable


def completion(content) -> httpx.Response:
    body = {"choices": [{"message": {"role": "assistant", "content": content}}]}
    return httpx.Response(200, json=body)


def make_service(handler, **kwargs) -> HttpSuggestionService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpSuggestionService(api_key="sk-test", api_base="https://llm.example.com/v1/", client=client, **kwargs)


class TestParseSuggestions:
    def test_object_with_actions(self):
        content = json.dumps({"actions": [{"tool": "skills.optimize"}, "junk", 3]})
        assert parse_suggestions(content) == [{"tool": "skills.optimize"}]

    def test_bare_list(self):
        assert parse_suggestions([{"tool": "design.theme"}]) == [{"tool": "design.theme"}]

    @pytest.mark.parametrize("content", ["not json", json.dumps({"tool": "x"}), "42"])
    def test_rejects_other_shapes(self, content):
        with pytest.raises(ValueError):
            parse_suggestions(content)


class TestHttpSuggestionService:
    @pytest.mark.asyncio
    async def test_request_shape(self, sample_resume):
        seen = []

        def handler(request):
            seen.append(request)
            return completion(json.dumps({"actions": [{"tool": "content.strengthen", "args": {"section": "summary"}}]}))

        service = make_service(handler, model="test-model")
        items = await service.suggest(
            SuggestionRequest(command="tailor", resume=sample_resume, job_text="Python role")
        )
        await service.close()

        assert items == [{"tool": "content.strengthen", "args": {"section": "summary"}}]
        request = seen[0]
        assert str(request.url) == "https://llm.example.com/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        payload = json.loads(request.content)
        assert payload["model"] == "test-model"
        assert "content.strengthen" in payload["messages"][0]["content"]
        assert "Dana Levi" in payload["messages"][1]["content"]
        assert "Python role" in payload["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_caps_item_count(self):
        items = [{"tool": "skills.add", "args": {"skills": [f"S{i}"]}} for i in range(9)]
        service = make_service(lambda request: completion(json.dumps({"actions": items})), max_items=3)
        assert len(await service.suggest(SuggestionRequest(command="tailor"))) == 3
        await service.close()

    @pytest.mark.asyncio
    async def test_http_error_is_unavailable(self):
        service = make_service(lambda request: httpx.Response(500, json={"error": "boom"}))
        with pytest.raises(DependencyUnavailable):
            await service.suggest(SuggestionRequest(command="tailor"))
        await service.close()

    @pytest.mark.asyncio
    async def test_malformed_output_is_unavailable(self):
        service = make_service(lambda request: completion("Sure! Here are some ideas"))
        with pytest.raises(DependencyUnavailable):
            await service.suggest(SuggestionRequest(command="tailor"))
        await service.close()

    @pytest.mark.asyncio
    async def test_missing_choices_is_unavailable(self):
        service = make_service(lambda request: httpx.Response(200, json={"id": "x"}))
        with pytest.raises(DependencyUnavailable):
            await service.suggest(SuggestionRequest(command="tailor"))
        await service.close()


@pytest.mark.asyncio
async def test_noop_service():
    service = NoopSuggestionService()
    assert await service.suggest(SuggestionRequest(command="anything")) == []
    await service.close()
