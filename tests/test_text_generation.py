"""Test cases for the generative-text client and AI-assisted assessments."""

from __future__ import annotations

import asyncio
import json
import types

import pytest

from engines import text_generation as text_generation_module
from engines.text_generation import (
    AIAssessmentService,
    GenerativeTextError,
    HttpGenerativeTextClient,
    default_concept_recommendations,
    default_skill_assessment,
)
from learning_taxonomy import LegacyLearningStyle, SkillLevel
from schemas import UserProgress


@pytest.fixture
def httpx_stub(monkeypatch):
    """Patch the httpx module used by the client with a controllable stub."""

    calls = []
    responses: list = []

    class _StubHTTPStatusError(Exception):
        def __init__(self, message: str, *, request=None, response=None):
            super().__init__(message)
            self.request = request
            self.response = response

    class _StubTimeoutError(Exception):
        pass

    class _StubRequestError(Exception):
        pass

    class _StubResponse:
        def __init__(self, status_code: int, payload):
            self.status_code = status_code
            self._payload = payload

        def raise_for_status(self):
            if self.status_code >= 400:
                raise _StubHTTPStatusError(f"HTTP {self.status_code}", response=self)

        def json(self):
            return self._payload

    class _StubAsyncClient:
        def __init__(self, *args, **kwargs):
            self.kwargs = kwargs

        async def post(self, url, json=None, headers=None):
            if not responses:
                raise AssertionError("httpx stub has no queued responses")
            calls.append({"url": url, "json": json, "headers": headers, "client_kwargs": self.kwargs})
            queued = responses.pop(0)
            if isinstance(queued, Exception):
                raise queued
            status_code, payload = queued
            return _StubResponse(status_code, payload)

        async def aclose(self):
            return None

    stub_module = types.SimpleNamespace(
        AsyncClient=_StubAsyncClient,
        HTTPStatusError=_StubHTTPStatusError,
        TimeoutException=_StubTimeoutError,
        RequestError=_StubRequestError,
    )
    monkeypatch.setattr(text_generation_module, "httpx", stub_module)

    return {"responses": responses, "calls": calls, "module": stub_module}


@pytest.fixture
def client():
    return HttpGenerativeTextClient(
        {
            "api_url": "https://text.invalid/v1/generate",
            "api_key": "secret",
            "model_id": "test-model",
            "timeout": 5,
            "max_retries": 1,
            "retry_backoff": 0,
        }
    )


def make_progress(**overrides):
    values = {"user_id": "learner-1"}
    values.update(overrides)
    return UserProgress(**values)


class SlowGenerator:
    async def prompt(self, text):
        await asyncio.sleep(1)
        return "[]"


class QueuedGenerator:
    def __init__(self, *responses):
        self.responses = list(responses)

    async def prompt(self, text):
        return self.responses.pop(0) if self.responses else None


@pytest.mark.anyio("asyncio")
async def test_client_posts_model_and_prompt(client, httpx_stub):
    httpx_stub["responses"].append((200, {"text": "Try nested loops next."}))

    result = await client.prompt("What next?")

    assert result == "Try nested loops next."
    call = httpx_stub["calls"][0]
    assert call["url"] == "https://text.invalid/v1/generate"
    assert call["json"] == {"model": "test-model", "prompt": "What next?"}
    assert call["headers"]["Authorization"] == "Bearer secret"
    assert call["client_kwargs"]["timeout"] == 5.0


@pytest.mark.anyio("asyncio")
async def test_client_retries_after_http_error(client, httpx_stub):
    httpx_stub["responses"].extend([(503, {}), (200, {"data": {"content": "ok"}})])

    assert await client.generate("hello") == "ok"
    assert len(httpx_stub["calls"]) == 2


@pytest.mark.anyio("asyncio")
async def test_client_returns_none_after_exhausting_retries(client, httpx_stub):
    stub = httpx_stub["module"]
    httpx_stub["responses"].extend([stub.TimeoutException("slow"), stub.RequestError("down")])

    assert await client.prompt("hello") is None

    httpx_stub["responses"].extend([(200, {"unexpected": 1}), (200, {"text": "  "})])
    with pytest.raises(GenerativeTextError):
        await client.generate("hello")


@pytest.mark.anyio("asyncio")
async def test_client_without_url_is_unavailable(httpx_stub):
    client = HttpGenerativeTextClient({"model_id": "m"})

    assert await client.prompt("hello") is None
    assert httpx_stub["calls"] == []


def test_deterministic_skill_assessment_uses_mastered_count():
    beginner = default_skill_assessment(make_progress(concepts_mastered=["a"] * 4))
    intermediate = default_skill_assessment(make_progress(concepts_mastered=[str(i) for i in range(5)]))
    advanced = default_skill_assessment(make_progress(concepts_mastered=[str(i) for i in range(10)]))

    assert set(beginner) == set(text_generation_module.ASSESSED_SKILLS)
    assert set(beginner.values()) == {SkillLevel.BEGINNER}
    assert set(intermediate.values()) == {SkillLevel.INTERMEDIATE}
    assert set(advanced.values()) == {SkillLevel.ADVANCED}


def test_deterministic_concepts_prefer_in_progress():
    progress = make_progress(
        concepts_mastered=["sequences"],
        concepts_in_progress=["conditionals"],
    )

    assert default_concept_recommendations(progress, 3) == ["conditionals", "basic patterns", "simple loops"]
    assert default_concept_recommendations(progress, 0) == []


@pytest.mark.anyio("asyncio")
async def test_assessment_parses_embedded_json():
    payload = {
        "PATTERN_RECOGNITION": {"level": "advanced", "explanation": "Strong"},
        "LOGICAL_THINKING": "INTERMEDIATE",
    }
    service = AIAssessmentService(QueuedGenerator(f"Here you go: {json.dumps(payload)} Thanks!"))

    result = await service.assess_skills(make_progress(), recent_solutions=2)

    assert result == {
        "PATTERN_RECOGNITION": SkillLevel.ADVANCED,
        "LOGICAL_THINKING": SkillLevel.INTERMEDIATE,
    }


@pytest.mark.anyio("asyncio")
async def test_malformed_assessment_falls_back():
    service = AIAssessmentService(QueuedGenerator("I think they are doing great"))

    assert await service.assess_skills(make_progress()) is None


@pytest.mark.anyio("asyncio")
async def test_timeout_falls_back():
    service = AIAssessmentService(SlowGenerator(), timeout=0.01)

    assert await service.recommend_concepts(make_progress(), 3) is None


@pytest.mark.anyio("asyncio")
async def test_concept_recommendations_truncated_to_count():
    service = AIAssessmentService(QueuedGenerator('["loops", "variables", "functions"]'))

    assert await service.recommend_concepts(make_progress(), 2) == ["loops", "variables"]


@pytest.mark.anyio("asyncio")
async def test_learning_style_label_detection():
    service = AIAssessmentService(QueuedGenerator("The learner seems kinesthetic.", "No idea"))
    history = {"timeInStories": 10, "timeInChallenges": 30}

    assert await service.detect_learning_style(make_progress(), history) == LegacyLearningStyle.KINESTHETIC
    assert await service.detect_learning_style(make_progress(), history) == LegacyLearningStyle.MIXED
    assert await service.detect_learning_style(make_progress(), None) == LegacyLearningStyle.MIXED


def test_disabled_service_and_timeout_validation():
    assert not AIAssessmentService(None).enabled
    with pytest.raises(ValueError):
        AIAssessmentService(None, timeout=0)
