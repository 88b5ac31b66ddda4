"""
Tests for the analysis clients.
"""

import asyncio
import json
from types import SimpleNamespace

import pytest

from app.core.analysis_client import GeminiAnalysisClient, LocalAnalysisClient
from app.core.errors import AnalysisError
from app.core.prompts import REPORT_ANALYSIS_PROMPT, build_board_prompt


class FakeModels:
    """Stands in for `client.aio.models` of the genai SDK."""

    def __init__(self, text="Treatment plan text", error=None, delay=0.0):
        self.text = text
        self.error = error
        self.delay = delay
        self.requests = []

    async def generate_content(self, model, contents, config=None):
        self.requests.append({"model": model, "contents": contents, "config": config})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return SimpleNamespace(text=self.text)


def make_gemini(models, timeout_seconds=None):
    client = GeminiAnalysisClient(api_key="test-key", model="gemini-test", timeout_seconds=timeout_seconds)
    client.client = SimpleNamespace(aio=SimpleNamespace(models=models))
    return client


class TestGeminiAnalysisClient:
    """Test the Gemini request shapes and failure handling."""

    def test_analyze_report_sends_prompt_and_image(self, png_bytes):
        models = FakeModels()
        client = make_gemini(models)

        text = asyncio.run(client.analyze_report(png_bytes, "image/png"))

        assert text == "Treatment plan text"
        request = models.requests[0]
        assert request["model"] == "gemini-test"
        assert request["contents"][0] == REPORT_ANALYSIS_PROMPT
        assert request["contents"][1].inline_data.mime_type == "image/png"

    def test_generate_board_requests_json(self):
        models = FakeModels(text='{"columns": [], "tasks": []}')
        client = make_gemini(models)

        text = asyncio.run(client.generate_board("Rest and hydrate."))

        assert text == '{"columns": [], "tasks": []}'
        assert models.requests[0]["contents"] == build_board_prompt("Rest and hydrate.")
        assert models.requests[0]["config"].response_mime_type == "application/json"

    def test_sdk_error_raises_analysis_error(self, png_bytes):
        client = make_gemini(FakeModels(error=RuntimeError("403 forbidden")))

        with pytest.raises(AnalysisError):
            asyncio.run(client.analyze_report(png_bytes, "image/png"))

    def test_empty_response_raises(self):
        client = make_gemini(FakeModels(text=""))

        with pytest.raises(AnalysisError):
            asyncio.run(client.generate_board("Rest."))

    def test_timeout(self):
        client = make_gemini(FakeModels(delay=1.0), timeout_seconds=0.01)

        with pytest.raises(AnalysisError, match="in time"):
            asyncio.run(client.generate_board("Rest."))

    def test_rejects_non_image(self):
        models = FakeModels()
        client = make_gemini(models)

        with pytest.raises(AnalysisError):
            asyncio.run(client.analyze_report(b"%PDF", "application/pdf"))
        assert models.requests == []


class TestLocalAnalysisClient:
    """Test the rule-based client."""

    def test_narrative_mentions_image(self, png_bytes):
        text = asyncio.run(LocalAnalysisClient().analyze_report(png_bytes, "image/png"))

        assert "PNG report of 64x64 pixels" in text

    def test_board_from_narrative(self):
        narrative = "Patient needs chemotherapy. Schedule a follow-up scan!"

        board = json.loads(asyncio.run(LocalAnalysisClient().generate_board(narrative)))

        assert [c["id"] for c in board["columns"]] == ["todo", "doing", "done"]
        assert [t["content"] for t in board["tasks"]] == [
            "Patient needs chemotherapy",
            "Schedule a follow-up scan",
        ]
        assert all(t["columnId"] == "todo" for t in board["tasks"])

    def test_board_task_limit(self):
        narrative = " ".join(f"Step {i}." for i in range(20))

        board = json.loads(asyncio.run(LocalAnalysisClient().generate_board(narrative)))

        assert len(board["tasks"]) == LocalAnalysisClient.MAX_TASKS
