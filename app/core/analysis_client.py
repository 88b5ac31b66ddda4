"""
CareBoard - Generative Analysis Client

Wraps the two calls made to the multimodal model:

- report image + fixed instruction -> free-text treatment narrative
- narrative + fixed instruction -> raw JSON text of a Kanban board

The client is chosen once. With a Gemini key configured the calls go to
Gemini from the server, otherwise a deterministic rule-based client is
used. Neither implementation retries.
"""

import asyncio
import base64
import io
import json
import re
from abc import ABC, abstractmethod
from typing import Optional

from PIL import Image

from app.config import settings
from app.core.errors import AnalysisError
from app.core.prompts import REPORT_ANALYSIS_PROMPT, build_board_prompt
from app.utils.logger import get_logger

logger = get_logger("analysis_client")


def encode_image(image_bytes: bytes) -> str:
    """Base64 payload for an inline image part."""
    return base64.b64encode(image_bytes).decode("ascii")


class AnalysisClient(ABC):
    """Interface shared by every analysis provider."""

    provider: str = "unknown"
    model: str = "unknown"

    @abstractmethod
    async def analyze_report(self, image_bytes: bytes, mime_type: str) -> str:
        """Return a treatment narrative for a report image."""

    @abstractmethod
    async def generate_board(self, narrative: str) -> str:
        """Return raw model text expected to be board JSON."""

    @staticmethod
    def _check_image(image_bytes: bytes, mime_type: str) -> None:
        if not image_bytes:
            raise AnalysisError("Report image is empty.")
        if not (mime_type or "").startswith("image/"):
            raise AnalysisError(f"Unsupported media type: {mime_type}")


class GeminiAnalysisClient(AnalysisClient):
    """
    Gemini integration through the google-genai SDK.

    The API key stays on the server; browsers never see it.
    """

    provider = "gemini"

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        timeout_seconds: Optional[float] = None
    ):
        from google import genai

        self.client = genai.Client(api_key=api_key)
        self.model = model or settings.gemini_model
        self.timeout_seconds = timeout_seconds
        logger.info("Gemini client initialized", model=self.model)

    async def analyze_report(self, image_bytes: bytes, mime_type: str) -> str:
        from google.genai import types

        self._check_image(image_bytes, mime_type)
        # The SDK transmits inline data base64 encoded
        contents = [
            REPORT_ANALYSIS_PROMPT,
            types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
        ]
        return await self._generate(contents, call="analyze_report")

    async def generate_board(self, narrative: str) -> str:
        from google.genai import types

        config = types.GenerateContentConfig(response_mime_type="application/json")
        return await self._generate(
            build_board_prompt(narrative),
            call="generate_board",
            config=config
        )

    async def _generate(self, contents, call: str, config=None) -> str:
        request = self.client.aio.models.generate_content(
            model=self.model,
            contents=contents,
            config=config
        )
        try:
            if self.timeout_seconds:
                response = await asyncio.wait_for(request, timeout=self.timeout_seconds)
            else:
                response = await request
        except asyncio.TimeoutError as e:
            logger.error("Gemini call timed out", call=call, timeout=self.timeout_seconds)
            raise AnalysisError("The analysis service did not respond in time.") from e
        except Exception as e:
            logger.error("Gemini call failed", call=call, error=str(e))
            raise AnalysisError(f"Analysis service error: {e}") from e

        text = response.text
        if not text or not text.strip():
            raise AnalysisError("The analysis service returned an empty response.")

        logger.info("Gemini call completed", call=call, chars=len(text))
        return text


class LocalAnalysisClient(AnalysisClient):
    """
    Rule-based analysis used when no external provider is configured.

    Produces a generic narrative from the image metadata and turns each
    sentence of a narrative into a Todo task.
    """

    provider = "local"
    model = "rule-based-planner"

    COLUMNS = [
        {"id": "todo", "title": "Todo"},
        {"id": "doing", "title": "Work in progress"},
        {"id": "done", "title": "Done"},
    ]

    MAX_TASKS = 8

    async def analyze_report(self, image_bytes: bytes, mime_type: str) -> str:
        self._check_image(image_bytes, mime_type)
        logger.info("Performing local analysis", payload_chars=len(encode_image(image_bytes)))

        try:
            with Image.open(io.BytesIO(image_bytes)) as img:
                description = f"{img.format or 'image'} report of {img.width}x{img.height} pixels"
        except Exception:
            description = f"{mime_type} report"

        return (
            f"Your {description} has been received for review. "
            "Book a consultation with your specialist to go through the findings. "
            "Complete any blood tests or scans your care team requests. "
            "Keep a written list of your current medications and symptoms. "
            "Schedule a follow-up appointment to agree on the treatment plan."
        )

    async def generate_board(self, narrative: str) -> str:
        sentences = [
            s.strip()
            for s in re.split(r"(?<=[.!?])\s+", narrative or "")
            if s.strip()
        ]
        tasks = [
            {"id": str(i), "columnId": "todo", "content": sentence.rstrip(".!?")}
            for i, sentence in enumerate(sentences[:self.MAX_TASKS], start=1)
        ]
        return json.dumps({"columns": self.COLUMNS, "tasks": tasks})


# Module-level singleton
_client_instance: Optional[AnalysisClient] = None


def get_analysis_client() -> AnalysisClient:
    """Get or create the configured analysis client."""
    global _client_instance
    if _client_instance is None:
        if settings.gemini_api_key:
            _client_instance = GeminiAnalysisClient(
                api_key=settings.gemini_api_key,
                model=settings.gemini_model,
                timeout_seconds=settings.analysis_timeout_seconds
            )
        else:
            logger.info("External provider not configured, using local analysis")
            _client_instance = LocalAnalysisClient()
    return _client_instance
