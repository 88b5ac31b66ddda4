"""
Test doubles shared by the CareBoard test suite.
"""

import asyncio
import io
from typing import List, Optional

from PIL import Image

from app.core.analysis_client import AnalysisClient
from app.core.prompts import EXAMPLE_BOARD_JSON
from app.services.record_store import RecordStore


class StubAnalysisClient(AnalysisClient):
    """Deterministic model double that records every call."""

    provider = "stub"
    model = "stub-model"

    def __init__(
        self,
        narrative: str = "Patient needs chemotherapy.",
        board_text: str = EXAMPLE_BOARD_JSON,
        error: Optional[Exception] = None,
        block: bool = False
    ):
        self.narrative = narrative
        self.board_text = board_text
        self.error = error
        self.block = block
        self.calls: List[tuple] = []

    async def analyze_report(self, image_bytes: bytes, mime_type: str) -> str:
        self.calls.append(("analyze_report", mime_type))
        return await self._respond(self.narrative)

    async def generate_board(self, narrative: str) -> str:
        self.calls.append(("generate_board", narrative))
        return await self._respond(self.board_text)

    async def _respond(self, text: str) -> str:
        if self.error:
            raise self.error
        if self.block:
            await asyncio.Event().wait()
        return text


class SpyRecordStore(RecordStore):
    """In-memory store that keeps the arguments of every update."""

    def __init__(self):
        super().__init__(":memory:")
        self.updates: List[dict] = []

    def update_record(self, document_id, analysis_result=None, kanban_records=None):
        self.updates.append({
            "document_id": document_id,
            "analysis_result": analysis_result,
            "kanban_records": kanban_records,
        })
        return super().update_record(
            document_id,
            analysis_result=analysis_result,
            kanban_records=kanban_records
        )


def make_png(size=(64, 64), color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()
